"""Shared fixtures for core unit tests"""

import pytest

from mdwiki.config import Settings


SAMPLE_MD = """\
---
title: Sample
links: "[[not-a-link]]"
---

# Notes on [[Topic]]

See [[Other Page|the other page]] and *emphasis*.

```python
x = "[[still code]]"
```

Last line [[Final]].
"""


@pytest.fixture(name="settings")
def settings_fixture():
    return Settings()


@pytest.fixture(name="sample_md")
def sample_md_fixture():
    return SAMPLE_MD
