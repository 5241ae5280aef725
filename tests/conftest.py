"""Root test configuration: keep config files and env vars from leaking into tests"""

import pytest

from mdwiki.config import ENV_PREFIX, Settings


@pytest.fixture(autouse=True)
def isolate_config(tmp_path, monkeypatch):
    """Run every test from an empty directory with no MDWIKI_* variables set."""
    monkeypatch.chdir(tmp_path)
    for name in Settings.model_fields:
        monkeypatch.delenv(f"{ENV_PREFIX}{name.upper()}", raising=False)
