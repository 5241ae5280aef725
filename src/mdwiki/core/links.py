"""Collect wikilinks from the overlay output"""

from dataclasses import dataclass
from typing import Optional

from mdwiki.config import Settings
from mdwiki.core.models import Event, Span, Start, TagKind, Text, is_end, is_start
from mdwiki.core.overlay import offset_events


@dataclass(frozen=True)
class WikiLink:
    target: str
    display: str
    span: Span      # the whole [[...]] in the source


def _is_wikilink_start(source: str, event: Event, span: Span, title: str) -> bool:
    """A synthesized link carries the wikilink title and spans a whole `[[...]]`."""
    text = span.slice(source)
    return (
        is_start(event, TagKind.link)
        and event.tag.title == title
        and text.startswith('[[')
        and text.endswith(']]')
    )


def extract_wikilinks(source: str, settings: Optional[Settings] = None) -> list[WikiLink]:
    """Return every wikilink outside front matter and code, in document order.

    Synthesized links are told apart from markdown links by their spans: the
    Start, Text and End of a wikilink all share the outer `[[...]]` span,
    while a markdown link's Text covers only its label.
    """
    settings = settings or Settings()
    links: list[WikiLink] = []
    current: Optional[tuple[Start, Span]] = None
    display: Optional[str] = None

    for event, span in offset_events(source, settings, wikilinks=True):
        if _is_wikilink_start(source, event, span, settings.wikilink_title):
            current, display = (event, span), None
        elif current is None:
            continue
        elif isinstance(event, Text) and display is None and span == current[1]:
            display = event.text
        elif is_end(event, TagKind.link) and display is not None and span == current[1]:
            start, outer = current
            links.append(WikiLink(start.tag.dest_url, display, outer))
            current = None
        else:
            current = None
    return links
