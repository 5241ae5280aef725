"""Wikilink overlay: routes plain text through the wikilink parser and splices the result back"""

import logging
from collections import deque
from enum import Enum
from typing import Iterable, Iterator, Optional

from mdwiki.config import Settings
from mdwiki.core.coalesce import TextCoalescer
from mdwiki.core.models import Event, OffsetEvent, TagKind, Text, is_end, is_start
from mdwiki.core.parse import MarkdownEvents
from mdwiki.core.wikilink import WIKILINK_TITLE, WikilinkParser


logger = logging.getLogger(__name__)


class OverlayState(str, Enum):
    """Which kind of region the upstream stream is currently inside"""
    plain = "plain"
    in_metadata = "in_metadata"
    in_code_block = "in_code_block"


# container kind -> region its Start opens and its End closes
OPAQUE_REGIONS: dict[TagKind, OverlayState] = {
    TagKind.metadata_block: OverlayState.in_metadata,
    TagKind.code_block: OverlayState.in_code_block,
}


class StreamOverlay:
    """Expand wikilinks in the plain-text events of a coalesced (Event, Span) stream.

    Text inside metadata blocks and code blocks passes through untouched. Each
    plain Text event is handed to a fresh WikilinkParser whose whole output is
    queued and drained before the next upstream event is pulled.
    """

    def __init__(self, source: str, events: Iterable[OffsetEvent], title: str = WIKILINK_TITLE):
        self.source = source
        self.title = title
        self.events = iter(events)
        self.state = OverlayState.plain
        self.buffer: deque[OffsetEvent] = deque()

    def __iter__(self) -> "StreamOverlay":
        return self

    def __next__(self) -> OffsetEvent:
        while not self.buffer:
            event, span = next(self.events)
            if isinstance(event, Text) and self.state == OverlayState.plain:
                self.buffer.extend(WikilinkParser(self.source, span, self.title))
                continue
            self._transition(event)
            return event, span
        return self.buffer.popleft()

    def _transition(self, event: Event) -> None:
        for kind, region in OPAQUE_REGIONS.items():
            if self.state == OverlayState.plain and is_start(event, kind):
                self._enter(region)
            elif self.state == region and is_end(event, kind):
                self._enter(OverlayState.plain)

    def _enter(self, state: OverlayState) -> None:
        logger.debug("Overlay state %s -> %s", self.state.value, state.value)
        self.state = state


def offset_events(source: str, settings: Optional[Settings] = None, wikilinks: Optional[bool] = None):
    """Build the coalesced (and, when enabled, wikilink-expanded) (Event, Span) stream."""
    settings = settings or Settings()
    enabled = settings.wikilinks if wikilinks is None else wikilinks
    events = TextCoalescer(source, MarkdownEvents(source, settings))
    if not enabled:
        return events
    return StreamOverlay(source, events, settings.wikilink_title)


class Parser:
    """Iterator of markdown Events for `source`, with wikilinks expanded.

    `wikilinks=None` defers to `settings.wikilinks`. Use `into_offset_iter()`
    to get (Event, Span) pairs instead.
    """

    def __init__(self, source: str, settings: Optional[Settings] = None, wikilinks: Optional[bool] = None):
        self.source = source
        self.settings = settings or Settings()
        self.wikilinks = self.settings.wikilinks if wikilinks is None else wikilinks
        self._events = offset_events(source, self.settings, self.wikilinks)

    def __iter__(self) -> "Parser":
        return self

    def __next__(self) -> Event:
        return next(self._events)[0]

    def into_offset_iter(self) -> "OffsetIter":
        """Continue from the current position, yielding (Event, Span) pairs instead."""
        return OffsetIter(self._events)


class OffsetIter:
    """Iterator of (Event, Span) pairs; spans index into the original source."""

    def __init__(self, events: Iterator[OffsetEvent]):
        self._events = events

    def __iter__(self) -> "OffsetIter":
        return self

    def __next__(self) -> OffsetEvent:
        return next(self._events)
