"""Merge adjacent Text events and drop empty ones"""

from typing import Iterable

from mdwiki.core.models import OffsetEvent, Span, Text
from mdwiki.core.utils.peek import Peekable


class TextCoalescer:
    """Wrap an (Event, Span) stream so every Text event is one maximal, non-empty run.

    Merged text is re-sliced from `source` over the first-to-last span rather
    than concatenated, so split or zero-length upstream artifacts vanish.
    """

    def __init__(self, source: str, events: Iterable[OffsetEvent]):
        self.source = source
        self.events: Peekable[OffsetEvent] = Peekable(events)

    def __iter__(self) -> "TextCoalescer":
        return self

    def __next__(self) -> OffsetEvent:
        while True:
            head = self.events.peek()
            if head is None:
                raise StopIteration
            if not isinstance(head[0], Text):
                return next(self.events)

            start = end = None
            while (item := self.events.peek()) is not None and isinstance(item[0], Text):
                span = next(self.events)[1]
                if span.is_empty:
                    continue
                if start is None:
                    start = span.start
                end = span.end

            if start is not None:
                merged = Span(start, end)
                return Text(merged.slice(self.source)), merged
