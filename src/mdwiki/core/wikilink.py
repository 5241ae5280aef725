"""Recursive-descent wikilink parser over the tokens of a single text span"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Optional, Union

from mdwiki.core.lexer import Lexer, Token, TokenKind
from mdwiki.core.models import End, OffsetEvent, Span, Start, Tag, TagKind, Text
from mdwiki.core.utils.peek import Peekable


logger = logging.getLogger(__name__)

WIKILINK_TITLE = "wiki"


@dataclass(frozen=True)
class Empty:
    """Nothing was scanned before the span ran out."""

    def extend_before(self, span: Span) -> "Reparse":
        return Reparse(span)


@dataclass(frozen=True)
class Reparse:
    """The given span must be re-emitted verbatim as text."""
    span: Span

    def extend_before(self, span: Span) -> "Reparse":
        """Grow leftward so the failure starts at `span` and ends where it did."""
        return Reparse(Span(span.start, self.span.end))


ParseError = Union[Empty, Reparse]


def is_error(result) -> bool:
    return isinstance(result, (Empty, Reparse))


class WikilinkParser:
    """Lazy (Event, Span) stream for source[span], with wikilinks expanded.

    Each `[[target]]` or `[[target|alias]]` becomes Start(Link), Text, End(Link)
    sharing the outer span. Malformed wikilinks degrade to literal Text.
    """

    def __init__(self, source: str, span: Span, title: str = WIKILINK_TITLE):
        self.source = source
        self.title = title
        self.lexer: Peekable[Token] = Peekable(Lexer(source, span.start, span.end))
        self.buffer: deque[OffsetEvent] = deque()

    def __iter__(self) -> "WikilinkParser":
        return self

    def __next__(self) -> OffsetEvent:
        if self.buffer:
            return self.buffer.popleft()

        # line breaks between runs carry no text of their own
        while self._peek_kind() == TokenKind.newline:
            next(self.lexer)

        head = self.lexer.peek()
        if head is None:
            raise StopIteration

        if head.kind != TokenKind.open:
            return self._text(self._parse_text())

        result = self._parse_wikilink()
        if is_error(result):
            logger.debug("Malformed wikilink at %d..%d kept as text", result.span.start, result.span.end)
            return self._text(result.span)
        self.buffer.extend(result)
        return self.buffer.popleft()

    def _peek_kind(self) -> Optional[TokenKind]:
        token = self.lexer.peek()
        return token.kind if token is not None else None

    def _text(self, span: Span) -> OffsetEvent:
        return Text(span.slice(self.source)), span

    def _scan_until(self, *stops: TokenKind) -> Union[Span, ParseError]:
        """Consume tokens up to (not including) one of `stops` and return their span."""
        head = self.lexer.peek()
        if head is None:
            return Empty()
        start = end = head.span.start
        while True:
            token = self.lexer.peek()
            if token is None:
                return Reparse(Span(start, end))
            if token.kind in stops:
                return Span(start, end)
            end = next(self.lexer).span.end

    def _parse_first_field(self) -> Union[Span, ParseError]:
        """In `url|alias]]` or `url]]`, return `url`; leave the `|` or `]]` unconsumed."""
        return self._scan_until(TokenKind.pipe, TokenKind.close)

    def _parse_alias(self) -> Union[Span, ParseError]:
        """In `alias]]`, return `alias`; a `|` here is plain content."""
        return self._scan_until(TokenKind.close)

    def _parse_wikilink(self) -> Union[list[OffsetEvent], ParseError]:
        """Parse `[[url]]` or `[[url|alias]]` starting at the `[[`."""
        opening = next(self.lexer).span
        target = self._parse_first_field()
        if is_error(target):
            return target.extend_before(opening)

        delimiter = next(self.lexer)
        if delimiter.kind == TokenKind.close:
            outer = Span(opening.start, delimiter.span.end)
            if target.is_empty:
                return Reparse(outer)
            return self._triple(target, target, outer)

        alias = self._parse_alias()
        if is_error(alias):
            return alias.extend_before(delimiter.span).extend_before(opening)

        outer = Span(opening.start, next(self.lexer).span.end)
        if target.is_empty:
            return Reparse(outer)
        return self._triple(target, target if alias.is_empty else alias, outer)

    def _triple(self, target: Span, display: Span, outer: Span) -> list[OffsetEvent]:
        return [
            (Start(Tag.link(dest_url=target.slice(self.source), title=self.title)), outer),
            (Text(display.slice(self.source)), outer),
            (End(TagKind.link), outer),
        ]

    def _parse_text(self) -> Span:
        """Consume text up to the next `[[` (left unconsumed) or the end of the span."""
        start = end = self.lexer.peek().span.start
        while self._peek_kind() not in (TokenKind.open, None):
            end = next(self.lexer).span.end
        return Span(start, end)
