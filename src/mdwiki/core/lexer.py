"""Wikilink tokenizer: splits a text span into brackets, pipes, line breaks and runs"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from mdwiki.core.models import Span


class TokenKind(str, Enum):
    open = "open"         # [[
    close = "close"       # ]]
    pipe = "pipe"         # |
    newline = "newline"
    other = "other"       # any maximal run of the rest


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    span: Span


DELIMITER_RE = re.compile(r'\[\[|\]\]|\||\r?\n')

_DELIMITER_KINDS = {
    '[[': TokenKind.open,
    ']]': TokenKind.close,
    '|': TokenKind.pipe,
}


class Lexer:
    """Lazy token stream over source[start:end].

    Spans are offsets into the whole `source`, so tokens from a sub-range
    can be sliced straight out of the document. The source is never copied.
    """

    def __init__(self, source: str, start: int = 0, end: Optional[int] = None):
        self._end = len(source) if end is None else end
        self._matches = DELIMITER_RE.finditer(source, start, self._end)
        self._pos = start
        self._pending: Optional[Token] = None

    def __iter__(self) -> "Lexer":
        return self

    def __next__(self) -> Token:
        if self._pending is not None:
            token, self._pending = self._pending, None
            return token

        m = next(self._matches, None)
        if m is None:
            if self._pos >= self._end:
                raise StopIteration
            token = Token(TokenKind.other, Span(self._pos, self._end))
            self._pos = self._end
            return token

        delimiter = Token(_DELIMITER_KINDS.get(m.group(), TokenKind.newline), Span(m.start(), m.end()))
        run_start, self._pos = self._pos, m.end()
        if m.start() > run_start:
            self._pending = delimiter
            return Token(TokenKind.other, Span(run_start, m.start()))
        return delimiter
