"""Single-item lookahead over any iterator"""

from typing import Generic, Iterable, Iterator, Optional, TypeVar

T = TypeVar("T")


class Peekable(Generic[T]):
    """Iterator wrapper exposing the next item without consuming it."""

    _EMPTY = object()

    def __init__(self, iterable: Iterable[T]):
        self._it: Iterator[T] = iter(iterable)
        self._head = self._EMPTY

    def __iter__(self) -> "Peekable[T]":
        return self

    def __next__(self) -> T:
        if self._head is not self._EMPTY:
            item, self._head = self._head, self._EMPTY
            return item
        return next(self._it)

    def peek(self) -> Optional[T]:
        """Return the next item, or None once the iterator is exhausted."""
        if self._head is self._EMPTY:
            try:
                self._head = next(self._it)
            except StopIteration:
                return None
        return self._head
