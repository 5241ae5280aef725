"""Event data model shared by the markdown adapter and the wikilink overlay"""

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional, Union


class Span(NamedTuple):
    """Half-open [start, end) range of str offsets into the source document."""
    start: int
    end: int

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    def slice(self, source: str) -> str:
        return source[self.start:self.end]


class TagKind(str, Enum):
    """Container kinds that open with a Start event and close with an End event"""
    paragraph = "paragraph"
    heading = "heading"
    blockquote = "blockquote"
    code_block = "code_block"
    list = "list"
    item = "item"
    table = "table"
    table_head = "table_head"
    table_row = "table_row"
    table_cell = "table_cell"
    emphasis = "emphasis"
    strong = "strong"
    strikethrough = "strikethrough"
    link = "link"
    image = "image"
    metadata_block = "metadata_block"


class LinkType(str, Enum):
    inline = "inline"
    reference = "reference"
    autolink = "autolink"
    email = "email"


class CodeBlockKind(str, Enum):
    fenced = "fenced"
    indented = "indented"


class MetadataBlockKind(str, Enum):
    yaml_style = "yaml_style"
    pluses_style = "pluses_style"


@dataclass(frozen=True)
class Tag:
    """Attributes of a Start event; only the fields relevant to `kind` are set."""
    kind: TagKind
    level: Optional[int] = None                     # heading level (1-6)
    start_number: Optional[int] = None              # ordered list start
    code_kind: Optional[CodeBlockKind] = None
    info: str = ""                                  # fence info string
    metadata_kind: Optional[MetadataBlockKind] = None
    link_type: Optional[LinkType] = None
    dest_url: str = ""
    title: str = ""
    id: str = ""

    @classmethod
    def link(cls, dest_url: str, title: str = "", link_type: LinkType = LinkType.inline, id: str = "") -> "Tag":
        return cls(TagKind.link, link_type=link_type, dest_url=dest_url, title=title, id=id)

    @classmethod
    def code_block(cls, code_kind: CodeBlockKind, info: str = "") -> "Tag":
        return cls(TagKind.code_block, code_kind=code_kind, info=info)

    @classmethod
    def metadata_block(cls, metadata_kind: MetadataBlockKind = MetadataBlockKind.yaml_style) -> "Tag":
        return cls(TagKind.metadata_block, metadata_kind=metadata_kind)


@dataclass(frozen=True)
class Start:
    tag: Tag


@dataclass(frozen=True)
class End:
    kind: TagKind


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class Code:
    text: str


@dataclass(frozen=True)
class Html:
    text: str


@dataclass(frozen=True)
class InlineHtml:
    text: str


@dataclass(frozen=True)
class InlineMath:
    text: str


@dataclass(frozen=True)
class DisplayMath:
    text: str


@dataclass(frozen=True)
class SoftBreak:
    pass


@dataclass(frozen=True)
class HardBreak:
    pass


@dataclass(frozen=True)
class Rule:
    pass


Event = Union[Start, End, Text, Code, Html, InlineHtml, InlineMath, DisplayMath, SoftBreak, HardBreak, Rule]
OffsetEvent = tuple[Event, Span]


def is_start(event: Event, kind: TagKind) -> bool:
    """Return True for a Start event opening a container of the given kind."""
    return isinstance(event, Start) and event.tag.kind == kind


def is_end(event: Event, kind: TagKind) -> bool:
    """Return True for an End event closing a container of the given kind."""
    return isinstance(event, End) and event.kind == kind
