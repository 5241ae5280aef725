"""markdown-it tokenization and conversion into an (Event, Span) stream"""

import logging
import re
from collections import deque
from dataclasses import replace
from typing import Optional

from markdown_it import MarkdownIt
from mdit_py_plugins.dollarmath import dollarmath_plugin
from mdit_py_plugins.front_matter import front_matter_plugin

from mdwiki.config import Settings
from mdwiki.core.models import (
    Code, CodeBlockKind, DisplayMath, End, Event, HardBreak, Html, InlineHtml, InlineMath,
    LinkType, MetadataBlockKind, OffsetEvent, Rule, SoftBreak, Span, Start, Tag, TagKind, Text,
)
from mdwiki.core.utils.lines import line_offsets, trim_line_break
from mdwiki.core.utils.tokens import heading_level, list_start, str_attr


logger = logging.getLogger(__name__)

NEWLINE_RE = re.compile(r'\r\n|\r|\n')

BLOCK_OPEN: dict[str, TagKind] = {
    'paragraph_open':    TagKind.paragraph,
    'heading_open':      TagKind.heading,
    'blockquote_open':   TagKind.blockquote,
    'bullet_list_open':  TagKind.list,
    'ordered_list_open': TagKind.list,
    'list_item_open':    TagKind.item,
    'table_open':        TagKind.table,
    'thead_open':        TagKind.table_head,
    'tr_open':           TagKind.table_row,
    'th_open':           TagKind.table_cell,
    'td_open':           TagKind.table_cell,
}
BLOCK_CLOSE: dict[str, TagKind] = {k.replace('_open', '_close'): v for k, v in BLOCK_OPEN.items()}

INLINE_OPEN: dict[str, TagKind] = {
    'em_open':     TagKind.emphasis,
    'strong_open': TagKind.strong,
    's_open':      TagKind.strikethrough,
}
INLINE_CLOSE: dict[str, TagKind] = {k.replace('_open', '_close'): v for k, v in INLINE_OPEN.items()}

SKIPPED = {'tbody_open', 'tbody_close'}


def _make_parser(settings: Settings) -> MarkdownIt:
    """Build a MarkdownIt instance for the configured preset and plugins."""
    try:
        md = MarkdownIt(settings.preset, options_update={"linkify": False, "typographer": False})
    except KeyError as e:
        raise ValueError(f"Invalid parser preset {settings.preset!r}") from e
    if settings.front_matter:
        md.use(front_matter_plugin)
    if settings.math:
        md.use(dollarmath_plugin)
    # keep escapes and entities as separate tokens so their raw markup can be located
    md.disable("text_join", ignoreInvalid=True)
    return md


class MarkdownEvents:
    """Lazy (Event, Span) stream for a markdown source, one markdown-it token per step.

    Spans are located by a forward-only cursor over the source, so every Start,
    Text and leaf event starts at or after the previous one. End events repeat
    the span of their Start.
    """

    def __init__(self, source: str, settings: Optional[Settings] = None):
        if not isinstance(source, str):
            raise TypeError(f"source must be str, got {type(source).__name__}")
        self.source = source
        self.settings = settings or Settings()
        self.tokens = _make_parser(self.settings).parse(source)
        self.offsets = line_offsets(source)
        self.cursor = 0
        self._index = 0
        self._open: list[Span] = []
        self._buffer: deque[OffsetEvent] = deque()

    def __iter__(self) -> "MarkdownEvents":
        return self

    def __next__(self) -> OffsetEvent:
        while not self._buffer:
            if self._index >= len(self.tokens):
                raise StopIteration
            self._convert(self._index)
            self._index += 1
        return self._buffer.popleft()

    # --- spans ---

    def _line(self, n: int) -> int:
        return self.offsets[min(n, len(self.offsets) - 1)]

    def _block_span(self, token) -> Span:
        start, end = token.map
        start_offset = max(self._line(start), self.cursor)
        return Span(start_offset, max(start_offset, trim_line_break(self.source, start_offset, self._line(end))))

    def _limit(self) -> int:
        return len(self.source)

    def _find(self, fragment: str, limit: int, start: Optional[int] = None) -> int:
        start = self.cursor if start is None else start
        return self.source.find(fragment, start, limit) if fragment else -1

    # --- block tokens ---

    def _convert(self, index: int) -> None:
        token = self.tokens[index]
        kind = token.type

        if kind in SKIPPED or (token.hidden and kind in ('paragraph_open', 'paragraph_close')):
            return
        if kind in BLOCK_OPEN:
            span = self._block_span(token) if token.map else self._cell_span(index)
            self._open.append(span)
            self._buffer.append((Start(self._block_tag(token, BLOCK_OPEN[kind])), span))
            self.cursor = span.start
        elif kind in BLOCK_CLOSE:
            span = self._open.pop() if self._open else Span(self.cursor, self.cursor)
            self._buffer.append((End(BLOCK_CLOSE[kind]), span))
        elif kind == 'inline':
            self._inline(token)
        elif kind == 'front_matter':
            self._fenced(token, Tag.metadata_block(MetadataBlockKind.yaml_style))
        elif kind == 'fence':
            self._fenced(token, Tag.code_block(CodeBlockKind.fenced, token.info.strip()))
        elif kind == 'code_block':
            self._indented_code(token)
        elif kind in ('html_block', 'math_block', 'math_block_label', 'hr'):
            self._leaf_block(token)
        else:
            logger.debug("Skipping unsupported block token %s", kind)

    def _block_tag(self, token, kind: TagKind) -> Tag:
        if kind == TagKind.heading:
            return Tag(kind, level=heading_level(token))
        if kind == TagKind.list:
            return Tag(kind, start_number=list_start(token))
        return Tag(kind)

    def _cell_span(self, index: int) -> Span:
        """Span of a map-less container (table cells): its inline content, if locatable."""
        following = self.tokens[index + 1] if index + 1 < len(self.tokens) else None
        if following is not None and following.type == 'inline' and following.content:
            limit = self._line(following.map[1]) if following.map else self._limit()
            start = self.cursor if not following.map else max(self.cursor, self._line(following.map[0]))
            pos = self._find(following.content, limit, start)
            if pos >= 0:
                return Span(pos, pos + len(following.content))
        return Span(self.cursor, self.cursor)

    def _fenced(self, token, tag: Tag) -> None:
        """Start/Text/End for a block delimited by fence lines (code fences, front matter)."""
        outer = self._block_span(token)
        first, last = token.map
        marker = token.markup[:1]
        close = None
        for n in range(first + 1, min(last, len(self.offsets) - 1)):
            line = self.source[self._line(n):self._line(n + 1)].strip(" \t>\r\n")
            if line and marker and set(line) == {marker} and len(line) >= len(token.markup):
                close = n
        body = Span(self._line(first + 1), self._line(close if close is not None else last))
        self._buffer.append((Start(tag), outer))
        self._buffer.append((Text(body.slice(self.source)), body))
        self._buffer.append((End(tag.kind), outer))
        self.cursor = max(self.cursor, outer.end)

    def _indented_code(self, token) -> None:
        # no fence lines, so the body is the whole block
        outer = self._block_span(token)
        tag = Tag.code_block(CodeBlockKind.indented)
        self._buffer.append((Start(tag), outer))
        self._buffer.append((Text(outer.slice(self.source)), outer))
        self._buffer.append((End(tag.kind), outer))
        self.cursor = max(self.cursor, outer.end)

    def _leaf_block(self, token) -> None:
        span = self._block_span(token) if token.map else Span(self.cursor, self.cursor)
        text = span.slice(self.source)
        if token.type == 'hr':
            event = Rule()
        elif token.type == 'html_block':
            event = Html(text)
        else:
            event = DisplayMath(token.content)
        self._buffer.append((event, span))
        self.cursor = max(self.cursor, span.end)

    # --- inline tokens ---

    def _inline(self, token) -> None:
        if token.map:
            self.cursor = max(self.cursor, self._line(token.map[0]))
            limit = self._line(token.map[1])
        else:
            limit = self._limit()

        # entries stay mutable until their closing delimiter is located
        out: list[list] = []
        stack: list[int] = []

        for child in token.children or []:
            kind = child.type
            if kind == 'text':
                self._locate(out, Text(child.content), child.content, limit)
            elif kind == 'text_special':
                self._locate(out, Text(child.content), child.markup or child.content, limit)
            elif kind in ('softbreak', 'hardbreak'):
                m = NEWLINE_RE.search(self.source, self.cursor, limit)
                if m:
                    out.append([SoftBreak() if kind == 'softbreak' else HardBreak(), m.start(), m.end()])
                    self.cursor = m.end()
            elif kind == 'code_inline':
                self._delimited(out, Code(child.content), child.markup, child.content, limit)
            elif kind == 'math_inline':
                self._delimited(out, InlineMath(child.content), child.markup or '$', child.content, limit)
            elif kind == 'math_inline_double':
                self._delimited(out, DisplayMath(child.content), child.markup or '$$', child.content, limit)
            elif kind == 'html_inline':
                self._locate(out, InlineHtml(child.content), child.content, limit)
            elif kind in INLINE_OPEN:
                pos = self._find(child.markup, limit)
                start = pos if pos >= 0 else self.cursor
                stack.append(len(out))
                out.append([Start(Tag(INLINE_OPEN[kind])), start, start])
                self.cursor = start + (len(child.markup) if pos >= 0 else 0)
            elif kind in INLINE_CLOSE or kind == 'link_close':
                self._close(out, stack, child, limit)
            elif kind == 'link_open':
                self._link_open(out, stack, child, limit)
            elif kind == 'image':
                self._image(out, child, limit)
            else:
                logger.debug("Skipping unsupported inline token %s", kind)

        for event, start, end in out:
            self._buffer.append((event, Span(start, end)))

    def _locate(self, out: list[list], event: Event, fragment: str, limit: int) -> None:
        if not fragment:
            out.append([event, self.cursor, self.cursor])
            return
        pos = self._find(fragment, limit)
        if pos < 0:
            logger.debug("Could not locate %r after offset %d", fragment, self.cursor)
            return
        out.append([event, pos, pos + len(fragment)])
        self.cursor = pos + len(fragment)

    def _delimited(self, out: list[list], event: Event, markup: str, content: str, limit: int) -> None:
        start = self._find(markup, limit)
        if start < 0:
            logger.debug("Could not locate %r after offset %d", markup, self.cursor)
            return
        inner = start + len(markup)
        found = self._find(content, limit, inner)
        close = self._find(markup, limit, found + len(content) if found >= 0 else inner)
        end = close + len(markup) if close >= 0 else inner + len(content)
        out.append([event, start, end])
        self.cursor = end

    def _close(self, out: list[list], stack: list[int], child, limit: int) -> None:
        if not stack:
            return
        idx = stack.pop()
        event, start, _ = out[idx]
        if child.type == 'link_close':
            end, link_type = self._link_end(event.tag, start, limit)
            event = Start(replace(event.tag, link_type=link_type))
        else:
            pos = self._find(child.markup, limit)
            end = pos + len(child.markup) if pos >= 0 else self.cursor
        out[idx] = [event, start, end]
        out.append([End(event.tag.kind), start, end])
        self.cursor = max(self.cursor, end)

    def _link_open(self, out: list[list], stack: list[int], child, limit: int) -> None:
        auto = child.markup in ('autolink', 'linkify')
        pos = self._find('<' if auto else '[', limit)
        start = pos if pos >= 0 else self.cursor
        link_type = LinkType.autolink if auto else LinkType.inline
        tag = Tag.link(dest_url=str_attr(child, 'href'), title=str_attr(child, 'title'), link_type=link_type)
        stack.append(len(out))
        out.append([Start(tag), start, start])
        self.cursor = start + (1 if pos >= 0 else 0)

    def _link_end(self, tag: Tag, start: int, limit: int) -> tuple[int, LinkType]:
        """Locate the end of a link's source and infer its type from the syntax."""
        if tag.link_type == LinkType.autolink:
            pos = self._find('>', limit)
            end = pos + 1 if pos >= 0 else self.cursor
            raw = self.source[start:end]
            is_email = tag.dest_url.startswith('mailto:') and 'mailto:' not in raw
            return end, LinkType.email if is_email else LinkType.autolink
        pos = self._find(']', limit)
        if pos < 0:
            return self.cursor, LinkType.inline
        return self._destination_end(pos + 1, limit)

    def _destination_end(self, pos: int, limit: int) -> tuple[int, LinkType]:
        """Given the offset just past a `]`, skip `(dest "title")` or `[ref]`."""
        following = self.source[pos:pos + 1]
        if following == '(':
            depth = 0
            for i in range(pos, limit):
                ch = self.source[i]
                if ch == '\\':
                    continue
                if ch == '(' and self.source[i - 1] != '\\':
                    depth += 1
                elif ch == ')' and self.source[i - 1] != '\\':
                    depth -= 1
                    if depth == 0:
                        return i + 1, LinkType.inline
            return pos, LinkType.inline
        if following == '[':
            close = self._find(']', limit, pos)
            return (close + 1 if close >= 0 else pos), LinkType.reference
        return pos, LinkType.reference

    def _image(self, out: list[list], child, limit: int) -> None:
        start = self._find('![', limit)
        if start < 0:
            logger.debug("Could not locate image after offset %d", self.cursor)
            return
        depth, label_end = 0, -1
        for i in range(start + 1, limit):
            ch = self.source[i]
            if ch == '[' and self.source[i - 1] != '\\':
                depth += 1
            elif ch == ']' and self.source[i - 1] != '\\':
                depth -= 1
                if depth == 0:
                    label_end = i
                    break
        if label_end < 0:
            label_end = start + 2
        end, link_type = self._destination_end(label_end + 1, limit)
        tag = Tag(TagKind.image, link_type=link_type, dest_url=str_attr(child, 'src'), title=str_attr(child, 'title'))
        out.append([Start(tag), start, end])
        out.append([Text(child.content), start + 2, label_end])
        out.append([End(TagKind.image), start, end])
        self.cursor = end
