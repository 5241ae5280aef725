"""Unit tests for core/parse.py"""

import pytest

from mdwiki.config import Settings
from mdwiki.core.models import (
    Code, CodeBlockKind, DisplayMath, End, Html, InlineMath, LinkType, Rule, SoftBreak,
    Span, Start, Tag, TagKind, Text,
)
from mdwiki.core.parse import MarkdownEvents, _make_parser


def _events(source: str, settings: Settings = None) -> list:
    return list(MarkdownEvents(source, settings))


def _starts(events: list, kind: TagKind) -> list:
    return [(e, s) for e, s in events if isinstance(e, Start) and e.tag.kind == kind]


def test_make_parser_invalid_preset():
    """An unknown preset name raises ValueError."""
    with pytest.raises(ValueError, match="Invalid parser preset"):
        _make_parser(Settings(preset="no-such-preset"))


def test_make_parser_keeps_escapes_separate(settings):
    """text_join is disabled so escapes stay as text_special tokens."""
    tokens = _make_parser(settings).parse("a \\* b")
    children = [t.type for t in tokens[1].children]
    assert "text_special" in children


def test_paragraph_span():
    """A single-line paragraph spans the whole line, without its line break."""
    assert _events("hello\n") == [
        (Start(Tag(TagKind.paragraph)), Span(0, 5)),
        (Text("hello"), Span(0, 5)),
        (End(TagKind.paragraph), Span(0, 5)),
    ]


def test_heading_level_and_text_offset():
    """Heading text is located after the `#` marker."""
    events = _events("## Title\n")
    assert events[0] == (Start(Tag(TagKind.heading, level=2)), Span(0, 8))
    assert events[1] == (Text("Title"), Span(3, 8))


def test_front_matter_is_metadata_block(sample_md):
    """A leading --- block becomes Start/Text/End of a metadata block."""
    events = _events(sample_md)
    start, body, end = events[:3]
    assert start[0] == Start(Tag.metadata_block())
    assert body[0] == Text('title: Sample\nlinks: "[[not-a-link]]"\n')
    assert body[1].slice(sample_md) == body[0].text
    assert end == (End(TagKind.metadata_block), start[1])


def test_front_matter_disabled():
    """With front_matter off, a leading --- is ordinary markdown."""
    events = _events("---\ntitle: x\n---\n", Settings(front_matter=False))
    assert not _starts(events, TagKind.metadata_block)


def test_fence_body_excludes_fence_lines():
    """Fenced code text is exactly the lines between the fences."""
    source = "```python\nx = 1\n```\n"
    assert _events(source) == [
        (Start(Tag.code_block(CodeBlockKind.fenced, "python")), Span(0, 19)),
        (Text("x = 1\n"), Span(10, 16)),
        (End(TagKind.code_block), Span(0, 19)),
    ]


def test_unclosed_fence_runs_to_end():
    """An unclosed fence takes the rest of the document as its body."""
    source = "~~~\na\nb"
    events = _events(source)
    assert events[1] == (Text("a\nb"), Span(4, 7))


def test_indented_code_block():
    """Indented code is a code block of the indented kind."""
    events = _events("    code\n")
    assert events[0][0] == Start(Tag.code_block(CodeBlockKind.indented))
    assert events[1] == (Text("    code"), Span(0, 8))


def test_indented_code_body_within_block():
    """The body Text of an indented block never runs past the block's span."""
    source = "    code [[x]]\n\nafter\n"
    events = _events(source)
    assert events[0] == (Start(Tag.code_block(CodeBlockKind.indented)), Span(0, 14))
    assert events[1] == (Text("    code [[x]]"), Span(0, 14))
    assert events[2] == (End(TagKind.code_block), Span(0, 14))


def test_inline_code_is_code_event():
    """Backtick spans become Code events covering their delimiters."""
    events = _events("`[[x]]` y")
    assert (Code("[[x]]"), Span(0, 7)) in events
    assert (Text(" y"), Span(7, 9)) in events


def test_emphasis_spans_delimiters():
    """Emphasis Start and End share the span from opening to closing marker."""
    events = _events("*a* b")
    assert events[1:5] == [
        (Start(Tag(TagKind.emphasis)), Span(0, 3)),
        (Text("a"), Span(1, 2)),
        (End(TagKind.emphasis), Span(0, 3)),
        (Text(" b"), Span(3, 5)),
    ]


def test_strong_and_strikethrough():
    """Strong and strikethrough map to their own tag kinds."""
    events = _events("**a** ~~b~~")
    assert _starts(events, TagKind.strong)[0][1] == Span(0, 5)
    assert _starts(events, TagKind.strikethrough)[0][1] == Span(6, 11)


def test_inline_link():
    """An inline link keeps its destination and title and spans the whole syntax."""
    source = '[t](http://x.y "T") z'
    events = _events(source)
    start, span = _starts(events, TagKind.link)[0]
    assert start.tag == Tag.link(dest_url="http://x.y", title="T", link_type=LinkType.inline)
    assert span == Span(0, 19)
    assert (End(TagKind.link), Span(0, 19)) in events


def test_reference_link():
    """A full reference link is typed as a reference."""
    events = _events("[t][r]\n\n[r]: http://x\n")
    start, span = _starts(events, TagKind.link)[0]
    assert start.tag.link_type == LinkType.reference
    assert start.tag.dest_url == "http://x"
    assert span == Span(0, 6)


@pytest.mark.parametrize("source,link_type", [
    ("<https://a.b>", LinkType.autolink),
    ("<me@x.org>", LinkType.email),
])
def test_autolinks(source, link_type):
    """Angle-bracket links are typed as autolink or email."""
    start, span = _starts(_events(source), TagKind.link)[0]
    assert start.tag.link_type == link_type
    assert span == Span(0, len(source))


def test_image():
    """Images expand to Start(Image), the alt text and End(Image)."""
    events = _events("![alt](p.png)")
    assert events[1:4] == [
        (Start(Tag(TagKind.image, link_type=LinkType.inline, dest_url="p.png")), Span(0, 13)),
        (Text("alt"), Span(2, 5)),
        (End(TagKind.image), Span(0, 13)),
    ]


def test_softbreak_between_lines():
    """A line break inside a paragraph is a SoftBreak over the newline."""
    events = _events("a\nb")
    assert (SoftBreak(), Span(1, 2)) in events
    assert (Text("b"), Span(2, 3)) in events


def test_escape_keeps_raw_span():
    """An escaped character covers its backslash in the source."""
    events = _events("\\*x")
    assert (Text("*"), Span(0, 2)) in events


def test_tight_list_hides_paragraphs():
    """Items of a tight list hold their text directly."""
    events = _events("- a\n- b\n")
    kinds = [type(e).__name__ + (":" + e.tag.kind.value if isinstance(e, Start) else "") for e, _ in events]
    assert "Start:paragraph" not in kinds
    assert [e for e, _ in events if isinstance(e, Text)] == [Text("a"), Text("b")]


def test_ordered_list_start():
    """Ordered lists carry their start number."""
    start, _ = _starts(_events("3. x\n"), TagKind.list)[0]
    assert start.tag.start_number == 3


def test_table_cells():
    """Tables produce rows of cells whose text is located in the source."""
    source = "| a | b |\n|---|---|\n| c | d |\n"
    events = _events(source)
    assert len(_starts(events, TagKind.table_cell)) == 4
    texts = [(e.text, s.slice(source)) for e, s in events if isinstance(e, Text)]
    assert texts == [("a", "a"), ("b", "b"), ("c", "c"), ("d", "d")]


def test_html_block_and_rule():
    """Raw HTML blocks and thematic breaks are leaf events."""
    events = _events("<div>\nx\n</div>\n\n***\n")
    assert (Html("<div>\nx\n</div>"), Span(0, 14)) in events
    assert (Rule(), Span(16, 19)) in events


def test_math():
    """Dollar math becomes InlineMath and DisplayMath events."""
    events = _events("$a$ b\n\n$$\nc\n$$\n")
    assert (InlineMath("a"), Span(0, 3)) in events
    assert any(isinstance(e, DisplayMath) for e, _ in events)


def test_math_disabled():
    """With math off, dollar signs are plain text."""
    events = _events("$a$", Settings(math=False))
    assert not any(isinstance(e, InlineMath) for e, _ in events)


def test_starts_never_decrease(sample_md):
    """Every non-End event starts at or after the previous one, within the source."""
    last = 0
    for event, span in _events(sample_md):
        assert 0 <= span.start <= span.end <= len(sample_md)
        if isinstance(event, End):
            continue
        assert span.start >= last
        last = span.start


def test_source_must_be_str():
    """Bytes are rejected up front."""
    with pytest.raises(TypeError, match="source must be str"):
        MarkdownEvents(b"x")
