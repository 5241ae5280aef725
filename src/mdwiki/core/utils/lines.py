"""Line-number to source-offset conversion for markdown-it token maps"""


def line_offsets(source: str) -> list[int]:
    """Return the start offset of every line, plus a final len(source) sentinel.

    Entry i is where line i starts, so a token map [a, b) covers
    source[offsets[a]:offsets[b]]. `\\r\\n` and lone `\\r` both end a line,
    matching markdown-it's newline normalization.
    """
    offsets = [0]
    i, n = 0, len(source)
    while i < n:
        ch = source[i]
        if ch == "\r" and i + 1 < n and source[i + 1] == "\n":
            i += 1
        if ch in "\r\n":
            offsets.append(i + 1)
        i += 1
    if offsets[-1] != n:
        offsets.append(n)
    return offsets


def trim_line_break(source: str, start: int, end: int) -> int:
    """Move end back over one trailing line break, never past start."""
    if end > start and source[end - 1] == "\n":
        end -= 1
    if end > start and source[end - 1] == "\r":
        end -= 1
    return end
