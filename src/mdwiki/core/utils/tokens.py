"""Shared markdown-it token utilities"""


def heading_level(token) -> int | None:
    """Return the heading level (1-6) for a heading_open token, else None."""
    if token.type == 'heading_open' and token.tag and token.tag[0] == 'h' and token.tag[1:].isdigit():
        return int(token.tag[1:])
    return None


def list_start(token) -> int | None:
    """Return the start number of an ordered_list_open token, else None."""
    if token.type != 'ordered_list_open':
        return None
    start = token.attrGet('start')
    return int(start) if start is not None else 1


def str_attr(token, name: str) -> str:
    """Return a token attribute as a string ('' when missing)."""
    value = token.attrGet(name)
    return '' if value is None else str(value)
