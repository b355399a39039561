"""Text fragments — picking the code to send out of a document."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TextFragment:
    """A non-blank span of source text. ``start``/``end`` are character offsets."""

    text: str
    start: int
    end: int


def _is_blank(text: str) -> bool:
    return not text or text.isspace()


def _line_offsets(document: str) -> list[tuple[int, int]]:
    """(start, end) offsets of every line, end excluding the newline."""
    offsets = []
    pos = 0
    for line in document.split("\n"):
        offsets.append((pos, pos + len(line)))
        pos += len(line) + 1
    return offsets


def _fragment(document: str, start: int, end: int) -> TextFragment | None:
    text = document[start:end].strip()
    if _is_blank(text):
        return None
    return TextFragment(text=text, start=start, end=end)


def selection(document: str, start: int, end: int) -> TextFragment | None:
    """The selected text, trimmed, or None if nothing (or only whitespace) is selected."""
    if start > end:
        start, end = end, start
    return _fragment(document, start, end)


def line_at(document: str, line: int) -> TextFragment | None:
    """The 0-based line ``line``, trimmed, or None if blank or out of range."""
    offsets = _line_offsets(document)
    if not 0 <= line < len(offsets):
        return None
    start, end = offsets[line]
    return _fragment(document, start, end)


def paragraph_at(document: str, line: int) -> TextFragment | None:
    """The block of consecutive non-blank lines containing ``line``.

    Returns None when ``line`` itself is blank or out of range.
    """
    lines = document.split("\n")
    if not 0 <= line < len(lines) or _is_blank(lines[line]):
        return None

    first = line
    while first > 0 and not _is_blank(lines[first - 1]):
        first -= 1
    last = line
    while last < len(lines) - 1 and not _is_blank(lines[last + 1]):
        last += 1

    offsets = _line_offsets(document)
    return _fragment(document, offsets[first][0], offsets[last][1])


def fragment_at(
    document: str, selection_start: int, selection_end: int, caret_line: int
) -> TextFragment | None:
    """What a send action should transmit: the selection, else the caret's line."""
    return selection(document, selection_start, selection_end) or line_at(
        document, caret_line
    )


def prepare(text: str, tab_replacement: str = "  ") -> str | None:
    """Trim text for sending. Returns None for blank text."""
    text = text.strip()
    if _is_blank(text):
        return None
    return text.replace("\t", tab_replacement)
