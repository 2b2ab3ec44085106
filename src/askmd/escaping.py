"""Bracket escaping and fence sizing for embedded content."""

from __future__ import annotations

import re

ZERO_WIDTH_SPACE = "\u200b"

BACKTICK_RUN = re.compile(r"`{3,}")

# Between every pair of adjacent brackets, so runs like [[[ are broken fully.
_ESCAPE_OPEN = re.compile(r"(?<=\[)(?=\[)")
_ESCAPE_CLOSE = re.compile(r"(?<=\])(?=\])")
_UNESCAPE = re.compile(rf"(?<=\[){ZERO_WIDTH_SPACE}(?=\[)|(?<=\]){ZERO_WIDTH_SPACE}(?=\])")


def escape_brackets(text: str) -> str:
    """Break every [[ and ]] so embedded text can never trigger expansion."""
    text = _ESCAPE_OPEN.sub(ZERO_WIDTH_SPACE, text)
    return _ESCAPE_CLOSE.sub(ZERO_WIDTH_SPACE, text)


def unescape_brackets(text: str) -> str:
    return _UNESCAPE.sub("", text)


def fence_for(content: str) -> str:
    """Shortest backtick fence longer than any run inside content (min 3)."""
    longest = max((len(m.group(0)) for m in BACKTICK_RUN.finditer(content)), default=2)
    return "`" * (longest + 1)
