"""Apply the resolver to [[references]] and splice results into session.md."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from .errors import ReferenceResolutionError, SessionFileError, TurnHeaderNotFoundError
from .escaping import ZERO_WIDTH_SPACE
from .fileio import atomic_write, read_text
from .parser import HEADER_PATTERN, Role, Session, format_header
from .regions import find_excluded_regions, is_in_excluded_region
from .resolver import ReferenceResolver
from .session_log import log_debug, log_warn

# Escaped brackets carry a zero-width space and never match.
REFERENCE_PATTERN = re.compile(rf"\[\[([^\]{ZERO_WIDTH_SPACE}\n]+)\]\]")


@dataclass(frozen=True)
class ExpansionResult:
    expanded: bool
    count: int


def expand(content: str, resolver: ReferenceResolver) -> Tuple[str, int]:
    """Resolve every [[reference]] in content.

    A failing reference becomes an inline error note; the others still expand.
    Returns the new text and the number of resolved files/pages (0 = no-op).
    """
    total = 0

    def substitute(match: re.Match[str]) -> str:
        nonlocal total
        ref = match.group(1)
        try:
            resolution = resolver.resolve(ref)
        except ReferenceResolutionError as exc:
            log_warn("expansion", "reference.error", {"ref": ref, "error": exc.message})
            return f"\n❌ Error: {ref} - {exc.message}\n"
        total += resolution.count
        log_debug("expansion", "reference.resolved", {"ref": ref, "count": resolution.count})
        return resolution.text

    expanded = REFERENCE_PATTERN.sub(substitute, content)
    return expanded, total


def load_session_text(path: Path) -> str:
    try:
        return read_text(path)
    except OSError as exc:
        raise SessionFileError(f"Cannot read {path}: {exc.strerror or exc}") from exc


def save_session_text(path: Path, text: str) -> None:
    try:
        atomic_write(path, text)
    except OSError as exc:
        raise SessionFileError(f"Cannot write {path}: {exc.strerror or exc}") from exc


def find_turn_span(text: str, number: int, role: Role, content: str) -> Tuple[int, int]:
    """Character span of a turn body: after its header line, up to the next header.

    Among headers outside fences and marker blocks, the last one whose body
    still matches the parsed content wins; anything else means the file
    changed underneath us.
    """
    lines = text.split("\n")
    regions = find_excluded_regions(lines)
    header = format_header(number, role)

    offsets = []
    pos = 0
    for line in lines:
        offsets.append(pos)
        pos += len(line) + 1

    header_indexes = [
        i
        for i, line in enumerate(lines)
        if not is_in_excluded_region(i, regions) and HEADER_PATTERN.match(line)
    ]
    for position in range(len(header_indexes) - 1, -1, -1):
        index = header_indexes[position]
        if lines[index] != header:
            continue
        start = min(offsets[index] + len(lines[index]) + 1, len(text))
        if position + 1 < len(header_indexes):
            end = offsets[header_indexes[position + 1]]
        else:
            end = len(text)
        if text[start:end].strip() == content:
            return start, end
    raise TurnHeaderNotFoundError(header)


def splice_turn(text: str, span: Tuple[int, int], new_body: str) -> str:
    """Replace the trimmed body inside span, keeping its surrounding whitespace."""
    start, end = span
    body = text[start:end]
    stripped = body.strip()
    if not stripped:
        return text[:start] + f"\n{new_body}\n\n" + text[end:]
    lead = body[: len(body) - len(body.lstrip())]
    trail = body[len(body.rstrip()) :]
    return text[:start] + lead + new_body + trail + text[end:]


def expand_and_persist(path: Path, session: Session, resolver: ReferenceResolver) -> ExpansionResult:
    """Expand references in the last Human turn and write them into the file."""
    turn = session.last_human_turn
    if turn is None:
        return ExpansionResult(False, 0)

    expanded, count = expand(turn.content, resolver)
    if count == 0:
        return ExpansionResult(False, 0)

    text = load_session_text(path)
    span = find_turn_span(text, turn.number, turn.role, turn.content)
    save_session_text(path, splice_turn(text, span, expanded))
    return ExpansionResult(True, count)
