"""Re-resolve every expanded block in a session document, in place."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import ReferenceResolutionError
from .expansion import expand, load_session_text, save_session_text
from .output import Output
from .regions import (
    FENCE_OPEN,
    MARKER_CLOSE,
    RegionKind,
    find_fence_end,
    find_marker_end,
    match_marker_open,
)
from .resolver import ReferenceResolver
from .session_log import log_info, log_warn


@dataclass(frozen=True)
class ExpandedContent:
    kind: RegionKind
    start: int
    end: int  # inclusive
    pattern: str
    standalone: bool = True
    terminated: bool = True


@dataclass(frozen=True)
class RefreshResult:
    refreshed: bool
    count: int


def find_expanded_content(lines: Sequence[str]) -> List[ExpandedContent]:
    """Marker blocks worth refreshing, in document order.

    File blocks inside a directory block are recorded as not standalone; they
    come back when the directory is refreshed. Code fences are stepped over so
    marker-looking lines inside them are ignored.
    """
    found: List[ExpandedContent] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        fence = FENCE_OPEN.match(line)
        if fence:
            i = find_fence_end(lines, i, len(fence.group(1))) + 1
            continue
        marker = match_marker_open(line)
        if marker:
            kind, pattern = marker
            end = find_marker_end(lines, i, kind)
            terminated = end > i and MARKER_CLOSE[kind].match(lines[end]) is not None
            found.append(ExpandedContent(kind, i, end, pattern, terminated=terminated))
            if kind is RegionKind.EXPANDED_DIR:
                found.extend(_nested_files(lines, i + 1, end))
            i = end + 1
            continue
        i += 1
    return found


def _nested_files(lines: Sequence[str], start: int, stop: int) -> List[ExpandedContent]:
    nested: List[ExpandedContent] = []
    i = start
    while i < stop:
        marker = match_marker_open(lines[i])
        if marker and marker[0] is RegionKind.EXPANDED_FILE:
            end = min(find_marker_end(lines, i, RegionKind.EXPANDED_FILE), stop)
            nested.append(ExpandedContent(RegionKind.EXPANDED_FILE, i, end, marker[1], standalone=False))
            i = end + 1
            continue
        i += 1
    return nested


def refresh_document(
    text: str, resolver: ReferenceResolver, output: Optional[Output] = None
) -> tuple[str, int]:
    """Replace each expanded block with a fresh resolution; failures keep the old block."""
    lines = text.split("\n")
    spans = find_expanded_content(lines)
    total = 0
    for span in sorted(spans, key=lambda s: s.start, reverse=True):
        if not span.standalone:
            continue
        if not span.terminated:
            log_warn("refresh", "span.unterminated", {"pattern": span.pattern, "line": span.start + 1})
            continue
        if output:
            output.refresh_start(span.pattern)
        try:
            resolution = resolver.resolve(span.pattern)
        except ReferenceResolutionError as exc:
            message = f"Could not refresh {span.pattern}: {exc.message}"
            if output:
                output.warning(message)
            else:
                log_warn("refresh", "span.failed", message)
            continue
        if resolution.count == 0:
            # Placeholders and disabled URLs carry no markers; keep the old block.
            if output:
                output.warning(f"Nothing to refresh for {span.pattern}, keeping previous content")
            continue
        lines[span.start : span.end + 1] = resolution.text.split("\n")
        total += resolution.count
        if output:
            detail = f"{resolution.count} files" if span.kind is RegionKind.EXPANDED_DIR else None
            output.refresh_success(span.pattern, detail)
    return "\n".join(lines), total


def refresh_session(
    path: Path, resolver: ReferenceResolver, output: Optional[Output] = None
) -> RefreshResult:
    """Expand pending references, then refresh existing blocks. One write per pass."""
    text = load_session_text(path)

    expanded, pending = expand(text, resolver)
    if pending:
        save_session_text(path, expanded)
        text = expanded
        log_info("refresh", "pending.expanded", {"count": pending})

    refreshed_text, count = refresh_document(text, resolver, output)
    if count:
        save_session_text(path, refreshed_text)
        log_info("refresh", "blocks.refreshed", {"count": count})

    # Blocks expanded in the first pass are refreshed again in the second.
    total = count or pending
    return RefreshResult(total > 0, total)
