"""Line spans that turn-header matching must skip."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence


class RegionKind(str, Enum):
    CODE_FENCE = "code-fence"
    EXPANDED_DIR = "expanded-dir"
    EXPANDED_FILE = "expanded-file"
    EXPANDED_URL = "expanded-url"


@dataclass(frozen=True)
class Region:
    kind: RegionKind
    start: int
    end: int  # inclusive

    def contains(self, index: int) -> bool:
        return self.start <= index <= self.end


FENCE_OPEN = re.compile(r"^(`{3,})")
FENCE_CLOSE = re.compile(r"^(`{3,})\s*$")

MARKER_OPEN = {
    RegionKind.EXPANDED_DIR: re.compile(r"^<!-- dir: (.+) -->$"),
    RegionKind.EXPANDED_FILE: re.compile(r"^<!-- file: (.+) -->$"),
    RegionKind.EXPANDED_URL: re.compile(r"^<!-- url: (.+) -->$"),
}
MARKER_CLOSE = {
    RegionKind.EXPANDED_DIR: re.compile(r"^<!-- /dir -->$"),
    RegionKind.EXPANDED_FILE: re.compile(r"^<!-- /file -->$"),
    RegionKind.EXPANDED_URL: re.compile(r"^<!-- /url -->$"),
}


def match_marker_open(line: str) -> Optional[tuple[RegionKind, str]]:
    """Return (kind, pattern) when line opens an expansion marker block."""
    for kind, pattern in MARKER_OPEN.items():
        match = pattern.match(line)
        if match:
            return kind, match.group(1)
    return None


def find_fence_end(lines: Sequence[str], start: int, length: int) -> int:
    """Index of the line closing a fence opened at `start`, or the last line."""
    i = start + 1
    while i < len(lines):
        closing = FENCE_CLOSE.match(lines[i])
        if closing and len(closing.group(1)) >= length:
            return i
        i += 1
    return len(lines) - 1


def find_marker_end(lines: Sequence[str], start: int, kind: RegionKind) -> int:
    """Index of the matching close marker, or the last line when unterminated."""
    closer = MARKER_CLOSE[kind]
    i = start + 1
    while i < len(lines):
        if closer.match(lines[i]):
            return i
        i += 1
    return len(lines) - 1


def find_excluded_regions(lines: Sequence[str]) -> List[Region]:
    """Single top-to-bottom pass collecting code fences and marker blocks."""
    regions: List[Region] = []
    i = 0
    while i < len(lines):
        line = lines[i]

        fence = FENCE_OPEN.match(line)
        if fence:
            end = find_fence_end(lines, i, len(fence.group(1)))
            regions.append(Region(RegionKind.CODE_FENCE, i, end))
            i = end + 1
            continue

        marker = match_marker_open(line)
        if marker:
            kind, _ = marker
            end = find_marker_end(lines, i, kind)
            regions.append(Region(kind, i, end))
            i = end + 1
            continue

        i += 1
    return regions


def is_in_excluded_region(index: int, regions: Sequence[Region]) -> bool:
    return any(region.contains(index) for region in regions)


def find_region_at(index: int, regions: Sequence[Region]) -> Optional[Region]:
    for region in regions:
        if region.contains(index):
            return region
    return None
