"""Exclude-glob matching for directory expansion."""

from __future__ import annotations

import re
from fnmatch import fnmatchcase
from typing import Callable, Iterable


_DIR_SUFFIX = re.compile(r"/\*\*/?$|/\*$")


def should_exclude(path: str, patterns: Iterable[str]) -> bool:
    """True if path matches any pattern.

    Patterns shaped like ``name/**`` also match when ``name`` appears as any
    segment of the path, so ``node_modules/**`` catches ``src/node_modules/x.js``.
    """
    normalized = path.replace("\\", "/")
    segments = normalized.split("/")
    basename = segments[-1]
    for pattern in patterns:
        if fnmatchcase(normalized, pattern) or fnmatchcase(basename, pattern):
            return True
        base = _DIR_SUFFIX.sub("", pattern)
        if base and base in segments:
            return True
    return False


def create_matcher(patterns: Iterable[str]) -> Callable[[str], bool]:
    frozen = tuple(patterns)
    return lambda path: should_exclude(path, frozen)
