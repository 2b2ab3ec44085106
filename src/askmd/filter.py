"""Strip comments and license headers from expanded source files."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import List, Optional

from .config import ExpansionOptions


@dataclass(frozen=True)
class CommentStyle:
    line: Optional[str] = None
    block_start: Optional[str] = None
    block_end: Optional[str] = None


C_STYLE = CommentStyle(line="//", block_start="/*", block_end="*/")
HASH = CommentStyle(line="#")
SQL = CommentStyle(line="--")
HTML = CommentStyle(block_start="<!--", block_end="-->")

PRESERVE_PATTERNS = [
    re.compile(r"^#!"),  # shebang
    re.compile(r"^//\s*@ts-"),
    re.compile(r"^//go:"),
    re.compile(r"^#\s*-\*-.*-\*-"),  # encoding line
    re.compile(r"^#\s*frozen_string_literal"),
    re.compile(r"^['\"]use strict['\"];?$"),
]

HEADER_PATTERNS = [
    (re.compile(r"^/\*+"), re.compile(r"\*+/")),
    (re.compile(r"^<!--"), re.compile(r"-->")),
    (re.compile(r'^"""'), re.compile(r'"""')),
    (re.compile(r"^'''"), re.compile(r"'''")),
]

C_EXTENSIONS = {"js", "ts", "jsx", "tsx", "java", "c", "cpp", "cs", "go", "swift", "kt", "scala", "rs"}
HASH_EXTENSIONS = {"py", "rb", "sh", "bash", "zsh", "yaml", "yml", "toml"}


def should_filter(options: ExpansionOptions) -> bool:
    return options.filter


def filter_content(content: str, path: str) -> str:
    content = strip_headers(content)
    content = strip_comments(content, path)
    return re.sub(r"\n{3,}", "\n\n", content).strip()


def strip_headers(content: str) -> str:
    """Drop leading block comments and docstrings, repeatedly."""
    while True:
        trimmed = content.lstrip()
        for start, end in HEADER_PATTERNS:
            opening = start.match(trimmed)
            if not opening:
                continue
            closing = end.search(trimmed, opening.end())
            if closing:
                content = trimmed[closing.end() :]
                break
        else:
            return content


def _extension(path: str) -> str:
    suffix = PurePosixPath(path.replace("\\", "/")).suffix
    return suffix[1:].lower()


def detect_comment_style(content: str, path: str) -> Optional[CommentStyle]:
    ext = _extension(path)
    if "//" in content and ("/*" in content or ext in {"js", "ts", "java", "c", "cpp", "go"}):
        return C_STYLE
    if re.search(r"^\s*#", content, re.MULTILINE) and ext in {"py", "rb", "sh", "yaml", "yml"}:
        return HASH
    if "<!--" in content:
        return HTML
    if "--" in content and ext == "sql":
        return SQL
    if ext in C_EXTENSIONS:
        return C_STYLE
    if ext in HASH_EXTENSIONS:
        return HASH
    return None


def strip_comments(content: str, path: str) -> str:
    style = detect_comment_style(content, path)
    if style is None:
        return content

    result: List[str] = []
    in_block = False
    for line in content.split("\n"):
        stripped = line.strip()
        if any(p.match(stripped) for p in PRESERVE_PATTERNS):
            result.append(line)
            continue
        if style.block_start and not in_block and stripped.startswith(style.block_start):
            # single-line block comments close on the same line
            in_block = style.block_end not in stripped[len(style.block_start) :]
            continue
        if in_block:
            if style.block_end and style.block_end in line:
                in_block = False
            continue
        if style.line:
            idx = line.find(style.line)
            if idx == 0:
                continue
            if idx > 0:
                before = line[:idx].rstrip()
                if before:
                    result.append(before)
                continue
        result.append(line)
    return "\n".join(result)
