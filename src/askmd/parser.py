"""Parse session.md into numbered Human/AI turns."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .errors import (
    AlreadyAnsweredError,
    EmptySessionError,
    EmptyTurnError,
    NoHumanTurnError,
    SessionFileError,
)
from .escaping import unescape_brackets
from .regions import find_excluded_regions, is_in_excluded_region


HEADER_PATTERN = re.compile(r"^# \[(\d+)\] (Human|AI)$")
AI_WRAPPER_OPEN = re.compile(r"^(`{4,})markdown\n")


class Role(str, Enum):
    HUMAN = "Human"
    AI = "AI"


@dataclass(frozen=True)
class Turn:
    number: int
    role: Role
    content: str

    @property
    def header(self) -> str:
        return format_header(self.number, self.role)


@dataclass
class Session:
    turns: List[Turn] = field(default_factory=list)
    last_human_turn_index: Optional[int] = None

    @property
    def last_human_turn(self) -> Optional[Turn]:
        if self.last_human_turn_index is None:
            return None
        return self.turns[self.last_human_turn_index]


@dataclass(frozen=True)
class HeaderLine:
    index: int
    number: int
    role: Role


def format_header(number: int, role: Role) -> str:
    return f"# [{number}] {role.value}"


def find_turn_headers(lines: Sequence[str]) -> List[HeaderLine]:
    """Turn headers that sit outside code fences and marker blocks."""
    regions = find_excluded_regions(lines)
    headers: List[HeaderLine] = []
    for i, line in enumerate(lines):
        if is_in_excluded_region(i, regions):
            continue
        match = HEADER_PATTERN.match(line)
        if match:
            headers.append(HeaderLine(i, int(match.group(1)), Role(match.group(2))))
    return headers


def unwrap_markdown_fence(content: str) -> str:
    """Strip the ````markdown wrapper the session writer puts around AI turns."""
    opening = AI_WRAPPER_OPEN.match(content)
    if not opening:
        return content
    fence = opening.group(1)
    body = content[opening.end() :]
    closing = re.search(rf"\n`{{{len(fence)},}}$", body)
    if closing is None:
        # Leave a malformed wrapper alone rather than guess.
        return content
    return body[: closing.start()].strip()


def parse_session(text: str) -> Session:
    lines = text.split("\n")
    headers = find_turn_headers(lines)

    turns: List[Turn] = []
    for i, header in enumerate(headers):
        end = headers[i + 1].index if i + 1 < len(headers) else len(lines)
        content = "\n".join(lines[header.index + 1 : end]).strip()
        if header.role is Role.AI:
            content = unwrap_markdown_fence(content)
        if content:
            turns.append(Turn(header.number, header.role, content))

    last_human: Optional[int] = None
    for i in range(len(turns) - 1, -1, -1):
        if turns[i].role is Role.HUMAN:
            last_human = i
            break

    return Session(turns=turns, last_human_turn_index=last_human)


def read_session(path: Path) -> Session:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise SessionFileError(f"Cannot read {path}: {exc.strerror or exc}") from exc
    return parse_session(text)


def validate_session(session: Session) -> Turn:
    """Check the session is ready to send and return the last Human turn."""
    if not session.turns:
        raise EmptySessionError()
    last_human = session.last_human_turn
    if last_human is None:
        raise NoHumanTurnError()
    if not last_human.content.strip():
        raise EmptyTurnError(last_human.number)
    last_turn = session.turns[-1]
    if last_turn.role is Role.AI and last_turn.number > last_human.number:
        raise AlreadyAnsweredError(last_human.number)
    return last_human


def turns_to_messages(turns: Sequence[Turn]) -> List[Dict[str, str]]:
    return [
        {
            "role": "user" if turn.role is Role.HUMAN else "assistant",
            "content": unescape_brackets(turn.content),
        }
        for turn in turns
    ]
