"""Stream an AI answer into session.md as it arrives."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from .errors import SessionFileError
from .fileio import append_text, atomic_write, read_text
from .parser import Role, format_header

AI_FENCE = "````"


class WriterState(str, Enum):
    NOT_STARTED = "not-started"
    HEADER_WRITTEN = "header-written"
    ENDED = "ended"


class SessionWriter:
    """Append-only writer for one AI turn.

    The first chunk rewrites the file once to add the AI header and the
    ````markdown wrapper; every chunk after that is a plain append so editors
    watching the file see the answer grow. ``end`` always closes the wrapper
    and opens the next Human turn.
    """

    def __init__(self, path: Path, turn_number: int) -> None:
        self.path = Path(path)
        self.turn_number = turn_number
        self.state = WriterState.NOT_STARTED
        self.content_written = False

    def write(self, chunk: str) -> None:
        if not chunk or self.state is WriterState.ENDED:
            return
        if self.state is WriterState.NOT_STARTED:
            self._write_header()
        self._append(chunk)
        self.content_written = True

    def end(self, interrupted: bool = False) -> None:
        if self.state is not WriterState.HEADER_WRITTEN:
            return
        closing = ""
        if interrupted and self.content_written:
            closing += "\n[Interrupted]"
        next_header = format_header(self.turn_number + 1, Role.HUMAN)
        closing += f"\n{AI_FENCE}\n\n{next_header}\n\n"
        self._append(closing)
        self.state = WriterState.ENDED

    def _write_header(self) -> None:
        try:
            current = read_text(self.path)
        except OSError as exc:
            raise SessionFileError(f"Cannot read {self.path}: {exc.strerror or exc}") from exc
        header = format_header(self.turn_number, Role.AI)
        try:
            atomic_write(self.path, f"{current.rstrip()}\n\n{header}\n\n{AI_FENCE}markdown\n")
        except OSError as exc:
            raise SessionFileError(f"Cannot write {self.path}: {exc.strerror or exc}") from exc
        self.state = WriterState.HEADER_WRITTEN

    def _append(self, text: str) -> None:
        try:
            append_text(self.path, text)
        except OSError as exc:
            raise SessionFileError(f"Cannot write {self.path}: {exc.strerror or exc}") from exc
