"""Markdown debug logs under ~/.askmd/logs."""

from __future__ import annotations

import json
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .paths import logs_dir

LOG_LEVELS = ("error", "warn", "info", "debug")
LOG_LEVEL_PRIORITY = {level: idx for idx, level in enumerate(LOG_LEVELS)}


def resolve_debug_levels(raw: Any) -> frozenset[str]:
    """Turn a config value (bool, level name, or list of them) into enabled levels."""
    enabled: set[str] = set()

    def enable(token: str) -> None:
        if token in {"all", "true", "1", "yes", "y", "on"}:
            enabled.update(LOG_LEVELS)
            return
        if token in LOG_LEVEL_PRIORITY:
            enabled.update(LOG_LEVELS[: LOG_LEVEL_PRIORITY[token] + 1])

    if raw is None or raw is False:
        return frozenset()
    if raw is True:
        return frozenset(LOG_LEVELS)
    if isinstance(raw, str):
        for token in raw.split(","):
            enable(token.strip().lower())
    elif isinstance(raw, (list, tuple, set)):
        for item in raw:
            if isinstance(item, str):
                enable(item.strip().lower())
    return frozenset(enabled)


class SessionLogger:
    """Write Markdown logs when debug logging is enabled."""

    def __init__(self, debug_config: Any, directory: Optional[Path] = None) -> None:
        self._directory = directory
        self._session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        self._started_at = datetime.now(timezone.utc)
        self._path: Path | None = None
        self._enabled_levels = resolve_debug_levels(debug_config)
        self.enabled = bool(self._enabled_levels)

    @property
    def path(self) -> Path | None:
        return self._path

    def close(self) -> None:
        self.enabled = False

    def log_level(self, source: str, level: str, event: str, content: Any | None = None) -> None:
        if not self._level_enabled(level):
            return
        self._write(source, level, event, content)

    def log_exception(self, source: str, exc: BaseException) -> None:
        if not self._level_enabled("error"):
            return
        location = None
        frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
        if frames:
            last = frames[-1]
            location = f"{last.filename}:{last.lineno} in {last.name}"
        self.log_level(
            source,
            "error",
            "exception",
            {
                "type": type(exc).__name__,
                "message": str(exc),
                "location": location,
                "traceback": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            },
        )

    def _level_enabled(self, level: str) -> bool:
        return self.enabled and level in self._enabled_levels

    def _ensure_path(self) -> Path:
        if self._path is None:
            directory = self._directory or logs_dir()
            directory.mkdir(parents=True, exist_ok=True)
            self._path = directory / f"askmd_{self._session_id}.md"
            if not self._path.exists():
                self._path.write_text(self._header_text(), encoding="utf-8")
        return self._path

    def _header_text(self) -> str:
        return (
            "# askmd Debug Log\n\n"
            f"- Session: {self._session_id}\n"
            f"- Started: {self._started_at.isoformat()}\n\n"
            "---\n\n"
        )

    def _write(self, source: str, level: str, event: str, content: Any) -> None:
        try:
            path = self._ensure_path()
            timestamp = datetime.now(timezone.utc).isoformat()
            entry = f"## {timestamp} · {level}/{source} · {event}\n{self._format_content_block(content)}\n\n"
            with path.open("a", encoding="utf-8") as f:
                f.write(entry)
        except OSError:
            # A log that cannot be written must not break the run.
            self.close()

    def _format_content_block(self, content: Any) -> str:
        if isinstance(content, (dict, list)):
            body = json.dumps(content, indent=2, ensure_ascii=False)
            language = "json"
        else:
            body = "" if content is None else str(content)
            language = "text"
        return f"````{language}\n{body.rstrip()}\n````"


_ACTIVE_LOGGER: SessionLogger | None = None


def set_active_logger(logger: SessionLogger | None) -> None:
    global _ACTIVE_LOGGER
    _ACTIVE_LOGGER = logger


def get_active_logger() -> SessionLogger | None:
    return _ACTIVE_LOGGER


def log_exception(source: str, exc: BaseException) -> None:
    logger = _ACTIVE_LOGGER
    if logger is not None:
        logger.log_exception(source, exc)


def log_error(source: str, event: str, content: Any | None = None) -> None:
    logger = _ACTIVE_LOGGER
    if logger is not None:
        logger.log_level(source, "error", event, content)


def log_warn(source: str, event: str, content: Any | None = None) -> None:
    logger = _ACTIVE_LOGGER
    if logger is not None:
        logger.log_level(source, "warn", event, content)


def log_info(source: str, event: str, content: Any | None = None) -> None:
    logger = _ACTIVE_LOGGER
    if logger is not None:
        logger.log_level(source, "info", event, content)


def log_debug(source: str, event: str, content: Any | None = None) -> None:
    logger = _ACTIVE_LOGGER
    if logger is not None:
        logger.log_level(source, "debug", event, content)
