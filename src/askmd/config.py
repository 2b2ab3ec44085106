"""Configuration loading and persistence for askmd."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import ConfigError
from .fileio import atomic_write
from .paths import config_path, ensure_askmd_dir


MODELS = ("opus", "sonnet", "haiku")

# Grouped so the written config file stays readable.
DEFAULT_EXCLUDE_GROUPS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Version control", (".git/**", ".svn/**", ".hg/**")),
    ("Dependencies", ("node_modules/**", "vendor/**", ".venv/**", "*.lock")),
    (
        "Build outputs",
        ("dist/**", "build/**", "out/**", "__pycache__/**", "*.pyc", "*.min.js", "*.min.css"),
    ),
    ("Test & Coverage", ("coverage/**", ".pytest_cache/**", ".mypy_cache/**")),
    ("IDE & System", (".vscode/**", ".idea/**", ".DS_Store", "Thumbs.db")),
    ("Cache & Logs", ("*.log", ".cache/**", "tmp/**")),
    (
        "Binary & Media",
        (
            "*.jpg",
            "*.jpeg",
            "*.png",
            "*.gif",
            "*.ico",
            "*.pdf",
            "*.zip",
            "*.tar.gz",
            "*.mp4",
            "*.mov",
            "*.woff",
            "*.woff2",
        ),
    ),
    ("Secrets", (".env", ".env.*", "*.pem", "*.key")),
    ("Project files", (".gitignore", ".dockerignore", "LICENSE", "LICENSE.*", "session.md")),
)


def default_exclude_patterns() -> List[str]:
    return [pattern for _, patterns in DEFAULT_EXCLUDE_GROUPS for pattern in patterns]


@dataclass(frozen=True)
class ExpansionOptions:
    """Immutable settings consulted while resolving [[references]]."""

    exclude: Tuple[str, ...] = ()
    filter: bool = True
    web: bool = True


@dataclass
class Settings:
    model: str = "opus"
    temperature: float = 1.0
    max_tokens: Optional[int] = None
    filter: bool = True  # strip comments and headers from expanded files
    web: bool = True  # fetch [[https://...]] references
    exclude: List[str] = field(default_factory=default_exclude_patterns)
    debug: Any = None

    def validate(self) -> None:
        """Raise ConfigError if any value is out of range."""
        if self.model not in MODELS:
            raise ConfigError(
                f"Invalid model: {self.model}",
                f"Valid options: {', '.join(MODELS)}",
            )
        if not isinstance(self.temperature, (int, float)) or not 0.0 <= self.temperature <= 1.0:
            raise ConfigError(f"Invalid temperature: {self.temperature}", "Use a value from 0.0 to 1.0")
        if self.max_tokens is not None and (
            not isinstance(self.max_tokens, int) or not 0 < self.max_tokens <= 200_000
        ):
            raise ConfigError(f"Invalid max_tokens: {self.max_tokens}", "Use a value from 1 to 200000")
        if not isinstance(self.exclude, list) or not all(isinstance(p, str) for p in self.exclude):
            raise ConfigError("exclude must be a list of glob patterns")

    def expansion_options(self) -> ExpansionOptions:
        return ExpansionOptions(
            exclude=tuple(self.exclude),
            filter=bool(self.filter),
            web=bool(self.web),
        )


def _load_env() -> Dict[str, Any]:
    values = {
        "model": os.getenv("ASKMD_MODEL"),
        "max_tokens": _as_int(os.getenv("ASKMD_MAX_TOKENS")),
        "filter": _as_bool(os.getenv("ASKMD_FILTER")),
        "web": _as_bool(os.getenv("ASKMD_WEB")),
        "debug": os.getenv("ASKMD_DEBUG"),
    }
    return {key: value for key, value in values.items() if value is not None}


def _as_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _as_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _as_bool(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    cleaned = value.strip().lower()
    if cleaned in {"1", "true", "yes", "y", "on"}:
        return True
    if cleaned in {"0", "false", "no", "n", "off"}:
        return False
    return None


def _read_file_values(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        return {}
    if not isinstance(loaded, dict):
        return {}
    known = {f.name for f in fields(Settings)}
    # maxTokens is accepted as an alias for files written by hand
    if "maxTokens" in loaded and "max_tokens" not in loaded:
        loaded["max_tokens"] = loaded.pop("maxTokens")
    return {key: value for key, value in loaded.items() if key in known}


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from the config file, then apply env overrides.

    A broken file never blocks a run; it falls back to defaults.
    """
    file_values = _read_file_values(path or config_path())
    merged = {**file_values, **_load_env()}
    settings = Settings(**merged)
    try:
        settings.validate()
    except ConfigError:
        return Settings(**_load_env())
    return settings


def format_settings(settings: Settings) -> str:
    """Render settings as commented YAML."""
    lines = [
        "# Model selection: opus (default), sonnet, or haiku",
        f"model: {settings.model}",
        "",
        "# Temperature: 0.0 (deterministic) to 1.0 (creative)",
        f"temperature: {settings.temperature}",
        "",
        "# Filter comments and headers from expanded files",
        f"filter: {json.dumps(bool(settings.filter))}",
        "",
        "# Fetch and expand [[https://...]] URL references",
        f"web: {json.dumps(bool(settings.web))}",
    ]
    if settings.max_tokens is not None:
        lines += ["", "# Maximum output tokens", f"max_tokens: {settings.max_tokens}"]
    if settings.debug:
        lines += ["", "# Debug log levels: error, warn, info, debug, all", f"debug: {json.dumps(settings.debug)}"]

    lines += ["", "# File patterns to exclude from expansion", "exclude:"]
    standard = set(default_exclude_patterns())
    first = True
    for name, patterns in DEFAULT_EXCLUDE_GROUPS:
        active = [p for p in patterns if p in settings.exclude]
        if not active:
            continue
        if not first:
            lines.append("")
        lines.append(f"  # {name}")
        lines += [f"  - {json.dumps(p)}" for p in active]
        first = False
    custom = [p for p in settings.exclude if p not in standard]
    if custom:
        if not first:
            lines.append("")
        lines.append("  # Custom")
        lines += [f"  - {json.dumps(p)}" for p in custom]
    if not settings.exclude:
        lines[-1] = "exclude: []"
    return "\n".join(lines) + "\n"


def save_settings(settings: Settings, path: Optional[Path] = None) -> Path:
    """Validate and atomically write settings to the config file."""
    settings.validate()
    if path is None:
        ensure_askmd_dir()
        path = config_path()
    else:
        path.parent.mkdir(parents=True, exist_ok=True)
    atomic_write(path, format_settings(settings))
    return path


def ensure_config(path: Optional[Path] = None) -> Path:
    """Write a default config file if none exists."""
    target = path or config_path()
    if not target.exists():
        save_settings(Settings(), target)
    return target


def parse_setting_value(key: str, raw: str) -> Any:
    """Convert a CLI string into the typed value for `key`."""
    if key == "model":
        return raw.strip().lower()
    if key == "temperature":
        value = _as_float(raw)
        if value is None:
            raise ConfigError(f"Invalid temperature: {raw}")
        return value
    if key == "max_tokens":
        if raw.strip().lower() in {"", "none", "null"}:
            return None
        value = _as_int(raw)
        if value is None:
            raise ConfigError(f"Invalid max_tokens: {raw}")
        return value
    if key in {"filter", "web"}:
        value = _as_bool(raw)
        if value is None:
            raise ConfigError(f"Invalid {key}: {raw}", "Use true or false")
        return value
    if key == "exclude":
        return [part.strip() for part in raw.split(",") if part.strip()]
    if key == "debug":
        return raw.strip() or None
    raise ConfigError(
        f"Unknown setting: {key}",
        f"Valid keys: {', '.join(f.name for f in fields(Settings))}",
    )


def update_setting(key: str, raw: str, path: Optional[Path] = None) -> Settings:
    """Set one key in the config file and return the new settings."""
    key = "max_tokens" if key == "maxTokens" else key
    value = parse_setting_value(key, raw)
    target = path or config_path()
    current = Settings(**_read_file_values(target))
    data = asdict(current)
    data[key] = value
    updated = Settings(**data)
    save_settings(updated, target)
    return updated
