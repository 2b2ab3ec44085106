"""Error types surfaced to the CLI."""

from __future__ import annotations

from typing import Optional


class AskmdError(Exception):
    """Base error carrying an optional hint for the user."""

    def __init__(self, message: str, help: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.help = help

    def __str__(self) -> str:
        if self.help:
            return f"{self.message}\n\n{self.help}"
        return self.message

    @classmethod
    def from_exception(cls, exc: BaseException) -> "AskmdError":
        """Translate low-level failures into errors with actionable hints."""
        if isinstance(exc, AskmdError):
            return exc
        message = str(exc) or type(exc).__name__
        lowered = message.lower()
        if "cli not found" in lowered or "clinotfound" in lowered:
            return TransportError(
                "Claude Code CLI not found",
                "Install it with: npm install -g @anthropic-ai/claude-code",
            )
        if "maximum tokens" in lowered or "max_tokens" in lowered:
            return TransportError(
                "Token limit exceeded",
                "Try a shorter conversation or different model",
            )
        if "must start with a user message" in lowered:
            return TransportError(
                "Invalid conversation format",
                "Check session.md has proper Human/AI structure",
            )
        if "timed out" in lowered or "timeout" in lowered:
            return TransportError(
                "Request timed out",
                "Try a shorter conversation or simpler request",
            )
        return cls(message)


class SessionError(AskmdError):
    pass


class EmptySessionError(SessionError):
    def __init__(self) -> None:
        super().__init__(
            "No turns found in session.md",
            "Make sure it has proper format:\n\n# [1] Human\n\nYour question here",
        )


class NoHumanTurnError(SessionError):
    def __init__(self) -> None:
        super().__init__("No human turn found in session.md")


class EmptyTurnError(SessionError):
    def __init__(self, number: int) -> None:
        super().__init__(f"Turn {number} has no content", "Add your question and try again")
        self.number = number


class AlreadyAnsweredError(SessionError):
    def __init__(self, number: int) -> None:
        super().__init__(
            f"Turn {number} already has a response",
            "Add a new human turn to continue",
        )
        self.number = number


class TurnHeaderNotFoundError(SessionError):
    def __init__(self, header: str) -> None:
        super().__init__(
            f"Could not find '{header}' in session file",
            "The file may have been modified while askmd was running",
        )
        self.header = header


class SessionFileError(SessionError):
    pass


class ConfigError(AskmdError):
    pass


class TransportError(AskmdError):
    pass


class ReferenceResolutionError(AskmdError):
    """A single [[reference]] could not be resolved."""

    def __init__(self, ref: str, message: str) -> None:
        super().__init__(message)
        self.ref = ref


class FileNotFound(ReferenceResolutionError):
    def __init__(self, ref: str, message: str = "File not found") -> None:
        super().__init__(ref, message)


class BinaryFile(ReferenceResolutionError):
    def __init__(self, ref: str) -> None:
        super().__init__(ref, "Binary file")


class FetchError(ReferenceResolutionError):
    pass


class FilesystemError(ReferenceResolutionError):
    pass
