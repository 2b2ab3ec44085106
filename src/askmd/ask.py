"""The ask flow: expand, send the conversation, stream the answer back."""

from __future__ import annotations

import asyncio
import signal
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional, Protocol, Sequence

from .config import MODELS, Settings
from .errors import ConfigError, SessionFileError
from .expansion import expand_and_persist
from .output import Output, plural
from .parser import read_session, turns_to_messages, validate_session
from .refresh import refresh_session
from .resolver import ReferenceResolver
from .session_log import log_info, log_warn
from .transport import ChunkEvent, ClaudeTransport, EndEvent, ErrorEvent, estimate_tokens
from .writer import SessionWriter

LARGE_CONTEXT_TOKENS = 150_000
PROGRESS_STEP_TOKENS = 100


class Transport(Protocol):
    def stream(self, messages: Sequence[Dict[str, str]]) -> AsyncIterator[Any]: ...


class CancelFlag:
    """Set once by the interrupt handler, polled once per streamed event."""

    def __init__(self) -> None:
        self._set = False

    def set(self) -> None:
        self._set = True

    def is_set(self) -> bool:
        return self._set


@dataclass(frozen=True)
class AskResult:
    turn_number: int
    total_tokens: int
    interrupted: bool


def _install_interrupt(cancel: CancelFlag, output: Output) -> bool:
    def on_interrupt() -> None:
        cancel.set()
        output.info("\nInterrupting...")

    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGINT, on_interrupt)
    except (NotImplementedError, RuntimeError, ValueError):
        # Not on the main thread or not supported on this platform.
        return False
    return True


def _remove_interrupt() -> None:
    try:
        asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
    except (NotImplementedError, RuntimeError, ValueError):
        pass


async def _interrupt_transport(transport: Transport) -> None:
    """Ask the model side to stop before the stream is closed."""
    interrupt = getattr(transport, "interrupt", None)
    if interrupt is not None:
        await interrupt()


async def run_ask(
    session_path: Path,
    settings: Settings,
    *,
    model: Optional[str] = None,
    refresh: bool = False,
    transport: Optional[Transport] = None,
    output: Optional[Output] = None,
    cancel: Optional[CancelFlag] = None,
) -> Optional[AskResult]:
    """Answer the last Human turn of session.md.

    Returns None when ``refresh`` found nothing to refresh.
    """
    output = output or Output()
    session_path = Path(session_path)
    model = model or settings.model
    if model not in MODELS:
        raise ConfigError(f"Invalid model: {model}", f"Valid options: {', '.join(MODELS)}")
    if not session_path.is_file():
        raise SessionFileError(f"{session_path} not found", "Run 'askmd init' to start")

    resolver = ReferenceResolver(session_path.parent, settings.expansion_options(), output=output)

    if refresh:
        output.info("Refreshing file references...")
        result = refresh_session(session_path, resolver, output)
        if not result.refreshed:
            output.info("No file references found to refresh")
            return None
        output.success(f"Refreshed {plural(result.count, 'file')}")
        output.info()

    session = read_session(session_path)
    validate_session(session)

    expansion = expand_and_persist(session_path, session, resolver)
    if expansion.expanded:
        output.info(f"Expanded {plural(expansion.count, 'file')} in {session_path.name}")
        session = read_session(session_path)

    last_human = validate_session(session)
    messages = turns_to_messages(session.turns)
    input_tokens = estimate_tokens(messages)
    output.meta([("Model", model), ("Sending", input_tokens), ("Turns", len(session.turns))])
    if input_tokens > LARGE_CONTEXT_TOKENS:
        output.warning("Large context - consider starting fresh with: askmd init")
    if settings.max_tokens:
        output.meta([("Max tokens", settings.max_tokens)])

    transport = transport or ClaudeTransport(settings, model)
    writer = SessionWriter(session_path, last_human.number + 1)
    cancel = cancel or CancelFlag()
    installed = _install_interrupt(cancel, output)
    output.progress("Streaming response... [ctrl+c to interrupt]")

    total_tokens = 0
    last_reported = 0
    try:
        events = transport.stream(messages)
        try:
            async for event in events:
                if cancel.is_set():
                    await _interrupt_transport(transport)
                    break
                if isinstance(event, ChunkEvent):
                    writer.write(event.text)
                    total_tokens = event.tokens
                    if event.tokens - last_reported >= PROGRESS_STEP_TOKENS or event.tokens < PROGRESS_STEP_TOKENS:
                        output.progress(f"Streaming response... {event.tokens} tokens [ctrl+c to interrupt]")
                        last_reported = event.tokens
                elif isinstance(event, ErrorEvent):
                    output.clear_line()
                    raise event.error
                elif isinstance(event, EndEvent):
                    total_tokens = event.total_tokens
        finally:
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                await aclose()
        interrupted = cancel.is_set()
        writer.end(interrupted)
    except BaseException:
        writer.end(True)
        raise
    finally:
        if installed:
            _remove_interrupt()

    output.clear_line()
    if interrupted:
        output.warning(f"Response interrupted after {total_tokens} tokens")
    else:
        output.success(f"Response complete: {total_tokens} output tokens")
    log_info("ask", "response.done", {"turn": last_human.number + 1, "tokens": total_tokens})
    if not writer.content_written:
        log_warn("ask", "response.empty", {"turn": last_human.number + 1})
    return AskResult(last_human.number + 1, total_tokens, interrupted)
