"""Stream completions through the Claude Agent SDK."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List, Optional, Sequence, Union

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ClaudeSDKClient,
    ResultMessage,
    TextBlock,
)
from claude_agent_sdk.types import StreamEvent

from .config import Settings
from .session_log import log_debug, log_exception, log_info

SYSTEM_PROMPT = (
    "You are answering inside a Markdown conversation file. "
    "Reply in Markdown. Do not use tools."
)

# The SDK accepts these aliases directly; kept explicit so a bad value fails early.
MODEL_ALIASES: Dict[str, str] = {
    "opus": "opus",
    "sonnet": "sonnet",
    "haiku": "haiku",
}

CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class ChunkEvent:
    text: str
    tokens: int


@dataclass(frozen=True)
class ErrorEvent:
    error: BaseException


@dataclass(frozen=True)
class EndEvent:
    total_tokens: int


TransportEvent = Union[ChunkEvent, ErrorEvent, EndEvent]


def estimate_tokens(messages: Sequence[Dict[str, str]]) -> int:
    """Rough input size: about four characters per token."""
    chars = sum(len(message["content"]) for message in messages)
    return math.ceil(chars / CHARS_PER_TOKEN)


def resolve_model(name: str) -> str:
    try:
        return MODEL_ALIASES[name]
    except KeyError:
        raise ValueError(f"Invalid model: {name}. Valid options: {', '.join(MODEL_ALIASES)}") from None


def render_history(messages: Sequence[Dict[str, str]]) -> str:
    """Earlier turns as a transcript appended to the system prompt."""
    parts = []
    for message in messages:
        speaker = "Human" if message["role"] == "user" else "Assistant"
        parts.append(f"<turn speaker=\"{speaker}\">\n{message['content']}\n</turn>")
    return "\n\n".join(parts)


def build_options(settings: Settings, model: str, history: Sequence[Dict[str, str]]) -> ClaudeAgentOptions:
    system_prompt = SYSTEM_PROMPT
    if history:
        system_prompt += "\n\nConversation so far:\n\n" + render_history(history)
    env: Dict[str, str] = {}
    if settings.max_tokens:
        env["CLAUDE_CODE_MAX_OUTPUT_TOKENS"] = str(settings.max_tokens)
    return ClaudeAgentOptions(
        allowed_tools=[],
        system_prompt=system_prompt,
        model=resolve_model(model),
        env=env,
        max_turns=1,
        include_partial_messages=True,
        setting_sources=[],
    )


class ClaudeTransport:
    """One streamed completion per call to ``stream``."""

    def __init__(self, settings: Settings, model: Optional[str] = None) -> None:
        self.settings = settings
        self.model = model or settings.model
        self._client: Optional[ClaudeSDKClient] = None

    async def stream(self, messages: Sequence[Dict[str, str]]) -> AsyncIterator[TransportEvent]:
        """Yield chunks as they arrive, then a single EndEvent.

        Failures are yielded as ErrorEvent so the caller can close the turn.
        """
        if not messages or messages[-1]["role"] != "user":
            yield ErrorEvent(ValueError("Conversation must end with a user message"))
            return
        history: List[Dict[str, str]] = list(messages[:-1])
        prompt = messages[-1]["content"]
        streamed_chars = 0
        saw_partial = False
        output_tokens: Optional[int] = None

        try:
            options = build_options(self.settings, self.model, history)
            log_info("transport", "request", {"model": self.model, "turns": len(messages)})
            self._client = ClaudeSDKClient(options=options)
            async with self._client as client:
                await client.query(prompt)
                async for message in client.receive_response():
                    if isinstance(message, StreamEvent):
                        text = message.event.get("delta", {}).get("text", "")
                        if text:
                            saw_partial = True
                            streamed_chars += len(text)
                            yield ChunkEvent(text, math.ceil(streamed_chars / CHARS_PER_TOKEN))
                    elif isinstance(message, AssistantMessage) and not saw_partial:
                        # No partial deltas arrived; fall back to whole blocks.
                        for block in message.content:
                            if isinstance(block, TextBlock) and block.text:
                                streamed_chars += len(block.text)
                                yield ChunkEvent(block.text, math.ceil(streamed_chars / CHARS_PER_TOKEN))
                    elif isinstance(message, ResultMessage):
                        usage = message.usage or {}
                        if isinstance(usage.get("output_tokens"), int):
                            output_tokens = usage["output_tokens"]
                        log_debug("transport", "result", {"usage": usage, "duration_ms": message.duration_ms})
                        if message.is_error:
                            yield ErrorEvent(RuntimeError(message.result or "Request failed"))
                            return
        except Exception as exc:  # noqa: BLE001
            log_exception("transport", exc)
            yield ErrorEvent(exc)
            return
        finally:
            self._client = None

        total = output_tokens if output_tokens is not None else math.ceil(streamed_chars / CHARS_PER_TOKEN)
        yield EndEvent(total)

    async def interrupt(self) -> None:
        if self._client:
            try:
                await self._client.interrupt()
            except Exception as exc:  # noqa: BLE001
                log_exception("transport", exc)
