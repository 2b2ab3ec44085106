import unittest
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from unittest import mock

from askmd.config import Settings
from askmd.transport import (
    ChunkEvent,
    ClaudeTransport,
    EndEvent,
    ErrorEvent,
    build_options,
    estimate_tokens,
    render_history,
    resolve_model,
)


@dataclass
class FakeStreamEvent:
    event: Dict[str, Any]


@dataclass
class FakeResult:
    is_error: bool = False
    result: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None
    duration_ms: int = 1


@dataclass
class FakeClient:
    messages: List[Any]
    options: Any = None
    queries: List[str] = field(default_factory=list)

    async def __aenter__(self) -> "FakeClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None

    async def query(self, prompt: str) -> None:
        self.queries.append(prompt)

    async def receive_response(self):
        for message in self.messages:
            if isinstance(message, BaseException):
                raise message
            yield message


def delta(text: str) -> FakeStreamEvent:
    return FakeStreamEvent({"type": "content_block_delta", "delta": {"type": "text_delta", "text": text}})


class TransportHelpersTests(unittest.TestCase):
    def test_estimate_tokens(self) -> None:
        messages = [{"role": "user", "content": "abcd"}, {"role": "assistant", "content": "abcde"}]
        self.assertEqual(estimate_tokens(messages), 3)
        self.assertEqual(estimate_tokens([]), 0)

    def test_resolve_model(self) -> None:
        self.assertEqual(resolve_model("sonnet"), "sonnet")
        with self.assertRaises(ValueError):
            resolve_model("gpt")

    def test_render_history(self) -> None:
        rendered = render_history(
            [{"role": "user", "content": "Q"}, {"role": "assistant", "content": "A"}]
        )
        self.assertIn('<turn speaker="Human">\nQ\n</turn>', rendered)
        self.assertIn('<turn speaker="Assistant">\nA\n</turn>', rendered)

    def test_build_options(self) -> None:
        options = build_options(Settings(max_tokens=1000), "haiku", [{"role": "user", "content": "earlier"}])
        self.assertEqual(options.allowed_tools, [])
        self.assertEqual(options.max_turns, 1)
        self.assertEqual(options.model, "haiku")
        self.assertTrue(options.include_partial_messages)
        self.assertIn("earlier", options.system_prompt)
        self.assertEqual(options.env["CLAUDE_CODE_MAX_OUTPUT_TOKENS"], "1000")


class ClaudeTransportTests(unittest.IsolatedAsyncioTestCase):
    async def _collect(self, client: FakeClient, messages) -> List[Any]:
        transport = ClaudeTransport(Settings(), "sonnet")
        with mock.patch("askmd.transport.ClaudeSDKClient", return_value=client), mock.patch(
            "askmd.transport.StreamEvent", FakeStreamEvent
        ), mock.patch("askmd.transport.ResultMessage", FakeResult):
            return [event async for event in transport.stream(messages)]

    async def test_streams_deltas_then_end(self) -> None:
        client = FakeClient([delta("Hel"), delta("lo"), FakeResult(usage={"output_tokens": 7})])
        events = await self._collect(
            client,
            [
                {"role": "user", "content": "first"},
                {"role": "assistant", "content": "reply"},
                {"role": "user", "content": "second"},
            ],
        )
        self.assertEqual(events[:2], [ChunkEvent("Hel", 1), ChunkEvent("lo", 2)])
        self.assertEqual(events[-1], EndEvent(7))
        self.assertEqual(client.queries, ["second"])

    async def test_error_result_is_yielded(self) -> None:
        client = FakeClient([delta("x"), FakeResult(is_error=True, result="overloaded")])
        events = await self._collect(client, [{"role": "user", "content": "q"}])
        self.assertIsInstance(events[-1], ErrorEvent)
        self.assertIn("overloaded", str(events[-1].error))
        self.assertFalse(any(isinstance(e, EndEvent) for e in events))

    async def test_exception_is_yielded(self) -> None:
        client = FakeClient([delta("x"), RuntimeError("connection lost")])
        events = await self._collect(client, [{"role": "user", "content": "q"}])
        self.assertEqual(events[0], ChunkEvent("x", 1))
        self.assertIsInstance(events[-1], ErrorEvent)

    async def test_interrupt_reaches_active_client(self) -> None:
        transport = ClaudeTransport(Settings(), "sonnet")
        await transport.interrupt()
        client = mock.Mock()
        client.interrupt = mock.AsyncMock()
        transport._client = client
        await transport.interrupt()
        client.interrupt.assert_awaited_once()

    async def test_requires_trailing_user_message(self) -> None:
        events = await self._collect(FakeClient([]), [{"role": "assistant", "content": "a"}])
        self.assertEqual(len(events), 1)
        self.assertIsInstance(events[0], ErrorEvent)


if __name__ == "__main__":
    unittest.main()
