"""Pytest fixtures and shared test configuration.

Provides reusable fixtures for unit and integration tests.

Fixtures:
    - provider: Scripted in-process stand-in for the Gemini API
    - sink: Render and error sink that records every notification
    - controller: StreamingController wired to the two above
    - async_client: HTTPX client for the host app

The scripted provider lets the controller's state machine run end-to-end
without network access.
"""

import asyncio
from collections.abc import AsyncGenerator, AsyncIterator, Sequence
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from gemini_chat.api import app
from gemini_chat.chat.config import GenerationConfig, SessionConfig
from gemini_chat.chat.controller import ErrorSink, RenderSink, StreamingController
from gemini_chat.chat.errors import ConstructionError
from gemini_chat.chat.provider import MessagePart, ModelHandle, build_model_handle, validate_history
from gemini_chat.chat.stream import CancellationToken, ResponseStream
from gemini_chat.models.schemas import HistoryEntry, Message, Severity

# A script is either an exception raised before the first chunk, or a list of
# chunks, exceptions (raised mid-stream) and events (awaited before continuing)
Script = BaseException | list[Any]


class ScriptedSession:
    """Chat session double that replays scripted streams."""

    def __init__(self, provider: "ScriptedProvider", history: Sequence[HistoryEntry]) -> None:
        self.provider = provider
        self.history = list(history)

    def send_stream(self, parts: Sequence[MessagePart], token: CancellationToken) -> ResponseStream:
        self.provider.calls.append(list(parts))
        return ResponseStream(self._run(self.provider.next_script()), token)

    async def _run(self, script: Script) -> AsyncIterator[str]:
        if isinstance(script, BaseException):
            raise script
        for item in script:
            await asyncio.sleep(0)
            if isinstance(item, BaseException):
                raise item
            if isinstance(item, asyncio.Event):
                await item.wait()
                continue
            yield item


class ScriptedProvider:
    """ChatProvider double.

    Attributes:
        scripts: Streams to replay, one per send, in order.
        default: Stream used once ``scripts`` is exhausted.
        calls: Message parts of every send, in order.
        sessions: Every session started, in order.
        thinking: Text returned by ``generate``, or an exception to raise.
        thinking_gate: Event ``generate`` waits on before answering.
        fail_construction: Make ``start_session`` fail.
    """

    def __init__(self, scripts: list[Script] | None = None, default: Script | None = None) -> None:
        self.scripts: list[Script] = list(scripts or [])
        self.default: Script = default if default is not None else ["ok"]
        self.calls: list[list[MessagePart]] = []
        self.sessions: list[ScriptedSession] = []
        self.models: list[ModelHandle] = []
        self.generation_configs: list[GenerationConfig] = []
        self.thinking: str | BaseException = "Step 1: think.\n\nTherefore, done."
        self.generate_calls: list[tuple[str, str, str]] = []
        self.thinking_gate: asyncio.Event | None = None
        self.fail_construction = False

    def next_script(self) -> Script:
        return self.scripts.pop(0) if self.scripts else self.default

    def create_model(self, config: SessionConfig) -> ModelHandle:
        model = build_model_handle(config)
        self.models.append(model)
        return model

    def start_session(
        self,
        model: ModelHandle,
        generation_config: GenerationConfig,
        history: Sequence[HistoryEntry],
    ) -> ScriptedSession:
        if self.fail_construction:
            raise ConstructionError("model unavailable")
        validate_history(history)
        self.generation_configs.append(generation_config)
        session = ScriptedSession(self, history)
        self.sessions.append(session)
        return session

    async def generate(self, model_id: str, system_instruction: str, prompt: str) -> str:
        self.generate_calls.append((model_id, system_instruction, prompt))
        await asyncio.sleep(0)
        if self.thinking_gate is not None:
            await self.thinking_gate.wait()
        if isinstance(self.thinking, BaseException):
            raise self.thinking
        return self.thinking


class RecordingSink(RenderSink, ErrorSink):
    """Records every render and error notification as (event, payload)."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []
        self.chunks: list[str] = []
        self.errors: list[tuple[str, str, Severity]] = []
        self.first_chunk = asyncio.Event()

    def on_chunk(self, text: str) -> None:
        self.chunks.append(text)
        self.events.append(("chunk", text))
        self.first_chunk.set()

    def on_stream_restarted(self) -> None:
        self.chunks.clear()
        self.events.append(("restarted", None))

    def on_message(self, message: Message) -> None:
        self.events.append(("message", message))

    def on_thinking_started(self) -> None:
        self.events.append(("thinking_started", None))

    def on_thinking_stopped(self) -> None:
        self.events.append(("thinking_stopped", None))

    def on_cancelled(self) -> None:
        self.events.append(("cancelled", None))

    def report(self, title: str, description: str, severity: Severity) -> None:
        self.errors.append((title, description, severity))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


@pytest.fixture
def provider() -> ScriptedProvider:
    """Scripted provider that answers "ok" unless told otherwise."""
    return ScriptedProvider()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def session_config() -> SessionConfig:
    """Configuration on a model without the thinking side-channel."""
    return SessionConfig(model_id="gemini-2.0-flash")


@pytest.fixture
def controller(
    provider: ScriptedProvider,
    sink: RecordingSink,
    session_config: SessionConfig,
) -> StreamingController:
    return StreamingController(provider, session_config, render_sink=sink, error_sink=sink)


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for API testing.

    Yields:
        Configured AsyncClient for making test requests.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
