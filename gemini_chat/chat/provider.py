"""Provider session adapter for the Gemini API.

Wraps the ``google-genai`` chat primitive behind two small protocols so the
streaming controller never touches the SDK directly and can be driven by a test
double instead.

Lifecycle:

1. ``create_model`` binds model id, system instruction and the optional
   code-execution tool. Pure construction, no network call.
2. ``start_session`` creates a local chat session seeded with history. Also
   network-free.
3. ``ChatSession.send_stream`` performs one streamed call and returns a
   ``ResponseStream`` of text chunks.

Sessions are never reconfigured. Changing any parameter means creating a new
model handle and session.
"""

import base64
import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any, Protocol

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import BaseModel, ConfigDict

from gemini_chat.chat.config import GenerationConfig, SessionConfig
from gemini_chat.chat.errors import (
    ChatError,
    ConstructionError,
    ContentBlockedError,
    TransportError,
    is_content_block,
)
from gemini_chat.chat.stream import CancellationToken, ResponseStream
from gemini_chat.models.schemas import Attachment, HistoryEntry, Role

logger = logging.getLogger(__name__)

# A message part is either prompt text or an encoded attachment
MessagePart = str | Attachment

_BLOCKING_FINISH_REASONS = frozenset(
    {"RECITATION", "SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"}
)


class ModelHandle(BaseModel):
    """Model binding used to start chat sessions."""

    model_config = ConfigDict(frozen=True)

    model_id: str
    system_instruction: str
    code_execution: bool = False


class ChatSession(Protocol):
    """A live multi-turn chat session."""

    def send_stream(
        self,
        parts: Sequence[MessagePart],
        token: CancellationToken,
    ) -> ResponseStream: ...


class ChatProvider(Protocol):
    """Factory for model handles and chat sessions, plus one-shot generation."""

    def create_model(self, config: SessionConfig) -> ModelHandle: ...

    def start_session(
        self,
        model: ModelHandle,
        generation_config: GenerationConfig,
        history: Sequence[HistoryEntry],
    ) -> ChatSession: ...

    async def generate(self, model_id: str, system_instruction: str, prompt: str) -> str: ...


def build_model_handle(config: SessionConfig) -> ModelHandle:
    """Bind the model-level settings of a session configuration."""
    return ModelHandle(
        model_id=config.model_id,
        system_instruction=config.effective_system_instruction,
        code_execution=config.code_execution_enabled,
    )


def validate_history(history: Sequence[HistoryEntry]) -> None:
    """Check that history starts with a user turn and alternates user/model.

    Raises:
        ValueError: If the sequence violates the alternation rule.
    """
    for index, entry in enumerate(history):
        expected = Role.USER if index % 2 == 0 else Role.MODEL
        if entry.role != expected:
            raise ValueError(
                f"History entry {index} has role {entry.role.value}, expected {expected.value}"
            )


def _enum_name(value: Any) -> str:
    return getattr(value, "name", None) or str(value)


def _to_sdk_part(part: MessagePart) -> types.Part:
    if isinstance(part, str):
        return types.Part(text=part)
    return types.Part.from_bytes(
        data=base64.b64decode(part.inline_data.data),
        mime_type=part.inline_data.mime_type,
    )


def _raise_if_blocked(chunk: types.GenerateContentResponse) -> None:
    feedback = chunk.prompt_feedback
    if feedback is not None and feedback.block_reason:
        raise ContentBlockedError(_enum_name(feedback.block_reason))
    for candidate in chunk.candidates or []:
        if candidate.finish_reason and _enum_name(candidate.finish_reason) in _BLOCKING_FINISH_REASONS:
            raise ContentBlockedError(_enum_name(candidate.finish_reason))


def _chunk_text(chunk: types.GenerateContentResponse) -> str:
    """Flatten one streamed response into display text.

    Code-execution parts are rendered as fenced blocks so the stream stays
    plain text.
    """
    if not chunk.candidates:
        return ""
    content = chunk.candidates[0].content
    if content is None or not content.parts:
        return ""

    pieces: list[str] = []
    for part in content.parts:
        if part.thought:
            continue
        if part.text:
            pieces.append(part.text)
        elif part.executable_code and part.executable_code.code:
            pieces.append(f"\n```python\n{part.executable_code.code}\n```\n")
        elif part.code_execution_result and part.code_execution_result.output:
            pieces.append(f"\n```output\n{part.code_execution_result.output}\n```\n")
    return "".join(pieces)


def _translate_error(e: Exception) -> ChatError:
    if is_content_block(e):
        return ContentBlockedError(str(e))
    return TransportError(str(e))


class GeminiChatSession:
    """Chat session backed by ``google.genai`` async chats."""

    def __init__(self, chat: Any, model_id: str) -> None:
        self._chat = chat
        self._model_id = model_id

    def send_stream(
        self,
        parts: Sequence[MessagePart],
        token: CancellationToken,
    ) -> ResponseStream:
        """Send one message and stream the reply.

        Args:
            parts: Prompt text and/or attachments, in order.
            token: Cancellation token observed between chunks.

        Returns:
            A ResponseStream yielding text chunks as they arrive.
        """
        contents = [_to_sdk_part(part) for part in parts]
        return ResponseStream(self._chunks(contents), token)

    async def _chunks(self, contents: list[types.Part]) -> AsyncIterator[str]:
        try:
            response = await self._chat.send_message_stream(contents)
            async for chunk in response:
                _raise_if_blocked(chunk)
                text = _chunk_text(chunk)
                if text:
                    yield text
        except ChatError:
            raise
        except (genai_errors.APIError, httpx.HTTPError) as e:
            logger.warning(f"Streaming call to {self._model_id} failed: {e}")
            raise _translate_error(e) from e


class GeminiProvider:
    """``ChatProvider`` implementation for the Gemini API."""

    def __init__(self, api_key: str, client: genai.Client | None = None) -> None:
        self._client = client or genai.Client(api_key=api_key)

    def create_model(self, config: SessionConfig) -> ModelHandle:
        return build_model_handle(config)

    def _content_config(
        self,
        model: ModelHandle,
        generation_config: GenerationConfig,
    ) -> types.GenerateContentConfig:
        tools = [types.Tool(code_execution=types.ToolCodeExecution())] if model.code_execution else None
        return types.GenerateContentConfig(
            system_instruction=model.system_instruction,
            temperature=generation_config.temperature,
            top_p=generation_config.top_p,
            top_k=generation_config.top_k,
            max_output_tokens=generation_config.max_output_tokens,
            response_mime_type=generation_config.response_mime_type,
            candidate_count=generation_config.candidate_count,
            tools=tools,
        )

    def start_session(
        self,
        model: ModelHandle,
        generation_config: GenerationConfig,
        history: Sequence[HistoryEntry],
    ) -> GeminiChatSession:
        """Create a chat session seeded with prior turns.

        Raises:
            ConstructionError: If the SDK rejects the configuration.
        """
        validate_history(history)
        sdk_history = [
            types.Content(role=entry.role.value, parts=[types.Part(text=entry.text)])
            for entry in history
        ]
        try:
            chat = self._client.aio.chats.create(
                model=model.model_id,
                config=self._content_config(model, generation_config),
                history=sdk_history,
            )
        except Exception as e:
            raise ConstructionError(f"Failed to create chat session: {e}") from e

        logger.info(f"Started chat session on {model.model_id} with {len(sdk_history)} history entries")
        return GeminiChatSession(chat, model.model_id)

    async def generate(self, model_id: str, system_instruction: str, prompt: str) -> str:
        """Run a single non-streaming generation.

        Raises:
            TransportError: On network or provider failure.
        """
        try:
            response = await self._client.aio.models.generate_content(
                model=model_id,
                contents=prompt,
                config=types.GenerateContentConfig(system_instruction=system_instruction),
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise _translate_error(e) from e
        return response.text or ""
