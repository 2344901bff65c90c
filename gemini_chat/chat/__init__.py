"""Conversation streaming core for the Gemini chat client.

Responsibilities:
    - Session configuration and the model catalog
    - Provider session adapter over the google-genai SDK
    - Turn state machine with streaming, cancellation and block-retry
    - Conversation log and the replayable provider history
    - Best-effort thinking-process side request
    - Base64 encoding of attachments

Knows nothing about rendering. The UI plugs in through RenderSink and
ErrorSink.
"""

from gemini_chat.chat.config import (
    AVAILABLE_MODELS,
    AppConfig,
    GenerationConfig,
    ModelOption,
    SessionConfig,
    get_app_config,
)
from gemini_chat.chat.controller import ErrorSink, RenderSink, StreamingController
from gemini_chat.chat.conversation import Conversation
from gemini_chat.chat.encoder import encode, encode_all, file_from_path
from gemini_chat.chat.errors import (
    AbortError,
    ChatError,
    ConstructionError,
    ContentBlockedError,
    ReadError,
    TransportError,
    is_content_block,
)
from gemini_chat.chat.provider import ChatProvider, ChatSession, GeminiProvider, ModelHandle
from gemini_chat.chat.stream import CancellationToken, ResponseStream
from gemini_chat.chat.thinking import ThinkingFetcher

__all__ = [
    "AVAILABLE_MODELS",
    "AbortError",
    "AppConfig",
    "CancellationToken",
    "ChatError",
    "ChatProvider",
    "ChatSession",
    "ConstructionError",
    "ContentBlockedError",
    "Conversation",
    "ErrorSink",
    "GeminiProvider",
    "GenerationConfig",
    "ModelHandle",
    "ModelOption",
    "ReadError",
    "RenderSink",
    "ResponseStream",
    "SessionConfig",
    "StreamingController",
    "ThinkingFetcher",
    "TransportError",
    "encode",
    "encode_all",
    "file_from_path",
    "get_app_config",
    "is_content_block",
]
