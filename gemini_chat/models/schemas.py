import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

_last_id = 0


def next_message_id() -> int:
    """Return a unique, strictly increasing message id.

    Based on the creation time in nanoseconds, bumped by one whenever two
    messages are created within the same clock tick.
    """
    global _last_id
    _last_id = max(time.time_ns(), _last_id + 1)
    return _last_id


class Role(str, Enum):
    """Author of a conversation message."""

    USER = "user"
    MODEL = "model"
    SYSTEM = "system"
    THINKING = "thinking"


class ControllerState(str, Enum):
    """States of the streaming controller for a single turn."""

    IDLE = "idle"
    AWAITING_THINKING = "awaiting_thinking"
    STREAMING = "streaming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class TurnOutcome(str, Enum):
    """How a submitted turn ended."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    REJECTED = "rejected"


class Severity(str, Enum):
    """Severity attached to error-sink notifications."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Message(BaseModel):
    """A single message in the conversation.

    Messages are immutable once created; the conversation replaces them
    wholesale on reset and never edits them in place.

    Attributes:
        id: Unique, monotonically increasing identifier.
        content: The message text.
        role: The author (user, model, system or thinking).
        timestamp: Creation time.
        files: Names of the files attached to the message, in input order.
        thinking: Reasoning text captured before the answer, if any.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(default_factory=next_message_id)
    content: str
    role: Role
    timestamp: datetime = Field(default_factory=datetime.now)
    files: tuple[str, ...] | None = None
    thinking: str | None = None


class HistoryEntry(BaseModel):
    """One replayable turn fragment fed back to the provider."""

    model_config = ConfigDict(frozen=True)

    role: Role
    text: str


class InlineData(BaseModel):
    """Base64 payload paired with its MIME type."""

    model_config = ConfigDict(frozen=True)

    data: str = Field(..., description="Base64-encoded file content")
    mime_type: str


class Attachment(BaseModel):
    """Provider-ready inline attachment produced by the file encoder."""

    model_config = ConfigDict(frozen=True)

    inline_data: InlineData


class UploadedFile(BaseModel):
    """A file handed over by the UI for the next send.

    Either ``data`` holds the raw bytes, or ``reader`` is an async callable
    returning them (for sources that are read lazily, such as browser
    uploads).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    mime_type: str = "application/octet-stream"
    data: bytes | None = None
    reader: Callable[[], Awaitable[bytes]] | None = Field(default=None, exclude=True)

    async def read(self) -> bytes:
        """Return the raw bytes of the file."""
        if self.data is not None:
            return self.data
        if self.reader is None:
            raise ValueError(f"No content available for {self.name}")
        return await self.reader()
