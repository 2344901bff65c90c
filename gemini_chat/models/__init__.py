"""Pydantic models shared by the chat core and the UI.

Provides type safety and validation for everything that crosses a component
boundary.

Models:
    - Message: Immutable entry in the conversation log
    - HistoryEntry: Role/text pair replayed to seed a provider session
    - UploadedFile: Raw file handed over by the UI for the next send
    - Attachment: Base64 inline payload produced by the file encoder
    - ControllerState / TurnOutcome: Streaming controller lifecycle
    - Severity: Error-sink notification level
"""

from gemini_chat.models.schemas import (
    Attachment,
    ControllerState,
    HistoryEntry,
    InlineData,
    Message,
    Role,
    Severity,
    TurnOutcome,
    UploadedFile,
    next_message_id,
)

__all__ = [
    "Attachment",
    "ControllerState",
    "HistoryEntry",
    "InlineData",
    "Message",
    "Role",
    "Severity",
    "TurnOutcome",
    "UploadedFile",
    "next_message_id",
]
