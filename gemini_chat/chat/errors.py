"""Error taxonomy for a chat turn.

Every failure the controller knows how to handle derives from ``ChatError``.
Which of them are retried is decided by ``is_content_block`` alone.
"""

# Substring the provider puts in error messages when it refuses to recite content
BLOCK_MARKERS = ("RECITATION",)


class ChatError(Exception):
    """Base class for failures raised inside the chat core."""

    pass


class ReadError(ChatError):
    """Raised when an attachment cannot be read or encoded."""

    def __init__(self, filename: str, reason: str) -> None:
        self.filename = filename
        super().__init__(f"Failed to read file {filename}: {reason}")


class ConstructionError(ChatError):
    """Raised when the model or chat session cannot be created."""

    pass


class ContentBlockedError(ChatError):
    """Raised when the provider refuses to answer for policy reasons."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Response blocked: {reason}")


class TransportError(ChatError):
    """Raised on network or provider faults that are not content blocks."""

    pass


class AbortError(ChatError):
    """Raised inside a stream once the user has cancelled the request."""

    def __init__(self) -> None:
        super().__init__("Request aborted")


def is_content_block(exc: BaseException) -> bool:
    """Return True if the error means the provider blocked the response.

    Provider wording is not stable, so the message check lives here and
    nowhere else.
    """
    if isinstance(exc, ContentBlockedError):
        return True
    if isinstance(exc, AbortError):
        return False
    message = str(exc)
    return any(marker in message for marker in BLOCK_MARKERS)
