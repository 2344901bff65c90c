"""Attachment encoding for provider requests.

Turns raw uploaded files into base64 inline attachments.
"""

import asyncio
import base64
import logging
import mimetypes
from collections.abc import Sequence
from pathlib import Path

from gemini_chat.chat.errors import ReadError
from gemini_chat.models.schemas import Attachment, InlineData, UploadedFile

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


def guess_mime_type(filename: str) -> str:
    """Guess a MIME type from a file name, falling back to octet-stream."""
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type or DEFAULT_MIME_TYPE


def file_from_path(path: Path, mime_type: str | None = None) -> UploadedFile:
    """Create a lazily-read upload for a file on disk."""

    async def read() -> bytes:
        return await asyncio.to_thread(path.read_bytes)

    return UploadedFile(
        name=path.name,
        mime_type=mime_type or guess_mime_type(path.name),
        reader=read,
    )


async def encode(file: UploadedFile) -> Attachment:
    """Encode one file as an inline attachment.

    Args:
        file: The uploaded file.

    Returns:
        Attachment holding the base64 payload and the original MIME type.

    Raises:
        ReadError: If the file content cannot be read.
    """
    try:
        content = await file.read()
    except ReadError:
        raise
    except Exception as e:
        logger.warning(f"Failed to read attachment {file.name}: {e}")
        raise ReadError(file.name, str(e)) from e

    return Attachment(
        inline_data=InlineData(
            data=base64.b64encode(content).decode("ascii"),
            mime_type=file.mime_type or DEFAULT_MIME_TYPE,
        )
    )


async def encode_all(files: Sequence[UploadedFile]) -> list[Attachment]:
    """Encode several files concurrently.

    The result follows the input order regardless of which read finishes
    first. The first failure cancels the reads still running and fails the
    whole batch.

    Raises:
        ReadError: The first file that could not be read.
    """
    if not files:
        return []
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(encode(f)) for f in files]
    except ExceptionGroup as eg:
        raise eg.exceptions[0]
    attachments = [task.result() for task in tasks]
    logger.debug(f"Encoded {len(attachments)} attachment(s)")
    return attachments
