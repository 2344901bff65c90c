"""Streaming controller for a single conversation.

Drives one turn at a time through the provider session adapter:

    Idle -> AwaitingThinking? -> Streaming -> Completed | Cancelled | Failed -> Idle

Owns the live provider session and the cancellation token of the in-flight
request. Callers must serialize ``submit`` calls; the controller does not
guard against concurrent sends beyond rejecting a second one outright.

Expected failures never escape ``submit``. They are turned into one system
message in the conversation plus one error-sink notification, and no partial
model output is ever stored.
"""

import logging
from collections.abc import Sequence

from gemini_chat.chat.config import SessionConfig
from gemini_chat.chat.conversation import Conversation
from gemini_chat.chat.encoder import encode_all
from gemini_chat.chat.errors import AbortError, ConstructionError, is_content_block
from gemini_chat.chat.provider import ChatProvider, ChatSession, MessagePart
from gemini_chat.chat.stream import CancellationToken
from gemini_chat.chat.thinking import ThinkingFetcher
from gemini_chat.models.schemas import (
    Attachment,
    ControllerState,
    Message,
    Role,
    Severity,
    TurnOutcome,
    UploadedFile,
)

logger = logging.getLogger(__name__)

RETRY_PROMPT_PREFIX = (
    "Please provide a comprehensive analysis and your insights about the following, "
    "focusing on factual information and analytical perspectives: "
)
CANCELLED_NOTICE = "Response generation cancelled."
FAILURE_NOTICE = "Sorry, I encountered an error. Please try again."


class RenderSink:
    """Receives streaming output. Override what the UI needs."""

    def on_chunk(self, text: str) -> None:
        pass

    def on_stream_restarted(self) -> None:
        pass

    def on_message(self, message: Message) -> None:
        pass

    def on_thinking_started(self) -> None:
        pass

    def on_thinking_stopped(self) -> None:
        pass

    def on_cancelled(self) -> None:
        pass


class ErrorSink:
    """Receives user-facing error notifications."""

    def report(self, title: str, description: str, severity: Severity) -> None:
        logger.log(
            logging.ERROR if severity == Severity.ERROR else logging.WARNING,
            f"{title}: {description}",
        )


def reframe_prompt(prompt: str) -> str:
    """Rewrite a blocked prompt as a request for a factual analysis."""
    return f"{RETRY_PROMPT_PREFIX}{prompt}"


def build_parts(prompt: str, attachments: Sequence[Attachment]) -> list[MessagePart]:
    """Assemble message parts: prompt text if non-empty, then attachments in order."""
    parts: list[MessagePart] = []
    if prompt.strip():
        parts.append(prompt)
    parts.extend(attachments)
    return parts


def describe_user_turn(prompt: str, files: Sequence[UploadedFile]) -> str:
    """Text shown for a user message, listing attached file names."""
    if not files:
        return prompt
    names = ", ".join(f.name for f in files)
    if not prompt:
        return f"[Attached files: {names}]"
    return f"{prompt}\n\n[Attached files: {names}]"


class StreamingController:
    """Runs conversation turns against a chat provider.

    Attributes:
        conversation: The message log this controller appends to.
    """

    def __init__(
        self,
        provider: ChatProvider,
        config: SessionConfig | None = None,
        conversation: Conversation | None = None,
        render_sink: RenderSink | None = None,
        error_sink: ErrorSink | None = None,
        thinking_fetcher: ThinkingFetcher | None = None,
    ) -> None:
        self._provider = provider
        self._config = config or SessionConfig()
        self.conversation = conversation or Conversation()
        self.conversation.add_reset_listener(self._on_conversation_reset)
        self.render_sink = render_sink or RenderSink()
        self.error_sink = error_sink or ErrorSink()
        self._thinking = thinking_fetcher or ThinkingFetcher(provider)

        self._session: ChatSession | None = None
        self._token: CancellationToken | None = None
        self._state = ControllerState.IDLE
        self._buffer: list[str] = []
        self._pending_files: list[UploadedFile] = []
        # Bumped on reset so turns started earlier cannot write into the new log
        self._epoch = 0

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def session(self) -> ChatSession | None:
        return self._session

    @property
    def in_progress_text(self) -> str:
        """Text streamed so far for the current turn."""
        return "".join(self._buffer)

    @property
    def is_busy(self) -> bool:
        return self._token is not None

    @property
    def pending_files(self) -> tuple[UploadedFile, ...]:
        return tuple(self._pending_files)

    def attach(self, *files: UploadedFile) -> None:
        """Stage files for the next send."""
        self._pending_files.extend(files)

    def clear_pending(self) -> None:
        self._pending_files.clear()

    def update_config(self, config: SessionConfig) -> None:
        """Replace the session configuration.

        Takes effect on the next send, which rebuilds the provider session.
        """
        self._config = config
        self.invalidate_session()

    def select_model(self, model_id: str) -> SessionConfig:
        """Switch to a catalog model and apply its defaults."""
        self.update_config(self._config.with_model(model_id))
        return self._config

    def invalidate_session(self) -> None:
        if self._session is not None:
            logger.info("Invalidating chat session")
        self._session = None

    def reset(self) -> Message:
        """Start a new conversation, cancelling any in-flight request.

        Unlike ``cancel``, this stops the turn in every phase, including
        session setup and attachment encoding.
        """
        if self._token is not None and self._token.cancel():
            logger.info("Cancelling in-flight request for reset")
        return self.conversation.reset()

    def _on_conversation_reset(self) -> None:
        self._epoch += 1
        self.invalidate_session()

    def cancel(self) -> bool:
        """Cancel the in-flight request.

        Only has an effect while waiting for thinking or streaming. Repeated
        calls are no-ops.

        Returns:
            True if a request was cancelled by this call.
        """
        if self._token is None:
            return False
        if self._state not in (ControllerState.AWAITING_THINKING, ControllerState.STREAMING):
            return False
        if not self._token.cancel():
            return False
        logger.info("Cancellation requested")
        return True

    async def submit(
        self,
        prompt: str,
        files: Sequence[UploadedFile] | None = None,
    ) -> TurnOutcome:
        """Send one user turn and stream the reply.

        Args:
            prompt: The user's message. May be empty when files are attached.
            files: Files to attach. Defaults to the staged pending files.

        Returns:
            How the turn ended. ``REJECTED`` means nothing was sent because
            there was neither text nor an attachment.

        Raises:
            RuntimeError: If another request is already in flight.
        """
        if self._token is not None:
            raise RuntimeError("A request is already in flight")

        files = list(files) if files is not None else list(self._pending_files)
        text = prompt.strip()
        if not text and not files:
            return TurnOutcome.REJECTED

        token = CancellationToken()
        self._token = token
        self._buffer = []
        epoch = self._epoch
        self._append(
            Message(
                content=describe_user_turn(text, files),
                role=Role.USER,
                files=tuple(f.name for f in files) or None,
            ),
            epoch,
        )

        try:
            return await self._run_turn(text, files, token, epoch)
        finally:
            self._token = None
            self._buffer = []
            self._pending_files.clear()
            self._state = ControllerState.IDLE

    async def _run_turn(
        self,
        text: str,
        files: list[UploadedFile],
        token: CancellationToken,
        epoch: int,
    ) -> TurnOutcome:
        try:
            session = self._ensure_session()
        except ConstructionError as e:
            return self._failed(e, epoch, description="Failed to initialize chat session")

        try:
            attachments = await token.race(encode_all(files))
        except AbortError:
            return self._cancelled(epoch)
        except Exception as e:
            return self._failed(e, epoch)

        config = self._config
        thinking: str | None = None
        if config.thinking_enabled and config.model_supports_thinking:
            self._state = ControllerState.AWAITING_THINKING
            self.render_sink.on_thinking_started()
            try:
                thinking = await token.race(self._thinking.fetch(text, config.model_id))
            except AbortError:
                return self._cancelled(epoch)
            finally:
                self.render_sink.on_thinking_stopped()

        if token.cancelled or epoch != self._epoch:
            return self._cancelled(epoch)
        self._state = ControllerState.STREAMING
        try:
            response = await self._stream_with_retry(session, text, attachments, token)
        except Exception as e:
            if isinstance(e, AbortError) or token.cancelled:
                return self._cancelled(epoch)
            return self._failed(e, epoch)

        message = Message(content=response, role=Role.MODEL, thinking=thinking)
        self._append(message, epoch)
        self._state = ControllerState.COMPLETED
        self.render_sink.on_message(message)
        return TurnOutcome.COMPLETED

    def _ensure_session(self) -> ChatSession:
        if self._session is None:
            config = self._config
            try:
                model = self._provider.create_model(config)
                self._session = self._provider.start_session(
                    model,
                    config.generation_config(),
                    self.conversation.history_view(),
                )
            except ConstructionError:
                raise
            except Exception as e:
                raise ConstructionError(f"Failed to create chat session: {e}") from e
        return self._session

    async def _stream_with_retry(
        self,
        session: ChatSession,
        text: str,
        attachments: list[Attachment],
        token: CancellationToken,
    ) -> str:
        try:
            return await self._stream_once(session, build_parts(text, attachments), token)
        except Exception as e:
            if not is_content_block(e):
                raise
            logger.info(f"Response blocked, retrying with reframed prompt: {e}")

        self._buffer = []
        self.render_sink.on_stream_restarted()
        return await self._stream_once(
            session, build_parts(reframe_prompt(text), attachments), token
        )

    async def _stream_once(
        self,
        session: ChatSession,
        parts: list[MessagePart],
        token: CancellationToken,
    ) -> str:
        stream = session.send_stream(parts, token)
        async for chunk in stream:
            self._buffer.append(chunk)
            self.render_sink.on_chunk(chunk)
        return stream.text

    def _append(self, message: Message, epoch: int) -> None:
        if epoch != self._epoch:
            logger.debug(f"Dropping {message.role.value} message from a turn started before reset")
            return
        self.conversation.append(message)

    def _cancelled(self, epoch: int) -> TurnOutcome:
        logger.info("Response generation cancelled")
        self._buffer = []
        self._append(Message(content=CANCELLED_NOTICE, role=Role.SYSTEM), epoch)
        self._state = ControllerState.CANCELLED
        self.render_sink.on_cancelled()
        return TurnOutcome.CANCELLED

    def _failed(
        self,
        error: Exception,
        epoch: int,
        description: str | None = None,
    ) -> TurnOutcome:
        logger.error(f"Error generating response: {error}")
        self._buffer = []
        self._append(Message(content=FAILURE_NOTICE, role=Role.SYSTEM), epoch)
        self._state = ControllerState.FAILED
        self.error_sink.report(
            "Error",
            description or f"Failed to generate a response: {error}",
            Severity.ERROR,
        )
        return TurnOutcome.FAILED
