"""Ordered message log for one conversation."""

import logging
from collections.abc import Callable, Iterator

from gemini_chat.models.schemas import HistoryEntry, Message, Role

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    "Hello! I'm Gemini AI, ready to assist you. Feel free to ask me anything or "
    "upload images, documents, or other files for analysis."
)


def welcome_message() -> Message:
    return Message(content=WELCOME_MESSAGE, role=Role.SYSTEM)


class Conversation:
    """Append-only message log with a derived provider history.

    Starts with a system welcome message. ``reset`` replaces the whole log
    and notifies listeners so that any live provider session built from the
    old history can be dropped.
    """

    def __init__(self) -> None:
        self._messages: list[Message] = [welcome_message()]
        self._reset_listeners: list[Callable[[], None]] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def add_reset_listener(self, listener: Callable[[], None]) -> None:
        self._reset_listeners.append(listener)

    def append(self, message: Message) -> None:
        self._messages.append(message)

    def reset(self) -> Message:
        """Replace the conversation with a fresh welcome message.

        Returns:
            The new welcome message.
        """
        welcome = welcome_message()
        self._messages = [welcome]
        for listener in self._reset_listeners:
            listener()
        logger.info("Conversation reset")
        return welcome

    def history_view(self) -> list[HistoryEntry]:
        """Return the user/model turns to replay into a new provider session.

        System and thinking messages are skipped, and only user messages that
        were answered by a model message are kept, so the result always
        starts with a user entry and strictly alternates.
        """
        history: list[HistoryEntry] = []
        pending_user: Message | None = None
        for message in self._messages:
            if message.role == Role.USER:
                pending_user = message
            elif message.role == Role.MODEL and pending_user is not None:
                history.append(HistoryEntry(role=Role.USER, text=pending_user.content))
                history.append(HistoryEntry(role=Role.MODEL, text=message.content))
                pending_user = None
        return history
