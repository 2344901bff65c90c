"""Best-effort side request that exposes the model's reasoning.

Asks the model to think step by step, then keeps the text before the first
concluding phrase. The split is a heuristic with no guarantee of finding the
real boundary. Failures return None and never affect the main answer.
"""

import logging
import re

from gemini_chat.chat.provider import ChatProvider

logger = logging.getLogger(__name__)

THINKING_INSTRUCTION = (
    "Show your step-by-step thinking process before answering. "
    "Break down complex problems methodically."
)

CONCLUSION_PHRASES = ("Therefore,", "In conclusion,", "To summarize,", "So,")

_CONCLUSION_PATTERN = re.compile(
    r"\n\n(?:" + "|".join(re.escape(p) for p in CONCLUSION_PHRASES) + ")",
    re.IGNORECASE,
)


def extract_thinking(text: str) -> str:
    """Return the part of ``text`` before the first concluding paragraph.

    Falls back to the whole text when no boundary is found or the
    boundary is at the very start.
    """
    head = _CONCLUSION_PATTERN.split(text, maxsplit=1)[0]
    return head or text


class ThinkingFetcher:
    """Fetches reasoning text for a prompt through a one-shot generation."""

    def __init__(self, provider: ChatProvider) -> None:
        self._provider = provider

    async def fetch(self, prompt: str, model_id: str) -> str | None:
        """Get the thinking process for a prompt.

        Args:
            prompt: The user's prompt.
            model_id: Model to ask.

        Returns:
            The reasoning text, or None if the request failed or produced
            nothing.
        """
        try:
            full_text = await self._provider.generate(model_id, THINKING_INSTRUCTION, prompt)
        except Exception as e:
            logger.warning(f"Error generating thinking process: {e}")
            return None

        if not full_text:
            return None
        return extract_thinking(full_text)
