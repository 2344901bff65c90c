"""Cancellation token and the pull-based response stream.

A ``ResponseStream`` wraps whatever async iterator a provider produces and
turns it into a finite, non-restartable sequence of text chunks. Between
chunks it races the provider against the request's ``CancellationToken``, so
a cancel takes effect as soon as the stream is next awaited, even if the
provider is hung.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable
from typing import TypeVar

from gemini_chat.chat.errors import AbortError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_END = object()


class CancellationToken:
    """One-shot cancellation signal shared by a single in-flight request."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        """Signal cancellation.

        Returns:
            True if this call cancelled the token, False if it already was.
        """
        if self._event.is_set():
            return False
        self._event.set()
        return True

    async def race(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token is cancelled first.

        Raises:
            AbortError: If the token fires before the awaitable finishes.
        """
        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise AbortError()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()
        if not self._event.is_set():
            return task.result()
        task.cancel()
        try:
            await task
        except (asyncio.CancelledError, Exception):
            logger.debug("Discarded pending provider call after cancellation")
        raise AbortError()


async def _next_chunk(iterator: AsyncIterator[str]) -> object:
    try:
        return await anext(iterator)
    except StopAsyncIteration:
        return _END


class ResponseStream:
    """Finite async sequence of text chunks with a running aggregate.

    Iterate once with ``async for``; afterwards ``text`` holds the
    concatenation of every chunk that was yielded, in order.
    """

    def __init__(
        self,
        chunks: AsyncIterator[str],
        token: CancellationToken | None = None,
    ) -> None:
        self._chunks = chunks
        self._token = token or CancellationToken()
        self._parts: list[str] = []
        self._started = False
        self._finished = False

    @property
    def text(self) -> str:
        """Aggregate of all chunks received so far."""
        return "".join(self._parts)

    @property
    def finished(self) -> bool:
        return self._finished

    def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("ResponseStream can only be iterated once")
        self._started = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[str]:
        iterator = aiter(self._chunks)
        try:
            while True:
                chunk = await self._token.race(_next_chunk(iterator))
                if chunk is _END:
                    break
                if not chunk:
                    continue
                self._parts.append(chunk)
                yield chunk
            self._finished = True
        finally:
            if not self._finished:
                await self._close(iterator)

    @staticmethod
    async def _close(iterator: AsyncIterator[str]) -> None:
        aclose = getattr(iterator, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            logger.debug(f"Error while closing provider stream: {e}")

    async def collect(self) -> str:
        """Drain the stream and return the aggregate text."""
        async for _ in self:
            pass
        return self.text
