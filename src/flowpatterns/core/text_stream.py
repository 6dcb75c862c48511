"""
Lazy text streams

A ``TextStream`` is a finite, non-restartable sequence of text fragments whose
concatenation is the full message. The source is drained by a producer task
into a bounded queue, so a consumer that stops early (``aclose()``) cancels
the underlying generation.
"""

import asyncio
import logging
from typing import AsyncIterator, Callable, Optional

from .types import StreamConsumedError

logger = logging.getLogger(__name__)

_END = object()


class _Failure:
    def __init__(self, error: BaseException):
        self.error = error


class TextStream:
    """
    Single-use async iterator over text chunks.

    Example:
        stream = agent.stream_text([{"role": "user", "content": "Hi"}])
        text = await stream.collect(on_chunk=print)
    """

    def __init__(self, source: AsyncIterator[str], max_buffer: int = 64):
        """
        Args:
            source: Async iterator producing text chunks
            max_buffer: Chunks buffered ahead of the consumer
        """
        self._source = source
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_buffer)
        self._producer: Optional[asyncio.Task] = None
        self._consumed = False
        self._closed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    def __aiter__(self) -> AsyncIterator[str]:
        if self._consumed:
            raise StreamConsumedError("Text stream can only be consumed once")
        self._consumed = True
        self._producer = asyncio.create_task(self._produce())
        return self._iterate()

    async def _produce(self) -> None:
        try:
            async for chunk in self._source:
                if chunk:
                    await self._queue.put(str(chunk))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await self._queue.put(_Failure(e))
            return
        await self._queue.put(_END)

    async def _iterate(self) -> AsyncIterator[str]:
        try:
            while True:
                item = await self._queue.get()
                if item is _END:
                    return
                if isinstance(item, _Failure):
                    raise item.error
                yield item
        finally:
            await self.aclose()

    async def collect(self, on_chunk: Optional[Callable[[str], None]] = None) -> str:
        """
        Consume the whole stream.

        Args:
            on_chunk: Called with every chunk as it arrives

        Returns:
            Concatenation of all chunks
        """
        parts = []
        async for chunk in self:
            if on_chunk is not None:
                on_chunk(chunk)
            parts.append(chunk)
        return "".join(parts)

    async def aclose(self) -> None:
        """Stop the producer; remaining chunks are dropped."""
        if self._closed:
            return
        self._closed = True
        self._consumed = True
        producer = self._producer
        if producer is not None and not producer.done():
            producer.cancel()
            try:
                await producer
            except asyncio.CancelledError:
                logger.debug("Text stream producer cancelled before completion")
        close = getattr(self._source, "aclose", None)
        if close is not None:
            await close()
