"""Stream pumps.

A pump moves the bytes of one child stream between the pipe and its
destination:

- CapturePump: decodes lines, forwards each to the line consumer and keeps
  them in order for the result
- ConsumePump: decodes lines and hands them, lazily, to a Consume handler
- InputPump: feeds the child's stdin from an input source

Pumps never let an ordinary failure escape ``run()``: it is recorded on
``error`` so the session can still join the sibling pumps and wait for the
process before reporting it. Cancellation always propagates.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, AsyncIterable, Callable

import anyio
from anyio import to_thread
from anyio.abc import ByteReceiveStream, ByteSendStream
from anyio.lowlevel import checkpoint_if_cancelled
from anyio.streams.text import TextReceiveStream

from ..input_source import FromBytes, FromStream, FromWriter, InputSource
from ..redirect import LineHandler

__all__ = [
    "StreamPump",
    "CapturePump",
    "ConsumePump",
    "InputPump",
    "iter_lines",
    "decode_lines",
]

logger = logging.getLogger(__name__)

LineConsumer = Callable[[str], None]

# Raised by a pipe whose reader (the child) went away
_BROKEN_PIPE_ERRORS = (
    BrokenPipeError,
    ConnectionResetError,
    anyio.BrokenResourceError,
    anyio.ClosedResourceError,
)


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line


async def iter_lines(chunks: AsyncIterable[str]) -> AsyncGenerator[str, None]:
    """Split decoded text chunks into lines.

    Lines end with ``\\n`` or ``\\r\\n``; the terminator is dropped. A final
    unterminated line is still produced.

    Args:
        chunks: Decoded text, in arrival order

    Yields:
        Lines without their terminator
    """
    # Pieces of the current unterminated line, joined once it ends
    pending: list[str] = []
    async for text in chunks:
        if "\n" not in text:
            if text:
                pending.append(text)
            continue
        first, *lines, rest = text.split("\n")
        pending.append(first)
        lines.insert(0, "".join(pending))
        pending = [rest] if rest else []
        for line in lines:
            await checkpoint_if_cancelled()
            yield _strip_cr(line)
    if pending:
        yield _strip_cr("".join(pending))


def decode_lines(stream: ByteReceiveStream, encoding: str) -> AsyncGenerator[str, None]:
    """Lazily decode a byte stream into lines.

    Malformed input is replaced rather than failing the pump.
    """
    return iter_lines(TextReceiveStream(stream, encoding=encoding, errors="replace"))


class StreamPump(ABC):
    """Base class for a task driving one child stream to completion.

    Attributes:
        name: Stream name (stdin/stdout/stderr)
        error: Failure recorded while pumping, if any
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.error: Exception | None = None

    async def run(self) -> None:
        try:
            await self._pump()
        except Exception as e:
            self.error = e
            logger.warning(f"Pump failed stream={self.name}: {e!r}")
        else:
            logger.debug(f"Pump finished stream={self.name}")

    @abstractmethod
    async def _pump(self) -> None:
        """Drive the stream to completion."""


class _LinePump(StreamPump):
    """Shared draining logic for pumps reading a child output stream."""

    def __init__(self, name: str, stream: ByteReceiveStream, encoding: str) -> None:
        super().__init__(name)
        self._stream = stream
        self._encoding = encoding

    async def run(self) -> None:
        async with self._stream:
            await super().run()
            if self.error is not None:
                # Keep reading so the child never blocks on a full pipe.
                await self._discard_remaining()

    async def _discard_remaining(self) -> None:
        try:
            async for _ in self._stream:
                pass
        except (anyio.ClosedResourceError, anyio.BrokenResourceError, OSError):
            pass


class CapturePump(_LinePump):
    """Collect the lines of a stream, forwarding each one without delay.

    Attributes:
        lines: Captured lines, in arrival order
    """

    def __init__(
        self,
        name: str,
        stream: ByteReceiveStream,
        encoding: str,
        consumer: LineConsumer | None = None,
    ) -> None:
        super().__init__(name, stream, encoding)
        self._consumer = consumer
        self.lines: list[str] = []

    async def _pump(self) -> None:
        lines = decode_lines(self._stream, self._encoding)
        try:
            async for line in lines:
                if self._consumer is not None:
                    self._consumer(line)
                self.lines.append(line)
        finally:
            await lines.aclose()


class ConsumePump(_LinePump):
    """Hand the lines of a stream to a Consume handler."""

    def __init__(
        self,
        name: str,
        stream: ByteReceiveStream,
        encoding: str,
        handler: LineHandler,
    ) -> None:
        super().__init__(name, stream, encoding)
        self._handler = handler

    async def _pump(self) -> None:
        lines = decode_lines(self._stream, self._encoding)
        try:
            await self._handler(lines)
        finally:
            await lines.aclose()
        # The handler may stop early; the rest of the stream is dropped.
        await self._discard_remaining()


class InputPump(StreamPump):
    """Feed the child's stdin, closing it on every exit path."""

    def __init__(
        self,
        stream: ByteSendStream,
        source: InputSource,
        *,
        limiter: anyio.CapacityLimiter,
        chunk_size: int,
    ) -> None:
        super().__init__("stdin")
        self._stream = stream
        self._source = source
        self._limiter = limiter
        self._chunk_size = chunk_size

    async def _pump(self) -> None:
        source = self._source
        async with self._stream:
            if isinstance(source, FromWriter):
                await source.writer(self._stream)
                return
            try:
                if isinstance(source, FromBytes):
                    if source.data:
                        await self._stream.send(source.data)
                elif isinstance(source, FromStream):
                    await self._copy(source)
                else:
                    raise TypeError(f"Input source is not piped: {source!r}")
            except _BROKEN_PIPE_ERRORS as e:
                # Same as subprocess.communicate(): the child may not read it all.
                logger.debug(f"Child closed stdin early: {e!r}")

    async def _copy(self, source: FromStream) -> None:
        while True:
            chunk = await to_thread.run_sync(
                source.stream.read,
                self._chunk_size,
                abandon_on_cancel=True,
                limiter=self._limiter,
            )
            if not chunk:
                break
            await self._stream.send(chunk)
