"""Standard input sources.

An invocation has at most one input source. Without one, the child reads
from the null device and never inherits the caller's stdin.

- FromBytes: a fixed buffer written to the child, then closed
- FromFile: the child reads a file directly (no pump involved)
- FromStream: an existing binary file object, copied chunk by chunk
- FromWriter: an async callback fully responsible for writing
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Union

from anyio.abc import ByteSendStream

__all__ = [
    "InputSource",
    "FromBytes",
    "FromFile",
    "FromStream",
    "FromWriter",
    "Writer",
    "from_string",
    "from_bytes",
    "from_file",
    "from_stream",
    "from_writer",
]

Writer = Callable[[ByteSendStream], Awaitable[None]]


@dataclass(frozen=True)
class FromBytes:
    """Feed a fixed byte buffer."""

    data: bytes


@dataclass(frozen=True)
class FromFile:
    """Redirect stdin from a file."""

    path: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))


@dataclass(frozen=True)
class FromStream:
    """Copy an existing binary stream (any object with ``read(n)``)."""

    stream: BinaryIO


@dataclass(frozen=True)
class FromWriter:
    """Hand the child's stdin to an async callback.

    The stream is closed once the callback returns or raises, so the child
    always observes end-of-input.
    """

    writer: Writer


InputSource = Union[FromBytes, FromFile, FromStream, FromWriter]


def from_string(text: str, encoding: str = "utf-8") -> FromBytes:
    return FromBytes(text.encode(encoding))


def from_bytes(data: bytes) -> FromBytes:
    return FromBytes(bytes(data))


def from_file(path: str | Path) -> FromFile:
    return FromFile(Path(path))


def from_stream(stream: BinaryIO) -> FromStream:
    return FromStream(stream)


def from_writer(writer: Writer) -> FromWriter:
    return FromWriter(writer)
