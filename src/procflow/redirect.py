"""Output stream sinks and redirection resolution.

Each output stream gets exactly one sink:

- SILENT (Discard): the stream goes to the null device
- PRINT (Inherit): the stream goes to this process's equivalent stream,
  keeping the child's own ordering
- CAPTURE (Capture): the lines are returned in ProcessResult.output; when
  both stdout and stderr use it, the OS merges stderr into stdout so the
  lines keep their true chronological order
- ToFile: the OS writes the stream to a file, truncating or appending
- Consume: an async handler receives the lines as they arrive, nothing is
  retained in memory
"""

from __future__ import annotations

import subprocess
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Literal, Optional, Union

from .input_source import FromBytes, FromFile, FromStream, FromWriter, InputSource

__all__ = [
    "StreamSink",
    "Discard",
    "Inherit",
    "Capture",
    "ToFile",
    "Consume",
    "LineHandler",
    "SILENT",
    "PRINT",
    "CAPTURE",
    "RedirectPlan",
    "resolve_redirects",
]

LineHandler = Callable[[AsyncIterator[str]], Awaitable[None]]

# subprocess redirection directive: DEVNULL/PIPE/STDOUT, an open file, or None
NativeRedirect = Union[int, IO[Any], None]


@dataclass(frozen=True)
class Discard:
    """Ignore the stream."""


@dataclass(frozen=True)
class Inherit:
    """Write to this process's corresponding stream."""


@dataclass(frozen=True)
class Capture:
    """Collect the stream's lines into the result."""


@dataclass(frozen=True)
class ToFile:
    """Write the stream to a file, overriding or appending on demand."""

    path: Path
    append: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))


@dataclass(frozen=True)
class Consume:
    """Stream lines to an async handler without storing them.

    The handler owns the iteration; whatever it leaves unread is discarded.
    """

    handler: LineHandler


StreamSink = Union[Discard, Inherit, Capture, ToFile, Consume]

SILENT = Discard()
PRINT = Inherit()
CAPTURE = Capture()

StreamName = Literal["stdout", "stderr"]


@dataclass(frozen=True)
class RedirectPlan:
    """Concrete redirection directives for one invocation.

    Attributes:
        stdin: Directive for the child's stdin
        stdout: Directive for the child's stdout
        stderr: Directive for the child's stderr (STDOUT when merged)
        merge_outputs: Whether stderr is merged into stdout
        capture: Pipe read by the capture pump, if any
    """

    stdin: NativeRedirect
    stdout: NativeRedirect
    stderr: NativeRedirect
    merge_outputs: bool = False
    capture: Optional[StreamName] = None

    @property
    def stdin_piped(self) -> bool:
        return self.stdin == subprocess.PIPE

    @property
    def piped_streams(self) -> int:
        return sum(
            1 for native in (self.stdin, self.stdout, self.stderr)
            if native == subprocess.PIPE
        )


def _sink_to_native(sink: StreamSink, stack: ExitStack) -> NativeRedirect:
    if isinstance(sink, Discard):
        return subprocess.DEVNULL
    if isinstance(sink, Inherit):
        return None
    if isinstance(sink, (Capture, Consume)):
        return subprocess.PIPE
    if isinstance(sink, ToFile):
        return stack.enter_context(open(sink.path, "ab" if sink.append else "wb"))
    raise TypeError(f"Unsupported stream sink: {sink!r}")


def _source_to_native(source: InputSource | None, stack: ExitStack) -> NativeRedirect:
    if source is None:
        return subprocess.DEVNULL
    if isinstance(source, FromFile):
        return stack.enter_context(open(source.path, "rb"))
    if isinstance(source, (FromBytes, FromStream, FromWriter)):
        return subprocess.PIPE
    raise TypeError(f"Unsupported input source: {source!r}")


def resolve_redirects(
    stdin: InputSource | None,
    stdout: StreamSink,
    stderr: StreamSink,
    stack: ExitStack,
) -> RedirectPlan:
    """Resolve sink and source policies into subprocess directives.

    Files opened for ToFile and FromFile are registered on ``stack``; the
    caller closes them once the child has inherited its descriptors.

    Args:
        stdin: Input source, or None for no input
        stdout: Sink for the child's stdout
        stderr: Sink for the child's stderr
        stack: Owner of the files opened during resolution

    Returns:
        The redirection plan

    Raises:
        TypeError: If a sink or source is not one of the known kinds
        OSError: If a redirection file cannot be opened
    """
    native_stdin = _source_to_native(stdin, stack)

    # Merging at the OS level is the only faithful way to keep the relative
    # order of two independently buffered pipes.
    if isinstance(stdout, Capture) and isinstance(stderr, Capture):
        return RedirectPlan(
            stdin=native_stdin,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            merge_outputs=True,
            capture="stdout",
        )

    capture: Optional[StreamName] = None
    if isinstance(stdout, Capture):
        capture = "stdout"
    elif isinstance(stderr, Capture):
        capture = "stderr"

    return RedirectPlan(
        stdin=native_stdin,
        stdout=_sink_to_native(stdout, stack),
        stderr=_sink_to_native(stderr, stack),
        capture=capture,
    )
