"""procflow exception classes."""

from __future__ import annotations

from collections.abc import Sequence

__all__ = [
    "ProcessError",
    "ProcessLaunchError",
    "StreamPumpError",
    "InvalidResultError",
]


class ProcessError(Exception):
    """Base exception for procflow."""
    pass


class ProcessLaunchError(ProcessError):
    """The process could not be started.

    Raised before any stream pump runs: the program is missing or not
    executable, or a file redirection could not be opened.

    Attributes:
        argv: Command line that failed to launch
    """

    def __init__(self, argv: Sequence[str], reason: str) -> None:
        self.argv = list(argv)
        self.reason = reason
        super().__init__(f"Cannot launch {self.argv[0]!r}: {reason}")


class StreamPumpError(ProcessError):
    """A stream pump failed while the process was running.

    Attributes:
        stream: Name of the failing stream (stdin/stdout/stderr)
    """

    def __init__(self, stream: str) -> None:
        self.stream = stream
        super().__init__(f"Failed to pump {stream}")


class InvalidResultError(ProcessError, RuntimeError):
    """A process result with a non-zero exit code was validated.

    Attributes:
        exit_code: Observed exit code
    """

    def __init__(self, exit_code: int) -> None:
        self.exit_code = exit_code
        super().__init__(f"Invalid result: {exit_code}")
