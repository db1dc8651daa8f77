"""Process runner with concurrent stream pumping and reliable termination.

This module provides:
- One-call invocation of an external process with per-stream policies
  (print, silent, capture, file, consume) and an optional input source
- Chronologically merged capture of stdout and stderr
- Line streaming without delay while the process is running
- Cancel-safe termination of the whole process group

Key design points:
- POSIX: start_new_session=True to create new process group
- Windows: CREATE_NEW_PROCESS_GROUP for signal isolation
- Cancellation terminates the process group, not just the main process
- Timeouts are layered by the caller (anyio.fail_after / move_on_after)
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from ..config import Config, get_config
from ..input_source import InputSource
from ..redirect import PRINT, StreamSink
from ..result import ProcessResult
from .session import ProcessSession, ProcessSpec

__all__ = [
    "ProcessRunner",
    "ProcessSpec",
    "run_process",
]


@dataclass
class ProcessRunner:
    """Runs ProcessSpecs, one ProcessSession per invocation.

    Nothing is shared between invocations, so a runner can be used by any
    number of concurrent tasks.

    Example:
        runner = ProcessRunner()
        spec = ProcessSpec(
            argv=["git", "status", "--short"],
            cwd=Path("/workspace"),
            stdout=CAPTURE,
        )

        result = await runner.run(spec)
        for line in result.validate():
            handle(line)
    """

    config: Config = field(default_factory=get_config)

    async def run(self, spec: ProcessSpec) -> ProcessResult:
        """Run a process and return its result.

        A non-zero exit code is not an error here, see ProcessResult.validate().

        Args:
            spec: Process specification

        Returns:
            Exit code and captured lines

        Raises:
            ProcessLaunchError: If the process cannot be started
            StreamPumpError: If a stream failed while the process ran
        """
        return await ProcessSession(spec, self.config).run()


# Convenience function for simple use cases
async def run_process(
    *command: str,
    stdin: InputSource | None = None,
    stdout: StreamSink = PRINT,
    stderr: StreamSink = PRINT,
    env: Mapping[str, str] | None = None,
    cwd: Path | str | None = None,
    consumer: Callable[[str], None] | None = None,
    encoding: str | None = None,
    force_kill: bool | None = None,
) -> ProcessResult:
    """Run ``command`` with the global configuration.

    Args:
        command: Program followed by its arguments
        stdin: Input source (None = null device)
        stdout: Sink for stdout (default PRINT)
        stderr: Sink for stderr (default PRINT)
        env: Variables added to the inherited environment
        cwd: Working directory override
        consumer: Called for every CAPTURE line, without delay
        encoding: Stream encoding (default from configuration)
        force_kill: SIGKILL instead of SIGTERM on cancellation

    Returns:
        Exit code and captured lines
    """
    spec = ProcessSpec(
        argv=command,
        stdin=stdin,
        stdout=stdout,
        stderr=stderr,
        env=env,
        cwd=cwd,
        consumer=consumer,
        encoding=encoding,
        force_kill=force_kill,
    )
    return await ProcessRunner().run(spec)
