"""One process invocation, from launch to exit or cancellation.

State machine:

    CREATED -> STARTED -> STREAMS_RUNNING -> DRAINING -> EXITED
    (any state after STARTED) -> CANCELLING -> TERMINATED

Key design points:
- Every pump runs concurrently in one task group and all of them are joined
  before the exit code is awaited; waiting for exit first can race the pumps
  and truncate output
- A pump failure does not cancel its siblings, it is reported once the
  process has exited
- Cancellation terminates the process group, shielded, before the
  cancellation propagates; the process is never left running
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping, Sequence
from contextlib import ExitStack
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import anyio
from anyio.abc import Process

from ..config import Config
from ..errors import ProcessLaunchError, StreamPumpError
from ..input_source import InputSource
from ..redirect import PRINT, Consume, RedirectPlan, StreamSink, resolve_redirects
from ..result import ProcessResult
from .pump import CapturePump, ConsumePump, InputPump, StreamPump
from .termination import isolation_kwargs, request_termination

__all__ = [
    "ProcessSpec",
    "ProcessSession",
    "SessionState",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessSpec:
    """Specification of a process invocation.

    Attributes:
        argv: Command line arguments (first element is the executable)
        stdin: Input source (None = null device)
        stdout: Sink for stdout
        stderr: Sink for stderr
        env: Variables added to the inherited environment
        cwd: Working directory (None = inherit)
        consumer: Called for every captured line, without delay and in order
        encoding: Stream encoding (None = configured default)
        force_kill: SIGKILL instead of SIGTERM on cancellation
            (None = configured default)
    """

    argv: Sequence[str]
    stdin: InputSource | None = None
    stdout: StreamSink = PRINT
    stderr: StreamSink = PRINT
    env: Mapping[str, str] | None = None
    cwd: Path | str | None = None
    consumer: Callable[[str], None] | None = None
    encoding: str | None = None
    force_kill: bool | None = None

    def __post_init__(self) -> None:
        if not self.argv:
            raise ValueError("argv must contain at least the program")
        object.__setattr__(self, "argv", tuple(self.argv))
        if self.env is not None:
            object.__setattr__(self, "env", dict(self.env))


class SessionState(Enum):
    """Lifecycle of a ProcessSession."""

    CREATED = "created"
    STARTED = "started"
    STREAMS_RUNNING = "streams_running"
    DRAINING = "draining"
    EXITED = "exited"
    CANCELLING = "cancelling"
    TERMINATED = "terminated"


class ProcessSession:
    """Orchestrates a single invocation of a ProcessSpec.

    A session owns its process handle, pipes and pumps exclusively and
    runs only once.
    """

    def __init__(self, spec: ProcessSpec, config: Config) -> None:
        self.spec = spec
        self.state = SessionState.CREATED
        self._config = config
        self._encoding = spec.encoding or config.encoding
        self._force_kill = (
            spec.force_kill if spec.force_kill is not None else config.force_kill
        )

    async def run(self) -> ProcessResult:
        """Run the process to completion.

        Returns:
            Exit code and captured output, whatever the exit code

        Raises:
            ProcessLaunchError: If the process cannot be started
            StreamPumpError: If a stream failed while the process ran
        """
        if self.state is not SessionState.CREATED:
            raise RuntimeError(f"Session already used (state={self.state.value})")

        process, plan = await self._launch()
        self.state = SessionState.STARTED

        try:
            pumps, capture = self._build_pumps(process, plan)
            self.state = SessionState.STREAMS_RUNNING
            async with anyio.create_task_group() as tg:
                for pump in pumps:
                    tg.start_soon(pump.run, name=f"pump-{pump.name}")

            # Only once every pipe reached end-of-stream
            self.state = SessionState.DRAINING
            exit_code = await process.wait()
        except BaseException:
            # Cancellation, or a failure escaping the pumps
            self.state = SessionState.CANCELLING
            with anyio.CancelScope(shield=True):
                await self._teardown(process)
            self.state = SessionState.TERMINATED
            raise

        self.state = SessionState.EXITED
        logger.debug(f"Subprocess completed pid={process.pid} returncode={exit_code}")

        failed = [pump for pump in pumps if pump.error is not None]
        if failed:
            raise StreamPumpError(failed[0].name) from failed[0].error

        return ProcessResult(
            exit_code=exit_code,
            output=tuple(capture.lines) if capture is not None else (),
        )

    async def _launch(self) -> tuple[Process, RedirectPlan]:
        spec = self.spec
        # Redirection files only need to stay open until the child inherited them
        with ExitStack() as stack:
            try:
                plan = resolve_redirects(spec.stdin, spec.stdout, spec.stderr, stack)
                process = await anyio.open_process(
                    list(spec.argv),
                    stdin=plan.stdin,
                    stdout=plan.stdout,
                    stderr=plan.stderr,
                    cwd=spec.cwd,
                    env=self._environment(),
                    **isolation_kwargs(),
                )
            except OSError as e:
                raise ProcessLaunchError(spec.argv, str(e)) from e

        logger.debug(
            f"Started subprocess pid={process.pid} "
            f"argv={spec.argv[0]} cwd={spec.cwd} merge_outputs={plan.merge_outputs}"
        )
        return process, plan

    def _environment(self) -> dict[str, str] | None:
        if self.spec.env is None:
            return None
        return {**os.environ, **self.spec.env}

    def _build_pumps(
        self, process: Process, plan: RedirectPlan
    ) -> tuple[list[StreamPump], CapturePump | None]:
        spec = self.spec
        pumps: list[StreamPump] = []

        if plan.stdin_piped and process.stdin is not None and spec.stdin is not None:
            limiter = anyio.CapacityLimiter(
                max(self._config.io_workers, plan.piped_streams + 1)
            )
            pumps.append(
                InputPump(
                    process.stdin,
                    spec.stdin,
                    limiter=limiter,
                    chunk_size=self._config.chunk_size,
                )
            )

        for name, sink, stream in (
            ("stdout", spec.stdout, process.stdout),
            ("stderr", spec.stderr, process.stderr),
        ):
            if isinstance(sink, Consume) and stream is not None:
                pumps.append(ConsumePump(name, stream, self._encoding, sink.handler))

        capture: CapturePump | None = None
        if plan.capture is not None:
            stream = process.stdout if plan.capture == "stdout" else process.stderr
            if stream is not None:
                capture = CapturePump(plan.capture, stream, self._encoding, spec.consumer)
                pumps.append(capture)

        return pumps, capture

    async def _teardown(self, process: Process) -> None:
        """Terminate the process and release the pipes without awaiting exit."""
        request_termination(process, force=self._force_kill)
        for stream in (process.stdin, process.stdout, process.stderr):
            if stream is not None:
                await stream.aclose()
