"""Process group termination.

Children are always started in their own session/process group, so a
termination signal reaches every process the command spawned and not just
the direct child. Termination is requested, never awaited: the caller's
cancellation surfaces as soon as the signal is sent.

- POSIX: SIGTERM (graceful) or SIGKILL (forceful) to the process group
- Windows: CTRL_BREAK_EVENT (graceful) or TerminateProcess (forceful)
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
from typing import Any

from anyio.abc import Process

__all__ = [
    "IS_WINDOWS",
    "isolation_kwargs",
    "request_termination",
]

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"


def isolation_kwargs() -> dict[str, Any]:
    """Platform-specific kwargs isolating the child in a new process group."""
    if IS_WINDOWS:
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


def request_termination(process: Process, *, force: bool) -> None:
    """Ask the process (group) to terminate.

    Safe to call more than once and after the process has exited.

    Args:
        process: The running process
        force: SIGKILL instead of SIGTERM
    """
    if process.returncode is not None:
        logger.debug(f"Subprocess already exited pid={process.pid}")
        return

    logger.debug(f"Terminating subprocess pid={process.pid} force={force}")
    try:
        if IS_WINDOWS:
            _windows_terminate(process, force)
        else:
            _posix_terminate(process, force)
    except ProcessLookupError:
        logger.debug(f"Subprocess already exited pid={process.pid}")
    except OSError as e:
        logger.warning(f"Error terminating subprocess pid={process.pid}: {e}")


def _posix_terminate(process: Process, force: bool) -> None:
    sig = signal.SIGKILL if force else signal.SIGTERM
    try:
        # Same as pid due to start_new_session
        pgid = os.getpgid(process.pid)
        os.killpg(pgid, sig)
        logger.debug(f"Sent {sig.name} to process group pgid={pgid}")
    except ProcessLookupError:
        pass
    except OSError as e:
        logger.debug(f"killpg failed, falling back to single process: {e}")
        process.send_signal(sig)


def _windows_terminate(process: Process, force: bool) -> None:
    if force:
        process.kill()
        logger.debug(f"Called kill() on pid={process.pid}")
        return
    try:
        # Reaches the whole group thanks to CREATE_NEW_PROCESS_GROUP
        os.kill(process.pid, signal.CTRL_BREAK_EVENT)
        logger.debug(f"Sent CTRL_BREAK_EVENT to pid={process.pid}")
    except OSError as e:
        logger.debug(f"CTRL_BREAK_EVENT failed, falling back: {e}")
        process.terminate()
