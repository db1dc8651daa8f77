"""Runtime module for process invocation and stream pumping.

This module provides isolated process execution with concurrent stream
pumps and reliable termination on cancellation.
"""

from __future__ import annotations

from .process_runner import ProcessRunner, ProcessSpec, run_process
from .session import ProcessSession, SessionState

__all__ = [
    "ProcessRunner",
    "ProcessSession",
    "ProcessSpec",
    "SessionState",
    "run_process",
]
