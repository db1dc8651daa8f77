"""procflow - run external processes with concurrent stream pumping.

Usage:
    from procflow import CAPTURE, run_process

    result = await run_process("git", "status", stdout=CAPTURE)
    lines = result.validate()
"""

__version__ = "0.1.0"

from .errors import InvalidResultError, ProcessError, ProcessLaunchError, StreamPumpError
from .input_source import (
    FromBytes,
    FromFile,
    FromStream,
    FromWriter,
    InputSource,
    from_bytes,
    from_file,
    from_stream,
    from_string,
    from_writer,
)
from .redirect import (
    CAPTURE,
    PRINT,
    SILENT,
    Capture,
    Consume,
    Discard,
    Inherit,
    StreamSink,
    ToFile,
)
from .result import ProcessResult
from .runtime import ProcessRunner, ProcessSpec, run_process

__all__ = [
    "__version__",
    "CAPTURE",
    "PRINT",
    "SILENT",
    "Capture",
    "Consume",
    "Discard",
    "FromBytes",
    "FromFile",
    "FromStream",
    "FromWriter",
    "Inherit",
    "InputSource",
    "InvalidResultError",
    "ProcessError",
    "ProcessLaunchError",
    "ProcessResult",
    "ProcessRunner",
    "ProcessSpec",
    "StreamPumpError",
    "StreamSink",
    "ToFile",
    "from_bytes",
    "from_file",
    "from_stream",
    "from_string",
    "from_writer",
    "run_process",
]
