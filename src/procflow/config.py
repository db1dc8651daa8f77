"""procflow environment configuration.

Environment variables:
    PROCFLOW_ENCODING: Default encoding used to decode captured and consumed
        streams
        - default: utf-8
        - unknown codec names fall back to utf-8

    PROCFLOW_FORCE_KILL: Termination mode when an invocation is cancelled
        - true/1/yes = SIGKILL the process group
        - false/0/no = SIGTERM the process group (default)

    PROCFLOW_IO_WORKERS: Minimum worker threads reserved per invocation for
        blocking input streams
        - default 4, clamped to 1-64

    PROCFLOW_CHUNK_SIZE: Read size in bytes for FromStream input sources
        - default 65536, clamped to 1024-1048576

    PROCFLOW_LOG_DEBUG: CLI debug logging
        - true/1/yes = DEBUG level, written to a temporary file
        - false/0/no = INFO level on stderr (default)
"""

from __future__ import annotations

import codecs
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config"]

DEFAULT_ENCODING = "utf-8"
DEFAULT_IO_WORKERS = 4
DEFAULT_CHUNK_SIZE = 65536


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_encoding(value: str | None) -> str:
    """Parse a codec name, falling back to utf-8 when unknown."""
    if not value or not value.strip():
        return DEFAULT_ENCODING
    try:
        return codecs.lookup(value.strip()).name
    except LookupError:
        return DEFAULT_ENCODING


def _parse_int(value: str | None, default: int, low: int, high: int) -> int:
    """Parse an integer environment variable clamped to [low, high]."""
    if not value:
        return default
    try:
        number = int(value)
    except ValueError:
        return default
    return max(low, min(number, high))


@dataclass
class Config:
    """procflow configuration.

    Attributes:
        encoding: Default stream encoding
        force_kill: Default termination mode on cancellation
        io_workers: Minimum worker threads per invocation
        chunk_size: Read size for FromStream input sources
        log_debug: CLI debug logging (into a temporary file)
        log_file: Log file path (set when log_debug=True)
    """

    encoding: str = DEFAULT_ENCODING
    force_kill: bool = False
    io_workers: int = DEFAULT_IO_WORKERS
    chunk_size: int = DEFAULT_CHUNK_SIZE
    log_debug: bool = False
    log_file: str | None = None

    def __repr__(self) -> str:
        return (
            f"Config(encoding={self.encoding}, "
            f"force_kill={self.force_kill}, "
            f"io_workers={self.io_workers}, "
            f"chunk_size={self.chunk_size}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def _generate_log_file_path() -> str:
    """Build a timestamped log file path under the system temp directory."""
    log_dir = Path(tempfile.gettempdir()) / "procflow"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"procflow_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """Load configuration from environment variables."""
    log_debug = _parse_bool(os.environ.get("PROCFLOW_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        encoding=_parse_encoding(os.environ.get("PROCFLOW_ENCODING")),
        force_kill=_parse_bool(os.environ.get("PROCFLOW_FORCE_KILL"), default=False),
        io_workers=_parse_int(
            os.environ.get("PROCFLOW_IO_WORKERS"), DEFAULT_IO_WORKERS, 1, 64
        ),
        chunk_size=_parse_int(
            os.environ.get("PROCFLOW_CHUNK_SIZE"), DEFAULT_CHUNK_SIZE, 1024, 1048576
        ),
        log_debug=log_debug,
        log_file=log_file,
    )


# Global configuration, loaded lazily
_config: Config | None = None


def get_config() -> Config:
    """Return the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload the configuration (used by tests)."""
    global _config
    _config = load_config()
    return _config
