"""procflow command line.

Usage:
    procflow [--stdout MODE] [--stderr MODE] [--input TEXT | --input-file PATH]
             [--env KEY=VALUE ...] [--cwd DIR] [--encoding ENC] [--force-kill]
             [--timeout SECONDS] [--strict] [--] COMMAND [ARGS ...]

MODE: print | silent | capture | file:PATH | append:PATH

Exit status is the command's own, 124 on timeout, 127 when the command
cannot be launched.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

import anyio

from .config import Config, get_config
from .errors import InvalidResultError, ProcessLaunchError, StreamPumpError
from .input_source import InputSource, from_file, from_string
from .redirect import CAPTURE, PRINT, SILENT, StreamSink, ToFile
from .runtime import ProcessRunner, ProcessSpec

__all__ = ["main", "build_parser"]

logger = logging.getLogger(__name__)

EXIT_TIMEOUT = 124
EXIT_LAUNCH_FAILURE = 127


def _parse_sink(value: str) -> StreamSink:
    mode, _, path = value.partition(":")
    mode = mode.strip().lower()
    if mode == "print" and not path:
        return PRINT
    if mode == "silent" and not path:
        return SILENT
    if mode == "capture" and not path:
        return CAPTURE
    if mode in ("file", "append") and path:
        return ToFile(path, append=mode == "append")
    raise argparse.ArgumentTypeError(f"invalid stream mode: {value!r}")


def _parse_env(value: str) -> tuple[str, str]:
    name, sep, content = value.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {value!r}")
    return name, content


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="procflow",
        description="Run a command, routing each of its streams independently.",
    )
    parser.add_argument(
        "--stdout", type=_parse_sink, default=CAPTURE, metavar="MODE",
        help="stdout policy (default: capture)",
    )
    parser.add_argument(
        "--stderr", type=_parse_sink, default=PRINT, metavar="MODE",
        help="stderr policy (default: print)",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--input", metavar="TEXT", help="text written to stdin")
    source.add_argument("--input-file", metavar="PATH", help="file read as stdin")
    parser.add_argument(
        "--env", type=_parse_env, action="append", default=[], metavar="KEY=VALUE",
        help="extra environment variable (repeatable)",
    )
    parser.add_argument("--cwd", metavar="DIR", help="working directory")
    parser.add_argument("--encoding", help="stream encoding")
    parser.add_argument(
        "--force-kill", action="store_const", const=True, default=None,
        help="SIGKILL instead of SIGTERM on timeout",
    )
    parser.add_argument("--timeout", type=float, metavar="SECONDS")
    parser.add_argument(
        "--strict", action="store_true",
        help="report a non-zero exit code as an error",
    )
    parser.add_argument("command", nargs=argparse.REMAINDER)
    return parser


def _input_source(args: argparse.Namespace, encoding: str) -> InputSource | None:
    if args.input is not None:
        return from_string(args.input, encoding=encoding)
    if args.input_file is not None:
        return from_file(args.input_file)
    return None


def _print_line(line: str) -> None:
    print(line, flush=True)


async def _run(args: argparse.Namespace, config: Config) -> int:
    encoding = args.encoding or config.encoding
    spec = ProcessSpec(
        argv=args.command,
        stdin=_input_source(args, encoding),
        stdout=args.stdout,
        stderr=args.stderr,
        env=dict(args.env) or None,
        cwd=args.cwd,
        consumer=_print_line,
        encoding=encoding,
        force_kill=args.force_kill,
    )
    with anyio.fail_after(args.timeout):
        result = await ProcessRunner(config).run(spec)

    if args.strict:
        result.validate()
    return result.exit_code


def _configure_logging(config: Config) -> None:
    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        # LOG_DEBUG mode: write to a temporary file
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # Third-party libraries stay at WARNING
    logging.basicConfig(
        level=logging.WARNING,
        handlers=log_handlers,
    )
    logging.getLogger("procflow").setLevel(log_level)


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    config = get_config()
    _configure_logging(config)

    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command and args.command[0] == "--":
        args.command = args.command[1:]
    if not args.command:
        parser.error("missing command")

    logger.debug(f"Running {args.command} with {config!r}")
    try:
        return anyio.run(_run, args, config)
    except ProcessLaunchError as e:
        print(f"procflow: {e}", file=sys.stderr)
        return EXIT_LAUNCH_FAILURE
    except InvalidResultError as e:
        print(f"procflow: {e}", file=sys.stderr)
        return e.exit_code
    except StreamPumpError as e:
        print(f"procflow: {e}: {e.__cause__!r}", file=sys.stderr)
        return 1
    except TimeoutError:
        print(f"procflow: timed out after {args.timeout}s", file=sys.stderr)
        return EXIT_TIMEOUT


if __name__ == "__main__":
    sys.exit(main())
