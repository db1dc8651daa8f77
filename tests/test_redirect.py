"""Redirection resolution tests."""

from __future__ import annotations

import io
import subprocess
from contextlib import ExitStack
from pathlib import Path

import pytest

from procflow import (
    CAPTURE,
    PRINT,
    SILENT,
    Consume,
    ToFile,
    from_file,
    from_stream,
    from_string,
    from_writer,
)
from procflow.redirect import resolve_redirects


async def _ignore(lines) -> None:
    async for _ in lines:
        pass


async def _write_nothing(stream) -> None:
    pass


class TestOutputResolution:
    """Sinks resolve to subprocess directives."""

    def test_capture_both_merges_outputs(self):
        with ExitStack() as stack:
            plan = resolve_redirects(None, CAPTURE, CAPTURE, stack)

        assert plan.merge_outputs is True
        assert plan.stdout == subprocess.PIPE
        assert plan.stderr == subprocess.STDOUT
        assert plan.capture == "stdout"

    @pytest.mark.parametrize(
        ("sink", "expected"),
        [
            (SILENT, subprocess.DEVNULL),
            (PRINT, None),
            (CAPTURE, subprocess.PIPE),
            (Consume(_ignore), subprocess.PIPE),
        ],
    )
    def test_independent_streams(self, sink, expected):
        with ExitStack() as stack:
            plan = resolve_redirects(None, sink, PRINT, stack)

        assert plan.merge_outputs is False
        assert plan.stdout == expected
        assert plan.stderr is None

    def test_capture_single_stream(self):
        with ExitStack() as stack:
            stdout_plan = resolve_redirects(None, CAPTURE, SILENT, stack)
            stderr_plan = resolve_redirects(None, Consume(_ignore), CAPTURE, stack)

        assert stdout_plan.capture == "stdout"
        assert stderr_plan.capture == "stderr"
        assert stderr_plan.stdout == subprocess.PIPE
        assert stderr_plan.stderr == subprocess.PIPE

    def test_no_capture(self):
        with ExitStack() as stack:
            plan = resolve_redirects(None, PRINT, Consume(_ignore), stack)

        assert plan.capture is None

    def test_files_are_opened_per_append_flag(self, tmp_path: Path):
        out = tmp_path / "out.txt"
        err = tmp_path / "err.txt"
        err.write_text("header\n")

        with ExitStack() as stack:
            plan = resolve_redirects(None, ToFile(out), ToFile(err, append=True), stack)
            assert plan.stdout.mode == "wb"
            assert plan.stderr.mode == "ab"

        assert plan.stdout.closed
        assert plan.stderr.closed
        assert err.read_text() == "header\n"

    def test_unknown_sink(self):
        with ExitStack() as stack:
            with pytest.raises(TypeError):
                resolve_redirects(None, "capture", PRINT, stack)


class TestInputResolution:
    """Input sources resolve to subprocess directives."""

    def test_no_source_is_null_device(self):
        with ExitStack() as stack:
            plan = resolve_redirects(None, PRINT, PRINT, stack)

        assert plan.stdin == subprocess.DEVNULL
        assert plan.stdin_piped is False

    @pytest.mark.parametrize(
        "source",
        [
            from_string("hello"),
            from_stream(io.BytesIO(b"hello")),
            from_writer(_write_nothing),
        ],
    )
    def test_pumped_sources_are_piped(self, source):
        with ExitStack() as stack:
            plan = resolve_redirects(source, CAPTURE, CAPTURE, stack)

        assert plan.stdin_piped is True
        assert plan.piped_streams == 2

    def test_file_source_is_opened(self, tmp_path: Path):
        path = tmp_path / "input.txt"
        path.write_text("hello")

        with ExitStack() as stack:
            plan = resolve_redirects(from_file(path), PRINT, PRINT, stack)
            assert plan.stdin.mode == "rb"
            assert plan.stdin_piped is False

    def test_missing_file_source(self, tmp_path: Path):
        with ExitStack() as stack:
            with pytest.raises(FileNotFoundError):
                resolve_redirects(from_file(tmp_path / "missing"), PRINT, PRINT, stack)

    def test_unknown_source(self):
        with ExitStack() as stack:
            with pytest.raises(TypeError):
                resolve_redirects(b"raw", PRINT, PRINT, stack)
