"""Tests for solidgen.formatter."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Sequence

from solidgen.formatter import DartFormatter


class _RecordingRunner:
    def __init__(self, returncode: int = 0, error: Exception | None = None) -> None:
        self.calls: List[List[str]] = []
        self.returncode = returncode
        self.error = error

    def __call__(self, args: Sequence[str]) -> subprocess.CompletedProcess[str]:
        self.calls.append(list(args))
        if self.error is not None:
            raise self.error
        return subprocess.CompletedProcess(list(args), self.returncode, stdout="", stderr="boom")


def test_formats_given_paths(tmp_path: Path) -> None:
    runner = _RecordingRunner()
    formatter = DartFormatter(runner=runner)
    target = tmp_path / "main.dart"

    assert formatter.format([target]) is True
    assert runner.calls == [["dart", "format", str(target)]]


def test_missing_executable_disables_formatting() -> None:
    formatter = DartFormatter(command="dart", which=lambda _: None)

    assert not formatter.enabled
    assert formatter.format([Path("a.dart")]) is False


def test_disabled_formatter_never_runs() -> None:
    runner = _RecordingRunner()
    formatter = DartFormatter(enabled=False, runner=runner)

    assert formatter.format([Path("a.dart")]) is False
    assert runner.calls == []


def test_empty_path_list_is_a_no_op() -> None:
    runner = _RecordingRunner()

    assert DartFormatter(runner=runner).format([]) is False
    assert runner.calls == []


def test_failures_are_reported_not_raised() -> None:
    failing = DartFormatter(runner=_RecordingRunner(returncode=65))
    crashing = DartFormatter(runner=_RecordingRunner(error=FileNotFoundError("dart")))

    assert failing.format([Path("a.dart")]) is False
    assert crashing.format([Path("a.dart")]) is False
