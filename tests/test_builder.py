"""Tests for solidgen.builder."""

from __future__ import annotations

import subprocess
import threading
from typing import List, Sequence

import pytest

from solidgen.builder import COPIED, SKIPPED, TRANSFORMED, Builder, BuildReport, FileResult
from solidgen.formatter import DartFormatter
from tests._fixtures.project_builder import ProjectBuilder

COUNTER = """
    import 'package:solid_annotations/solid_annotations.dart';

    class Counter {
      @SolidState()
      int count = 0;
    }
"""

PLAIN = """
    class Plain {
      int count = 0;
    }
"""


def _statuses(report: BuildReport) -> dict[str, str]:
    return {result.path: result.status for result in report.files}


def test_build_mirrors_source_tree(project: ProjectBuilder) -> None:
    project.write(
        {
            "source/counter.dart": COUNTER,
            "source/plain.dart": PLAIN,
            "source/assets/logo.txt": "logo",
        }
    )

    report = project.builder().build()

    assert _statuses(report) == {
        "counter.dart": TRANSFORMED,
        "plain.dart": COPIED,
        "assets/logo.txt": COPIED,
    }
    assert [result.path for result in report.files] == ["counter.dart", "plain.dart", "assets/logo.txt"]
    assert "final count = Signal<int>(0, name: 'count');" in project.read_output("counter.dart")
    assert project.read_output("plain.dart") == "class Plain {\n  int count = 0;\n}\n"
    assert project.read_output("assets/logo.txt") == "logo"
    assert report.summary() == "1 transformed, 2 copied, 0 skipped, 0 failed"
    assert report.ok


def test_unparsable_file_is_skipped_and_not_written(project: ProjectBuilder) -> None:
    project.write({"source/broken.dart": "class Broken {\n", "source/plain.dart": PLAIN})

    report = project.builder().build()

    (skipped,) = report.skipped
    assert skipped.status == SKIPPED
    assert skipped.path == "broken.dart"
    assert "line" in skipped.message
    assert not (project.path() / "lib" / "broken.dart").exists()
    assert not report.ok


def test_excluded_paths_are_ignored(project: ProjectBuilder) -> None:
    project.write({"source/legacy/old.dart": PLAIN, "source/new.dart": PLAIN, "source/x.g.dart": PLAIN})
    config = project.config()
    config.exclude_paths = ["legacy/", "*.g.dart"]

    report = Builder(config).build()

    assert _statuses(report) == {"new.dart": COPIED}


def test_missing_source_directory_raises(project: ProjectBuilder) -> None:
    with pytest.raises(FileNotFoundError):
        project.builder().build()


def test_cancelled_build_stops_before_next_file(project: ProjectBuilder) -> None:
    project.write({"source/a.dart": PLAIN, "source/b.dart": PLAIN})
    cancel = threading.Event()
    cancel.set()

    report = project.builder().build(cancel)

    assert report.cancelled
    assert report.files == []
    assert report.summary().endswith("(cancelled)")


def test_member_failures_are_reported(project: ProjectBuilder) -> None:
    project.write(
        {
            "source/store.dart": """
                class Store {
                  @SolidState()
                  int count = 0;

                  @SolidQuery()
                  int notAsync() => 1;
                }
            """
        }
    )

    (result,) = project.builder().build().files

    assert result.status == TRANSFORMED
    assert result.message == "1 member(s) left untouched"
    statuses = [member["status"] for member in result.to_dict()["members"]]
    assert statuses == ["transformed", "failed"]


def test_formatter_receives_written_dart_files(project: ProjectBuilder) -> None:
    project.write({"source/counter.dart": COUNTER, "source/notes.txt": "n"})
    calls: List[List[str]] = []

    def runner(args: Sequence[str]) -> subprocess.CompletedProcess[str]:
        calls.append(list(args))
        return subprocess.CompletedProcess(list(args), 0, stdout="", stderr="")

    builder = Builder(project.config(), formatter=DartFormatter(runner=runner))
    report = builder.build()

    assert report.formatted
    output = project.path().resolve() / "lib" / "counter.dart"
    assert calls == [["dart", "format", str(output)]]


def test_clean_removes_mirrored_files_only(project: ProjectBuilder) -> None:
    project.write(
        {
            "source/counter.dart": COUNTER,
            "source/nested/plain.dart": PLAIN,
            "lib/handwritten.dart": PLAIN,
        }
    )
    builder = project.builder()
    builder.build()

    removed = builder.clean()

    assert sorted(path.name for path in removed) == ["counter.dart", "plain.dart"]
    assert (project.path() / "lib" / "handwritten.dart").exists()
    assert not (project.path() / "lib" / "nested").exists()


def test_remove_output_deletes_single_mirror(project: ProjectBuilder) -> None:
    project.write({"source/plain.dart": PLAIN})
    builder = project.builder()
    builder.build()
    source = builder.source_dir / "plain.dart"
    source.unlink()

    assert builder.remove_output(source) is True
    assert builder.remove_output(source) is False


def test_file_result_to_dict() -> None:
    result = FileResult("a.dart", SKIPPED, "line 1:1")

    assert result.to_dict() == {"path": "a.dart", "status": "skipped", "message": "line 1:1", "members": []}
