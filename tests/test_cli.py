"""CLI parser and command tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from solidgen.cli import _build_parser, main
from tests._fixtures.project_builder import ProjectBuilder


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "build"])
    assert args.verbose is True
    assert args.command == "build"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["watch", "--verbose"])
    assert args.verbose is True
    assert args.command == "watch"


def test_cli_tree_options() -> None:
    parser = _build_parser()
    args = parser.parse_args(["build", "--root", "app", "--source", "src", "--output", "gen", "--no-format"])
    assert (args.root, args.source, args.output) == ("app", "src", "gen")
    assert args.no_format is True


def test_cli_serve_defaults() -> None:
    args = _build_parser().parse_args(["serve"])
    assert (args.host, args.port) == ("127.0.0.1", 8000)


def test_cli_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        _build_parser().parse_args([])


def test_build_command_writes_output(project: ProjectBuilder, capsys: pytest.CaptureFixture[str]) -> None:
    project.write({"source/main.dart": "void main() => runApp(const App());\n"})

    main(["build", "--root", str(project.path()), "--no-format"])

    assert "Build complete: 1 transformed, 0 copied, 0 skipped, 0 failed" in capsys.readouterr().out
    assert "SolidartConfig.autoDispose = false;" in project.read_output("main.dart")


def test_build_command_reports_skipped_files(project: ProjectBuilder, capsys: pytest.CaptureFixture[str]) -> None:
    project.write({"source/broken.dart": "class Broken {\n"})

    main(["build", "--root", str(project.path()), "--no-format"])

    out = capsys.readouterr().out
    assert "skipped: broken.dart:" in out
    assert "0 transformed, 0 copied, 1 skipped, 0 failed" in out


def test_build_command_with_missing_source_exits(project: ProjectBuilder) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["build", "--root", str(project.path())])
    assert excinfo.value.code == 1


def test_same_source_and_output_is_rejected(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["build", "--root", str(tmp_path), "--source", "lib", "--output", "lib"])

    assert excinfo.value.code == 1
    assert "source and output directories must differ" in capsys.readouterr().err


def test_clean_command(project: ProjectBuilder, capsys: pytest.CaptureFixture[str]) -> None:
    project.write({"source/a.dart": "class A {}\n"})
    main(["build", "--root", str(project.path()), "--no-format"])

    main(["clean", "--root", str(project.path())])

    assert "Removed 1 generated file(s)" in capsys.readouterr().out
    assert not (project.path() / "lib" / "a.dart").exists()


def test_build_command_writes_log_file(project: ProjectBuilder) -> None:
    project.write({"source/a.dart": "class A {}\n"})
    log_file = project.path() / "logs" / "build.log"

    main(["build", "--root", str(project.path()), "--no-format", "--log-file", str(log_file)])

    assert "solidgen.builder: Copied a.dart" in log_file.read_text(encoding="utf-8")
