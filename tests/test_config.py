"""Tests for solidgen.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from solidgen.config import (
    ConfigError,
    SolidgenConfig,
    WatchConfig,
    _parse_simple_yaml,
    load_config,
)
from solidgen.transform.orchestrator import ANNOTATIONS_IMPORT, RUNTIME_IMPORT


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, SolidgenConfig)
    assert config.root == tmp_path.resolve()
    assert config.source_dir == (tmp_path / "source").resolve()
    assert config.output_dir == (tmp_path / "lib").resolve()
    assert config.exclude_paths == []
    assert config.format.enabled is True
    assert config.format.command == "dart"
    assert config.watch == WatchConfig()
    assert config.imports.runtime == RUNTIME_IMPORT
    assert config.imports.annotations == ANNOTATIONS_IMPORT


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".solidgen.yml"
    config_file.write_text(
        """
source: "src"
output: generated
exclude_paths:
  - "legacy/"
  - "*.g.dart"
format:
  enabled: false
  command: fvm
watch:
  debounce_ms: 250
  stable_attempts: 3
imports:
  runtime: "package:my_solid/my_solid.dart"
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.source == "src"
    assert config.output == "generated"
    assert config.exclude_paths == ["legacy/", "*.g.dart"]
    assert config.format.enabled is False
    assert config.format.command == "fvm"
    assert config.watch.debounce_ms == 250
    assert config.watch.stable_attempts == 3
    assert config.watch.max_batch_ms == WatchConfig().max_batch_ms
    assert config.imports.runtime == "package:my_solid/my_solid.dart"
    assert config.imports.annotations == ANNOTATIONS_IMPORT


def test_load_config_accepts_any_path_inside_root(tmp_path: Path) -> None:
    (tmp_path / ".solidgen.yml").write_text("output: out\n", encoding="utf-8")

    config = load_config(tmp_path / "pubspec.yaml")

    assert config.output == "out"
    assert config.root == tmp_path.resolve()


def test_empty_config_file_yields_defaults(tmp_path: Path) -> None:
    (tmp_path / ".solidgen.yml").write_text("\n# nothing here\n", encoding="utf-8")

    assert load_config(tmp_path).source == "source"


def test_source_and_output_must_differ(tmp_path: Path) -> None:
    (tmp_path / ".solidgen.yml").write_text("source: lib\noutput: lib\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="must differ"):
        load_config(tmp_path)


def test_root_must_be_a_mapping(tmp_path: Path) -> None:
    (tmp_path / ".solidgen.yml").write_text("- source\n- lib\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="mapping"):
        load_config(tmp_path)


@pytest.mark.parametrize("value", ["0", "-5", "soon"])
def test_watch_timings_must_be_positive_integers(tmp_path: Path, value: str) -> None:
    (tmp_path / ".solidgen.yml").write_text(f"watch:\n  debounce_ms: {value}\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="watch.debounce_ms"):
        load_config(tmp_path)


def test_simple_yaml_parser_handles_nesting_lists_and_comments() -> None:
    parsed = _parse_simple_yaml(
        """
# project settings
source: src  # inline comment
exclude_paths: [a, "b, c"]
format:
  enabled: true
  nested:
    - one
    - 2
empty:
"""
    )

    assert parsed == {
        "source": "src",
        "exclude_paths": ["a", "b, c"],
        "format": {"enabled": True, "nested": ["one", 2]},
        "empty": None,
    }


def test_simple_yaml_parser_rejects_bad_indentation() -> None:
    with pytest.raises(ConfigError):
        _parse_simple_yaml("source: src\n    output: lib\n")
