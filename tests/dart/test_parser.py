"""Tests for solidgen.dart.parser."""

from __future__ import annotations

import threading

import pytest

from solidgen.dart import parser as parser_module
from solidgen.dart import DartSyntaxError, SourceText
from solidgen.dart.parser import GrammarUnavailableError, SyntaxIssue, find_issues, parse_bytes


def test_issue_descriptions() -> None:
    missing = SyntaxIssue(kind="missing", line=3, column=7, text="}")
    error = SyntaxIssue(kind="error", line=1, column=1, text="  oops here\nmore")

    assert missing.describe() == "line 3:7: missing '}'"
    assert error.describe() == "line 1:1: unexpected 'oops here'"
    assert str(missing.to_error()) == "missing '}' at line 3:7"


def test_parses_into_a_program_tree() -> None:
    tree = parse_bytes(b"void main() {}\n")

    assert tree.root_node.type == "program"
    assert not tree.root_node.has_error


def test_reports_errors_in_broken_source() -> None:
    source = SourceText("class A {\n  void f( {\n}\n")

    issues = find_issues(source.root, source)

    assert issues
    assert all(issue.line >= 1 and issue.column >= 1 for issue in issues)


def test_unclosed_class_raises_with_location() -> None:
    with pytest.raises(DartSyntaxError) as excinfo:
        SourceText("class A {\n  void f() {}\n").unit

    assert excinfo.value.location.startswith("line ")


def test_broken_top_level_code_raises() -> None:
    with pytest.raises(DartSyntaxError):
        SourceText("void main() {\n  runApp(\n}\n").unit


def test_missing_grammar_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(parser_module, "_LOCAL", threading.local())
    monkeypatch.setattr(parser_module, "TREE_SITTER_AVAILABLE", False)

    with pytest.raises(GrammarUnavailableError):
        parse_bytes(b"class A {}\n")
