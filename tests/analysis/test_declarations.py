"""Tests for solidgen.analysis.declarations."""

from __future__ import annotations

from solidgen.analysis.declarations import analyze_field, analyze_getter, analyze_method
from solidgen.dart import SourceText


def _members(body: str):
    source = SourceText("class Store {\n" + body + "\n}\n")
    (node,) = list(source.unit.classes())
    return source, node.members


def test_analyze_field_with_keywords_and_nullable_type() -> None:
    source, members = _members("  late final String? title;")

    field = analyze_field(members[0], source).unwrap()

    assert field.name == "title"
    assert field.declared_type == "String?"
    assert field.is_nullable
    assert field.is_final
    assert not field.is_const
    assert field.initializer_text is None
    assert field.location == "line 2:3"


def test_analyze_field_without_declared_type() -> None:
    source, members = _members("  var items = <int>[1, 2];")

    field = analyze_field(members[0], source).unwrap()

    assert field.declared_type == "dynamic"
    assert not field.has_declared_type
    assert field.initializer_text == "<int>[1, 2]"


def test_analyze_getter_arrow_and_block_bodies() -> None:
    source, members = _members(
        """
  int get doubled => count * 2;

  String get label {
    final prefix = 'n';
    return '$prefix$count';
  }
"""
    )

    arrow = analyze_getter(members[0], source).unwrap()
    block = analyze_getter(members[1], source).unwrap()

    assert (arrow.name, arrow.return_type, arrow.body_expression_text) == ("doubled", "int", "count * 2")
    assert block.body_expression_text == "'$prefix$count'"


def test_analyze_getter_without_trailing_return() -> None:
    source, members = _members("  int get broken {\n    print(1);\n  }")

    getter = analyze_getter(members[0], source).unwrap()

    assert getter.body_expression_text == ""


def test_analyze_method_parameters_and_async_body() -> None:
    source, members = _members(
        """
  Future<List<String>> fetch(int page, {bool force = false, required String query}) async {
    return [];
  }
"""
    )

    method = analyze_method(members[0], source).unwrap()

    assert method.return_type == "Future<List<String>>"
    assert method.is_async
    assert method.body_modifier == "async"
    assert method.body_text.startswith("{") and method.body_text.endswith("}")
    page, force, query = method.parameters
    assert (page.name, page.type, page.is_optional, page.is_named) == ("page", "int", False, False)
    assert (force.is_optional, force.is_named, force.default_value) == (True, True, "false")
    assert (query.is_optional, query.is_named) == (False, True)


def test_analyze_method_expression_body() -> None:
    source, members = _members("  void log() => print(count);")

    method = analyze_method(members[0], source).unwrap()

    assert method.is_expression_body
    assert method.body_text == "=> print(count);"
    assert method.return_type == "void"
    assert method.parameters == ()
