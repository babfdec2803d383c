"""Tests for solidgen.dart.nodes."""

from __future__ import annotations

from solidgen.dart import SourceText, parse_snippet
from solidgen.dart.nodes import ClassDecl, walk, walk_with_ancestors

COUNTER = """
import 'package:flutter/material.dart';
import 'package:solid_annotations/solid_annotations.dart' as solid;

enum Mode { light, dark }

class Counter extends StatelessWidget {
  const Counter({super.key, required this.title});

  final String title;

  @solid.SolidState(name: 'clicks')
  int count = 0;

  static int get zero => 0;

  @override
  Widget build(BuildContext context) {
    return Column(children: [
      Text('$title: ${count * 2}'),
      const SizedBox(height: 8),
      ElevatedButton(onPressed: () => count++, child: const Text('+')),
    ]);
  }
}

void main() => runApp(const MaterialApp(home: Counter(title: 'Demo')));
"""


def _counter() -> ClassDecl:
    (node,) = list(SourceText(COUNTER).unit.classes())
    return node


def test_reads_directives_and_top_level_functions() -> None:
    unit = SourceText(COUNTER).unit

    assert [directive.uri for directive in unit.directives] == [
        "package:flutter/material.dart",
        "package:solid_annotations/solid_annotations.dart",
    ]
    assert all(directive.keyword == "import" for directive in unit.directives)
    main = unit.function("main")
    assert main is not None
    assert main.body.kind == "expression"
    assert unit.function("missing") is None


def test_class_header_and_member_kinds() -> None:
    node = _counter()

    assert node.name == "Counter"
    assert node.superclass == "StatelessWidget"
    assert COUNTER[node.superclass_span[0] : node.superclass_span[1]] == "StatelessWidget"
    assert [member.kind for member in node.members] == [
        "constructor",
        "field",
        "field",
        "getter",
        "method",
    ]
    getter = node.members[3]
    assert getter.name == "zero" and getter.is_static
    assert getter.declared_type == "int"


def test_fields_expose_type_modifiers_and_initializer() -> None:
    source = SourceText(COUNTER)
    (node,) = list(source.unit.classes())
    title, count = node.members[1], node.members[2]

    assert title.declared_type == "String"
    assert "final" in title.modifiers
    assert [variable.name for variable in count.variables] == ["count"]
    assert source.slice(count.variables[0].initializer) == "0"


def test_member_span_starts_at_first_annotation() -> None:
    node = _counter()
    field = node.members[2]

    text = COUNTER[field.start : field.end]
    assert text.startswith("@solid.SolidState(name: 'clicks')")
    assert text.endswith("int count = 0;")
    (annotation,) = field.metadata
    assert annotation.name == "solid.SolidState"
    assert annotation.simple_name == "SolidState"


def test_method_parameters_and_body() -> None:
    source = SourceText(
        "class A {\n"
        "  Future<int> load(int page, {bool force = false, required String query}) async {\n"
        "    return page;\n"
        "  }\n"
        "}\n"
    )
    (node,) = list(source.unit.classes())
    (load,) = node.members

    assert load.kind == "method"
    assert load.declared_type == "Future<int>"
    assert [(p.name, p.kind) for p in load.parameters] == [
        ("page", "positional"),
        ("force", "named"),
        ("query", "named"),
    ]
    force, query = load.parameters[1:]
    assert force.default_value == "false" and not force.required
    assert query.required and query.type == "String"
    assert load.body.kind == "block" and load.body.modifier == "async"


def test_parse_snippet_accepts_block_arrow_and_expression() -> None:
    block = parse_snippet("{ a = 1; }")
    arrow = parse_snippet("=> a.b;")
    expression = parse_snippet("a += 2")

    assert block.source.slice(block.span) == "{ a = 1; }"
    assert arrow.source.slice(arrow.span) == "=> a.b;"
    assert [expression.source.slice(node) for node in expression.nodes] == ["a += 2"]


def test_walk_with_ancestors_lists_outermost_first() -> None:
    snippet = parse_snippet("a.b + c")

    for node, ancestors in walk_with_ancestors(snippet.node):
        if node.type == "identifier" and snippet.source.slice(node) == "c":
            assert ancestors[0].type == snippet.node.type
            assert ancestors[-1].end_byte >= node.end_byte
            break
    else:
        raise AssertionError("identifier c not found")


def test_unparsable_member_becomes_opaque() -> None:
    source = SourceText("class A {\n  int get broken => ;\n  void ok() {}\n}\n")
    (node,) = list(source.unit.classes())

    assert node.members[0].is_opaque
    assert node.members[0].error
    assert node.members[-1].name == "ok" and not node.members[-1].is_opaque


def test_source_text_helpers() -> None:
    text = "class A {\n    int x = 1;\n}\n"
    source = SourceText(text)
    field = next(source.unit.classes()).members[0]

    assert source.slice(field) == "int x = 1;"
    assert source.location(field) == "line 2:5"
    assert source.indent_at(field.start) == "    "


def test_offsets_are_characters_not_bytes() -> None:
    text = "// café ☕\nclass A {\n  int x = 1;\n}\n"
    source = SourceText(text)
    field = next(source.unit.classes()).members[0]

    assert source.slice(field) == "int x = 1;"
    assert source.location(field) == "line 3:3"
    identifiers = [node for node in walk(source.root) if node.type == "identifier"]
    assert source.slice(identifiers[-1]) == "x"
