"""Tests for solidgen.transform.render."""

from __future__ import annotations

from solidgen.dart import SourceText
from solidgen.transform.edits import apply_edits
from solidgen.transform.plan import find_method
from solidgen.transform.render import (
    find_wrap_targets,
    is_widget_member,
    type_argument_names,
    widget_field_names,
    widget_reference_edits,
)


def _build(body: str):
    source = SourceText(
        "class C extends StatelessWidget {\n"
        "  Widget build(BuildContext context) {\n"
        f"    return {body};\n"
        "  }\n"
        "}\n"
    )
    return source, find_method(next(source.unit.classes()), "build")


def _wrapped(body: str, reactive=("count",), resources=()):
    source, build = _build(body)
    targets = find_wrap_targets(build, reactive, resources, source)
    return [source.text[target.start : target.end] for target in targets]


def test_wraps_smallest_widget_that_reads_state() -> None:
    body = "Column(children: [Text('$count'), const Text('static')])"

    assert _wrapped(body) == ["Text('$count')"]


def test_reads_inside_event_callbacks_are_ignored() -> None:
    body = "ElevatedButton(onPressed: () => count.value++, child: const Text('+'))"

    assert _wrapped(body) == []


def test_value_constructors_are_not_wrap_targets() -> None:
    body = "Column(key: ValueKey(count), children: [Text('$count')])"

    assert _wrapped(body) == [body]


def test_sibling_reads_produce_separate_targets() -> None:
    assert _wrapped("Row(children: [Text('$count'), Text('${count + 1}')])") == [
        "Text('$count')",
        "Text('${count + 1}')",
    ]


def test_resource_dispatch_is_wrapped_whole() -> None:
    body = "fetch().when(ready: (v) => Text(v), loading: () => const Text('...'))"

    assert _wrapped(body, reactive=("fetch",), resources=("fetch",)) == [body]


def test_resource_tear_off_is_not_a_read() -> None:
    body = "ElevatedButton(onPressed: fetchData.refresh, child: const Text('Reload'))"

    assert _wrapped(body, reactive=("fetchData",), resources=("fetchData",)) == []


def test_resource_invocation_is_a_read() -> None:
    body = "Column(children: [Text(fetchData().toString()), const Text('static')])"

    assert _wrapped(body, reactive=("fetchData",), resources=("fetchData",)) == [
        "Text(fetchData().toString())"
    ]


def test_existing_signal_builder_disables_wrapping() -> None:
    body = "SignalBuilder(builder: (context, child) => Text('$count'))"

    assert _wrapped(body) == []


def test_type_argument_names() -> None:
    assert type_argument_names("") == ""
    assert type_argument_names("<T>") == "<T>"
    assert type_argument_names("<T extends Map<String, int>, U>") == "<T, U>"


def test_widget_references_are_qualified() -> None:
    source = SourceText(
        "class Greeting extends StatelessWidget {\n"
        "  const Greeting({super.key, required this.title});\n"
        "  final String title;\n"
        "  static String shout(String s) => s.toUpperCase();\n"
        "  @SolidState()\n"
        "  int count = 0;\n"
        "  Widget build(BuildContext context) => Text('$title ${shout(this.title)}');\n"
        "}\n"
    )
    node = next(source.unit.classes())
    annotated = {id(node.members[3])}
    fields, statics = widget_field_names(node, annotated)
    build = find_method(node, "build")

    edits = widget_reference_edits(source, build, fields, statics, "Greeting")

    assert fields == {"title"}
    assert statics == {"shout"}
    assert apply_edits(source.text, edits, build.start, build.end) == (
        "Widget build(BuildContext context) => Text('${widget.title} ${Greeting.shout(widget.title)}');"
    )
    assert [is_widget_member(member, annotated) for member in node.members] == [True, True, True, False, False]
