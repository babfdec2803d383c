"""Tests for solidgen.transform.lifecycle."""

from __future__ import annotations

from solidgen.dart import SourceText
from solidgen.transform.edits import apply_edits
from solidgen.transform.lifecycle import (
    dispose_edits,
    init_state_edits,
    render_dispose,
    render_init_state,
)
from solidgen.transform.plan import find_method


def _method(body: str, name: str):
    source = SourceText("class CounterState extends State<Counter> {\n" + body + "\n}\n")
    node = next(source.unit.classes())
    return source, find_method(node, name)


def test_effects_are_touched_after_super_init_state() -> None:
    source, method = _method(
        "  @override\n  void initState() {\n    super.initState();\n    load();\n  }", "initState"
    )

    output = apply_edits(source.text, init_state_edits(method, ["logCount"], source, True))

    assert "super.initState();\n    logCount;\n    load();" in output


def test_missing_super_call_is_added_for_state_classes() -> None:
    source, method = _method("  void initState() {\n    load();\n  }", "initState")

    output = apply_edits(source.text, init_state_edits(method, ["logCount"], source, True))

    assert "{\n    super.initState();\n    logCount;\n    load();" in output


def test_already_touched_effects_are_not_repeated() -> None:
    source, method = _method("  void initState() {\n    super.initState();\n    logCount;\n  }", "initState")

    assert init_state_edits(method, ["logCount"], source, True) == []


def test_dispose_runs_before_super_dispose() -> None:
    source, method = _method(
        "  @override\n  void dispose() {\n    count.dispose();\n    super.dispose();\n  }", "dispose"
    )

    output = apply_edits(source.text, dispose_edits(method, ["logCount", "count"], source, True))

    assert "count.dispose();\n    logCount.dispose();\n    super.dispose();" in output


def test_plain_class_dispose_appends_without_super() -> None:
    source, method = _method("  void dispose() {\n    close();\n  }", "dispose")

    output = apply_edits(source.text, dispose_edits(method, ["count"], source, False))

    assert "close();\n    count.dispose();\n  }" in output
    assert "super.dispose" not in output


def test_arrow_bodied_lifecycle_methods_are_left_alone() -> None:
    source, method = _method("  void dispose() => close();", "dispose")

    assert dispose_edits(method, ["count"], source, True) == []


def test_rendered_methods() -> None:
    assert render_init_state(["a"], "  ") == (
        "@override\n  void initState() {\n    super.initState();\n    a;\n  }"
    )
    assert render_dispose(["a", "b"], "  ") == (
        "@override\n  void dispose() {\n    a.dispose();\n    b.dispose();\n    super.dispose();\n  }"
    )
    assert render_dispose(["a"], "  ", is_state_class=False) == "void dispose() {\n    a.dispose();\n  }"
