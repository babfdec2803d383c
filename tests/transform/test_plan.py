"""Tests for solidgen.transform.plan."""

from __future__ import annotations

from solidgen.dart import SourceText
from solidgen.errors import ValidationError
from solidgen.models import AnnotationKind
from solidgen.transform.plan import plan_class, scan_unit

STORE = """
class Counter extends StatelessWidget {
  @SolidState()
  int count = 0;

  @SolidState()
  int get doubled => count * 2;

  @SolidEffect()
  void logCount() {
    print(count);
  }

  @SolidQuery()
  Future<String> fetch() async => 'x$doubled';

  @SolidEnvironment()
  late Repo repo;

  @SolidState()
  void bad() {}

  Widget build(BuildContext context) => Text('$count');
}

class Plain {
  int value = 1;
}
"""


def _plan():
    source = SourceText(STORE)
    node = next(source.unit.classes())
    return plan_class(source, node)


def test_plan_groups_names_by_construct() -> None:
    plan = _plan()

    assert plan.value_names == ("count", "doubled")
    assert plan.environment_names == ("repo",)
    assert plan.resource_names == ("fetch",)
    assert plan.effect_names == ("logCount",)
    assert plan.disposable_names == ("logCount", "fetch", "doubled", "count")
    assert plan.converts
    assert not plan.is_state_class


def test_dependencies_are_narrowed_to_sibling_values() -> None:
    members = {member.name: member for member in _plan().members}

    assert members["doubled"].dependencies == ("count",)
    assert members["logCount"].dependencies == ("count",)
    assert members["fetch"].dependencies == ("doubled",)
    assert [members[name].construct for name in ("count", "doubled", "logCount", "fetch", "repo")] == [
        "Signal",
        "Computed",
        "Effect",
        "Resource",
        "Environment",
    ]


def test_invalid_target_fails_only_that_member() -> None:
    plan = _plan()
    bad = next(member for member in plan.members if member.name == "bad")

    assert not bad.ok
    assert bad.kind is AnnotationKind.STATE
    assert bad.construct is None
    assert isinstance(bad.error, ValidationError)
    assert plan.transformable
    assert plan.has_failures


def test_scan_unit_ignores_classes_without_markers() -> None:
    analysis = scan_unit(SourceText(STORE))

    assert [plan.name for plan in analysis.classes] == ["Counter"]
    assert analysis.has_failures


def test_class_with_unparsed_member_is_skipped() -> None:
    source = SourceText(
        "class S extends State<W> {\n"
        "  @SolidState()\n"
        "  int count = 0;\n"
        "  int get broken => ;\n"
        "}\n"
    )
    plan = plan_class(source, next(source.unit.classes()))

    assert plan.skipped_reason is not None
    assert plan.skipped_reason.startswith("unparsed member at line 4:3")
    assert not plan.transformable
    assert plan.is_state_class


def test_state_class_does_not_convert() -> None:
    source = SourceText(
        "class S extends State<W> {\n"
        "  @SolidState()\n"
        "  int count = 0;\n"
        "  Widget build(BuildContext context) => Text('$count');\n"
        "}\n"
    )
    plan = plan_class(source, next(source.unit.classes()))

    assert plan.is_state_class
    assert not plan.converts
    assert plan.build_method() is not None
