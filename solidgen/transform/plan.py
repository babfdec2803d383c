"""Scan stage: the immutable per-unit analysis every later stage reads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..analysis.annotations import find_marker, match_annotation
from ..analysis.declarations import analyze_field, analyze_getter, analyze_method, getter_expression
from ..analysis.dependencies import extract_dependencies
from ..codegen.generator import (
    generate_computed,
    generate_effect,
    generate_environment,
    generate_resource,
    generate_signal,
    validate_target,
)
from ..dart.nodes import ClassDecl, Member
from ..dart.source import SourceText
from ..errors import TransformationError
from ..logging import get_logger
from ..models import AnnotationDescriptor, AnnotationKind, DependencySet
from ..result import Failure, Result, Success

_LOGGER = get_logger("transform.plan")

_CONSTRUCTS = {
    (AnnotationKind.STATE, "field"): "Signal",
    (AnnotationKind.STATE, "getter"): "Computed",
    (AnnotationKind.EFFECT, "method"): "Effect",
    (AnnotationKind.QUERY, "method"): "Resource",
    (AnnotationKind.ENVIRONMENT, "field"): "Environment",
}

# Disposal runs consumers before their sources.
_DISPOSAL_ORDER = ("Effect", "Resource", "Computed", "Signal")


def member_kind(member: Member) -> str:
    if member.is_opaque:
        return "declaration"
    return member.kind


def member_name(member: Member) -> str:
    if member.name:
        return member.name
    if member.kind == "field":
        return "<field>"
    if member.kind == "constructor":
        return "<constructor>"
    return "<member>"


@dataclass(frozen=True)
class ReactiveMember:
    """One annotated member and what generation made of it."""

    node: Member
    kind: AnnotationKind
    member_kind: str
    name: str
    annotation: Optional[AnnotationDescriptor]
    dependencies: DependencySet
    result: Result[str]

    @property
    def ok(self) -> bool:
        return self.result.ok

    @property
    def generated(self) -> str:
        return self.result.unwrap()

    @property
    def error(self) -> Optional[TransformationError]:
        return None if isinstance(self.result, Success) else self.result.error

    @property
    def construct(self) -> Optional[str]:
        return _CONSTRUCTS.get((self.kind, self.member_kind))


@dataclass(frozen=True)
class ClassPlan:
    node: ClassDecl
    members: Tuple[ReactiveMember, ...]
    value_names: Tuple[str, ...]
    environment_names: Tuple[str, ...]
    resource_names: Tuple[str, ...]
    effect_names: Tuple[str, ...]
    disposable_names: Tuple[str, ...]
    converts: bool
    is_state_class: bool
    skipped_reason: Optional[str] = None

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def transformable(self) -> bool:
        return self.skipped_reason is None and any(member.ok for member in self.members)

    @property
    def has_failures(self) -> bool:
        return self.skipped_reason is not None or any(not member.ok for member in self.members)

    def reactive_for(self, node: Member) -> Optional[ReactiveMember]:
        for member in self.members:
            if member.node is node:
                return member
        return None

    def build_method(self) -> Optional[Member]:
        return find_method(self.node, "build")


@dataclass(frozen=True)
class UnitAnalysis:
    source: SourceText
    classes: Tuple[ClassPlan, ...]

    @property
    def transformable(self) -> Tuple[ClassPlan, ...]:
        return tuple(plan for plan in self.classes if plan.transformable)

    @property
    def has_failures(self) -> bool:
        return any(plan.has_failures for plan in self.classes)


def find_method(node: ClassDecl, name: str) -> Optional[Member]:
    for member in node.members:
        if not member.is_opaque and member.kind == "method" and member.name == name:
            return member
    return None


def superclass_name(node: ClassDecl) -> Optional[str]:
    if node.superclass is None:
        return None
    return node.superclass.rsplit(".", 1)[-1]


def _narrow(names: Iterable[str], allowed: Sequence[str], own_name: str) -> DependencySet:
    return tuple(name for name in names if name in allowed and name != own_name)


def _body_node(member: Member) -> Optional[Any]:
    return member.body.node if member.body is not None else None


class _MemberPlanner:
    """Generates one class's reactive members in dependency-safe order."""

    def __init__(self, source: SourceText, node: ClassDecl) -> None:
        self.source = source
        self.node = node
        self.results: Dict[int, ReactiveMember] = {}

    def plan(self, marked: List[Tuple[Member, AnnotationKind]]) -> Tuple[ReactiveMember, ...]:
        invalid = []
        for member, kind in marked:
            error = validate_target(kind, member_kind(member), self.source.location(member))
            if error is not None:
                invalid.append(member)
                self._record(member, kind, None, (), Failure(error))

        valid = [(member, kind) for member, kind in marked if member not in invalid]

        for member, kind in valid:
            if member.kind == "field":
                self._plan_field(member, kind)

        signal_names = self._ok_names(AnnotationKind.STATE, "field")
        environment_names = self._ok_names(AnnotationKind.ENVIRONMENT, "field")
        getter_names = [
            member_name(member)
            for member, kind in valid
            if kind is AnnotationKind.STATE
            and member.kind == "getter"
            and getter_expression(member.body, self.source) is not None
        ]
        value_candidates = tuple(signal_names) + tuple(getter_names)

        for member, kind in valid:
            if member.kind in ("method", "getter"):
                self._plan_method(member, kind, value_candidates, environment_names)

        return tuple(self.results[id(member)] for member, _ in marked)

    def _ok_names(self, kind: AnnotationKind, target: str) -> List[str]:
        return [
            planned.name
            for planned in self.results.values()
            if planned.kind is kind and planned.member_kind == target and planned.ok
        ]

    def _record(
        self,
        member: Member,
        kind: AnnotationKind,
        annotation: Optional[AnnotationDescriptor],
        dependencies: DependencySet,
        result: Result[str],
    ) -> None:
        self.results[id(member)] = ReactiveMember(
            node=member,
            kind=kind,
            member_kind=member_kind(member),
            name=member_name(member),
            annotation=annotation,
            dependencies=dependencies,
            result=result,
        )

    def _plan_field(self, member: Member, kind: AnnotationKind) -> None:
        annotation = match_annotation(member, kind, self.source)
        if not annotation.ok:
            self._record(member, kind, None, (), annotation)
            return
        field = analyze_field(member, self.source)
        if not field.ok:
            self._record(member, kind, annotation.value, (), field)
            return
        if kind is AnnotationKind.STATE:
            result = generate_signal(field.value, annotation.value)
        else:
            result = generate_environment(field.value)
        self._record(member, kind, annotation.value, (), result)

    def _plan_method(
        self,
        member: Member,
        kind: AnnotationKind,
        value_candidates: Sequence[str],
        environment_names: Sequence[str],
    ) -> None:
        annotation = match_annotation(member, kind, self.source)
        if not annotation.ok:
            self._record(member, kind, None, (), annotation)
            return
        if member.kind == "getter":
            getter = analyze_getter(member, self.source)
            if not getter.ok:
                self._record(member, kind, annotation.value, (), getter)
                return
            expression = getter_expression(member.body, self.source)
            found = () if expression is None else extract_dependencies(self.source, _body_node(member), expression)
            dependencies = _narrow(found, value_candidates, member.name)
            result = generate_computed(getter.value, annotation.value, dependencies, environment_names)
            self._record(member, kind, annotation.value, dependencies, result)
            return
        method = analyze_method(member, self.source)
        if not method.ok:
            self._record(member, kind, annotation.value, (), method)
            return
        dependencies = _narrow(
            extract_dependencies(self.source, _body_node(member)), value_candidates, member.name
        )
        if kind is AnnotationKind.EFFECT:
            result = generate_effect(method.value, annotation.value, dependencies, environment_names)
        else:
            result = generate_resource(method.value, annotation.value, dependencies, environment_names)
        self._record(member, kind, annotation.value, dependencies, result)


def plan_class(source: SourceText, node: ClassDecl) -> Optional[ClassPlan]:
    """Plan one class; ``None`` when it carries no reactive markers."""
    marked = []
    for member in node.members:
        kind = find_marker(member)
        if kind is not None:
            marked.append((member, kind))
    opaque = [member for member in node.members if member.is_opaque]
    if not marked and not any(find_marker(member) for member in opaque):
        return None

    parent = superclass_name(node)
    if opaque:
        reason = f"unparsed member at {source.location(opaque[0])}: {opaque[0].error}"
        _LOGGER.warning("Skipping class %s: %s", node.name, reason)
        return ClassPlan(
            node=node,
            members=(),
            value_names=(),
            environment_names=(),
            resource_names=(),
            effect_names=(),
            disposable_names=(),
            converts=False,
            is_state_class=parent == "State",
            skipped_reason=reason,
        )

    members = _MemberPlanner(source, node).plan(marked)
    for member in members:
        if not member.ok:
            _LOGGER.warning("Skipping %s.%s: %s", node.name, member.name, member.error)

    def names(*constructs: str) -> Tuple[str, ...]:
        return tuple(m.name for m in members if m.ok and m.construct in constructs)

    disposable: List[str] = []
    for construct in _DISPOSAL_ORDER:
        disposable.extend(names(construct))

    ok_members = any(member.ok for member in members)
    return ClassPlan(
        node=node,
        members=members,
        value_names=names("Signal", "Computed"),
        environment_names=names("Environment"),
        resource_names=names("Resource"),
        effect_names=names("Effect"),
        disposable_names=tuple(disposable),
        converts=parent == "StatelessWidget" and ok_members and find_method(node, "build") is not None,
        is_state_class=parent == "State",
    )


def scan_unit(source: SourceText) -> UnitAnalysis:
    """Plan every class of ``source``. Raises ``DartSyntaxError`` on parse failure."""
    plans = []
    for node in source.unit.classes():
        plan = plan_class(source, node)
        if plan is not None:
            plans.append(plan)
    return UnitAnalysis(source=source, classes=tuple(plans))


__all__ = [
    "ClassPlan",
    "ReactiveMember",
    "UnitAnalysis",
    "find_method",
    "member_kind",
    "member_name",
    "plan_class",
    "scan_unit",
    "superclass_name",
]
