"""Rendering helpers: ``SignalBuilder`` wrapping and widget conversion."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..analysis.dependencies import CALL, REFERENCE, THIS_MEMBER, iter_occurrences
from ..codegen.generator import generate_signal_builder
from ..dart.nodes import (
    IDENTIFIER_TYPES,
    ClassDecl,
    Member,
    first_child,
    is_call_part,
    member_part_name,
    sibling,
    walk,
)
from ..dart.source import SourceText, Span
from .edits import Edit, apply_edits

BUILDER_NAME = "SignalBuilder"
DISPATCH_METHODS = ("when", "maybeWhen", "on")

# Uppercase calls that construct values rather than widgets.
NON_WIDGET_CALLS = frozenset(
    {
        "Navigator",
        "Theme",
        "MediaQuery",
        "Future",
        "Stream",
        "Duration",
        "Timer",
        "RegExp",
        "DateTime",
        "Uri",
        "TextStyle",
        "EdgeInsets",
        "BoxDecoration",
        "BorderRadius",
        "Radius",
        "Color",
        "Offset",
        "Size",
        "ValueKey",
        "Key",
        "MapEntry",
    }
)

_CALLBACK_LABEL = re.compile(r"^on[A-Z]")


@dataclass(frozen=True)
class WrapTarget:
    """A render-time expression to wrap, with the indent of its first line."""

    start: int
    end: int
    indent: str


def _widget_name(source: SourceText, node: Optional[Any]) -> Optional[str]:
    if node is None or node.type not in IDENTIFIER_TYPES:
        return None
    name = source.slice(node)
    if name[:1].isupper() and name not in NON_WIDGET_CALLS:
        return name
    return None


def _constructor_call(source: SourceText, ancestors: Sequence[Any], index: int) -> Optional[Span]:
    """Span of the widget construction whose argument selector is ``ancestors[index]``."""
    node = ancestors[index]
    if node.type == "new_expression":
        return source.span(node)
    if index == 0 or not is_call_part(source, node):
        return None
    parent = ancestors[index - 1]
    before = sibling(parent, node, -1)
    if _widget_name(source, before) is not None:
        return source.start(before), source.end(node)
    # named constructor: ListView.builder(...)
    if before is not None and member_part_name(source, before) is not None:
        owner = sibling(parent, before, -1)
        if _widget_name(source, owner) is not None:
            return source.start(owner), source.end(node)
    return None


def _in_event_callback(source: SourceText, ancestors: Sequence[Any]) -> bool:
    for parent, child in zip(ancestors, ancestors[1:]):
        if parent.type != "named_argument" or child.type != "function_expression":
            continue
        label = first_child(parent, "label")
        if label is not None and _CALLBACK_LABEL.match(source.slice(label)):
            return True
    return False


def contains_builder(source: SourceText, node: Any) -> bool:
    parts = node.parts if isinstance(node, Member) else (node,)
    for part in parts:
        for candidate in walk(part):
            if candidate.type in ("identifier", "type_identifier") and source.slice(candidate) == BUILDER_NAME:
                return True
    return False


def _dispatch_span(source: SourceText, parent: Any, node: Any) -> Optional[Span]:
    """``res().when(...)``: the span from ``res`` to the dispatch arguments."""
    member = sibling(parent, node, 2)
    if member_part_name(source, member) not in DISPATCH_METHODS:
        return None
    arguments = sibling(parent, node, 3)
    if is_call_part(source, arguments):
        return source.start(node), source.end(arguments)
    if "(" in source.slice(member):
        return source.start(node), source.end(member)
    return None


def find_wrap_targets(
    build: Member,
    reactive_names: Iterable[str],
    resource_names: Iterable[str],
    source: SourceText,
) -> List[WrapTarget]:
    """Smallest widget constructions in ``build`` that read reactive state.

    A resource counts only where it is invoked: ``res()`` or a dispatch call
    (``res().when(...)``), which is wrapped as a whole. A tear-off such as
    ``onPressed: res.refresh`` reads nothing during build. Reads inside
    ``on*`` callbacks run on events, not during build, and do not count.
    Targets nested in another target collapse into the outer one.
    """
    if build.body is None or contains_builder(source, build):
        return []
    reactive = set(reactive_names)
    resources = set(resource_names)
    found: Dict[Span, Span] = {}
    for occurrence in iter_occurrences(source, build.body.node):
        name = occurrence.name
        if name not in reactive or occurrence.shadowed:
            continue
        ancestors = occurrence.ancestors
        if name in resources:
            if occurrence.role != CALL:
                continue
            parent = occurrence.parent
            dispatch = _dispatch_span(source, parent, occurrence.node) if parent is not None else None
            if dispatch is not None:
                if not _in_event_callback(source, ancestors):
                    found[dispatch] = dispatch
                continue
        elif occurrence.role != REFERENCE:
            continue
        if _in_event_callback(source, ancestors):
            continue
        for index in range(len(ancestors) - 1, -1, -1):
            span = _constructor_call(source, ancestors, index)
            if span is not None:
                found[span] = span
                break

    targets: List[WrapTarget] = []
    for start, end in sorted(found.values(), key=lambda item: (item[0], -item[1])):
        if targets and start < targets[-1].end:
            continue
        targets.append(WrapTarget(start, end, source.indent_at(start)))
    return targets


def apply_wraps(
    targets: Sequence[WrapTarget], inner_edits: Sequence[Edit], source: SourceText
) -> List[Edit]:
    """Turn ``targets`` into wrap edits, folding in the edits they enclose.

    Returns the wrap edits followed by the inner edits that fall outside
    every target.
    """
    remaining = list(inner_edits)
    wraps: List[Edit] = []
    for target in targets:
        enclosed = [edit for edit in remaining if target.start <= edit.start and edit.end <= target.end]
        remaining = [edit for edit in remaining if edit not in enclosed]
        text = apply_edits(source.text, enclosed, target.start, target.end)
        wraps.append(Edit(target.start, target.end, generate_signal_builder(text, target.indent)))
    return wraps + remaining


# ------------------------------------------------------------
# StatelessWidget -> StatefulWidget + State conversion
# ------------------------------------------------------------


def type_argument_names(type_parameters: str) -> str:
    """``<T extends Foo<int>, U>`` -> ``<T, U>``."""
    if not type_parameters:
        return ""
    inner = type_parameters.strip()[1:-1]
    names: List[str] = []
    depth = 0
    current = ""
    for char in inner:
        if char == "<":
            depth += 1
        elif char == ">":
            depth -= 1
        if char == "," and depth == 0:
            names.append(current)
            current = ""
        else:
            current += char
    names.append(current)
    return "<" + ", ".join(part.split()[0] for part in names if part.strip()) + ">"


def widget_field_names(node: ClassDecl, reactive: Set[int]) -> Tuple[Set[str], Set[str]]:
    """(instance field names, static member names) that stay on the widget."""
    instance: Set[str] = set()
    static: Set[str] = set()
    for member in node.members:
        if id(member) in reactive or member.is_opaque:
            continue
        if member.kind == "field":
            target = static if member.is_static else instance
            target.update(variable.name for variable in member.variables)
        elif member.is_static and member.name:
            static.add(member.name)
    return instance, static


def widget_reference_edits(
    source: SourceText,
    member: Any,
    widget_fields: Set[str],
    static_names: Set[str],
    class_name: str,
) -> List[Edit]:
    """Qualify widget members referenced from code that moves into the State."""
    edits: List[Edit] = []
    for occurrence in iter_occurrences(source, member):
        name = occurrence.name
        if occurrence.role == THIS_MEMBER:
            if name in widget_fields and occurrence.qualifier is not None:
                start, end = occurrence.qualifier
                edits.append(Edit(start, end, "widget"))
            continue
        if occurrence.role not in (REFERENCE, CALL) or occurrence.shadowed:
            continue
        if name in widget_fields:
            prefix = "widget."
        elif name in static_names:
            prefix = f"{class_name}."
        else:
            continue
        if occurrence.interpolation is not None:
            start, end = occurrence.interpolation
            edits.append(Edit(start, end, "${%s%s}" % (prefix, name)))
        else:
            edits.append(Edit.insert(occurrence.start, prefix))
    return edits



@dataclass(frozen=True)
class ConvertedPieces:
    """Rendered text for the parts of a converted class."""

    widget_members: Tuple[str, ...]
    declarations: Tuple[str, ...]
    lifecycle: Tuple[str, ...]
    state_members: Tuple[str, ...]
    build: str


def render_widget_pair(
    node: ClassDecl,
    pieces: ConvertedPieces,
    source: SourceText,
    indent: str = "  ",
) -> str:
    """The ``StatefulWidget`` class followed by its ``State`` class."""
    name = node.name
    arguments = type_argument_names(node.type_parameters)
    if node.superclass_span is None:
        raise ValueError(f"class {name} has no superclass to convert")
    header = (
        source.slice(node.start, node.superclass_span[0])
        + "StatefulWidget"
        + source.slice(node.superclass_span[1], node.body_start)
    )
    widget_body = [f"{indent}{text}" for text in pieces.widget_members]
    widget_body.append(
        f"{indent}@override\n"
        f"{indent}State<{name}{arguments}> createState() => _{name}State{arguments}();"
    )
    widget = header + "{\n" + "\n\n".join(widget_body) + "\n}"

    blocks: List[str] = []
    if pieces.declarations:
        blocks.append("\n".join(f"{indent}{text}" for text in pieces.declarations))
    blocks.extend(f"{indent}{text}" for text in pieces.lifecycle)
    blocks.extend(f"{indent}{text}" for text in pieces.state_members)
    blocks.append(f"{indent}{pieces.build}")
    state = (
        f"class _{name}State{node.type_parameters} extends State<{name}{arguments}> {{\n"
        + "\n\n".join(blocks)
        + "\n}"
    )
    return widget + "\n\n" + state


def member_text(member: Member, edits: Sequence[Edit], source: SourceText) -> str:
    return apply_edits(source.text, edits, member.start, member.end)


def is_widget_member(member: Member, reactive: Set[int]) -> bool:
    """Constructors, plain fields and static methods stay on the widget."""
    if id(member) in reactive or member.is_opaque:
        return False
    if member.kind in ("constructor", "field"):
        return True
    return member.is_static


def edits_within(member: Member, edits: Iterable[Edit]) -> List[Edit]:
    return [edit for edit in edits if member.start <= edit.start and edit.end <= member.end]


__all__ = [
    "BUILDER_NAME",
    "ConvertedPieces",
    "NON_WIDGET_CALLS",
    "WrapTarget",
    "apply_wraps",
    "contains_builder",
    "edits_within",
    "find_wrap_targets",
    "is_widget_member",
    "member_text",
    "render_widget_pair",
    "type_argument_names",
    "widget_field_names",
    "widget_reference_edits",
]
