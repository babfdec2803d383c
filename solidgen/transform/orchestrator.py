"""Per-unit transformation pipeline.

The transformer runs a fixed sequence of stages over one compilation unit.
Scanning produces an immutable ``UnitAnalysis``; every later stage reads it
and contributes ``Edit`` values against the original text. The edits are
applied once, at the end, so no stage ever re-parses intermediate output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from ..analysis.dependencies import CALL, iter_occurrences
from ..codegen.accessors import accessor_edits
from ..dart.nodes import ClassDecl, Directive, FunctionDecl, Member
from ..dart.parser import DartSyntaxError
from ..dart.source import SourceText
from ..errors import TransformationError
from ..logging import get_logger
from .edits import Edit, apply_edits
from .lifecycle import (
    DEFAULT_INDENT,
    dispose_edits,
    init_state_edits,
    render_dispose,
    render_init_state,
    statement_indent,
)
from .plan import ClassPlan, UnitAnalysis, find_method, scan_unit
from .render import (
    ConvertedPieces,
    WrapTarget,
    apply_wraps,
    edits_within,
    find_wrap_targets,
    is_widget_member,
    member_text,
    render_widget_pair,
    widget_field_names,
    widget_reference_edits,
)

_LOGGER = get_logger("transform")

RUNTIME_IMPORT = "package:flutter_solidart/flutter_solidart.dart"
ANNOTATIONS_IMPORT = "package:solid_annotations/solid_annotations.dart"
AUTO_DISPOSE_STATEMENT = "SolidartConfig.autoDispose = false;"


class Stage(Enum):
    SCAN = "scan"
    PRE_WRAP = "pre-wrap"
    CONVERT = "convert"
    DIRECT_APPLY = "direct-apply"
    ENTRY_POINT = "entry-point"
    IMPORTS = "imports"
    DONE = "done"


_TRANSITIONS = {
    Stage.SCAN: Stage.PRE_WRAP,
    Stage.PRE_WRAP: Stage.CONVERT,
    Stage.CONVERT: Stage.DIRECT_APPLY,
    Stage.DIRECT_APPLY: Stage.ENTRY_POINT,
    Stage.ENTRY_POINT: Stage.IMPORTS,
    Stage.IMPORTS: Stage.DONE,
}


@dataclass(frozen=True)
class MemberReport:
    """What happened to one annotated member."""

    class_name: str
    member: str
    annotation: str
    construct: Optional[str]
    ok: bool
    message: Optional[str] = None

    @property
    def status(self) -> str:
        return "transformed" if self.ok else "failed"

    def to_dict(self) -> Dict[str, object]:
        return {
            "class": self.class_name,
            "member": self.member,
            "annotation": self.annotation,
            "construct": self.construct,
            "status": self.status,
            "message": self.message,
        }


@dataclass(frozen=True)
class TransformOutcome:
    source: str
    changed: bool
    members: Tuple[MemberReport, ...] = ()
    skipped_classes: Tuple[str, ...] = ()

    @property
    def failures(self) -> Tuple[MemberReport, ...]:
        return tuple(member for member in self.members if not member.ok)


@dataclass
class _Run:
    """Mutable bookkeeping for one ``transform`` call."""

    source: SourceText
    stage: Stage = Stage.SCAN
    analysis: Optional[UnitAnalysis] = None
    wraps: Dict[int, List[WrapTarget]] = field(default_factory=dict)
    class_edits: List[Edit] = field(default_factory=list)
    entry_edits: List[Edit] = field(default_factory=list)
    import_edits: List[Edit] = field(default_factory=list)

    def advance(self, expected: Stage) -> None:
        if self.stage is not expected:
            raise TransformationError(f"stage {expected.value} cannot run during {self.stage.value}")
        self.stage = _TRANSITIONS[expected]


def _member_indent(node: ClassDecl, source: SourceText) -> str:
    if node.members:
        return source.indent_at(node.members[0].start)
    return source.indent_at(node.start) + DEFAULT_INDENT


def _calls(source: SourceText, node: Any, name: str) -> bool:
    return any(
        occurrence.role == CALL and occurrence.name == name
        for occurrence in iter_occurrences(source, node)
    )


def _qualify_declaration(text: str, fields: Set[str], statics: Set[str], class_name: str) -> str:
    """Apply widget qualification to a generated declaration."""
    if not fields and not statics:
        return text
    wrapper = "class _Generated {\n" + text + "\n}"
    source = SourceText(wrapper)
    try:
        member = next(source.unit.classes()).members[0]
    except DartSyntaxError as exc:
        _LOGGER.warning("Could not qualify widget references in %r: %s", text, exc)
        return text
    if member.is_opaque:
        _LOGGER.warning("Could not qualify widget references in %r: %s", text, member.error)
        return text
    edits = widget_reference_edits(source, member, fields, statics, class_name)
    return apply_edits(wrapper, edits, member.start, member.end)


class Transformer:
    """Rewrites annotated Dart source into flutter_solidart code."""

    def __init__(
        self,
        runtime_import: str = RUNTIME_IMPORT,
        annotations_import: str = ANNOTATIONS_IMPORT,
    ) -> None:
        self.runtime_import = runtime_import
        self.annotations_import = annotations_import

    def transform(self, text: str, path: Optional[str] = None) -> TransformOutcome:
        """Transform one unit. Raises ``DartSyntaxError`` when it cannot be parsed."""
        run = _Run(SourceText(text, path))
        self._scan(run)
        self._pre_wrap(run)
        self._convert(run)
        self._direct_apply(run)
        self._entry_point(run)
        self._imports(run)

        edits = run.class_edits + run.entry_edits + run.import_edits
        output = apply_edits(text, edits) if edits else text
        analysis = run.analysis
        assert analysis is not None
        reports = tuple(
            MemberReport(
                class_name=plan.name,
                member=member.name,
                annotation=member.kind.annotation_name,
                construct=member.construct,
                ok=member.ok,
                message=None if member.ok else str(member.error),
            )
            for plan in analysis.classes
            for member in plan.members
        )
        skipped = tuple(plan.name for plan in analysis.classes if plan.skipped_reason is not None)
        _LOGGER.debug("Applied %d edits to %s", len(edits), path or "<source>")
        return TransformOutcome(output, output != text, reports, skipped)

    # ------------------------------------------------------------
    # stages
    # ------------------------------------------------------------

    def _scan(self, run: _Run) -> None:
        run.advance(Stage.SCAN)
        run.analysis = scan_unit(run.source)

    def _pre_wrap(self, run: _Run) -> None:
        run.advance(Stage.PRE_WRAP)
        for plan in run.analysis.transformable:
            build = plan.build_method()
            if build is None or build.body is None:
                continue
            reactive = plan.value_names + plan.resource_names
            targets = find_wrap_targets(build, reactive, plan.resource_names, run.source)
            if targets:
                run.wraps[id(plan.node)] = targets

    def _convert(self, run: _Run) -> None:
        run.advance(Stage.CONVERT)
        for plan in run.analysis.transformable:
            if plan.converts:
                run.class_edits.append(self._convert_class(plan, run))

    def _direct_apply(self, run: _Run) -> None:
        run.advance(Stage.DIRECT_APPLY)
        for plan in run.analysis.transformable:
            if not plan.converts:
                run.class_edits.extend(self._class_edits(plan, run))

    def _entry_point(self, run: _Run) -> None:
        run.advance(Stage.ENTRY_POINT)
        source = run.source
        main = source.unit.function("main")
        if main is None or main.body.kind == "empty" or not _calls(source, main.body.node, "runApp"):
            return
        if "SolidartConfig.autoDispose = false" in source.text:
            return
        run.entry_edits.append(self._entry_edit(main, source))

    def _imports(self, run: _Run) -> None:
        run.advance(Stage.IMPORTS)
        source = run.source
        changed = bool(run.class_edits or run.entry_edits)
        if not changed and "SolidartConfig" not in source.text:
            return
        directives = source.unit.directives
        imports = [d for d in directives if d.keyword == "import"]
        has_runtime = any(d.uri == self.runtime_import for d in imports)
        annotations = next((d for d in imports if d.uri == self.annotations_import), None)
        # Failed or skipped markers still need their annotation classes.
        keep_annotations = run.analysis.has_failures
        runtime_line = f"import '{self.runtime_import}';"

        if annotations is not None and not keep_annotations:
            if has_runtime:
                run.import_edits.append(self._delete_line(annotations, source))
            else:
                run.import_edits.append(Edit(annotations.start, annotations.end, runtime_line))
            return
        if has_runtime:
            return
        anchor = self._import_anchor(directives)
        if anchor is None:
            run.import_edits.append(Edit.insert(0, runtime_line + "\n\n"))
        else:
            run.import_edits.append(Edit.insert(anchor.end, "\n" + runtime_line))

    # ------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------

    @staticmethod
    def _import_anchor(directives: Sequence[Directive]) -> Optional[Directive]:
        imports = [d for d in directives if d.keyword == "import"]
        if imports:
            return imports[-1]
        libraries = [d for d in directives if d.keyword == "library"]
        return libraries[-1] if libraries else None

    @staticmethod
    def _delete_line(directive: Directive, source: SourceText) -> Edit:
        end = directive.end
        if source.text[end : end + 1] == "\n":
            end += 1
        return Edit(directive.start, end, "")

    @staticmethod
    def _entry_edit(main: FunctionDecl, source: SourceText) -> Edit:
        body = main.body
        if body.kind == "block" and body.block is not None:
            indent = statement_indent(body.block, source)
            return Edit.insert(source.start(body.block) + 1, f"\n{indent}{AUTO_DISPOSE_STATEMENT}")
        indent = source.indent_at(main.start) + DEFAULT_INDENT
        modifier = f"{body.modifier} " if body.modifier else ""
        expression = source.slice(body.expression)
        replacement = (
            f"{modifier}{{\n"
            f"{indent}{AUTO_DISPOSE_STATEMENT}\n"
            f"{indent}{expression};\n"
            f"{source.indent_at(main.start)}}}"
        )
        return Edit(body.start, body.end, replacement)

    def _annotated_ids(self, plan: ClassPlan) -> Set[int]:
        return {id(member.node) for member in plan.members}

    def _body_edits(self, member: Member, plan: ClassPlan, source: SourceText) -> List[Edit]:
        return accessor_edits(source, member, plan.value_names, plan.environment_names)

    def _lifecycle(
        self, plan: ClassPlan, source: SourceText, is_state_class: bool
    ) -> Tuple[Dict[int, List[Edit]], List[str]]:
        """Merge edits keyed by method, and rendered methods still missing."""
        indent = _member_indent(plan.node, source)
        merges: Dict[int, List[Edit]] = {}
        rendered: List[str] = []
        init_state = find_method(plan.node, "initState")
        dispose = find_method(plan.node, "dispose")
        if plan.effect_names:
            if init_state is not None:
                merges[id(init_state)] = init_state_edits(init_state, plan.effect_names, source, is_state_class)
            elif is_state_class:
                rendered.append(render_init_state(plan.effect_names, indent))
        if plan.disposable_names:
            if dispose is not None:
                merges[id(dispose)] = dispose_edits(dispose, plan.disposable_names, source, is_state_class)
            else:
                rendered.append(render_dispose(plan.disposable_names, indent, is_state_class))
        return merges, rendered

    def _build_edits(self, build: Member, inner: List[Edit], run: _Run, plan: ClassPlan) -> List[Edit]:
        targets = run.wraps.get(id(plan.node), [])
        if not targets:
            return inner
        return apply_wraps(targets, inner, run.source)

    def _class_edits(self, plan: ClassPlan, run: _Run) -> List[Edit]:
        """Edits for a class that keeps its shape (State or plain class)."""
        source = run.source
        node = plan.node
        annotated = self._annotated_ids(plan)
        merges, rendered = self._lifecycle(plan, source, plan.is_state_class)
        build = plan.build_method()
        edits: List[Edit] = []
        for member in node.members:
            reactive = plan.reactive_for(member)
            if reactive is not None:
                if reactive.ok:
                    edits.append(Edit(member.start, member.end, reactive.generated))
                continue
            if id(member) in annotated or member.is_opaque:
                continue
            inner = self._body_edits(member, plan, source) + merges.get(id(member), [])
            if member is build:
                inner = self._build_edits(build, inner, run, plan)
            edits.extend(inner)

        if rendered:
            indent = _member_indent(node, source)
            text = f"\n\n{indent}".join(rendered)
            if plan.is_state_class and build is not None:
                edits.append(Edit.insert(build.start, f"{text}\n\n{indent}"))
            elif node.members:
                edits.append(Edit.insert(node.members[-1].end, f"\n\n{indent}{text}"))
            else:
                edits.append(Edit.insert(node.body_start + 1, f"\n{indent}{text}\n"))
        return edits

    def _convert_class(self, plan: ClassPlan, run: _Run) -> Edit:
        """Replace a ``StatelessWidget`` with a ``StatefulWidget`` + ``State`` pair."""
        source = run.source
        node = plan.node
        annotated = self._annotated_ids(plan)
        fields, statics = widget_field_names(node, annotated)
        merges, rendered = self._lifecycle(plan, source, True)
        build = plan.build_method()

        widget_members: List[str] = []
        state_members: List[str] = []
        failed: List[str] = []
        build_text = ""
        for member in node.members:
            if is_widget_member(member, annotated):
                widget_members.append(source.slice(member))
                continue
            reactive = plan.reactive_for(member)
            if reactive is not None:
                if not reactive.ok:
                    failed.append(source.slice(member))
                continue
            inner = (
                self._body_edits(member, plan, source)
                + widget_reference_edits(source, member, fields, statics, node.name)
                + merges.get(id(member), [])
            )
            if member is build:
                build_text = member_text(member, self._build_edits(build, inner, run, plan), source)
            else:
                state_members.append(member_text(member, edits_within(member, inner), source))

        declarations = tuple(
            _qualify_declaration(member.generated, fields, statics, node.name)
            for member in plan.members
            if member.ok
        )
        pieces = ConvertedPieces(
            widget_members=tuple(widget_members),
            declarations=declarations,
            lifecycle=tuple(rendered),
            state_members=tuple(state_members + failed),
            build=build_text,
        )
        indent = _member_indent(node, source)
        _LOGGER.debug("Converting %s to a StatefulWidget", node.name)
        return Edit(node.start, node.end, render_widget_pair(node, pieces, source, indent))


def transform_source(text: str, path: Optional[str] = None) -> TransformOutcome:
    return Transformer().transform(text, path)


__all__ = [
    "ANNOTATIONS_IMPORT",
    "AUTO_DISPOSE_STATEMENT",
    "MemberReport",
    "RUNTIME_IMPORT",
    "Stage",
    "TransformOutcome",
    "Transformer",
    "transform_source",
]
