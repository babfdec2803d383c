"""Pure generators for flutter_solidart declarations.

Every function here maps descriptors to text deterministically: the same
inputs always give byte-identical output. Failures come back as
``Failure`` values instead of exceptions.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Sequence

from ..errors import CodeGenerationError, TransformationError, ValidationError
from ..models import (
    AnnotationDescriptor,
    AnnotationKind,
    DependencySet,
    FieldDescriptor,
    GetterDescriptor,
    MethodDescriptor,
)
from ..result import Failure, Result, Success
from .accessors import rewrite_accessors

_LIST_TYPE = re.compile(r"^List(<.*>)?$")
_MAP_OR_SET_TYPE = re.compile(r"^(Map|Set)(<.*>)?$")
_ASYNC_WRAPPER = re.compile(r"^(Future|FutureOr|Stream)<(.*)>$", re.DOTALL)

# member kind -> annotation kinds that may decorate it
_VALID_TARGETS = {
    AnnotationKind.STATE: ("field", "getter"),
    AnnotationKind.EFFECT: ("method",),
    AnnotationKind.QUERY: ("method",),
    AnnotationKind.ENVIRONMENT: ("field",),
}


def default_value(declared_type: str, is_nullable: bool = False) -> str:
    """Initial value for a state field declared without an initializer."""
    base = declared_type.strip()
    if is_nullable or base.endswith("?"):
        return "null"
    if base in ("int", "num"):
        return "0"
    if base == "double":
        return "0.0"
    if base == "bool":
        return "false"
    if base == "String":
        return "''"
    if _LIST_TYPE.match(base):
        return "[]"
    if _MAP_OR_SET_TYPE.match(base):
        return "{}"
    return "null"


def unwrap_async_type(return_type: str) -> Optional[str]:
    """``T`` for ``Future<T>``/``FutureOr<T>``/``Stream<T>``; ``None`` otherwise."""
    match = _ASYNC_WRAPPER.match(return_type.strip())
    return match.group(2).strip() if match else None


def is_stream_type(return_type: str) -> bool:
    return return_type.strip().startswith("Stream<")


def quote_label(label: str) -> str:
    """Single-quoted Dart string literal for a debug label."""
    escaped = re.sub(r"(?<!\\)'", r"\\'", label)
    return f"'{escaped}'"


def validate_target(kind: AnnotationKind, member_kind: str, location: Optional[str] = None) -> Optional[ValidationError]:
    """Return the error for an annotation placed on the wrong declaration kind."""
    if member_kind in _VALID_TARGETS[kind]:
        return None
    article = "an" if member_kind[:1] in "aeiou" else "a"
    return ValidationError.invalid_target(kind.annotation_name, f"{article} {member_kind}", location)


def _closure(body_text: str, modifier: str, is_expression: bool) -> str:
    prefix = f"() {modifier} " if modifier else "() "
    if is_expression:
        expression = body_text.strip()
        if expression.startswith("=>"):
            expression = expression[2:].strip()
        if expression.endswith(";"):
            expression = expression[:-1].rstrip()
        return f"{prefix}=> {expression}"
    return prefix + body_text


def _fail(exc: Exception, target_type: str, location: Optional[str]) -> Failure:
    if isinstance(exc, TransformationError):
        return Failure(exc)
    return Failure(CodeGenerationError(f"failed to generate {target_type}: {exc}", target_type, location))


def generate_signal(field: FieldDescriptor, annotation: AnnotationDescriptor) -> Result[str]:
    if field.declared_type.strip() == "void":
        return Failure(
            ValidationError.invalid_type("SolidState", "a state field cannot be void", field.location)
        )
    try:
        initial = field.initializer_text or default_value(field.declared_type, field.is_nullable)
        label = quote_label(annotation.label(field.name))
        return Success(
            f"final {field.name} = Signal<{field.declared_type}>({initial}, name: {label});"
        )
    except Exception as exc:  # pragma: no cover - defensive guard
        return _fail(exc, "Signal", field.location)


def generate_computed(
    getter: GetterDescriptor,
    annotation: AnnotationDescriptor,
    dependencies: DependencySet,
    environment_names: Sequence[str] = (),
) -> Result[str]:
    if not getter.body_expression_text.strip():
        return Failure(
            CodeGenerationError(
                f"getter {getter.name} does not end in a single return expression",
                "Computed",
                getter.location,
            )
        )
    try:
        expression = rewrite_accessors(getter.body_expression_text, dependencies, environment_names)
        modifier = "late final" if dependencies else "final"
        label = quote_label(annotation.label(getter.name))
        return Success(
            f"{modifier} {getter.name} = Computed<{getter.return_type}>(() => {expression}, name: {label});"
        )
    except Exception as exc:
        return _fail(exc, "Computed", getter.location)


def generate_effect(
    method: MethodDescriptor,
    annotation: AnnotationDescriptor,
    dependencies: DependencySet,
    environment_names: Sequence[str] = (),
) -> Result[str]:
    try:
        body = rewrite_accessors(method.body_text, dependencies, environment_names)
        closure = _closure(body, method.body_modifier, method.is_expression_body)
        label = quote_label(annotation.label(method.name))
        return Success(f"late final {method.name} = Effect({closure}, name: {label});")
    except Exception as exc:
        return _fail(exc, "Effect", method.location)


def generate_resource(
    method: MethodDescriptor,
    annotation: AnnotationDescriptor,
    dependencies: DependencySet,
    environment_names: Sequence[str] = (),
) -> Result[str]:
    value_type = unwrap_async_type(method.return_type)
    if value_type is None:
        return Failure(
            ValidationError.invalid_type(
                "SolidQuery",
                f"return type must be Future, FutureOr or Stream, not {method.return_type}",
                method.location,
            )
        )
    try:
        body = rewrite_accessors(method.body_text, dependencies, environment_names)
        constructor = f"Resource<{value_type}>.stream" if is_stream_type(method.return_type) else f"Resource<{value_type}>"
        parts = [_closure(body, method.body_modifier, method.is_expression_body)]
        if len(dependencies) == 1:
            parts.append(f"source: {dependencies[0]}")
        elif dependencies:
            values = ", ".join(f"{name}.value" for name in dependencies)
            source_label = quote_label(f"{method.name}Source")
            parts.append(f"source: Computed(() => ({values}), name: {source_label})")
        parts.append(f"name: {quote_label(annotation.label(method.name))}")
        if annotation.debounce_expression:
            debounce = annotation.debounce_expression.strip()
            if not debounce.startswith("const"):
                debounce = f"const {debounce}"
            parts.append(f"debounceDelay: {debounce}")
        if annotation.use_refreshing is not None:
            parts.append(f"useRefreshing: {'true' if annotation.use_refreshing else 'false'}")
        return Success(f"late final {method.name} = {constructor}({', '.join(parts)});")
    except Exception as exc:
        return _fail(exc, "Resource", method.location)


def generate_environment(field: FieldDescriptor) -> Result[str]:
    if not field.has_declared_type:
        return Failure(
            ValidationError.invalid_type(
                "SolidEnvironment", f"field {field.name} needs a declared type", field.location
            )
        )
    try:
        return Success(f"late final {field.name} = context.read<{field.declared_type}>();")
    except Exception as exc:  # pragma: no cover - defensive guard
        return _fail(exc, "Environment", field.location)


def generate_disposal(names: Iterable[str]) -> str:
    return "\n".join(f"{name}.dispose();" for name in names)


def generate_signal_builder(expression: str, indent: str = "") -> str:
    """Wrap ``expression`` in a ``SignalBuilder`` whose closing paren sits at ``indent``."""
    inner = expression.replace("\n", "\n    ")
    return (
        "SignalBuilder(\n"
        f"{indent}  builder: (context, child) {{\n"
        f"{indent}    return {inner};\n"
        f"{indent}  }},\n"
        f"{indent})"
    )


__all__ = [
    "default_value",
    "generate_computed",
    "generate_disposal",
    "generate_effect",
    "generate_environment",
    "generate_resource",
    "generate_signal",
    "generate_signal_builder",
    "is_stream_type",
    "quote_label",
    "unwrap_async_type",
    "validate_target",
]
