"""Declaration analysis: fields, getters and methods to descriptors."""

from __future__ import annotations

from typing import Optional

from ..dart.nodes import Body, Member, Parameter, significant_children
from ..dart.source import SourceText, Span
from ..errors import AnalysisError
from ..models import FieldDescriptor, GetterDescriptor, MethodDescriptor, ParameterDescriptor
from ..result import Failure, Result, Success


def analyze_field(member: Member, source: SourceText) -> Result[FieldDescriptor]:
    """Describe the first variable of a field declaration."""
    location = source.location(member)
    try:
        if not member.variables:
            return Failure(AnalysisError("field declares no variables", "<field>", location))
        first = member.variables[0]
        declared_type = member.declared_type or "dynamic"
        return Success(
            FieldDescriptor(
                name=first.name,
                declared_type=declared_type,
                initializer_text=source.slice(first.initializer) if first.initializer else None,
                is_nullable=declared_type.endswith("?"),
                is_final="final" in member.modifiers,
                is_const="const" in member.modifiers,
                location=location,
                has_declared_type=member.declared_type is not None,
            )
        )
    except Exception as exc:  # pragma: no cover - defensive guard
        return Failure(AnalysisError(f"failed to analyze field: {exc}", "<field>", location))


def getter_expression(body: Optional[Body], source: SourceText) -> Optional[Span]:
    """The span of the expression a getter returns: arrow body, or a trailing ``return``."""
    if body is None:
        return None
    if body.kind == "expression":
        return body.expression
    if body.kind == "block" and body.block is not None:
        statements = [child for child in significant_children(body.block) if child.is_named]
        if statements and statements[-1].type == "return_statement":
            values = [child for child in statements[-1].children if child.type not in ("return", ";")]
            if values:
                return source.start(values[0]), source.end(values[-1])
    return None


def analyze_getter(member: Member, source: SourceText) -> Result[GetterDescriptor]:
    location = source.location(member)
    try:
        return_type = member.declared_type or "dynamic"
        expression = getter_expression(member.body, source)
        return Success(
            GetterDescriptor(
                name=member.name,
                return_type=return_type,
                body_expression_text=source.slice(expression) if expression is not None else "",
                is_nullable=return_type.endswith("?"),
                location=location,
            )
        )
    except Exception as exc:  # pragma: no cover - defensive guard
        return Failure(AnalysisError(f"failed to analyze getter: {exc}", member.name, location))


def _describe_parameter(parameter: Parameter) -> ParameterDescriptor:
    return ParameterDescriptor(
        name=parameter.name,
        type=parameter.type or "dynamic",
        is_optional=parameter.kind != "positional" and not parameter.required,
        is_named=parameter.kind == "named",
        default_value=parameter.default_value,
    )


def method_body_text(body: Optional[Body], source: SourceText) -> str:
    """Body text without its modifier: ``{...}`` or ``=> expr;``."""
    if body is None:
        return "{}"
    if body.kind == "block" and body.block is not None:
        return source.slice(body.block)
    if body.kind == "expression" and body.expression is not None:
        return f"=> {source.slice(body.expression)};"
    return "{}"


def analyze_method(member: Member, source: SourceText) -> Result[MethodDescriptor]:
    location = source.location(member)
    try:
        modifier = member.body.modifier if member.body is not None else ""
        return Success(
            MethodDescriptor(
                name=member.name,
                return_type=member.declared_type or "void",
                body_text=method_body_text(member.body, source),
                parameters=tuple(_describe_parameter(parameter) for parameter in member.parameters),
                is_async=modifier in ("async", "async*"),
                location=location,
                is_expression_body=member.body is not None and member.body.kind == "expression",
                body_modifier=modifier,
            )
        )
    except Exception as exc:  # pragma: no cover - defensive guard
        return Failure(AnalysisError(f"failed to analyze method: {exc}", member.name, location))


__all__ = [
    "analyze_field",
    "analyze_getter",
    "analyze_method",
    "getter_expression",
    "method_body_text",
]
