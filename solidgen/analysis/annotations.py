"""Reactive annotation matching."""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..dart.nodes import Annotation, Member, significant_children, walk
from ..dart.source import SourceText
from ..errors import AnnotationParseError
from ..models import AnnotationDescriptor, AnnotationKind
from ..result import Failure, Result, Success

MARKER_NAMES: Dict[str, AnnotationKind] = {kind.annotation_name: kind for kind in AnnotationKind}


def member_metadata(member: Member) -> Sequence[Annotation]:
    return getattr(member, "metadata", ())


def find_annotation(member: Member, kind: AnnotationKind) -> Optional[Annotation]:
    """Return the annotation named for ``kind``; a ``prefix.`` qualifier is ignored."""
    for annotation in member_metadata(member):
        if annotation.simple_name == kind.annotation_name:
            return annotation
    return None


def find_marker(member: Member) -> Optional[AnnotationKind]:
    """Return the first reactive marker kind present on ``member``, if any."""
    for annotation in member_metadata(member):
        kind = MARKER_NAMES.get(annotation.simple_name)
        if kind is not None:
            return kind
    return None


def has_marker(member: Member) -> bool:
    return find_marker(member) is not None


def match_annotation(member: Member, kind: AnnotationKind, source: SourceText) -> Result[AnnotationDescriptor]:
    """Read ``kind``'s annotation on ``member`` into an ``AnnotationDescriptor``.

    Presence of the annotation is the only hard requirement. Arguments are
    read syntactically and malformed ones are dropped: ``name`` must be a
    plain string literal, ``useRefreshing`` a boolean literal, and
    ``debounce`` is captured as verbatim source text.
    """
    name = kind.annotation_name
    location = source.location(member)
    try:
        annotation = find_annotation(member, kind)
        if annotation is None:
            return Failure(AnnotationParseError(f"@{name} annotation not found", name, location))
        return Success(_describe(annotation, kind, source))
    except Exception as exc:  # pragma: no cover - defensive guard
        return Failure(AnnotationParseError(f"failed to read @{name}: {exc}", name, location))


def named_arguments(arguments: Optional[Any], source: SourceText) -> Dict[str, Sequence[Any]]:
    """Label to value nodes for each ``label: value`` in an ``arguments`` node."""
    result: Dict[str, Sequence[Any]] = {}
    if arguments is None:
        return result
    for argument in significant_children(arguments):
        if argument.type != "named_argument":
            continue
        children = significant_children(argument)
        if not children or children[0].type != "label":
            continue
        label = source.slice(children[0]).rstrip(":").strip()
        result[label] = children[1:]
    return result


def _describe(annotation: Annotation, kind: AnnotationKind, source: SourceText) -> AnnotationDescriptor:
    custom_name: Optional[str] = None
    debounce: Optional[str] = None
    use_refreshing: Optional[bool] = None
    for label, value in named_arguments(annotation.arguments, source).items():
        if not value:
            continue
        text = source.slice(source.start(value[0]), source.end(value[-1]))
        if label == "name":
            custom_name = plain_string_value(value[0], source) if len(value) == 1 else None
        elif label == "debounce":
            debounce = text
        elif label == "useRefreshing":
            if text in ("true", "false"):
                use_refreshing = text == "true"
    return AnnotationDescriptor(
        kind=kind,
        custom_name=custom_name,
        debounce_expression=debounce,
        use_refreshing=use_refreshing,
    )


def _contains_unescaped(body: str, token: str, raw: bool) -> bool:
    index = 0
    while index < len(body):
        if not raw and body[index] == "\\":
            index += 2
            continue
        if body.startswith(token, index):
            return True
        index += 1
    return False


def plain_string_value(node: Any, source: SourceText) -> Optional[str]:
    """Body of a single, interpolation-free string literal; ``None`` otherwise."""
    if node is None or node.type != "string_literal":
        return None
    text = source.slice(node)
    raw = text.startswith(("r", "R"))
    if not raw and any(child.type == "template_substitution" for child in walk(node)):
        return None
    if raw:
        text = text[1:]
    quote = text[:3] if text[:3] in ("'''", '"""') else text[:1]
    if quote not in ("'", '"', "'''", '"""') or len(text) < 2 * len(quote) or not text.endswith(quote):
        return None
    body = text[len(quote) : len(text) - len(quote)]
    # adjacent literals ('a' 'b') form one string_literal node
    if _contains_unescaped(body, quote, raw):
        return None
    if not raw and _contains_unescaped(body, "$", raw):
        return None
    return body


__all__ = [
    "MARKER_NAMES",
    "find_annotation",
    "find_marker",
    "has_marker",
    "match_annotation",
    "member_metadata",
    "named_arguments",
    "plain_string_value",
]
