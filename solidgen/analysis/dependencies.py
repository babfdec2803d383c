"""Dependency extraction over the tree-sitter Dart syntax tree.

A reference is an ``identifier`` in expression position. Identifiers that
name a member (``a.b`` contributes ``a``, never ``b``), label a named
argument, name a call target (``c(d)`` contributes only ``d``) or declare
something are not references. Type positions use ``type_identifier`` in
the grammar, so they never show up here. Closure parameters are resolved
by walking the ancestor chain to every enclosing function.

This is a syntactic heuristic: a local variable that shadows a sibling
declaration is still reported. Callers narrow the result to the names they
actually own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple

from ..dart.nodes import (
    ANNOTATION_TYPES,
    DIRECTIVE_TYPES,
    IDENTIFIER_TYPES,
    PARAMETER_TYPES,
    Member,
    first_child,
    is_call_part,
    read_parameters,
    same_node,
    sibling,
)
from ..dart.source import SourceText, Span
from ..models import DependencySet

BUILTIN_TYPE_NAMES = frozenset(
    {
        "int",
        "double",
        "num",
        "String",
        "bool",
        "List",
        "Map",
        "Set",
        "Future",
        "Stream",
        "Duration",
        "DateTime",
        "Object",
        "dynamic",
        "Iterable",
    }
)

FLUTTER_CLASS_NAMES = frozenset(
    {
        "Widget",
        "State",
        "StatefulWidget",
        "StatelessWidget",
        "BuildContext",
        "MaterialApp",
        "Scaffold",
        "AppBar",
        "Text",
        "ElevatedButton",
        "CircularProgressIndicator",
        "SizedBox",
        "Column",
        "Row",
        "Center",
        "Container",
    }
)

LANGUAGE_WORDS = frozenset({"this", "super", "null", "true", "false"})

DEFAULT_EXCLUDED = BUILTIN_TYPE_NAMES | FLUTTER_CLASS_NAMES | LANGUAGE_WORDS

# Occurrence roles.
REFERENCE = "reference"
CALL = "call"
MEMBER = "member"
THIS_MEMBER = "this"
DECLARATION = "declaration"
LABEL = "label"

# Subtrees that never contain expression-position references.
_OPAQUE_TYPES = ANNOTATION_TYPES | DIRECTIVE_TYPES | {"type_arguments", "type_parameters"}

_NAMED_BY_FIRST = frozenset(
    {
        "initialized_variable_definition",
        "initialized_identifier",
        "static_final_declaration",
        "function_signature",
        "getter_signature",
        "setter_signature",
        "class_definition",
        "enum_declaration",
        "enum_constant",
        "mixin_declaration",
        "extension_declaration",
        "type_alias",
    }
)
_ALL_DECLARE = frozenset(
    {
        "constructor_signature",
        "constant_constructor_signature",
        "factory_constructor_signature",
        "redirecting_factory_constructor_signature",
        "catch_parameters",
        "type_parameter",
    }
)


@dataclass(frozen=True)
class Reference:
    """One identifier occurrence and its ancestors, outermost first.

    ``interpolation`` is the span of an unbraced ``$name`` inside a string;
    ``qualifier`` is the span of ``this`` in ``this.name``.
    """

    node: Any
    ancestors: Tuple[Any, ...]
    name: str
    start: int
    end: int
    role: str
    shadowed: bool = False
    interpolation: Optional[Span] = None
    qualifier: Optional[Span] = None

    @property
    def parent(self) -> Optional[Any]:
        return self.ancestors[-1] if self.ancestors else None


def _skip_space_back(text: str, offset: int) -> int:
    while offset > 0 and text[offset - 1].isspace():
        offset -= 1
    return offset


def _qualifier(text: str, offset: int) -> Optional[Tuple[str, int]]:
    """For ``x.name`` at ``offset``: the word before the dot and where it starts."""
    index = _skip_space_back(text, offset)
    if index == 0 or text[index - 1] != ".":
        return None
    if text[max(0, index - 3) : index] == "...":
        return None
    dot = index - 1
    if dot > 0 and text[dot - 1] == "?":
        dot -= 1
    end = _skip_space_back(text, dot)
    start = end
    while start > 0 and (text[start - 1].isalnum() or text[start - 1] in "_$"):
        start -= 1
    return text[start:end], start


def _declares(parent: Any, node: Any) -> bool:
    if parent.type in _ALL_DECLARE:
        return True
    identifiers = [child for child in parent.children if child.type in IDENTIFIER_TYPES]
    if not identifiers:
        return False
    if parent.type in _NAMED_BY_FIRST:
        return same_node(identifiers[0], node)
    if parent.type in PARAMETER_TYPES:
        return same_node(identifiers[-1], node)
    if parent.type == "for_loop_parts":
        for child in parent.children:
            if child.type == "in":
                return False
            if same_node(child, node):
                return any(item.type == "in" for item in parent.children)
    return False


def _parameter_list(node: Any) -> Optional[Any]:
    found = first_child(node, "formal_parameter_list")
    if found is not None:
        return found
    for child in node.children:
        found = first_child(child, "formal_parameter_list")
        if found is not None:
            return found
    return None


def _function_parameters(
    source: SourceText, ancestor: Any, parent: Optional[Any], cache: Dict[Tuple[int, int], FrozenSet[str]]
) -> FrozenSet[str]:
    key = (ancestor.start_byte, ancestor.end_byte)
    if key in cache:
        return cache[key]
    names: FrozenSet[str] = frozenset()
    if ancestor.type == "function_expression":
        parameters = read_parameters(source, first_child(ancestor, "formal_parameter_list"))
        names = frozenset(parameter.name for parameter in parameters)
    elif ancestor.type == "function_body" and parent is not None:
        signature = sibling(parent, ancestor, -1)
        if signature is not None:
            parameters = read_parameters(source, _parameter_list(signature))
            names = frozenset(parameter.name for parameter in parameters)
    cache[key] = names
    return names


def closure_parameters(
    source: SourceText,
    ancestors: Iterable[Any],
    cache: Optional[Dict[Tuple[int, int], FrozenSet[str]]] = None,
) -> set[str]:
    """Names bound by every enclosing function, closure or method."""
    cache = {} if cache is None else cache
    chain = list(ancestors)
    names: set[str] = set()
    for index, ancestor in enumerate(chain):
        if ancestor.type in ("function_expression", "function_body"):
            parent = chain[index - 1] if index > 0 else None
            names.update(_function_parameters(source, ancestor, parent, cache))
    return names


def _classify(
    source: SourceText,
    node: Any,
    ancestors: Tuple[Any, ...],
    bound: FrozenSet[str],
    cache: Dict[Tuple[int, int], FrozenSet[str]],
) -> Reference:
    text = source.text
    name = source.slice(node)
    start, end = source.span(node)
    interpolation: Optional[Span] = None
    if name.startswith("$"):
        interpolation = (start, end)
        name = name[1:]
        start += 1
    elif start > 0 and text[start - 1] == "$":
        interpolation = (start - 1, end)
    parent = ancestors[-1] if ancestors else None
    qualifier: Optional[Span] = None
    if parent is not None and parent.type == "label":
        role = LABEL
    elif parent is not None and _declares(parent, node):
        role = DECLARATION
    else:
        qualified = _qualifier(text, start) if interpolation is None else None
        if qualified is not None:
            word, word_start = qualified
            role = THIS_MEMBER if word == "this" else MEMBER
            if role == THIS_MEMBER:
                qualifier = (word_start, word_start + len(word))
        elif parent is not None and is_call_part(source, sibling(parent, node)):
            role = CALL
        else:
            role = REFERENCE
    shadowed = False
    if role in (REFERENCE, CALL):
        shadowed = name in bound or name in closure_parameters(source, ancestors, cache)
    return Reference(node, ancestors, name, start, end, role, shadowed, interpolation, qualifier)


def iter_occurrences(
    source: SourceText,
    root: Any,
    within: Optional[Span] = None,
    bound: Iterable[str] = (),
) -> Iterator[Reference]:
    """Yield every identifier occurrence under ``root`` in document order.

    ``root`` is a tree-sitter node or a ``Member``, whose parameters are
    treated as bound. ``within`` limits the walk to one span.
    """
    names = frozenset(bound)
    if isinstance(root, Member):
        parts = root.parts
        names |= root.parameter_names
    else:
        parts = (root,)
    cache: Dict[Tuple[int, int], FrozenSet[str]] = {}
    for part in parts:
        stack: List[Tuple[Any, Tuple[Any, ...]]] = [(part, ())]
        while stack:
            node, ancestors = stack.pop()
            if node.type in _OPAQUE_TYPES:
                continue
            if within is not None:
                start, end = source.span(node)
                if end <= within[0] or start >= within[1]:
                    continue
            if node.type in IDENTIFIER_TYPES:
                yield _classify(source, node, ancestors, names, cache)
                continue
            child_ancestors = ancestors + (node,)
            for child in reversed(node.children):
                stack.append((child, child_ancestors))


def iter_references(
    source: SourceText, root: Any, within: Optional[Span] = None
) -> Iterator[Reference]:
    """Yield the reference occurrences under ``root`` in document order."""
    for occurrence in iter_occurrences(source, root, within):
        if occurrence.role == REFERENCE and not occurrence.shadowed:
            yield occurrence


class DependencyVisitor:
    """Collects dependency names from one or more subtrees."""

    def __init__(self, source: SourceText, excluded: Iterable[str] = DEFAULT_EXCLUDED) -> None:
        self.source = source
        self.excluded = frozenset(excluded)
        self._names: List[str] = []

    def visit(self, node: Optional[Any], within: Optional[Span] = None) -> "DependencyVisitor":
        if node is None:
            return self
        for reference in iter_references(self.source, node, within):
            name = reference.name
            if name in self.excluded or name in self._names:
                continue
            self._names.append(name)
        return self

    @property
    def dependencies(self) -> DependencySet:
        return tuple(self._names)


def extract_dependencies(
    source: SourceText, node: Optional[Any], within: Optional[Span] = None
) -> DependencySet:
    """Names ``node`` reads, in first-occurrence order without duplicates."""
    return DependencyVisitor(source).visit(node, within).dependencies


__all__ = [
    "BUILTIN_TYPE_NAMES",
    "CALL",
    "DECLARATION",
    "DEFAULT_EXCLUDED",
    "DependencyVisitor",
    "FLUTTER_CLASS_NAMES",
    "LABEL",
    "MEMBER",
    "REFERENCE",
    "Reference",
    "THIS_MEMBER",
    "closure_parameters",
    "extract_dependencies",
    "iter_occurrences",
    "iter_references",
]
