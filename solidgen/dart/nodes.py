"""Structural views over the tree-sitter Dart syntax tree.

tree-sitter produces a concrete syntax tree in which a class member is a
flat run of sibling nodes: metadata, a signature or declaration, an
optional ``function_body`` and a trailing ``;``. The views below group
those runs into the declarations the transformer works with. They keep
the underlying nodes so expression-level passes can still walk the tree,
and every offset they expose is a ``str`` offset into ``SourceText.text``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from .parser import DartSyntaxError, first_issue, has_error, raise_for_errors
from .source import SourceText, Span

ANNOTATION_TYPES = frozenset({"annotation", "marker_annotation"})
IDENTIFIER_TYPES = frozenset({"identifier", "identifier_dollar_escaped"})
DIRECTIVE_TYPES = frozenset(
    {"import_or_export", "library_name", "part_directive", "part_of_directive"}
)
VARIABLE_LIST_TYPES = frozenset({"initialized_identifier_list", "static_final_declaration_list"})
VARIABLE_TYPES = frozenset(
    {"initialized_identifier", "static_final_declaration", "initialized_variable_definition"}
)
PARAMETER_TYPES = frozenset({"formal_parameter", "constructor_param", "super_formal_parameter"})
SIGNATURE_KINDS = {
    "function_signature": "method",
    "getter_signature": "getter",
    "setter_signature": "setter",
    "operator_signature": "operator",
    "constructor_signature": "constructor",
    "constant_constructor_signature": "constructor",
    "factory_constructor_signature": "constructor",
    "redirecting_factory_constructor_signature": "constructor",
}
MODIFIER_WORDS = frozenset(
    {"abstract", "const", "covariant", "external", "final", "late", "required", "static", "var"}
)

_ANNOTATION_NAME = re.compile(r"@\s*([A-Za-z_$][\w$]*(?:\s*\.\s*[A-Za-z_$][\w$]*)*)")
_MEMBER_NAME = re.compile(r"[A-Za-z_$][\w$]*")
_DIRECTIVE_WORDS = frozenset({"import", "export", "library", "part"})
_SIGNATURE_WORDS = frozenset({"get", "set", "operator"})
_SNIPPET_HEAD = "void _snippet() "


# ---------------------------------------------------------------------------
# tree walking
# ---------------------------------------------------------------------------


def is_comment(node: Any) -> bool:
    return "comment" in node.type


def significant_children(node: Any) -> List[Any]:
    return [child for child in node.children if not is_comment(child)]


def first_child(node: Any, *types: str) -> Optional[Any]:
    for child in node.children:
        if child.type in types:
            return child
    return None


def same_node(left: Any, right: Any) -> bool:
    return (
        left.start_byte == right.start_byte
        and left.end_byte == right.end_byte
        and left.type == right.type
    )


def index_of(children: Sequence[Any], node: Any) -> int:
    for index, child in enumerate(children):
        if same_node(child, node):
            return index
    return -1


def sibling(parent: Any, node: Any, offset: int = 1) -> Optional[Any]:
    """The sibling ``offset`` places after (or, negative, before) ``node``."""
    children = parent.children
    index = index_of(children, node)
    if index < 0 or not 0 <= index + offset < len(children):
        return None
    return children[index + offset]


def walk(node: Any) -> Iterator[Any]:
    """Yield ``node`` and all of its descendants, pre-order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def walk_with_ancestors(
    node: Any, ancestors: Tuple[Any, ...] = ()
) -> Iterator[Tuple[Any, Tuple[Any, ...]]]:
    """Like ``walk`` but also yields each node's ancestors, outermost first."""
    stack: List[Tuple[Any, Tuple[Any, ...]]] = [(node, ancestors)]
    while stack:
        current, parents = stack.pop()
        yield current, parents
        if current.child_count:
            child_parents = parents + (current,)
            for child in reversed(current.children):
                stack.append((child, child_parents))


def is_call_part(source: SourceText, node: Optional[Any]) -> bool:
    """True for the argument (or type argument) selector that makes a call."""
    if node is None or node.type in IDENTIFIER_TYPES or node.type.endswith("operator"):
        return False
    text = source.slice(node).lstrip()
    return text.startswith("(") or text.startswith("<")


def member_part_name(source: SourceText, node: Optional[Any]) -> Optional[str]:
    """``when`` for a ``.when`` or ``?.when`` selector; ``None`` otherwise."""
    if node is None:
        return None
    text = source.slice(node).lstrip()
    if text.startswith("?."):
        text = text[2:]
    elif text.startswith(".") and not text.startswith(".."):
        text = text[1:]
    else:
        return None
    match = _MEMBER_NAME.match(text.lstrip())
    return match.group(0) if match else None


def unquote(text: str) -> str:
    body = text[1:] if text.startswith(("r", "R")) else text
    for quote in ("'''", '"""', "'", '"'):
        if len(body) >= 2 * len(quote) and body.startswith(quote) and body.endswith(quote):
            return body[len(quote) : len(body) - len(quote)]
    return body


# ---------------------------------------------------------------------------
# views
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class Annotation:
    """``@Name`` or ``@prefix.Name(args)``."""

    node: Any
    name: str
    start: int
    end: int
    arguments: Optional[Any]

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]


@dataclass(frozen=True, eq=False)
class Parameter:
    name: str
    type: Optional[str]
    kind: str
    required: bool
    default_value: Optional[str]


@dataclass(frozen=True, eq=False)
class Variable:
    name: str
    start: int
    end: int
    initializer: Optional[Span]


@dataclass(frozen=True, eq=False)
class Body:
    """A function body; ``kind`` is ``block``, ``expression`` or ``empty``."""

    node: Any
    start: int
    end: int
    kind: str
    modifier: str
    block: Optional[Any]
    expression: Optional[Span]


@dataclass(frozen=True, eq=False)
class Member:
    """One class member: its metadata plus the sibling nodes that declare it.

    ``kind`` is ``field``, ``method``, ``getter``, ``setter``, ``operator``,
    ``constructor`` or ``declaration``. A member whose nodes carry a syntax
    error is opaque: ``error`` describes the first problem and only its span
    and metadata are meaningful.
    """

    kind: str
    name: Optional[str]
    start: int
    end: int
    metadata: Tuple[Annotation, ...]
    parts: Tuple[Any, ...]
    modifiers: frozenset
    declared_type: Optional[str]
    variables: Tuple[Variable, ...]
    parameters: Tuple[Parameter, ...]
    body: Optional[Body]
    error: Optional[str] = None

    @property
    def is_opaque(self) -> bool:
        return self.error is not None

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers

    @property
    def parameter_names(self) -> frozenset:
        return frozenset(parameter.name for parameter in self.parameters)


@dataclass(frozen=True, eq=False)
class ClassDecl:
    node: Any
    name: str
    start: int
    end: int
    body_start: int
    type_parameters: str
    superclass: Optional[str]
    superclass_span: Optional[Span]
    members: Tuple[Member, ...]


@dataclass(frozen=True, eq=False)
class FunctionDecl:
    name: str
    start: int
    end: int
    return_type: Optional[str]
    parameters: Tuple[Parameter, ...]
    body: Body


@dataclass(frozen=True, eq=False)
class Directive:
    keyword: str
    uri: Optional[str]
    start: int
    end: int


@dataclass(frozen=True, eq=False)
class CompilationUnit:
    directives: Tuple[Directive, ...]
    class_declarations: Tuple[ClassDecl, ...]
    functions: Tuple[FunctionDecl, ...]

    def classes(self) -> Iterator[ClassDecl]:
        yield from self.class_declarations

    def function(self, name: str) -> Optional[FunctionDecl]:
        for function in self.functions:
            if function.name == name:
                return function
        return None


@dataclass(frozen=True, eq=False)
class Snippet:
    """Free-standing Dart code parsed inside a synthetic function."""

    source: SourceText
    node: Any
    start: int
    end: int

    @property
    def span(self) -> Span:
        return self.start, self.end

    @property
    def nodes(self) -> Tuple[Any, ...]:
        """Top-level syntax nodes of the wrapped code."""
        return tuple(
            child
            for child in significant_children(self.node)
            if self.start <= self.source.start(child) and self.source.end(child) <= self.end
        )


# ---------------------------------------------------------------------------
# readers
# ---------------------------------------------------------------------------


def _error_at(source: SourceText, offset: int, message: str) -> DartSyntaxError:
    line, col = source.index.line_col(offset)
    return DartSyntaxError(message, line, col)


def _text_between(source: SourceText, nodes: Sequence[Any]) -> Optional[str]:
    if not nodes:
        return None
    return source.slice(source.start(nodes[0]), source.end(nodes[-1]))


def _modifier(source: SourceText, start: int, end: int) -> str:
    return "".join(source.slice(start, end).split())


def read_annotation(source: SourceText, node: Any) -> Annotation:
    text = source.slice(node)
    match = _ANNOTATION_NAME.match(text)
    name = re.sub(r"\s+", "", match.group(1)) if match else text.lstrip("@")
    start, end = source.span(node)
    return Annotation(node, name, start, end, first_child(node, "arguments"))


def read_body(source: SourceText, node: Any, trailing: Optional[Any] = None) -> Body:
    start, end = source.span(node)
    if trailing is not None:
        end = source.end(trailing)
    children = significant_children(node)
    for index, child in enumerate(children):
        if child.type == "=>":
            rest = [item for item in children[index + 1 :] if item.type != ";"]
            expression = (source.start(rest[0]), source.end(rest[-1])) if rest else None
            modifier = _modifier(source, start, source.start(child))
            return Body(node, start, end, "expression", modifier, None, expression)
    block = first_child(node, "block")
    if block is not None:
        modifier = _modifier(source, start, source.start(block))
        return Body(node, start, end, "block", modifier, block, None)
    return Body(node, start, end, "empty", "", None, None)


def _parameter(
    source: SourceText, node: Any, kind: str, required: bool, default_value: Optional[str]
) -> Parameter:
    name_node = node.child_by_field_name("name")
    if name_node is None:
        identifiers = [item for item in walk(node) if item.type in IDENTIFIER_TYPES]
        name_node = identifiers[-1] if identifiers else None
    if name_node is None:
        words = source.slice(node).split()
        return Parameter(words[-1] if words else "", None, kind, required, default_value)
    prefix = source.slice(source.start(node), source.start(name_node)).split()
    if prefix and prefix[0] == "required":
        required = True
    while prefix and prefix[0] in MODIFIER_WORDS:
        prefix.pop(0)
    declared = " ".join(prefix) or None
    if declared is not None and declared.endswith("."):
        declared = None
    return Parameter(source.slice(name_node), declared, kind, required, default_value)


def read_parameters(source: SourceText, node: Optional[Any]) -> Tuple[Parameter, ...]:
    """Parameters of a ``formal_parameter_list``."""
    if node is None:
        return ()
    parameters: List[Parameter] = []
    for child in significant_children(node):
        if child.type in PARAMETER_TYPES:
            parameters.append(_parameter(source, child, "positional", True, None))
        elif child.type == "optional_formal_parameters":
            parameters.extend(_optional_parameters(source, child))
    return tuple(parameters)


def _optional_parameters(source: SourceText, node: Any) -> List[Parameter]:
    children = significant_children(node)
    kind = "named" if children and children[0].type == "{" else "optional"
    groups: List[List[Any]] = [[]]
    for child in children:
        if child.type in ("{", "}", "[", "]"):
            continue
        if child.type == ",":
            groups.append([])
        else:
            groups[-1].append(child)
    result: List[Parameter] = []
    for group in groups:
        declared = next((item for item in group if item.type in PARAMETER_TYPES), None)
        if declared is None:
            continue
        required = any(item.type == "required" for item in group)
        default = []
        for index, item in enumerate(group):
            if item.type in ("=", ":"):
                default = group[index + 1 :]
                break
        result.append(_parameter(source, declared, kind, required, _text_between(source, default)))
    return result


def _variable_groups(node: Any) -> List[List[Any]]:
    groups: List[List[Any]] = []
    current: List[Any] = []
    for child in node.children:
        if child.type == ",":
            if current:
                groups.append(current)
            current = []
        elif child.type in VARIABLE_TYPES:
            groups.append(list(child.children))
        elif not is_comment(child):
            current.append(child)
    if current:
        groups.append(current)
    return groups


def read_variables(source: SourceText, node: Any) -> Tuple[Variable, ...]:
    variables: List[Variable] = []
    for group in _variable_groups(node):
        name_node = next((item for item in group if item.type in IDENTIFIER_TYPES), None)
        if name_node is None:
            continue
        initializer: Optional[Span] = None
        for index, item in enumerate(group):
            if item.type == "=" and index + 1 < len(group):
                initializer = (source.start(group[index + 1]), source.end(group[-1]))
                break
        variables.append(
            Variable(
                source.slice(name_node),
                source.start(group[0]),
                source.end(group[-1]),
                initializer,
            )
        )
    return tuple(variables)


def _signature(head: Any) -> Optional[Any]:
    if head.type in SIGNATURE_KINDS:
        return head
    for child in head.children:
        if child.type in SIGNATURE_KINDS:
            return child
    return None


def _signature_name(source: SourceText, signature: Any, kind: str) -> Optional[str]:
    if kind == "constructor":
        names = [source.slice(child) for child in signature.children if child.type in IDENTIFIER_TYPES]
        return ".".join(names) or None
    if kind == "operator":
        return "operator"
    node = signature.child_by_field_name("name")
    if node is None:
        identifiers = [child for child in signature.children if child.type in IDENTIFIER_TYPES]
        node = identifiers[-1] if identifiers else None
    return source.slice(node) if node is not None else None


def _type_nodes(source: SourceText, children: Sequence[Any]) -> List[Any]:
    return [
        child
        for child in children
        if not is_comment(child)
        and child.type not in ANNOTATION_TYPES
        and source.slice(child) not in MODIFIER_WORDS
        and source.slice(child) not in _SIGNATURE_WORDS
    ]


def _modifiers(source: SourceText, nodes: Sequence[Any]) -> frozenset:
    words = set()
    for node in nodes:
        for child in node.children:
            text = source.slice(child)
            if text in MODIFIER_WORDS:
                words.add(text)
    return frozenset(words)


def _read_member(source: SourceText, metadata: List[Any], parts: List[Any]) -> Member:
    annotations = [read_annotation(source, node) for node in metadata]
    start = source.start(metadata[0] if metadata else parts[0])
    end = source.end(parts[-1] if parts else metadata[-1])
    if not parts:
        return Member(
            "declaration", None, start, end, tuple(annotations), (), frozenset(), None, (), (), None,
            error="annotation without a declaration",
        )
    head = parts[0]
    annotations.extend(
        read_annotation(source, child) for child in head.children if child.type in ANNOTATION_TYPES
    )
    error = None
    for part in parts:
        if has_error(part):
            issue = first_issue(part, source)
            error = issue.message if issue is not None else "malformed member"
            break
    signature = _signature(head)
    variable_list = first_child(head, *VARIABLE_LIST_TYPES)
    if head.type == "ERROR":
        kind = "declaration"
    elif variable_list is not None:
        kind = "field"
    elif signature is not None:
        kind = SIGNATURE_KINDS[signature.type]
    else:
        kind = "declaration"

    name: Optional[str] = None
    declared_type: Optional[str] = None
    variables: Tuple[Variable, ...] = ()
    parameters: Tuple[Parameter, ...] = ()
    if kind == "field":
        variables = read_variables(source, variable_list)
        name = variables[0].name if variables else None
        leading = head.children[: index_of(head.children, variable_list)]
        declared_type = _text_between(source, _type_nodes(source, leading))
    elif signature is not None:
        name = _signature_name(source, signature, kind)
        parameters = read_parameters(source, first_child(signature, "formal_parameter_list"))
        if kind in ("method", "getter", "setter"):
            leading = []
            for child in signature.children:
                if child.type in IDENTIFIER_TYPES or child.type == "formal_parameter_list":
                    break
                leading.append(child)
            declared_type = _text_between(source, _type_nodes(source, leading))

    body: Optional[Body] = None
    function_body = next((part for part in parts if part.type == "function_body"), None)
    if function_body is not None:
        body = read_body(source, function_body)
    nested = [head] if signature is None or signature is head else [head, signature]
    return Member(
        kind,
        name,
        start,
        end,
        tuple(annotations),
        tuple(parts),
        _modifiers(source, nested),
        declared_type,
        variables,
        parameters,
        body,
        error,
    )


def read_members(source: SourceText, body: Any) -> Tuple[Member, ...]:
    """Group the children of a ``class_body`` into members."""
    children = significant_children(body)
    members: List[Member] = []
    metadata: List[Any] = []
    index = 0
    while index < len(children):
        child = children[index]
        index += 1
        if child.type in ("{", "}", ";"):
            continue
        if child.type in ANNOTATION_TYPES:
            metadata.append(child)
            continue
        parts = [child]
        if index < len(children) and children[index].type == "function_body":
            parts.append(children[index])
            index += 1
        while index < len(children) and children[index].type == "ERROR":
            parts.append(children[index])
            index += 1
        if index < len(children) and children[index].type == ";":
            parts.append(children[index])
            index += 1
        members.append(_read_member(source, metadata, parts))
        metadata = []
    if metadata:
        members.append(_read_member(source, metadata, []))
    return tuple(members)


def read_class(source: SourceText, node: Any) -> ClassDecl:
    body = node.child_by_field_name("body")
    if body is None:
        body = first_child(node, "class_body")
    if body is None:
        raise_for_errors(node, source)
        raise _error_at(source, source.start(node), "class without a body")
    for child in node.children:
        if not same_node(child, body):
            raise_for_errors(child, source)
    closing = body.children[-1] if body.child_count else None
    if closing is None or closing.type != "}" or closing.is_missing:
        raise _error_at(source, source.end(body), "missing '}'")
    name_node = node.child_by_field_name("name")
    if name_node is None:
        name_node = first_child(node, *IDENTIFIER_TYPES)
    superclass = first_child(node, "superclass")
    superclass_type = None
    if superclass is not None:
        superclass_type = next((item for item in walk(superclass) if item.type == "type_identifier"), None)
    type_parameters = first_child(node, "type_parameters")
    start, end = source.span(node)
    return ClassDecl(
        node=node,
        name=source.slice(name_node) if name_node is not None else "",
        start=start,
        end=end,
        body_start=source.start(body),
        type_parameters=source.slice(type_parameters) if type_parameters is not None else "",
        superclass=source.slice(superclass_type) if superclass_type is not None else None,
        superclass_span=source.span(superclass_type) if superclass_type is not None else None,
        members=read_members(source, body),
    )


def read_directive(source: SourceText, node: Any) -> Directive:
    keyword = next(
        (source.slice(item) for item in walk(node) if not item.child_count and source.slice(item) in _DIRECTIVE_WORDS),
        node.type,
    )
    literal = next((item for item in walk(node) if item.type == "string_literal"), None)
    uri = unquote(source.slice(literal)) if literal is not None else None
    start, end = source.span(node)
    return Directive(keyword, uri, start, end)


def read_function(source: SourceText, signature: Any, body: Any, trailing: Optional[Any] = None) -> FunctionDecl:
    name = _signature_name(source, signature, "method") or ""
    leading = []
    for child in signature.children:
        if child.type in IDENTIFIER_TYPES:
            break
        leading.append(child)
    function_body = read_body(source, body, trailing)
    return FunctionDecl(
        name=name,
        start=source.start(signature),
        end=function_body.end,
        return_type=_text_between(source, _type_nodes(source, leading)),
        parameters=read_parameters(source, first_child(signature, "formal_parameter_list")),
        body=function_body,
    )


def read_unit(source: SourceText) -> CompilationUnit:
    """Read the top level of a file; raises ``DartSyntaxError`` outside class bodies."""
    children = significant_children(source.root)
    directives: List[Directive] = []
    classes: List[ClassDecl] = []
    functions: List[FunctionDecl] = []
    for index, child in enumerate(children):
        if child.type == "class_definition":
            classes.append(read_class(source, child))
            continue
        raise_for_errors(child, source)
        if child.type in DIRECTIVE_TYPES:
            directives.append(read_directive(source, child))
        elif child.type == "function_signature":
            following = children[index + 1] if index + 1 < len(children) else None
            if following is None or following.type != "function_body":
                continue
            trailing = children[index + 2] if index + 2 < len(children) else None
            if trailing is not None and trailing.type != ";":
                trailing = None
            functions.append(read_function(source, child, following, trailing))
    return CompilationUnit(tuple(directives), tuple(classes), tuple(functions))


def parse_snippet(code: str) -> Snippet:
    """Parse a function body (``{...}`` or ``=> expr;``) or a bare expression."""
    stripped = code.lstrip()
    if stripped.startswith("{") or stripped.startswith("=>"):
        prefix, suffix = _SNIPPET_HEAD, "\n"
    else:
        prefix, suffix = _SNIPPET_HEAD + "=> ", "\n;\n"
    source = SourceText(prefix + code + suffix)
    raise_for_errors(source.root, source)
    body = next((node for node in walk(source.root) if node.type == "function_body"), None)
    if body is None:
        raise _error_at(source, len(prefix), "expected a function body")
    return Snippet(source, body, len(prefix), len(prefix) + len(code))


__all__ = [
    "Annotation",
    "Body",
    "ClassDecl",
    "CompilationUnit",
    "Directive",
    "FunctionDecl",
    "IDENTIFIER_TYPES",
    "Member",
    "Parameter",
    "Snippet",
    "Variable",
    "first_child",
    "index_of",
    "is_call_part",
    "is_comment",
    "member_part_name",
    "parse_snippet",
    "read_unit",
    "same_node",
    "sibling",
    "significant_children",
    "unquote",
    "walk",
    "walk_with_ancestors",
]
