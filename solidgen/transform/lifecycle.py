"""``initState``/``dispose`` merging and synthesis."""

from __future__ import annotations

import re
from typing import Any, List, Optional, Sequence

from ..dart.nodes import Member, significant_children
from ..dart.source import SourceText
from ..logging import get_logger
from .edits import Edit

_LOGGER = get_logger("transform.lifecycle")

DEFAULT_INDENT = "  "

_BARE_NAME = re.compile(r"([A-Za-z_$][\w$]*)\s*;")
_DISPOSE_CALL = re.compile(r"([A-Za-z_$][\w$]*)\s*\.\s*dispose\s*\(\s*\)\s*;")


def statements(block: Any) -> List[Any]:
    return [child for child in significant_children(block) if child.is_named]


def _super_call(statement: Any, name: str, source: SourceText) -> bool:
    pattern = r"super\s*\.\s*%s\s*\(\s*\)\s*;" % re.escape(name)
    return re.fullmatch(pattern, source.slice(statement)) is not None


def _block(method: Member) -> Optional[Any]:
    body = method.body
    if body is None or body.kind != "block":
        return None
    return body.block


def statement_indent(block: Any, source: SourceText) -> str:
    found = statements(block)
    if found:
        return source.indent_at(source.start(found[0]))
    return source.indent_at(source.start(block)) + DEFAULT_INDENT


def referenced_statements(block: Any, source: SourceText) -> set[str]:
    """Names that already appear as bare ``name;`` statements."""
    names = set()
    for statement in statements(block):
        match = _BARE_NAME.fullmatch(source.slice(statement))
        if match:
            names.add(match.group(1))
    return names


def disposed_names(block: Any, source: SourceText) -> set[str]:
    """Receivers of ``name.dispose();`` statements in ``block``."""
    names = set()
    for statement in statements(block):
        match = _DISPOSE_CALL.fullmatch(source.slice(statement))
        if match:
            names.add(match.group(1))
    return names


def init_state_edits(
    method: Member,
    effect_names: Sequence[str],
    source: SourceText,
    is_state_class: bool,
) -> List[Edit]:
    """Touch every effect in an existing ``initState`` so it runs once."""
    block = _block(method)
    if block is None:
        _LOGGER.warning("initState at %s has no block body; effects not merged", source.location(method))
        return []
    missing = [name for name in effect_names if name not in referenced_statements(block, source)]
    if not missing:
        return []
    indent = statement_indent(block, source)
    for statement in statements(block):
        if _super_call(statement, "initState", source):
            text = "".join(f"\n{indent}{name};" for name in missing)
            return [Edit.insert(source.end(statement), text)]
    lines = ["super.initState();"] if is_state_class else []
    lines.extend(f"{name};" for name in missing)
    return [Edit.insert(source.start(block) + 1, "".join(f"\n{indent}{line}" for line in lines))]


def dispose_edits(
    method: Member,
    names: Sequence[str],
    source: SourceText,
    is_state_class: bool,
) -> List[Edit]:
    """Dispose every name an existing ``dispose`` does not already release."""
    block = _block(method)
    if block is None:
        _LOGGER.warning("dispose at %s has no block body; disposal not merged", source.location(method))
        return []
    missing = [name for name in names if name not in disposed_names(block, source)]
    if not missing:
        return []
    indent = statement_indent(block, source)
    found = statements(block)
    for statement in found:
        if _super_call(statement, "dispose", source):
            text = "".join(f"{name}.dispose();\n{indent}" for name in missing)
            return [Edit.insert(source.start(statement), text)]
    lines = [f"{name}.dispose();" for name in missing]
    if is_state_class:
        lines.append("super.dispose();")
    anchor = source.end(found[-1]) if found else source.start(block) + 1
    return [Edit.insert(anchor, "".join(f"\n{indent}{line}" for line in lines))]


def render_init_state(effect_names: Sequence[str], indent: str = DEFAULT_INDENT) -> str:
    """A new ``@override initState``; the first line carries no indent."""
    body = "".join(f"{indent}  {name};\n" for name in effect_names)
    return (
        "@override\n"
        f"{indent}void initState() {{\n"
        f"{indent}  super.initState();\n"
        f"{body}"
        f"{indent}}}"
    )


def render_dispose(names: Sequence[str], indent: str = DEFAULT_INDENT, is_state_class: bool = True) -> str:
    """A new ``dispose``; ``@override`` with a ``super`` call for State classes."""
    body = "".join(f"{indent}  {name}.dispose();\n" for name in names)
    if is_state_class:
        return (
            "@override\n"
            f"{indent}void dispose() {{\n"
            f"{body}"
            f"{indent}  super.dispose();\n"
            f"{indent}}}"
        )
    return f"void dispose() {{\n{body}{indent}}}"


__all__ = [
    "dispose_edits",
    "disposed_names",
    "init_state_edits",
    "referenced_statements",
    "render_dispose",
    "render_init_state",
    "statements",
]
