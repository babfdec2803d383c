"""``.value`` accessor rewriting driven by the syntax tree."""

from __future__ import annotations

import re
from typing import Any, Iterable, List, Optional, Tuple

from ..analysis.dependencies import REFERENCE, THIS_MEMBER, iter_occurrences
from ..dart.nodes import parse_snippet
from ..dart.source import SourceText, Span
from ..transform.edits import Edit, apply_edits

ACCESSOR = "value"

# Members of the reactive object itself; their receiver is never unwrapped.
RUNTIME_MEMBERS = frozenset({"dispose", "refresh"})

_FOLLOWING_MEMBER = re.compile(r"\s*[?!]?\.\s*([A-Za-z_$][\w$]*)")


def _following_member(text: str, offset: int) -> Optional[Tuple[str, int]]:
    """``(name, end)`` of a ``.name`` directly after ``offset``."""
    match = _FOLLOWING_MEMBER.match(text, offset)
    if match is None:
        return None
    return match.group(1), match.end()


def _carries_accessor(text: str, offset: int) -> bool:
    following = _following_member(text, offset)
    return following is not None and following[0] in (ACCESSOR, *RUNTIME_MEMBERS)


def accessor_edits(
    source: SourceText,
    node: Any,
    value_names: Iterable[str],
    environment_names: Iterable[str] = (),
    within: Optional[Span] = None,
) -> List[Edit]:
    """Edits that route reads and writes of ``value_names`` through ``.value``.

    ``$name`` becomes ``${name.value}``, a bare ``name`` or ``this.name``
    gains ``.value`` and ``env.value`` becomes ``env.value.value``.
    Occurrences that already carry the accessor are left alone, so applying
    the edits to their own output changes nothing. So is the receiver of
    ``name.dispose()`` and ``name.refresh``, which address the reactive
    object rather than its value.
    """
    values = set(value_names)
    environments = set(environment_names)
    text = source.text
    edits: List[Edit] = []
    for occurrence in iter_occurrences(source, node, within):
        name = occurrence.name
        if occurrence.role == THIS_MEMBER:
            if name in values and not _carries_accessor(text, occurrence.end):
                edits.append(Edit.insert(occurrence.end, "." + ACCESSOR))
            continue
        if occurrence.role != REFERENCE or occurrence.shadowed:
            continue
        if name in values:
            if _carries_accessor(text, occurrence.end):
                continue
            if occurrence.interpolation is not None:
                start, end = occurrence.interpolation
                edits.append(Edit(start, end, "${%s.%s}" % (name, ACCESSOR)))
            else:
                edits.append(Edit.insert(occurrence.end, "." + ACCESSOR))
        elif name in environments:
            following = _following_member(text, occurrence.end)
            if following is None or following[0] != ACCESSOR:
                continue
            second = _following_member(text, following[1])
            if second is not None and second[0] == ACCESSOR:
                continue
            edits.append(Edit.insert(following[1], "." + ACCESSOR))
    return edits


def rewrite_accessors(
    code: str,
    names: Iterable[str],
    environment_names: Iterable[str] = (),
) -> str:
    """Rewrite a block, arrow body or expression snippet; see ``accessor_edits``."""
    names = tuple(names)
    environment_names = tuple(environment_names)
    if not code.strip() or not (names or environment_names):
        return code
    snippet = parse_snippet(code)
    edits = accessor_edits(snippet.source, snippet.node, names, environment_names, snippet.span)
    return apply_edits(snippet.source.text, edits, snippet.start, snippet.end)


__all__ = ["ACCESSOR", "RUNTIME_MEMBERS", "accessor_edits", "rewrite_accessors"]
