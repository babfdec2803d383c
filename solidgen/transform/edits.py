"""Span edits over an immutable source text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..errors import CodeGenerationError


@dataclass(frozen=True)
class Edit:
    """Replace ``source[start:end]`` with ``replacement``; ``start == end`` inserts."""

    start: int
    end: int
    replacement: str

    @classmethod
    def insert(cls, offset: int, text: str) -> "Edit":
        return cls(offset, offset, text)


def _ordered(edits: Iterable[Edit]) -> List[Edit]:
    # Stable sort keeps insertion order for several inserts at one offset.
    return sorted(edits, key=lambda edit: (edit.start, edit.end))


def check_overlaps(edits: Iterable[Edit]) -> List[Edit]:
    """Return the edits in application order; raise if two of them overlap."""
    ordered = _ordered(edits)
    previous: Optional[Edit] = None
    for edit in ordered:
        if edit.end < edit.start:
            raise CodeGenerationError(
                f"edit has a negative span [{edit.start}, {edit.end})", "edit"
            )
        if previous is not None and edit.start < previous.end:
            raise CodeGenerationError(
                f"overlapping edits [{previous.start}, {previous.end}) and "
                f"[{edit.start}, {edit.end})",
                "edit",
            )
        previous = edit
    return ordered


def apply_edits(source: str, edits: Iterable[Edit], start: int = 0, end: Optional[int] = None) -> str:
    """Apply ``edits`` to ``source[start:end]`` in one left-to-right pass.

    Edit offsets refer to the full ``source``. Every edit must fall inside the
    window.
    """
    stop = len(source) if end is None else end
    parts: List[str] = []
    cursor = start
    for edit in check_overlaps(edits):
        if edit.start < start or edit.end > stop:
            raise CodeGenerationError(
                f"edit [{edit.start}, {edit.end}) falls outside [{start}, {stop})", "edit"
            )
        parts.append(source[cursor : edit.start])
        parts.append(edit.replacement)
        cursor = edit.end
    parts.append(source[cursor:stop])
    return "".join(parts)


__all__ = ["Edit", "apply_edits", "check_overlaps"]
