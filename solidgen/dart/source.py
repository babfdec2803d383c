"""Source text wrapper: byte/char offsets, span slicing and ``line N:C`` locations."""

from __future__ import annotations

from bisect import bisect_right
from typing import Any, List, Optional, Tuple

from .parser import parse_bytes

Span = Tuple[int, int]


class LineIndex:
    """Maps source offsets to 1-based line/column pairs."""

    def __init__(self, source: str):
        self._starts: list[int] = [0]
        for index, char in enumerate(source):
            if char == "\n":
                self._starts.append(index + 1)

    def line_col(self, offset: int) -> Tuple[int, int]:
        line = bisect_right(self._starts, offset)
        return line, offset - self._starts[line - 1] + 1

    def location(self, offset: int) -> str:
        line, col = self.line_col(offset)
        return f"line {line}:{col}"


def _char_offsets(text: str) -> List[int]:
    offsets: List[int] = []
    for index, char in enumerate(text):
        offsets.extend([index] * len(char.encode("utf-8")))
    offsets.append(len(text))
    return offsets


class SourceText:
    """One Dart file's text plus the helpers every stage uses to address it.

    tree-sitter reports UTF-8 byte offsets; everything downstream works in
    ``str`` offsets, so node positions go through :meth:`offset`.
    """

    def __init__(self, text: str, path: Optional[str] = None):
        self.text = text
        self.path = path
        self.data = text.encode("utf-8")
        self.index = LineIndex(text)
        self._offsets = None if len(self.data) == len(text) else _char_offsets(text)
        self._tree: Any = None
        self._unit: Any = None

    @property
    def tree(self) -> Any:
        if self._tree is None:
            self._tree = parse_bytes(self.data)
        return self._tree

    @property
    def root(self) -> Any:
        return self.tree.root_node

    @property
    def unit(self) -> Any:
        """Structural view of the file; raises ``DartSyntaxError`` on bad input."""
        if self._unit is None:
            from .nodes import read_unit

            self._unit = read_unit(self)
        return self._unit

    def offset(self, byte_offset: int) -> int:
        if self._offsets is None:
            return byte_offset
        return self._offsets[byte_offset]

    def start(self, node: Any) -> int:
        return self.span(node)[0]

    def end(self, node: Any) -> int:
        return self.span(node)[1]

    def span(self, node: Any) -> Span:
        """``(start, end)`` of a tree-sitter node, a view or a span tuple."""
        if isinstance(node, tuple):
            return node
        if hasattr(node, "start_byte"):
            return self.offset(node.start_byte), self.offset(node.end_byte)
        return node.start, node.end

    def slice(self, node: Any, end: Optional[int] = None) -> str:
        if isinstance(node, int):
            return self.text[node : len(self.text) if end is None else end]
        start, stop = self.span(node)
        return self.text[start:stop]

    def location(self, node: Any) -> str:
        offset = node if isinstance(node, int) else self.start(node)
        return self.index.location(offset)

    def line_start(self, offset: int) -> int:
        return self.text.rfind("\n", 0, offset) + 1

    def indent_at(self, offset: int) -> str:
        """Leading whitespace of the line that contains ``offset``."""
        start = self.line_start(offset)
        stop = start
        while stop < len(self.text) and self.text[stop] in " \t":
            stop += 1
        return self.text[start:stop]


__all__ = ["LineIndex", "SourceText", "Span"]
