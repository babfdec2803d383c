"""Dart parsing backed by the tree-sitter Dart grammar."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional

from ..logging import get_logger

try:  # pragma: no cover - optional dependency
    from tree_sitter import Parser
    from tree_sitter_languages import get_language

    TREE_SITTER_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    Parser = None  # type: ignore[assignment]
    get_language = None  # type: ignore[assignment]
    TREE_SITTER_AVAILABLE = False


_LOGGER = get_logger("dart.parser")
_LANGUAGE_KEY = "dart"

# tree-sitter parsers are not safe to share between threads; watch mode and
# the service executor each parse on their own thread.
_LOCAL = threading.local()


class DartSyntaxError(Exception):
    """Raised when Dart source does not parse cleanly."""

    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        super().__init__(f"{msg} at line {line}:{col}")

    @property
    def location(self) -> str:
        return f"line {self.line}:{self.col}"


class GrammarUnavailableError(RuntimeError):
    """Raised when the tree-sitter Dart grammar cannot be loaded."""


@dataclass
class SyntaxIssue:
    kind: str
    line: int
    column: int
    text: str

    @property
    def message(self) -> str:
        if self.kind == "missing":
            return f"missing {self.text!r}"
        snippet = self.text.strip().splitlines()[0] if self.text.strip() else ""
        return f"unexpected {snippet[:40]!r}"

    def describe(self) -> str:
        return f"line {self.line}:{self.column}: {self.message}"

    def to_error(self) -> DartSyntaxError:
        return DartSyntaxError(self.message, self.line, self.column)


def _get_parser() -> Parser:
    parser = getattr(_LOCAL, "parser", None)
    if parser is not None:
        return parser
    if not TREE_SITTER_AVAILABLE:
        raise GrammarUnavailableError(
            "tree-sitter is not installed; install tree_sitter and tree_sitter_languages"
        )
    try:
        language = get_language(_LANGUAGE_KEY)
    except Exception as exc:  # pragma: no cover - grammar bundle varies by release
        _LOGGER.debug("Tree-sitter grammar %s unavailable: %s", _LANGUAGE_KEY, exc)
        raise GrammarUnavailableError(f"tree-sitter grammar {_LANGUAGE_KEY!r} unavailable: {exc}") from exc
    parser = Parser()
    parser.set_language(language)
    _LOCAL.parser = parser
    return parser


def parse_bytes(source_bytes: bytes) -> Any:
    """Parse UTF-8 Dart source into a tree-sitter tree."""
    return _get_parser().parse(source_bytes)


def is_error(node: Any) -> bool:
    return node.type == "ERROR" or node.is_missing


def has_error(node: Any) -> bool:
    return node.has_error or is_error(node)


def iter_error_nodes(node: Any) -> Iterator[Any]:
    """Outermost ``ERROR``/``MISSING`` nodes below ``node`` in document order."""
    stack = [node]
    while stack:
        current = stack.pop()
        if is_error(current):
            yield current
            continue
        if current.has_error:
            stack.extend(reversed(current.children))


def find_issues(node: Any, source: Any, limit: int = 5) -> List[SyntaxIssue]:
    """Describe the syntax errors below ``node``; ``source`` is a ``SourceText``."""
    issues: List[SyntaxIssue] = []
    for error in iter_error_nodes(node):
        line, column = source.index.line_col(source.start(error))
        issues.append(
            SyntaxIssue(
                kind="missing" if error.is_missing else "error",
                line=line,
                column=column,
                text=error.type if error.is_missing else source.slice(error),
            )
        )
        if len(issues) >= limit:
            break
    return issues


def first_issue(node: Any, source: Any) -> Optional[SyntaxIssue]:
    issues = find_issues(node, source, limit=1)
    return issues[0] if issues else None


def raise_for_errors(node: Any, source: Any) -> None:
    """Raise ``DartSyntaxError`` for the first syntax error below ``node``."""
    if not has_error(node):
        return
    issue = first_issue(node, source)
    if issue is None:
        line, column = source.index.line_col(source.start(node))
        raise DartSyntaxError("malformed code", line, column)
    raise issue.to_error()


__all__ = [
    "DartSyntaxError",
    "GrammarUnavailableError",
    "SyntaxIssue",
    "TREE_SITTER_AVAILABLE",
    "find_issues",
    "first_issue",
    "has_error",
    "is_error",
    "iter_error_nodes",
    "parse_bytes",
    "raise_for_errors",
]
