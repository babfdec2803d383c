"""Dart front end: tree-sitter parsing plus structural views of the tree."""

from .nodes import ClassDecl, CompilationUnit, Member, Snippet, parse_snippet, read_unit
from .parser import TREE_SITTER_AVAILABLE, DartSyntaxError, GrammarUnavailableError, SyntaxIssue
from .source import LineIndex, SourceText

__all__ = [
    "ClassDecl",
    "CompilationUnit",
    "DartSyntaxError",
    "GrammarUnavailableError",
    "LineIndex",
    "Member",
    "Snippet",
    "SourceText",
    "SyntaxIssue",
    "TREE_SITTER_AVAILABLE",
    "parse_snippet",
    "read_unit",
]
