"""Annotation matching, declaration analysis and dependency extraction."""

from .annotations import find_marker, match_annotation
from .declarations import analyze_field, analyze_getter, analyze_method
from .dependencies import DependencyVisitor, extract_dependencies, iter_references

__all__ = [
    "DependencyVisitor",
    "analyze_field",
    "analyze_getter",
    "analyze_method",
    "extract_dependencies",
    "find_marker",
    "iter_references",
    "match_annotation",
]
