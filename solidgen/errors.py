"""Error types raised or returned by the transformation pipeline."""

from __future__ import annotations

from typing import Optional


class TransformationError(Exception):
    """Base class for every recoverable transformation failure."""

    def __init__(self, message: str, location: Optional[str] = None) -> None:
        self.message = message
        self.location = location
        super().__init__(message)

    def __str__(self) -> str:
        if self.location:
            return f"{self.message} (at {self.location})"
        return self.message


class AnnotationParseError(TransformationError):
    """A reactive annotation was missing or could not be read."""

    def __init__(self, message: str, annotation_name: str, location: Optional[str] = None) -> None:
        super().__init__(message, location)
        self.annotation_name = annotation_name


class AnalysisError(TransformationError):
    """A declaration could not be turned into a descriptor."""

    def __init__(self, message: str, element_name: str, location: Optional[str] = None) -> None:
        super().__init__(message, location)
        self.element_name = element_name


class CodeGenerationError(TransformationError):
    """Output text could not be produced for a target."""

    def __init__(self, message: str, target_type: str, location: Optional[str] = None) -> None:
        super().__init__(message, location)
        self.target_type = target_type


class ValidationError(TransformationError):
    """An annotation was placed on a declaration it cannot apply to."""

    def __init__(self, message: str, violation_type: str, location: Optional[str] = None) -> None:
        super().__init__(message, location)
        self.violation_type = violation_type

    @classmethod
    def invalid_target(cls, annotation: str, target: str, location: Optional[str] = None) -> "ValidationError":
        return cls(
            f"@{annotation} cannot be applied to {target}",
            "invalid_target",
            location,
        )

    @classmethod
    def missing_annotation(cls, annotation: str, location: Optional[str] = None) -> "ValidationError":
        return cls(f"expected @{annotation} annotation", "missing_annotation", location)

    @classmethod
    def invalid_type(cls, annotation: str, detail: str, location: Optional[str] = None) -> "ValidationError":
        return cls(f"@{annotation}: {detail}", "invalid_type", location)


__all__ = [
    "AnalysisError",
    "AnnotationParseError",
    "CodeGenerationError",
    "TransformationError",
    "ValidationError",
]
