"""Core data models shared across solidgen components."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class AnnotationKind(Enum):
    """Reactive marker kinds and the annotation names that carry them."""

    STATE = "SolidState"
    EFFECT = "SolidEffect"
    QUERY = "SolidQuery"
    ENVIRONMENT = "SolidEnvironment"

    @property
    def annotation_name(self) -> str:
        return self.value


@dataclass(frozen=True)
class AnnotationDescriptor:
    """Arguments read from one reactive annotation."""

    kind: AnnotationKind
    custom_name: Optional[str] = None
    debounce_expression: Optional[str] = None
    use_refreshing: Optional[bool] = None

    def label(self, default: str) -> str:
        return self.custom_name if self.custom_name is not None else default


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    declared_type: str
    initializer_text: Optional[str]
    is_nullable: bool
    is_final: bool
    is_const: bool
    location: str
    has_declared_type: bool = True


@dataclass(frozen=True)
class GetterDescriptor:
    name: str
    return_type: str
    body_expression_text: str
    is_nullable: bool
    location: str


@dataclass(frozen=True)
class ParameterDescriptor:
    name: str
    type: str
    is_optional: bool
    is_named: bool
    default_value: Optional[str] = None


@dataclass(frozen=True)
class MethodDescriptor:
    """A method as the generators need it; ``body_text`` keeps braces or ``=> expr;``."""

    name: str
    return_type: str
    body_text: str
    parameters: Tuple[ParameterDescriptor, ...]
    is_async: bool
    location: str
    is_expression_body: bool = False
    body_modifier: str = ""


# Names a declaration reads, in first-occurrence order without duplicates.
DependencySet = Tuple[str, ...]


__all__ = [
    "AnnotationDescriptor",
    "AnnotationKind",
    "DependencySet",
    "FieldDescriptor",
    "GetterDescriptor",
    "MethodDescriptor",
    "ParameterDescriptor",
]
