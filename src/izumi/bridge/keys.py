"""
BindingKey and qualifier markers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .typemodel import TypeIntrospector, TypeRef


@dataclass(frozen=True)
class Named:
    """Name qualifier, usable as `Annotated[Service, Named("primary")]`."""

    value: str

    def __repr__(self) -> str:
        return f"Named({self.value!r})"


@dataclass(frozen=True)
class Qualifier:
    """
    Annotation-like qualifier marker.

    `marker` identifies the kind of qualifier (any hashable, typically a class),
    `value` is an optional carried name.
    """

    marker: Any
    value: str | None = None

    def __repr__(self) -> str:
        marker_name = getattr(self.marker, "__name__", str(self.marker))
        if self.value is None:
            return f"@{marker_name}"
        return f"@{marker_name}({self.value!r})"


def as_qualifier(qualifier: Any) -> Any:
    """A plain string is shorthand for `Named(string)`."""
    if isinstance(qualifier, str):
        return Named(qualifier)
    return qualifier


def qualifier_value(qualifier: Any) -> str | None:
    """Return the name carried by a qualifier, if any."""
    if qualifier is None:
        return None
    if isinstance(qualifier, str):
        return qualifier
    value = getattr(qualifier, "value", None)
    return value if isinstance(value, str) else None


@dataclass(frozen=True)
class BindingKey:
    """The (type, qualifier) identity used to join components across graphs."""

    type: TypeRef
    qualifier: Any = None

    @classmethod
    def of(cls, target_type: Any, qualifier: Any = None) -> BindingKey:
        """Create a key from a host type, generic alias or TypeRef."""
        return cls(TypeIntrospector.to_ref(target_type), as_qualifier(qualifier))

    def with_qualifier(self, qualifier: Any) -> BindingKey:
        return BindingKey(self.type, qualifier)

    @property
    def unqualified(self) -> BindingKey:
        return self if self.qualifier is None else BindingKey(self.type)

    def __str__(self) -> str:
        qualifier_str = f" {self.qualifier!r}" if self.qualifier is not None else ""
        return f"{self.type}{qualifier_str}"
