"""
Core value types shared by the reconciliation pipeline.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .typemodel import TypeDescriptor, TypeRef, Visibility

Provider = Callable[[], Any]

# Source descriptor attached to everything the bridge generates itself
BRIDGE_SOURCE = "izumi-bridge"

_declaration_counter = itertools.count()


class Provenance(Enum):
    """Which graph originally produced a binding."""

    DECLARATIVE = "declarative"
    PROGRAMMATIC = "programmatic"


class Role(Enum):
    """Role of a declarative component; only APPLICATION components are exported."""

    APPLICATION = "application"
    SUPPORT = "support"
    INFRASTRUCTURE = "infrastructure"


class Stage(Enum):
    """Initialization stage a ResolutionTable is built for."""

    PRODUCTION = "production"
    DEVELOPMENT = "development"
    TOOL = "tool"


@dataclass(frozen=True)
class Scope:
    """Component scope. Use SINGLETON, PROTOTYPE or Scope("custom-name")."""

    name: str

    @property
    def is_singleton(self) -> bool:
        return self.name == "singleton"

    def __str__(self) -> str:
        return self.name


SINGLETON = Scope("singleton")
PROTOTYPE = Scope("prototype")


@dataclass(frozen=True)
class SourceIdentity:
    """Identity of a single declaration: where it came from and when it was made."""

    descriptor: str
    ordinal: int

    @classmethod
    def next(cls, descriptor: str) -> SourceIdentity:
        return cls(descriptor, next(_declaration_counter))

    @property
    def is_bridged(self) -> bool:
        return BRIDGE_SOURCE in self.descriptor

    def __str__(self) -> str:
        return f"{self.descriptor}#{self.ordinal}"


@dataclass(frozen=True)
class Component:
    """A named, typed unit of construction captured from the declarative graph."""

    name: str
    declared_type: TypeRef
    concrete: TypeDescriptor
    provider: Provider = field(compare=False, repr=False)
    qualifier: Any = None
    scope: Scope = SINGLETON
    origin: Provenance = Provenance.DECLARATIVE
    primary: bool = False
    autowire_candidate: bool = True
    role: Role = Role.APPLICATION
    bridged: bool = False
    description: str | None = None

    @property
    def visibility(self) -> Visibility:
        return self.concrete.visibility

    @property
    def is_exportable(self) -> bool:
        return self.autowire_candidate and self.role is Role.APPLICATION and not self.bridged

    def __str__(self) -> str:
        return f"{self.name}: {self.declared_type} ({self.scope})"


@dataclass(frozen=True)
class GraphSnapshot:
    """Immutable view of both graphs' inputs, passed through the merge pipeline."""

    components: tuple[Component, ...] = ()
    elements: tuple[Any, ...] = ()

    def component_named(self, name: str) -> Component | None:
        return next((c for c in self.components if c.name == name), None)
