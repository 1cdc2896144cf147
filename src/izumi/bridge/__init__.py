"""
Izumi Bridge - two-way reconciliation of declarative and programmatic component graphs.

This library lets a name-based component registry and a module-based injector
share one object graph:
- Supertype closure with generic substitution for every exported component
- Visibility and include/exclude filtering of exported types
- Provenance-based deduplication into a single resolution table
- Lazy cross-graph references for dependencies resolved on first use
- Private module scopes that expose only selected keys
- Ordered bootstrap with a merge-once, activate-once lifecycle
"""

from .bootstrap import BootstrapScheduler, BootstrapState
from .bridge import GraphBridge, InjectorFactory, ModuleFilter, RegistryInjector
from .closure import closure, export_set
from .config import BridgeSettings
from .dedupe import AggregateKind, Candidate, ResolutionTable, dedupe
from .errors import (
    AmbiguousBindingError,
    BridgeError,
    CircularDependencyError,
    ConflictingBindingError,
    MetadataUnavailableError,
    NotFoundError,
    UnsatisfiedDependencyError,
)
from .filters import (
    AssignableTypeFilter,
    BindingFilter,
    DisposableComponent,
    ExactTypeFilter,
    FilterSet,
    InitializingComponent,
    NameGlobFilter,
    NameRegexFilter,
    PredicateFilter,
)
from .injector import Injector
from .keys import BindingKey, Named, Qualifier
from .model import PROTOTYPE, SINGLETON, Component, Provenance, Role, Scope, SourceIdentity, Stage
from .module import Binding, BindingType, ModuleDef, PrivateModuleDef
from .proxy import Direction, LazyReference, lazy_or_eager
from .qualifiers import resolve_candidates
from .registry import ComponentDefinition, ComponentRegistry
from .typemodel import TypeDescriptor, TypeIntrospector, TypeRef, Visibility

__all__ = [
    "AggregateKind",
    "AmbiguousBindingError",
    "AssignableTypeFilter",
    "Binding",
    "BindingFilter",
    "BindingKey",
    "BindingType",
    "BootstrapScheduler",
    "BootstrapState",
    "BridgeError",
    "BridgeSettings",
    "Candidate",
    "CircularDependencyError",
    "Component",
    "ComponentDefinition",
    "ComponentRegistry",
    "ConflictingBindingError",
    "Direction",
    "DisposableComponent",
    "ExactTypeFilter",
    "FilterSet",
    "GraphBridge",
    "InitializingComponent",
    "Injector",
    "InjectorFactory",
    "LazyReference",
    "MetadataUnavailableError",
    "ModuleDef",
    "ModuleFilter",
    "NameGlobFilter",
    "NameRegexFilter",
    "Named",
    "NotFoundError",
    "PROTOTYPE",
    "PredicateFilter",
    "PrivateModuleDef",
    "Provenance",
    "Qualifier",
    "RegistryInjector",
    "ResolutionTable",
    "Role",
    "SINGLETON",
    "Scope",
    "SourceIdentity",
    "Stage",
    "TypeDescriptor",
    "TypeIntrospector",
    "TypeRef",
    "UnsatisfiedDependencyError",
    "Visibility",
    "closure",
    "dedupe",
    "export_set",
    "lazy_or_eager",
    "resolve_candidates",
]
