"""
Binding DSL for the programmatic graph.

    module = ModuleDef()
    module.make(Service).using().type(ServiceImpl)
    module.make(str).named("greeting").using().value("hello")
    module.many(Plugin).add_type(AuditPlugin)
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from .dedupe import AggregateKind, AggregateSlot
from .keys import BindingKey, Named
from .model import PROTOTYPE, SINGLETON, Provenance, Scope, SourceIdentity

T = TypeVar("T")


class BindingType(Enum):
    """How a binding produces its instance."""

    CLASS = "class"
    INSTANCE = "instance"
    FACTORY = "factory"
    PROVIDER = "provider"


@dataclass(frozen=True)
class Binding:
    """A single binding element declared by a module."""

    key: BindingKey
    binding_type: BindingType
    implementation: Any
    source: SourceIdentity
    scope: Scope = SINGLETON
    provenance: Provenance = Provenance.PROGRAMMATIC
    aggregate: AggregateSlot | None = None

    @property
    def is_aggregate(self) -> bool:
        return self.aggregate is not None

    def __str__(self) -> str:
        impl_name = getattr(self.implementation, "__name__", repr(self.implementation))
        slot = f" [{self.aggregate.sub_key!r}]" if self.aggregate and self.aggregate.sub_key is not None else ""
        return f"{self.key}{slot} -> {impl_name} ({self.binding_type.value}, {self.scope}) from {self.source}"


class ModuleDef:
    """
    A collection of binding elements.

    Elements are either Binding instances or installed PrivateModuleDefs.
    """

    def __init__(self, source: str | None = None) -> None:
        self.source = source or type(self).__name__
        self._elements: list[Binding | PrivateModuleDef] = []

    def elements(self) -> list[Binding | PrivateModuleDef]:
        return list(self._elements)

    @property
    def bindings(self) -> list[Binding]:
        return [e for e in self._elements if isinstance(e, Binding)]

    @property
    def private_modules(self) -> list[PrivateModuleDef]:
        return [e for e in self._elements if isinstance(e, PrivateModuleDef)]

    def add_binding(self, binding: Binding) -> None:
        self._elements.append(binding)

    def next_source(self) -> SourceIdentity:
        return SourceIdentity.next(self.source)

    def with_source(self, source: str) -> ModuleDef:
        """Set the source descriptor recorded on bindings declared from now on."""
        self.source = source
        return self

    def make(self, target_type: type[T] | Any) -> BindingBuilder[T]:
        """Create a binding builder for the given type."""
        return BindingBuilder(target_type, self)

    def many(self, target_type: type[T]) -> SetBindingBuilder[T]:
        """Create a set multi-binding builder for the given element type."""
        return SetBindingBuilder(target_type, self)

    def many_mapped(self, target_type: type[T], key_type: type = str) -> MapBindingBuilder[T]:
        """Create a map multi-binding builder for the given value type."""
        return MapBindingBuilder(target_type, key_type, self)

    def private(self, module: PrivateModuleDef) -> PrivateModuleDef:
        """Install a private module; only its exposed keys are visible here."""
        self._elements.append(module)
        return module

    def include(self, other: ModuleDef) -> ModuleDef:
        """Copy every element of another module into this one."""
        self._elements.extend(other.elements())
        return self

    @classmethod
    def from_elements(cls, elements: Iterable[Binding | PrivateModuleDef], source: str | None = None) -> ModuleDef:
        module = cls(source)
        module._elements.extend(elements)
        return module

    def __repr__(self) -> str:
        return f"{type(self).__name__}(source={self.source!r}, elements={len(self._elements)})"


class PrivateModuleDef(ModuleDef):
    """A nested module whose bindings stay hidden unless explicitly exposed."""

    def __init__(self, source: str | None = None) -> None:
        super().__init__(source)
        self._exposed: list[BindingKey] = []

    def expose(self, target_type: Any, qualifier: Any = None) -> PrivateModuleDef:
        key = BindingKey.of(target_type, qualifier)
        if key not in self._exposed:
            self._exposed.append(key)
        return self

    @property
    def exposed_keys(self) -> frozenset[BindingKey]:
        return frozenset(self._exposed)

    def without_exposures(self, keys: Iterable[BindingKey]) -> PrivateModuleDef:
        """Copy of this module that no longer exposes `keys` to its parent."""
        hidden = set(keys)
        clone = copy.copy(self)
        clone._exposed = [key for key in self._exposed if key not in hidden]
        return clone


class BindingBuilder(Generic[T]):
    """Builder for a single binding."""

    def __init__(self, target_type: type[T] | Any, module: ModuleDef):
        self._target_type = target_type
        self._module = module
        self._qualifier: Any = None
        self._scope = SINGLETON

    def named(self, name: str) -> BindingBuilder[T]:
        """Qualify this binding with a name."""
        self._qualifier = Named(name)
        return self

    def qualified(self, qualifier: Any) -> BindingBuilder[T]:
        """Qualify this binding with an arbitrary qualifier marker."""
        self._qualifier = qualifier
        return self

    def in_scope(self, scope: Scope) -> BindingBuilder[T]:
        self._scope = scope
        return self

    def prototype(self) -> BindingBuilder[T]:
        return self.in_scope(PROTOTYPE)

    def using(self) -> UsingBuilder[T]:
        """Create a UsingBuilder for fluent binding configuration."""

        def finalize_binding(binding_type: BindingType, implementation: Any) -> None:
            key = BindingKey.of(self._target_type, self._qualifier)
            scope = SINGLETON if binding_type is BindingType.INSTANCE else self._scope
            binding = Binding(key, binding_type, implementation, self._module.next_source(), scope)
            self._module.add_binding(binding)

        return UsingBuilder(finalize_binding)


class UsingBuilder(Generic[T]):
    """Selects what a binding is implemented by."""

    def __init__(self, finalize_callback: Callable[[BindingType, Any], None]):
        self._finalize_callback = finalize_callback

    def value(self, instance: T) -> None:
        """Bind to a specific instance value."""
        self._finalize_callback(BindingType.INSTANCE, instance)

    def type(self, cls: type[T]) -> None:
        """Bind to a class that will be instantiated with injected arguments."""
        self._finalize_callback(BindingType.CLASS, cls)

    def func(self, factory: Callable[..., T]) -> None:
        """Bind to a factory function whose arguments are injected."""
        self._finalize_callback(BindingType.FACTORY, factory)

    def provider(self, provider: Callable[[], T]) -> None:
        """Bind to a zero-argument provider owned by someone else."""
        self._finalize_callback(BindingType.PROVIDER, provider)


class SetBindingBuilder(Generic[T]):
    """Builder for set multi-bindings, resolvable as `set[T]`."""

    def __init__(self, target_type: type[T], module: ModuleDef):
        self._target_type = target_type
        self._module = module

    def _add(self, binding_type: BindingType, implementation: Any) -> SetBindingBuilder[T]:
        key = BindingKey.of(set[self._target_type])  # type: ignore[name-defined]
        slot = AggregateSlot(AggregateKind.SET)
        self._module.add_binding(
            Binding(key, binding_type, implementation, self._module.next_source(), aggregate=slot)
        )
        return self

    def add_value(self, instance: T) -> SetBindingBuilder[T]:
        return self._add(BindingType.INSTANCE, instance)

    def add_type(self, cls: type[T]) -> SetBindingBuilder[T]:
        return self._add(BindingType.CLASS, cls)

    def add_func(self, factory: Callable[..., T]) -> SetBindingBuilder[T]:
        return self._add(BindingType.FACTORY, factory)


class MapBindingBuilder(Generic[T]):
    """Builder for map multi-bindings, resolvable as `dict[K, T]`."""

    def __init__(self, target_type: type[T], key_type: type, module: ModuleDef):
        self._target_type = target_type
        self._key_type = key_type
        self._module = module

    def _add(self, sub_key: Any, binding_type: BindingType, implementation: Any) -> MapBindingBuilder[T]:
        key = BindingKey.of(dict[self._key_type, self._target_type])  # type: ignore[name-defined]
        slot = AggregateSlot(AggregateKind.MAP, sub_key)
        self._module.add_binding(
            Binding(key, binding_type, implementation, self._module.next_source(), aggregate=slot)
        )
        return self

    def add_value(self, sub_key: Any, instance: T) -> MapBindingBuilder[T]:
        return self._add(sub_key, BindingType.INSTANCE, instance)

    def add_type(self, sub_key: Any, cls: type[T]) -> MapBindingBuilder[T]:
        return self._add(sub_key, BindingType.CLASS, cls)

    def add_func(self, sub_key: Any, factory: Callable[..., T]) -> MapBindingBuilder[T]:
        return self._add(sub_key, BindingType.FACTORY, factory)
