"""
Declarative component registry.

Components are registered by name and type, either explicitly or with the
`component` decorator, and are resolved by type and qualifier:

    registry = ComponentRegistry()

    @registry.component(primary=True)
    def make_thing() -> Thing:
        return Thing()
"""

from __future__ import annotations

import functools
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar, get_type_hints

from .closure import assignable
from .errors import CircularDependencyError, MetadataUnavailableError, NotFoundError, UnsatisfiedDependencyError
from .filters import DisposableComponent, InitializingComponent
from .introspection import Dependency, SignatureIntrospector
from .keys import BindingKey, as_qualifier
from .model import SINGLETON, Component, Provider, Role, Scope
from .proxy import InjectionPoint, Resolver, is_collection_type, lazy_or_eager
from .qualifiers import resolve_candidates
from .typemodel import TypeIntrospector, TypeRef

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SEQUENCE_TYPES = (list, tuple, set, frozenset)

_MISSING = object()


@dataclass
class ComponentDefinition:
    """
    Configuration metadata of a registered component.

    Attributes:
        name: Unique component name.
        factory: Callable producing the instance; its parameters are injected.
        declared_type: Type the component is declared as (may be a generic alias).
        concrete_type: Implementation class, when known and different.
        scope: SINGLETON, PROTOTYPE or a custom Scope.
        primary: Wins unqualified lookups among several candidates.
        autowire_candidate: Whether the component may be injected by type.
        role: Only APPLICATION components are exported to the other graph.
        qualifier: Optional qualifier marker.
        lazy_init: Skip eager creation on activation.
        bridged: Created by the bridge from the other graph.
        description: Human readable origin.
    """

    name: str
    factory: Callable[..., Any]
    declared_type: Any
    concrete_type: Any = None
    scope: Scope = SINGLETON
    primary: bool = False
    autowire_candidate: bool = True
    role: Role = Role.APPLICATION
    qualifier: Any = None
    lazy_init: bool = False
    bridged: bool = False
    description: str | None = None


class ComponentRegistry:
    """Registry of named components with singleton and prototype scopes."""

    def __init__(self) -> None:
        self._definitions: dict[str, ComponentDefinition] = {}
        self._singletons: dict[str, Any] = {}
        self._components: tuple[Component, ...] | None = None
        self._fallback: Resolver | None = None
        self._lazy_fallback = False
        self._lock = threading.RLock()
        self._creation_locks: dict[str, threading.RLock] = {}
        self._resolving = threading.local()

    def register(self, definition: ComponentDefinition) -> ComponentDefinition:
        """Register a component definition explicitly."""
        with self._lock:
            if definition.name in self._definitions:
                raise ValueError(f"Component name already registered: {definition.name}")
            self._definitions[definition.name] = definition
            self._components = None
        logger.debug("Registered component %s: %s", definition.name, definition.declared_type)
        return definition

    def register_class(self, cls: type[T], name: str | None = None, **options: Any) -> ComponentDefinition:
        """Register a class, constructed with injected arguments."""
        declared = options.pop("as_type", cls)
        return self.register(
            ComponentDefinition(name or _infer_class_name(cls), cls, declared, concrete_type=cls, **options)
        )

    def register_instance(self, name: str, instance: Any, **options: Any) -> ComponentDefinition:
        """Register an already constructed singleton."""
        declared = options.pop("as_type", type(instance))
        definition = self.register(
            ComponentDefinition(name, lambda: instance, declared, concrete_type=type(instance), **options)
        )
        self._singletons[name] = instance
        return definition

    def component(
        self,
        name: str | None = None,
        *,
        scope: Scope = SINGLETON,
        primary: bool = False,
        qualifier: Any = None,
        lazy_init: bool = False,
        role: Role = Role.APPLICATION,
        autowire_candidate: bool = True,
    ) -> Callable[[Callable[..., T]], Callable[..., T]]:
        """
        Decorator registering a class or factory function as a component.

        Factory functions are named after the function with a `make_` prefix
        removed and declared as their return annotation.

        Example:
            @registry.component(primary=True)
            def make_thing() -> Thing:
                return Thing()
        """

        def decorator(target: Callable[..., T]) -> Callable[..., T]:
            options: dict[str, Any] = {
                "scope": scope,
                "primary": primary,
                "qualifier": qualifier,
                "lazy_init": lazy_init,
                "role": role,
                "autowire_candidate": autowire_candidate,
            }
            if isinstance(target, type):
                self.register_class(target, name, **options)
            else:
                declared = _return_type_of(target)
                component_name = name or _infer_function_name(target.__name__)
                self.register(ComponentDefinition(component_name, target, declared, **options))
            return target

        return decorator

    def definitions(self) -> list[ComponentDefinition]:
        return list(self._definitions.values())

    def definition(self, name: str) -> ComponentDefinition:
        try:
            return self._definitions[name]
        except KeyError:
            raise NotFoundError(name, "no component with this name") from None

    def contains(self, name: str) -> bool:
        return name in self._definitions

    def snapshot(self) -> tuple[Component, ...]:
        """Immutable Components for every definition, in registration order."""
        components = self._components
        if components is None:
            with self._lock:
                components = tuple(self._capture(d) for d in self._definitions.values())
                self._components = components
        return components

    def _capture(self, definition: ComponentDefinition) -> Component:
        declared = TypeIntrospector.to_ref(definition.declared_type)
        concrete = (
            TypeIntrospector.describe(definition.concrete_type)
            if definition.concrete_type is not None
            else declared.descriptor
        )
        return Component(
            name=definition.name,
            declared_type=declared,
            concrete=concrete,
            provider=functools.partial(self.get_by_name, definition.name),
            qualifier=as_qualifier(definition.qualifier),
            scope=definition.scope,
            primary=definition.primary,
            autowire_candidate=definition.autowire_candidate,
            role=definition.role,
            bridged=definition.bridged,
            description=definition.description,
        )

    def attach_fallback(self, resolver: Resolver | None, lazy: bool = True) -> None:
        """Resolve dependencies this registry cannot satisfy through `resolver`."""
        self._fallback = resolver
        self._lazy_fallback = lazy and resolver is not None

    def find_component(self, target_type: Any, qualifier: Any = None) -> Component:
        candidates = [c for c in self.snapshot() if c.autowire_candidate]
        return resolve_candidates(candidates, target_type, qualifier=qualifier)

    def provider_for_key(self, key: BindingKey) -> Provider:
        """Home-graph resolver: a provider for the component matching `key`."""
        return self.find_component(key.type, key.qualifier).provider

    def get(self, target_type: type[T] | Any, qualifier: Any = None) -> T:
        """Get the component matching a type and optional qualifier."""
        return self.get_by_name(self.find_component(target_type, qualifier).name)  # type: ignore[no-any-return]

    def get_all(self, target_type: Any) -> dict[str, Any]:
        """Instances of every autowirable component assignable to `target_type`, by name."""
        target = TypeIntrospector.to_ref(target_type)
        return {
            c.name: self.get_by_name(c.name)
            for c in self.snapshot()
            if c.autowire_candidate and assignable(c, target)
        }

    def names_for_type(self, target_type: Any) -> list[str]:
        target = TypeIntrospector.to_ref(target_type)
        return [c.name for c in self.snapshot() if assignable(c, target)]

    def get_by_name(self, name: str) -> Any:
        definition = self.definition(name)
        if not definition.scope.is_singleton:
            return self._create(definition)

        if name in self._singletons:
            return self._singletons[name]
        with self._singleton_lock(name):
            if name not in self._singletons:
                self._singletons[name] = self._create(definition)
            return self._singletons[name]

    def _singleton_lock(self, name: str) -> threading.RLock:
        """Per-component creation lock; no registry-wide lock is held while a singleton is built."""
        with self._lock:
            return self._creation_locks.setdefault(name, threading.RLock())

    def is_instantiated(self, name: str) -> bool:
        return name in self._singletons

    def preinstantiate_singletons(self) -> None:
        """Create every non-lazy singleton, in registration order."""
        for definition in self.definitions():
            if definition.scope.is_singleton and not definition.lazy_init:
                self.get_by_name(definition.name)

    def destroy(self) -> None:
        """Invoke DisposableComponent hooks in reverse creation order and forget singletons."""
        with self._lock:
            instances = list(self._singletons.values())
            self._singletons.clear()
        for instance in reversed(instances):
            if isinstance(instance, DisposableComponent):
                instance.destroy()

    def _create(self, definition: ComponentDefinition) -> Any:
        stack = self._resolution_stack()
        if definition.name in stack:
            raise CircularDependencyError(stack[stack.index(definition.name):] + [definition.name])
        stack.append(definition.name)
        try:
            kwargs: dict[str, Any] = {}
            for dependency in SignatureIntrospector.extract_dependencies(definition.factory):
                value = self._resolve_dependency(definition, dependency)
                if value is not _MISSING:
                    kwargs[dependency.name] = value
            instance = definition.factory(**kwargs)
        finally:
            stack.pop()

        if isinstance(instance, InitializingComponent):
            instance.after_properties_set()
        return instance

    def _resolve_dependency(self, definition: ComponentDefinition, dependency: Dependency) -> Any:
        key = dependency.key
        point = InjectionPoint(definition.name, dependency.name, key)
        if is_collection_type(key.type):
            return self._resolve_collection(point)

        # Failures while building the provider belong to deeper injection points
        try:
            provider = self.provider_for_key(key)
        except NotFoundError as e:
            if dependency.has_default:
                return _MISSING
            if self._lazy_fallback:
                logger.debug("Injecting lazy reference for %s", point)
                return lazy_or_eager(point, self.provider_for_key, self._fallback)
            raise UnsatisfiedDependencyError(key, point) from e
        return provider()

    def _resolve_collection(self, point: InjectionPoint) -> Any:
        key = point.key
        try:
            provider = self.provider_for_key(key)
        except NotFoundError:
            pass
        else:
            return provider()

        collection_type = key.type.descriptor.python_type
        # list[T] and set[T] collect T; dict[str, T] collects T by component name
        element = key.type.args[-1] if key.type.args else None
        instances = self.get_all(element) if isinstance(element, TypeRef) else {}

        if not instances and self._fallback is not None:
            try:
                fallback = self._fallback(key)
            except NotFoundError:
                pass
            else:
                return fallback()
        if collection_type is dict:
            return instances
        if collection_type in _SEQUENCE_TYPES:
            return collection_type(instances.values())
        return list(instances.values())

    def _resolution_stack(self) -> list[str]:
        stack = getattr(self._resolving, "stack", None)
        if stack is None:
            stack = []
            self._resolving.stack = stack
        return stack

    def __repr__(self) -> str:
        return f"ComponentRegistry(components={len(self._definitions)}, instantiated={len(self._singletons)})"


def _infer_function_name(name: str) -> str:
    if name.startswith("make_"):
        return name[5:]
    return name


def _infer_class_name(cls: type) -> str:
    name = cls.__name__
    return name[:1].lower() + name[1:]


def _return_type_of(func: Callable[..., Any]) -> Any:
    try:
        declared = get_type_hints(func, include_extras=True).get("return")
    except Exception as e:  # noqa: BLE001
        raise MetadataUnavailableError(func, f"cannot evaluate return annotation: {e}") from e
    if declared is None:
        raise MetadataUnavailableError(func, "factory has no return annotation")
    return declared
