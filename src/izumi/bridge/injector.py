"""
Injector for the programmatic graph.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections import defaultdict
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from .dedupe import AggregateKind
from .errors import CircularDependencyError, ConflictingBindingError, NotFoundError
from .introspection import SignatureIntrospector
from .keys import BindingKey
from .model import Provider
from .module import Binding, BindingType, ModuleDef, PrivateModuleDef

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Injector:
    """
    Resolves BindingKeys from the bindings of a set of modules.

    Private modules become child injectors; only their exposed keys are
    reachable from here. A parent injector, when given, is consulted for keys
    that are not bound locally. Unqualified concrete classes that nobody bound
    are constructed just in time.
    """

    def __init__(self, modules: Iterable[ModuleDef] = (), parent: Injector | None = None):
        self._parent = parent
        self._bindings: dict[BindingKey, Binding] = {}
        self._aggregates: dict[BindingKey, list[Binding]] = defaultdict(list)
        self._exposed: dict[BindingKey, Injector] = {}
        self._instances: dict[BindingKey, Any] = {}
        self._lock = threading.Lock()
        self._creation_locks: dict[BindingKey, threading.RLock] = {}
        self._resolving = threading.local()

        for module in modules:
            for element in module.elements():
                self._install(element)

    def _install(self, element: Binding | PrivateModuleDef) -> None:
        if isinstance(element, PrivateModuleDef):
            self._install_private(element)
        elif element.is_aggregate:
            self._aggregates[element.key].append(element)
        else:
            existing = self._bindings.get(element.key)
            if existing is not None:
                raise ConflictingBindingError(element.key, [existing.source, element.source])
            self._bindings[element.key] = element

    def _install_private(self, module: PrivateModuleDef) -> None:
        child = Injector([module], parent=self)
        for key in module.exposed_keys:
            if not child.has_local_key(key):
                raise NotFoundError(key, f"exposed by private module {module.source} but not bound there")
            if key in self._bindings or key in self._exposed:
                raise ConflictingBindingError(key, [module.source])
            self._exposed[key] = child

    @property
    def parent(self) -> Injector | None:
        return self._parent

    def has_local_key(self, key: BindingKey) -> bool:
        """Whether this injector binds or exposes `key` itself."""
        return key in self._bindings or key in self._exposed or key in self._aggregates

    def has_key(self, key: BindingKey) -> bool:
        if self.has_local_key(key):
            return True
        return self._parent is not None and self._parent.has_key(key)

    def can_provide(self, key: BindingKey) -> bool:
        """Whether `key` is bound anywhere in this hierarchy or can be created just in time."""
        return self.has_key(key) or self._just_in_time_eligible(key)

    def has(self, target_type: Any, qualifier: Any = None) -> bool:
        return self.has_key(BindingKey.of(target_type, qualifier))

    def bound_keys(self) -> set[BindingKey]:
        return set(self._bindings) | set(self._exposed) | set(self._aggregates)

    def get(self, target_type: type[T] | Any, qualifier: Any = None) -> T:
        """
        Get an instance of the given type.

        Raises:
            NotFoundError: If nothing can provide the requested key
        """
        return self.get_key(BindingKey.of(target_type, qualifier))  # type: ignore[no-any-return]

    def get_key(self, key: BindingKey) -> Any:
        binding = self._bindings.get(key)
        if binding is not None:
            return self._instance_for(binding)

        child = self._exposed.get(key)
        if child is not None:
            return child.get_key(key)

        if key in self._aggregates:
            return self._materialize(key, self._aggregates[key])

        if self._parent is not None and self._parent.has_key(key):
            return self._parent.get_key(key)

        if key.qualifier is None and key.type.descriptor.python_type is Injector:
            return self

        if self._just_in_time_eligible(key):
            logger.debug("Creating just-in-time instance for %s", key)
            return self._construct(key.type.descriptor.python_type, key)

        raise NotFoundError(key)

    def get_provider(self, key: BindingKey) -> Provider:
        """A zero-argument provider for `key`; lookup happens on every call."""
        return lambda: self.get_key(key)

    def run(self, func: Callable[..., T]) -> T:
        """Execute a function with its arguments resolved from this injector."""
        return self._call(func, BindingKey.of(object))

    def _instance_for(self, binding: Binding) -> Any:
        if binding.binding_type is BindingType.INSTANCE:
            return binding.implementation
        if not binding.scope.is_singleton:
            return self._create(binding)

        if binding.key in self._instances:
            return self._instances[binding.key]
        with self._singleton_lock(binding.key):
            if binding.key not in self._instances:
                self._instances[binding.key] = self._create(binding)
            return self._instances[binding.key]

    def _singleton_lock(self, key: BindingKey) -> threading.RLock:
        with self._lock:
            return self._creation_locks.setdefault(key, threading.RLock())

    def _create(self, binding: Binding) -> Any:
        if binding.binding_type is BindingType.INSTANCE:
            return binding.implementation
        if binding.binding_type is BindingType.PROVIDER:
            return binding.implementation()
        return self._construct(binding.implementation, binding.key)

    def _construct(self, factory: Callable[..., Any], key: BindingKey) -> Any:
        stack: list[BindingKey] = self._resolution_stack()
        if key in stack:
            raise CircularDependencyError(stack[stack.index(key):] + [key])
        stack.append(key)
        try:
            return self._call(factory, key)
        finally:
            stack.pop()

    def _call(self, factory: Callable[..., T], owner: BindingKey) -> T:
        kwargs: dict[str, Any] = {}
        for dependency in SignatureIntrospector.extract_dependencies(factory):
            try:
                kwargs[dependency.name] = self.get_key(dependency.key)
            except NotFoundError:
                if dependency.has_default:
                    continue
                logger.debug("Dependency %s of %s is missing", dependency.name, owner)
                raise
        return factory(**kwargs)

    def _materialize(self, key: BindingKey, bindings: list[Binding]) -> Any:
        kind = bindings[0].aggregate.kind if bindings[0].aggregate else AggregateKind.SET
        if kind is AggregateKind.MAP:
            result: dict[Any, Any] = {}
            for binding in bindings:
                sub_key = binding.aggregate.sub_key if binding.aggregate else None
                if sub_key not in result:
                    result[sub_key] = self.provide_element(binding)
            return result
        # Equal elements collapse here; the ResolutionTable keeps one entry per source
        return {self.provide_element(binding) for binding in bindings}

    def provide_element(self, binding: Binding) -> Any:
        """Produce a single aggregate element."""
        if binding.binding_type is BindingType.INSTANCE:
            return binding.implementation
        return self._create(binding)

    def _just_in_time_eligible(self, key: BindingKey) -> bool:
        if key.qualifier is not None or key.type.is_parameterized:
            return False
        target = key.type.descriptor.python_type
        if not isinstance(target, type) or key.type.descriptor.is_interface:
            return False
        return target.__module__ != "builtins" and not inspect.isabstract(target)

    def _resolution_stack(self) -> list[BindingKey]:
        stack = getattr(self._resolving, "stack", None)
        if stack is None:
            stack = []
            self._resolving.stack = stack
        return stack

    def __repr__(self) -> str:
        return (
            f"Injector(bindings={len(self._bindings)}, exposed={len(self._exposed)}, "
            f"aggregates={len(self._aggregates)})"
        )
