"""
Two-way bridge between a ComponentRegistry and module-based injection.

    registry = ComponentRegistry()
    registry.register_class(Consumer)

    module = ModuleDef()
    module.make(Service).using().type(ServiceImpl)

    bridge = GraphBridge(registry, [module])
    bridge.activate()
    consumer = registry.get(Consumer)   # Service comes from the module

Both graphs are exported as candidates, deduplicated into one
ResolutionTable, and each side receives the winners owned by the other.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import Any, TypeVar

from .bootstrap import BootstrapScheduler, BootstrapState
from .config import BridgeSettings
from .dedupe import ResolutionTable, dedupe
from .errors import AmbiguousBindingError, BridgeError, NotFoundError
from .exporters import (
    DeclarativeExporter,
    ProgrammaticExporter,
    bridge_module,
    install_into_registry,
    surviving_elements,
)
from .filters import BindingFilter, FilterSet
from .injector import Injector
from .keys import BindingKey
from .model import PROTOTYPE, GraphSnapshot, Provenance, Provider, Role
from .module import Binding, ModuleDef
from .registry import ComponentRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

INJECTOR_COMPONENT = "injector"


class ModuleFilter(ABC):
    """Registry component vetoing modules; a module is used only if every filter accepts it."""

    @abstractmethod
    def accepts(self, module: ModuleDef) -> bool:
        pass


class InjectorFactory(ABC):
    """Registry component replacing the default Injector construction."""

    @abstractmethod
    def create_injector(self, modules: Sequence[ModuleDef]) -> Injector:
        pass


class GraphBridge:
    """
    Reconciles a declarative ComponentRegistry with programmatic modules.

    Modules come from the constructor and from ModuleDef components of the
    registry. Export filter sets come from the constructor and from FilterSet
    components. The merge happens once, on first use; activation
    (pre-instantiating declarative singletons) happens on the first real
    resolution request.
    """

    def __init__(
        self,
        registry: ComponentRegistry,
        modules: Iterable[ModuleDef] = (),
        settings: BridgeSettings | None = None,
        filter_sets: Iterable[FilterSet] = (),
    ):
        self._registry = registry
        self._modules = list(modules)
        self._settings = settings or BridgeSettings()
        self._filter_sets = tuple(filter_sets)
        self._injector: Injector | None = None
        self._scheduler = BootstrapScheduler(self._merge, self._activate)
        registry.attach_fallback(self._fallback_provider, lazy=self._settings.lazy_fallback)

    @property
    def registry(self) -> ComponentRegistry:
        return self._registry

    @property
    def settings(self) -> BridgeSettings:
        return self._settings

    @property
    def state(self) -> BootstrapState:
        return self._scheduler.state

    @property
    def injector(self) -> Injector:
        """The programmatic injector, merging the graphs first if needed."""
        self._scheduler.merge()
        if self._injector is None:
            raise BridgeError("Injector is not available before the graphs are merged")
        return self._injector

    def merge(self) -> ResolutionTable:
        return self._scheduler.merge()

    def activate(self) -> bool:
        return self._scheduler.activate()

    def get(self, target_type: type[T] | Any, qualifier: Any = None) -> T:
        """Resolve from the programmatic side, activating the graphs on first use."""
        self._scheduler.activate()
        return self.injector.get(target_type, qualifier)

    def get_component(self, target_type: type[T] | Any, qualifier: Any = None) -> T:
        """Resolve from the declarative side, activating the graphs on first use."""
        self._scheduler.activate()
        return self._registry.get(target_type, qualifier)

    def snapshot_get(self, target_type: Any, qualifier: Any = None) -> Any:
        """Serve a merged binding without activating the declarative graph."""
        return self._scheduler.snapshot_provider(BindingKey.of(target_type, qualifier))()

    def registry_injector(self) -> RegistryInjector:
        """An injector-shaped view of the registry, delegating unknown types to the modules."""
        return RegistryInjector(self._registry, self.injector)

    def close(self) -> None:
        self._registry.destroy()

    def _merge(self) -> ResolutionTable:
        modules = self._collect_modules()
        snapshot = GraphSnapshot(
            self._registry.snapshot(),
            tuple(element for module in modules for element in module.elements()),
        )

        binding_filter = BindingFilter(self._filter_sets + tuple(self._registry.get_all(FilterSet).values()))
        infrastructure = (ModuleDef, FilterSet, ModuleFilter, InjectorFactory, ComponentRegistry, Injector)
        declarative_exporter = DeclarativeExporter(self._registry, binding_filter, infrastructure)
        declarative = declarative_exporter.candidates(snapshot.components)
        programmatic_exporter = ProgrammaticExporter(self._settings.excluded_sources, (Injector,))
        programmatic = programmatic_exporter.candidates(snapshot.elements, self._deferred, self._deferred_element)

        table = dedupe(declarative + programmatic, enabled=self._settings.dedupe, stage=self._settings.stage)
        install_into_registry(self._registry, table)

        surviving = ModuleDef.from_elements(
            surviving_elements(snapshot.elements, table, programmatic_exporter),
            "merged",
        )
        self._injector = self._create_injector([surviving, bridge_module(table)])
        return table

    def _collect_modules(self) -> list[ModuleDef]:
        modules = self._modules + list(self._registry.get_all(ModuleDef).values())
        module_filters = list(self._registry.get_all(ModuleFilter).values())
        accepted = [m for m in modules if all(f.accepts(m) for f in module_filters)]
        logger.debug("Using %d of %d modules", len(accepted), len(modules))
        return accepted

    def _create_injector(self, modules: list[ModuleDef]) -> Injector:
        factories = self._registry.get_all(InjectorFactory)
        if len(factories) > 1:
            raise AmbiguousBindingError(BindingKey.of(InjectorFactory), sorted(factories))
        if factories:
            (factory,) = factories.values()
            return factory.create_injector(modules)
        return Injector(modules)

    def _activate(self, table: ResolutionTable) -> None:  # noqa: ARG002
        if not self._registry.contains(INJECTOR_COMPONENT):
            self._registry.register_instance(
                INJECTOR_COMPONENT, self.injector, as_type=Injector, role=Role.INFRASTRUCTURE, bridged=True
            )
        self._registry.preinstantiate_singletons()

    def _deferred(self, key: BindingKey) -> Provider:
        return lambda: self.injector.get_key(key)

    def _deferred_element(self, binding: Binding) -> Provider:
        return lambda: self.injector.provide_element(binding)

    def _fallback_provider(self, key: BindingKey) -> Provider:
        """Resolve a key the registry could not satisfy through the programmatic graph."""
        table = self._scheduler.merge()
        entry = table.get(key)
        if entry is not None:
            if entry.provenance is Provenance.DECLARATIVE:
                raise NotFoundError(key, "only bound by the declarative graph")
            return entry.provider
        if self.injector.can_provide(key):
            return self.injector.get_provider(key)
        raise NotFoundError(key, "not bound by the programmatic graph")

    def __repr__(self) -> str:
        return f"GraphBridge(state={self.state.value}, modules={len(self._modules)})"


class RegistryInjector:
    """
    Injector-shaped facade over a ComponentRegistry.

    Types the registry knows nothing about are delegated to the programmatic
    injector when there is one; otherwise concrete classes are registered on
    demand as prototypes.
    """

    def __init__(self, registry: ComponentRegistry, injector: Injector | None = None):
        self._registry = registry
        self._injector = injector

    def get_provider(self, target_type: Any, qualifier: Any = None) -> Provider:
        if not self._registry.names_for_type(target_type) and self._injector is not None:
            return self._injector.get_provider(BindingKey.of(target_type, qualifier))
        try:
            return self._registry.find_component(target_type, qualifier).provider
        except NotFoundError:
            if qualifier is not None or not isinstance(target_type, type):
                raise
        logger.debug("Registering %s on demand", target_type.__qualname__)
        definition = self._registry.register_class(target_type, _on_demand_name(target_type), scope=PROTOTYPE)
        return lambda: self._registry.get_by_name(definition.name)

    def get(self, target_type: type[T] | Any, qualifier: Any = None) -> T:
        return self.get_provider(target_type, qualifier)()  # type: ignore[no-any-return]

    def has(self, target_type: Any, qualifier: Any = None) -> bool:
        if self._registry.names_for_type(target_type):
            return True
        return self._injector is not None and self._injector.has(target_type, qualifier)


def _on_demand_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"
