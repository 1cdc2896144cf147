"""
Adapters between the graphs and the reconciliation core.

Inbound, both graphs are turned into Candidates. Outbound, the winning
ResolutionTable entries are installed into the graph that does not own them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from .closure import closure
from .dedupe import AggregateKind, Candidate, ResolutionTable, TableEntry
from .filters import BindingFilter
from .keys import BindingKey, Named, qualifier_value
from .model import BRIDGE_SOURCE, PROTOTYPE, SINGLETON, Component, Provenance, Provider, SourceIdentity, Stage
from .module import Binding, BindingType, ModuleDef, PrivateModuleDef
from .private import exposed_bindings
from .qualifiers import resolve_candidates
from .registry import ComponentDefinition, ComponentRegistry
from .typemodel import TypeIntrospector, TypeRef

logger = logging.getLogger(__name__)

Element = Binding | PrivateModuleDef


class DeclarativeProvider:
    """
    Provider backed by the registry, resolving its target on first call.

    Components created by the bridge are not candidates: if one of them were
    the right target, the programmatic graph would have served it natively.
    """

    def __init__(
        self,
        registry: ComponentRegistry,
        target: TypeRef,
        qualifier: Any = None,
        name: str | None = None,
    ):
        self._registry = registry
        self._target = target
        self._qualifier = qualifier
        self._name = name
        self._resolved: Provider | None = None

    def __call__(self) -> Any:
        if self._resolved is None:
            candidates = [
                c for c in self._registry.snapshot() if c.autowire_candidate and not c.bridged
            ]
            component = resolve_candidates(candidates, self._target, name=self._name, qualifier=self._qualifier)
            self._resolved = component.provider
        return self._resolved()

    def __repr__(self) -> str:
        name = f", name={self._name!r}" if self._name else ""
        return f"DeclarativeProvider({self._target}, qualifier={self._qualifier!r}{name})"


class DeclarativeExporter:
    """Turns registry components into candidates, one per exported BindingKey."""

    def __init__(
        self,
        registry: ComponentRegistry,
        binding_filter: BindingFilter,
        ignored_types: Iterable[Any] = (),
    ):
        self._registry = registry
        self._filter = binding_filter
        self._ignored = tuple(TypeIntrospector.describe(t) for t in ignored_types)

    def _ignored_component(self, component: Component) -> bool:
        return any(component.concrete.is_subtype_of(ignored) for ignored in self._ignored)

    def candidates(self, components: Iterable[Component]) -> list[Candidate]:
        bound: dict[BindingKey, Candidate] = {}
        for component in components:
            if not component.is_exportable or self._ignored_component(component):
                continue
            source = SourceIdentity.next(f"{BRIDGE_SOURCE}:{component.name}")
            for exported in closure(component.declared_type, component.concrete):
                if not self._filter.eligible(component.name, exported):
                    continue

                key = BindingKey(exported, component.qualifier)
                # Only one typed provider per key; it resolves among all candidates itself
                if key not in bound:
                    provider = DeclarativeProvider(self._registry, exported, component.qualifier)
                    bound[key] = Candidate(key, provider, Provenance.DECLARATIVE, source, component.scope)

                named_key = BindingKey(exported, Named(component.name))
                if qualifier_value(component.qualifier) != component.name and named_key not in bound:
                    provider = DeclarativeProvider(self._registry, exported, name=component.name)
                    bound[named_key] = Candidate(named_key, provider, Provenance.DECLARATIVE, source, component.scope)

        logger.debug("Exported %d declarative binding keys", len(bound))
        return list(bound.values())


class ProgrammaticExporter:
    """Turns module binding elements into candidates."""

    def __init__(self, excluded_sources: Iterable[str] = (), ignored_types: Iterable[Any] = ()):
        self._excluded_sources = tuple(excluded_sources)
        self._ignored = {BindingKey.of(t).type.descriptor for t in ignored_types}

    def accepts(self, element: Element) -> bool:
        descriptor = element.source if isinstance(element, PrivateModuleDef) else element.source.descriptor
        return not any(excluded in descriptor for excluded in self._excluded_sources)

    def candidates(
        self,
        elements: Iterable[Element],
        provider_for: Callable[[BindingKey], Provider],
        element_provider: Callable[[Binding], Provider],
    ) -> list[Candidate]:
        result: list[Candidate] = []
        for element in elements:
            if not self.accepts(element):
                logger.debug("Ignoring element %s from excluded source", element)
                continue
            bindings = exposed_bindings(element) if isinstance(element, PrivateModuleDef) else [element]
            for binding in bindings:
                if binding.source.is_bridged or binding.key.type.descriptor in self._ignored:
                    continue
                provider = element_provider(binding) if binding.is_aggregate else provider_for(binding.key)
                result.append(
                    Candidate(
                        binding.key,
                        provider,
                        Provenance.PROGRAMMATIC,
                        binding.source,
                        binding.scope,
                        binding.aggregate,
                        binding,
                    )
                )
        return result


def surviving_elements(
    elements: Iterable[Element],
    table: ResolutionTable,
    exporter: ProgrammaticExporter,
) -> list[Element]:
    """Programmatic elements left after deduplication, in their original order."""
    result: list[Element] = []
    for element in elements:
        if not exporter.accepts(element):
            continue
        if isinstance(element, PrivateModuleDef):
            lost = [b.key for b in exposed_bindings(element) if not _wins(table, b)]
            result.append(element.without_exposures(lost) if lost else element)
        elif element.is_aggregate or _wins(table, element):
            result.append(element)
    return result


def _wins(table: ResolutionTable, binding: Binding) -> bool:
    entry = table.get(binding.key)
    return entry is not None and entry.element is binding


def bridged_component_name(key: BindingKey) -> str:
    type_name = key.type.type_name
    if key.qualifier is None:
        return type_name
    value = qualifier_value(key.qualifier) or repr(key.qualifier)
    return f"{value}_{type_name}"


def install_into_registry(registry: ComponentRegistry, table: ResolutionTable) -> list[str]:
    """Register a bridged component for every programmatic winner of the table."""
    lazy_init = table.stage is Stage.DEVELOPMENT
    installed: list[str] = []
    for entry in table.by_provenance(Provenance.PROGRAMMATIC):
        name = bridged_component_name(entry.key)
        if registry.contains(name):
            logger.debug("Component %s already registered, not bridging %s", name, entry.key)
            continue
        registry.register(_bridged_definition(name, entry, lazy_init))
        installed.append(name)

    for key in table.aggregate_keys():
        name = bridged_component_name(key)
        if registry.contains(name):
            continue
        registry.register(
            ComponentDefinition(
                name,
                _aggregate_provider(table, key),
                key.type,
                scope=PROTOTYPE,
                qualifier=key.qualifier,
                lazy_init=lazy_init,
                bridged=True,
                description=BRIDGE_SOURCE,
            )
        )
        installed.append(name)
    logger.debug("Bridged %d programmatic bindings into the registry", len(installed))
    return installed


def _bridged_definition(name: str, entry: TableEntry, lazy_init: bool) -> ComponentDefinition:
    return ComponentDefinition(
        name,
        entry.provider,
        entry.key.type,
        scope=SINGLETON if entry.scope.is_singleton else PROTOTYPE,
        qualifier=entry.key.qualifier,
        lazy_init=lazy_init,
        bridged=True,
        description=str(entry.source),
    )


def _aggregate_provider(table: ResolutionTable, key: BindingKey) -> Provider:
    candidates = table.aggregate(key)
    kind = candidates[0].aggregate.kind if candidates and candidates[0].aggregate else AggregateKind.SET
    if kind is AggregateKind.MAP:
        return lambda: table.materialize_map(key)
    return lambda: set(table.materialize_set(key))


def bridge_module(table: ResolutionTable) -> ModuleDef:
    """Bindings backed by the registry for every declarative winner of the table."""
    module = ModuleDef(BRIDGE_SOURCE)
    for entry in table.by_provenance(Provenance.DECLARATIVE):
        module.add_binding(
            Binding(
                entry.key,
                BindingType.PROVIDER,
                entry.provider,
                entry.source,
                entry.scope,
                Provenance.DECLARATIVE,
            )
        )
    return module
