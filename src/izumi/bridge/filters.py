"""
Type visibility and filter engine.

Decides whether a (name, type) pair may be exported to the other graph.
"""

from __future__ import annotations

import fnmatch
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any

from .errors import MetadataUnavailableError
from .typemodel import TypeDescriptor, TypeIntrospector, Visibility

logger = logging.getLogger(__name__)


class InitializingComponent(ABC):
    """Lifecycle hook invoked by the registry once a component is constructed."""

    @abstractmethod
    def after_properties_set(self) -> None:
        pass


class DisposableComponent(ABC):
    """Lifecycle hook invoked by the registry on shutdown."""

    @abstractmethod
    def destroy(self) -> None:
        pass


INFRASTRUCTURE_TYPES: tuple[type, ...] = (InitializingComponent, DisposableComponent)


class ComponentFilter(ABC):
    """A single include or exclude rule."""

    @abstractmethod
    def matches(self, name: str, descriptor: TypeDescriptor) -> bool:
        """Check whether the candidate matches this rule."""


class TypeFilter(ComponentFilter):
    """Base for rules that inspect the declared type."""

    def matches(self, name: str, descriptor: TypeDescriptor) -> bool:  # noqa: ARG002
        if not descriptor.available:
            raise MetadataUnavailableError(descriptor.name, "type is not resolvable")
        return self.match_type(descriptor)

    @abstractmethod
    def match_type(self, descriptor: TypeDescriptor) -> bool:
        pass


class ExactTypeFilter(TypeFilter):
    def __init__(self, target: Any):
        self._target = TypeIntrospector.describe(target)

    def match_type(self, descriptor: TypeDescriptor) -> bool:
        return descriptor == self._target

    def __repr__(self) -> str:
        return f"ExactTypeFilter({self._target})"


class AssignableTypeFilter(TypeFilter):
    """Matches the target type and all of its subtypes."""

    def __init__(self, target: Any):
        self._target = TypeIntrospector.describe(target)

    def match_type(self, descriptor: TypeDescriptor) -> bool:
        return descriptor.is_subtype_of(self._target)

    def __repr__(self) -> str:
        return f"AssignableTypeFilter({self._target})"


class NameGlobFilter(ComponentFilter):
    """Matches component names against any of the given glob patterns."""

    def __init__(self, *patterns: str):
        self._patterns = patterns

    def matches(self, name: str, descriptor: TypeDescriptor) -> bool:  # noqa: ARG002
        return any(fnmatch.fnmatchcase(name, pattern) for pattern in self._patterns)

    def __repr__(self) -> str:
        return f"NameGlobFilter{self._patterns}"


class NameRegexFilter(ComponentFilter):
    """Matches when the whole component name matches the regular expression."""

    def __init__(self, pattern: str | re.Pattern[str]):
        self._pattern = re.compile(pattern) if isinstance(pattern, str) else pattern

    def matches(self, name: str, descriptor: TypeDescriptor) -> bool:  # noqa: ARG002
        return self._pattern.fullmatch(name) is not None

    def __repr__(self) -> str:
        return f"NameRegexFilter({self._pattern.pattern!r})"


class PredicateFilter(ComponentFilter):
    def __init__(self, predicate: Callable[[str, TypeDescriptor], bool]):
        self._predicate = predicate

    def matches(self, name: str, descriptor: TypeDescriptor) -> bool:
        return self._predicate(name, descriptor)


@dataclass(frozen=True)
class FilterSet:
    """
    Include/exclude rules contributed by one configuration source.

    A candidate matches when it satisfies every include rule and no exclude rule.
    """

    include: tuple[ComponentFilter, ...] = ()
    exclude: tuple[ComponentFilter, ...] = ()
    source: str = "default"

    def including(self, *filters: ComponentFilter) -> FilterSet:
        return replace(self, include=self.include + filters)

    def excluding(self, *filters: ComponentFilter) -> FilterSet:
        return replace(self, exclude=self.exclude + filters)

    def matches(self, name: str, descriptor: TypeDescriptor) -> bool:
        if not all(rule.matches(name, descriptor) for rule in self.include):
            return False
        return not any(rule.matches(name, descriptor) for rule in self.exclude)


class BindingFilter:
    """
    Eligibility predicate for cross-graph export.

    Infrastructure markers and private types are always rejected. Configured
    filter sets are OR-ed: passing any one of them is enough.
    """

    def __init__(self, filter_sets: Iterable[FilterSet] = ()):
        self._filter_sets = tuple(filter_sets)
        self._infrastructure = frozenset(TypeIntrospector.describe(t) for t in INFRASTRUCTURE_TYPES)

    @property
    def filter_sets(self) -> tuple[FilterSet, ...]:
        return self._filter_sets

    def with_filter_sets(self, filter_sets: Iterable[FilterSet]) -> BindingFilter:
        return BindingFilter(self._filter_sets + tuple(filter_sets))

    def eligible(self, name: str, target: Any) -> bool:
        descriptor = TypeIntrospector.to_ref(target).descriptor
        if descriptor in self._infrastructure:
            return False
        if not self.visible(descriptor):
            logger.debug("Skipping %s (%s): not visible", name, descriptor.name)
            return False
        if not self._filter_sets:
            return True
        return any(filter_set.matches(name, descriptor) for filter_set in self._filter_sets)

    @staticmethod
    def visible(descriptor: TypeDescriptor) -> bool:
        """Interfaces are always visible; other types need a non-private nesting chain."""
        return all(
            declared.is_interface or declared.visibility is not Visibility.PRIVATE
            for declared in descriptor.nesting_chain()
        )
