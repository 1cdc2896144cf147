"""
Lazy cross-graph resolution for a single injection point.

A LazyReference first tries the graph the dependent component lives in and,
on NotFoundError, the other graph. Whichever direction succeeds is written
once and reused by every later dereference of the same injection point.
"""

from __future__ import annotations

import collections.abc
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import NotFoundError, UnsatisfiedDependencyError
from .keys import BindingKey
from .model import Provider
from .typemodel import TypeRef

logger = logging.getLogger(__name__)

Resolver = Callable[[BindingKey], Provider]

COLLECTION_TYPES: tuple[type, ...] = (
    list,
    set,
    frozenset,
    tuple,
    dict,
    collections.abc.Collection,
    collections.abc.Iterable,
    collections.abc.Mapping,
    collections.abc.Sequence,
    collections.abc.Set,
)


def is_collection_type(target: TypeRef) -> bool:
    return target.descriptor.python_type in COLLECTION_TYPES


class Direction(Enum):
    HOME = "home"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class InjectionPoint:
    """A single dependency slot: the parameter `parameter` of component `owner`."""

    owner: str
    parameter: str
    key: BindingKey

    def __str__(self) -> str:
        return f"{self.owner}.{self.parameter} ({self.key})"


@dataclass(frozen=True)
class Unresolved:
    pass


@dataclass(frozen=True)
class ResolvedHome:
    provider: Provider = field(repr=False)
    direction = Direction.HOME


@dataclass(frozen=True)
class ResolvedFallback:
    provider: Provider = field(repr=False)
    direction = Direction.FALLBACK


ProxyState = Unresolved | ResolvedHome | ResolvedFallback

UNRESOLVED = Unresolved()


class LazyReference:
    """
    Deferred handle for one injection point.

    Call `get()` for the target instance; attribute access is forwarded to it.
    Two threads may both resolve concurrently; the first write wins and both
    return providers from the same direction afterwards.
    """

    def __init__(self, point: InjectionPoint, home: Resolver, fallback: Resolver | None = None):
        if is_collection_type(point.key.type):
            raise ValueError(f"Collection-typed dependency {point} must be resolved eagerly")
        self._point = point
        self._home = home
        self._fallback = fallback
        self._state: ProxyState = UNRESOLVED
        self._lock = threading.Lock()

    @property
    def injection_point(self) -> InjectionPoint:
        return self._point

    @property
    def state(self) -> ProxyState:
        return self._state

    @property
    def direction(self) -> Direction | None:
        state = self._state
        return None if isinstance(state, Unresolved) else state.direction

    def resolve(self) -> Provider:
        """Return the memoized provider, resolving it on first use."""
        state = self._state
        if not isinstance(state, Unresolved):
            return state.provider

        attempted = self._attempt()
        with self._lock:
            current = self._state
            if isinstance(current, Unresolved):
                self._state = current = attempted
                logger.debug("Injection point %s resolved via %s graph", self._point, attempted.direction.value)
        return current.provider

    def get(self) -> Any:
        return self.resolve()()

    def _attempt(self) -> ResolvedHome | ResolvedFallback:
        key = self._point.key
        try:
            return ResolvedHome(self._home(key))
        except NotFoundError as home_error:
            if self._fallback is None:
                raise UnsatisfiedDependencyError(key, self._point) from home_error

        try:
            return ResolvedFallback(self._fallback(key))
        except NotFoundError as fallback_error:
            raise UnsatisfiedDependencyError(key, self._point) from fallback_error

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self.get(), name)

    def __repr__(self) -> str:
        return f"LazyReference({self._point}, state={self._state!r})"


def lazy_or_eager(point: InjectionPoint, home: Resolver, fallback: Resolver | None = None) -> Any:
    """
    A LazyReference for `point`, or the resolved value itself for collections.

    Collections are resolved at once: home graph first, then the fallback.
    """
    if not is_collection_type(point.key.type):
        return LazyReference(point, home, fallback)
    try:
        provider = home(point.key)
    except NotFoundError as home_error:
        if fallback is None:
            raise UnsatisfiedDependencyError(point.key, point) from home_error
        try:
            provider = fallback(point.key)
        except NotFoundError as fallback_error:
            raise UnsatisfiedDependencyError(point.key, point) from fallback_error
    return provider()
