"""
Supertype closure with generic substitution.
"""

from __future__ import annotations

import functools
import logging
from collections import deque
from typing import Any

from .keys import BindingKey
from .model import Component
from .typemodel import ROOT_TYPES, TypeDescriptor, TypeIntrospector, TypeRef

logger = logging.getLogger(__name__)


def closure(declared: Any, concrete: Any = None) -> set[TypeRef]:
    """
    Compute every type a component should also be bound as.

    Starts from the concrete class and, when different, the declared type, then
    walks bases breadth first. Bases that are ancestors of the declared type are
    seen through it, so `Repo[Foo]` contributes `Base[Foo]` rather than `Base[T]`.
    Type parameters that stay unbound erase to the raw type.
    """
    token = TypeIntrospector.to_ref(declared)
    concrete_descriptor = (
        TypeIntrospector.describe(concrete) if concrete is not None else token.descriptor
    )
    return set(_closure(token, concrete_descriptor))


@functools.cache
def _closure(token: TypeRef, concrete: TypeDescriptor) -> frozenset[TypeRef]:
    result: set[TypeRef] = set()
    visited: set[TypeRef] = set()
    queue: deque[TypeRef] = deque([TypeRef(concrete)])
    if token != TypeRef(concrete):
        queue.append(token)

    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)

        if _emittable(current):
            result.add(current)

        for base in current.descriptor.bases:
            if token.descriptor.is_subtype_of(base.descriptor):
                seen = token.supertype_of(base.descriptor) or base
            else:
                seen = base.substitute(current.bindings())
            if seen.free_params():
                seen = seen.raw
            if not seen.is_available():
                logger.debug("Skipping supertype %s of %s: unresolvable type arguments", seen, token)
                continue
            queue.append(seen)
            if seen.is_parameterized:
                queue.append(seen.raw)

    return frozenset(result)


def _emittable(candidate: TypeRef) -> bool:
    descriptor = candidate.descriptor
    if descriptor.synthetic:
        return False
    if descriptor.python_type is not None and descriptor.python_type in ROOT_TYPES:
        return False
    return candidate.is_available()


def export_set(component: Component) -> set[BindingKey]:
    """BindingKeys a component is exported under, qualified like the component."""
    return {
        BindingKey(exported, component.qualifier)
        for exported in closure(component.declared_type, component.concrete)
    }


def assignable(component: Component, target: TypeRef) -> bool:
    """Whether `target` is among the types a component can be injected as."""
    return target in closure(component.declared_type, component.concrete)
