"""
Private-scope extraction.

Only keys a private module exposes leave it. Exposure is checked at every
level: a binding exposed by a nested private module is visible to the
grandparent only when the intermediate module exposes it again.
"""

from __future__ import annotations

from collections.abc import Callable

from .keys import BindingKey
from .model import Provider
from .module import Binding, PrivateModuleDef


def exposed_bindings(scope: PrivateModuleDef) -> list[Binding]:
    """Binding elements of `scope` (and re-exposed nested scopes) visible to its parent."""
    exposed = scope.exposed_keys
    result: list[Binding] = []
    for element in scope.elements():
        if isinstance(element, PrivateModuleDef):
            result.extend(binding for binding in exposed_bindings(element) if binding.key in exposed)
        elif element.key in exposed:
            result.append(element)
    return result


def extract(
    scope: PrivateModuleDef,
    provider_for: Callable[[BindingKey], Provider],
) -> set[tuple[BindingKey, Provider]]:
    """Lift the exposed keys of a private scope into (key, provider) pairs for the parent."""
    keys = {binding.key for binding in exposed_bindings(scope)}
    return {(key, provider_for(key)) for key in keys}
