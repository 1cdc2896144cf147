"""
Qualifier resolution: map a (type, qualifier) request to exactly one component.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from .closure import assignable
from .errors import AmbiguousBindingError, NotFoundError
from .keys import BindingKey, as_qualifier, qualifier_value
from .model import Component
from .typemodel import TypeIntrospector

logger = logging.getLogger(__name__)


def matches_qualifier(component: Component, qualifier: Any = None, name: str | None = None) -> bool:
    """
    Exact qualifier match, or name-as-qualifier equivalence.

    A component named "thing" satisfies `Named("thing")` even when it was
    registered without a qualifier.
    """
    if name is not None and component.name == name:
        return True
    qualifier = as_qualifier(qualifier)
    if qualifier is None:
        return False
    if component.qualifier == qualifier:
        return True
    carried = qualifier_value(qualifier)
    return carried is not None and carried == component.name


def resolve_candidates(
    components: Iterable[Component],
    target_type: Any,
    name: str | None = None,
    qualifier: Any = None,
) -> Component:
    """
    Select the single component satisfying a request.

    With a name or qualifier, only matching components are considered. Without
    one, a lone candidate wins, then a lone primary candidate. Anything else is
    a hard failure; an arbitrary candidate is never picked.
    """
    target = TypeIntrospector.to_ref(target_type)
    qualifier = as_qualifier(qualifier)
    key = BindingKey(target, qualifier if qualifier is not None else as_qualifier(name))
    candidates = [c for c in components if assignable(c, target)]

    if name is not None or qualifier is not None:
        matching = [c for c in candidates if matches_qualifier(c, qualifier, name)]
        if not matching:
            raise NotFoundError(key)
        if len(matching) > 1:
            raise AmbiguousBindingError(key, [c.name for c in matching])
        return matching[0]

    if not candidates:
        raise NotFoundError(key)
    if len(candidates) == 1:
        return candidates[0]

    primaries = [c for c in candidates if c.primary]
    if len(primaries) == 1:
        logger.debug("Resolved %s to primary component %s", key, primaries[0].name)
        return primaries[0]
    raise AmbiguousBindingError(key, [c.name for c in candidates])
