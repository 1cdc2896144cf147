"""
Binding deduplication and the frozen ResolutionTable it produces.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from .errors import ConflictingBindingError, NotFoundError
from .keys import BindingKey
from .model import SINGLETON, Provenance, Provider, Scope, SourceIdentity, Stage

logger = logging.getLogger(__name__)


class AggregateKind(Enum):
    SET = "set"
    MAP = "map"


@dataclass(frozen=True)
class AggregateSlot:
    """Marks a candidate as one entry of a set or map multi-binding."""

    kind: AggregateKind
    sub_key: Any = None


@dataclass(frozen=True)
class Candidate:
    """A provider offered for a BindingKey by one of the graphs."""

    key: BindingKey
    provider: Provider = field(compare=False, repr=False)
    provenance: Provenance
    source: SourceIdentity
    scope: Scope = SINGLETON
    aggregate: AggregateSlot | None = None
    element: Any = field(default=None, compare=False, repr=False)

    @property
    def is_aggregate(self) -> bool:
        return self.aggregate is not None


@dataclass(frozen=True)
class TableEntry:
    """The winning provider for one BindingKey."""

    key: BindingKey
    provider: Provider = field(compare=False, repr=False)
    provenance: Provenance
    scope: Scope
    source: SourceIdentity
    element: Any = field(default=None, compare=False, repr=False)

    @classmethod
    def of(cls, candidate: Candidate) -> TableEntry:
        return cls(
            candidate.key,
            candidate.provider,
            candidate.provenance,
            candidate.scope,
            candidate.source,
            candidate.element,
        )


class ResolutionTable(Mapping[BindingKey, TableEntry]):
    """
    Immutable mapping from BindingKey to its winning provider for one stage.

    Aggregate (set/map) entries live in a separate channel, see `aggregate`.
    """

    def __init__(
        self,
        entries: Mapping[BindingKey, TableEntry],
        aggregates: Mapping[BindingKey, tuple[Candidate, ...]] | None = None,
        stage: Stage = Stage.PRODUCTION,
    ):
        self._entries = MappingProxyType(dict(entries))
        self._aggregates = MappingProxyType(dict(aggregates or {}))
        self.stage = stage

    def __getitem__(self, key: BindingKey) -> TableEntry:
        return self._entries[key]

    def __iter__(self) -> Iterator[BindingKey]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def provider_for(self, key: BindingKey) -> Provider:
        entry = self._entries.get(key)
        if entry is None:
            raise NotFoundError(key, f"not in the {self.stage.value} resolution table")
        return entry.provider

    def by_provenance(self, provenance: Provenance) -> list[TableEntry]:
        return [entry for entry in self._entries.values() if entry.provenance is provenance]

    def aggregate(self, key: BindingKey) -> tuple[Candidate, ...]:
        return self._aggregates.get(key, ())

    def aggregate_keys(self) -> Iterable[BindingKey]:
        return self._aggregates.keys()

    def materialize_set(self, key: BindingKey) -> list[Any]:
        """Invoke every entry of a set aggregate, in declaration order."""
        return [candidate.provider() for candidate in self.aggregate(key)]

    def materialize_map(self, key: BindingKey) -> dict[Any, Any]:
        """Invoke a map aggregate; the first declared entry wins per sub-key."""
        result: dict[Any, Any] = {}
        for candidate in self.aggregate(key):
            sub_key = candidate.aggregate.sub_key if candidate.aggregate else None
            if sub_key not in result:
                result[sub_key] = candidate.provider()
        return result

    @classmethod
    def empty(cls, stage: Stage = Stage.PRODUCTION) -> ResolutionTable:
        return cls({}, {}, stage)

    def __repr__(self) -> str:
        return f"ResolutionTable(stage={self.stage.value}, entries={len(self)}, aggregates={len(self._aggregates)})"


def dedupe(
    candidates: Iterable[Candidate],
    enabled: bool = True,
    stage: Stage = Stage.PRODUCTION,
) -> ResolutionTable:
    """
    Build a ResolutionTable, resolving colliding candidates by provenance.

    When enabled, a key offered by both graphs keeps only the declarative
    candidates. Any collision left unresolved raises ConflictingBindingError.
    Aggregate entries are never competing: they are all kept, except exact
    re-declarations (same sub-key and same source identity).
    """
    singular: dict[BindingKey, list[Candidate]] = defaultdict(list)
    aggregates: dict[BindingKey, list[Candidate]] = defaultdict(list)

    for candidate in candidates:
        if candidate.is_aggregate:
            aggregates[candidate.key].append(candidate)
        else:
            singular[candidate.key].append(candidate)

    entries: dict[BindingKey, TableEntry] = {}
    for key, group in singular.items():
        winner = _select_winner(key, group, enabled)
        entries[key] = TableEntry.of(winner)

    merged_aggregates = {key: _dedupe_aggregate(group) for key, group in aggregates.items()}
    table = ResolutionTable(entries, merged_aggregates, stage)
    logger.debug("Built %r", table)
    return table


def _select_winner(key: BindingKey, group: list[Candidate], enabled: bool) -> Candidate:
    if len(group) == 1:
        return group[0]

    if enabled:
        declarative = [c for c in group if c.provenance is Provenance.DECLARATIVE]
        programmatic = [c for c in group if c.provenance is Provenance.PROGRAMMATIC]
        if declarative and programmatic:
            logger.debug(
                "Dropping %d programmatic binding(s) for %s in favor of declarative %s",
                len(programmatic),
                key,
                declarative[0].source,
            )
            group = declarative
        if len(group) == 1:
            return group[0]

    raise ConflictingBindingError(key, [c.source for c in group])


def _dedupe_aggregate(group: list[Candidate]) -> tuple[Candidate, ...]:
    seen: set[tuple[Any, SourceIdentity]] = set()
    kept: list[Candidate] = []
    for candidate in sorted(group, key=lambda c: c.source.ordinal):
        sub_key = candidate.aggregate.sub_key if candidate.aggregate else None
        identity = (sub_key, candidate.source)
        if identity in seen:
            continue
        seen.add(identity)
        kept.append(candidate)
    return tuple(kept)
