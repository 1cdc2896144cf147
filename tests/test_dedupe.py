#!/usr/bin/env python3
"""
Unit tests for provenance-based deduplication.
"""

import unittest

from izumi.bridge import (
    AggregateKind,
    BindingKey,
    Candidate,
    ConflictingBindingError,
    NotFoundError,
    Provenance,
    SourceIdentity,
    Stage,
    dedupe,
)
from izumi.bridge.dedupe import AggregateSlot

DECLARATIVE = Provenance.DECLARATIVE
PROGRAMMATIC = Provenance.PROGRAMMATIC


class Clock:
    pass


class Plugin:
    pass


def candidate(key, provenance, value=None, source=None, aggregate=None):
    return Candidate(
        key,
        lambda: value,
        provenance,
        source or SourceIdentity.next(provenance.value),
        aggregate=aggregate,
    )


class TestSingularKeys(unittest.TestCase):
    """Test keys bound at most once."""

    def setUp(self):
        self.clock = BindingKey.of(Clock)

    def test_distinct_keys_pass_through(self):
        named = BindingKey.of(Clock, "utc")
        table = dedupe([candidate(self.clock, DECLARATIVE, "a"), candidate(named, PROGRAMMATIC, "b")])

        self.assertEqual(len(table), 2)
        self.assertEqual(table.provider_for(self.clock)(), "a")
        self.assertEqual(table.provider_for(named)(), "b")
        self.assertEqual(table[named].provenance, PROGRAMMATIC)

    def test_collision_fails_when_disabled(self):
        candidates = [candidate(self.clock, DECLARATIVE), candidate(self.clock, PROGRAMMATIC)]

        with self.assertRaises(ConflictingBindingError) as ctx:
            dedupe(candidates, enabled=False)

        self.assertEqual(len(ctx.exception.sources), 2)

    def test_declarative_wins_when_enabled(self):
        table = dedupe(
            [candidate(self.clock, PROGRAMMATIC, "module"), candidate(self.clock, DECLARATIVE, "registry")]
        )

        self.assertEqual(table.provider_for(self.clock)(), "registry")
        self.assertEqual(table.by_provenance(PROGRAMMATIC), [])

    def test_same_provenance_collisions_still_fail(self):
        for provenance in (DECLARATIVE, PROGRAMMATIC):
            with self.subTest(provenance=provenance):
                with self.assertRaises(ConflictingBindingError):
                    dedupe([candidate(self.clock, provenance), candidate(self.clock, provenance)])

    def test_missing_key(self):
        with self.assertRaises(NotFoundError):
            dedupe([]).provider_for(self.clock)

    def test_stage_is_recorded(self):
        self.assertEqual(dedupe([], stage=Stage.DEVELOPMENT).stage, Stage.DEVELOPMENT)


class TestAggregates(unittest.TestCase):
    """Test multi-binding contributions."""

    def setUp(self):
        self.plugins = BindingKey.of(set[Plugin])
        self.by_name = BindingKey.of(dict[str, Plugin])

    def test_entries_from_both_graphs_are_kept_in_declaration_order(self):
        first = candidate(self.plugins, PROGRAMMATIC, "first", aggregate=AggregateSlot(AggregateKind.SET))
        second = candidate(self.plugins, DECLARATIVE, "second", aggregate=AggregateSlot(AggregateKind.SET))

        table = dedupe([second, first])

        self.assertEqual(table.materialize_set(self.plugins), ["first", "second"])
        self.assertNotIn(self.plugins, table)

    def test_exact_redeclaration_collapses(self):
        source = SourceIdentity.next("plugins")
        slot = AggregateSlot(AggregateKind.SET)
        table = dedupe(
            [
                candidate(self.plugins, PROGRAMMATIC, "audit", source, slot),
                candidate(self.plugins, PROGRAMMATIC, "audit", source, slot),
            ]
        )

        self.assertEqual(table.materialize_set(self.plugins), ["audit"])

    def test_equal_values_from_different_sources_are_kept(self):
        slot = AggregateSlot(AggregateKind.SET)
        table = dedupe(
            [
                candidate(self.plugins, PROGRAMMATIC, "audit", aggregate=slot),
                candidate(self.plugins, PROGRAMMATIC, "audit", aggregate=slot),
            ]
        )

        self.assertEqual(table.materialize_set(self.plugins), ["audit", "audit"])

    def test_first_declared_entry_wins_per_map_key(self):
        table = dedupe(
            [
                candidate(self.by_name, PROGRAMMATIC, "v1", aggregate=AggregateSlot(AggregateKind.MAP, "audit")),
                candidate(self.by_name, PROGRAMMATIC, "v2", aggregate=AggregateSlot(AggregateKind.MAP, "audit")),
                candidate(self.by_name, DECLARATIVE, "m", aggregate=AggregateSlot(AggregateKind.MAP, "metrics")),
            ]
        )

        self.assertEqual(table.materialize_map(self.by_name), {"audit": "v1", "metrics": "m"})
        self.assertEqual(list(table.aggregate_keys()), [self.by_name])


if __name__ == "__main__":
    unittest.main()
