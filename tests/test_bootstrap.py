#!/usr/bin/env python3
"""
Unit tests for bootstrap ordering.
"""

import threading
import unittest

from izumi.bridge import BindingKey, BootstrapScheduler, BootstrapState, BridgeError, Candidate, Provenance, dedupe
from izumi.bridge.bootstrap import AtomicFlag
from izumi.bridge.model import SourceIdentity


class Clock:
    pass


def clock_table():
    key = BindingKey.of(Clock)
    return dedupe([Candidate(key, Clock, Provenance.DECLARATIVE, SourceIdentity.next("test"))])


class TestAtomicFlag(unittest.TestCase):
    def test_compare_and_set(self):
        flag = AtomicFlag()

        self.assertTrue(flag.compare_and_set(False, True))
        self.assertFalse(flag.compare_and_set(False, True))
        self.assertTrue(flag.get())


class TestBootstrapScheduler(unittest.TestCase):
    """Test the COLLECTING -> MERGING -> ACTIVE lifecycle."""

    def test_merge_runs_once(self):
        merges = []

        def merge():
            merges.append(1)
            return clock_table()

        scheduler = BootstrapScheduler(merge)
        self.assertEqual(scheduler.state, BootstrapState.COLLECTING)

        first = scheduler.merge()
        second = scheduler.merge()

        self.assertIs(first, second)
        self.assertEqual(len(merges), 1)
        self.assertEqual(scheduler.state, BootstrapState.MERGING)

    def test_failed_merge_can_be_retried(self):
        attempts = []

        def merge():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("metadata not ready")
            return clock_table()

        scheduler = BootstrapScheduler(merge)
        with self.assertRaises(RuntimeError):
            scheduler.merge()
        self.assertEqual(scheduler.state, BootstrapState.COLLECTING)

        scheduler.merge()
        self.assertEqual(len(attempts), 2)

    def test_reentrant_merge_is_an_error(self):
        scheduler = BootstrapScheduler(lambda: scheduler.merge())

        with self.assertRaises(BridgeError):
            scheduler.merge()

    def test_snapshot_does_not_activate(self):
        activations = []
        scheduler = BootstrapScheduler(clock_table, activations.append)

        instance = scheduler.snapshot_provider(BindingKey.of(Clock))()

        self.assertIsInstance(instance, Clock)
        self.assertFalse(scheduler.is_active)
        self.assertEqual(activations, [])

    def test_request_activates(self):
        activations = []
        scheduler = BootstrapScheduler(clock_table, activations.append)

        scheduler.request(BindingKey.of(Clock))
        scheduler.request(BindingKey.of(Clock))

        self.assertEqual(scheduler.state, BootstrapState.ACTIVE)
        self.assertEqual(len(activations), 1)

    def test_concurrent_activation_happens_once(self):
        activations = []
        scheduler = BootstrapScheduler(clock_table, activations.append)
        barrier = threading.Barrier(10)
        results = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            performed = scheduler.activate()
            with lock:
                results.append(performed)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(results.count(True), 1)
        self.assertEqual(len(results), 10)
        self.assertEqual(len(activations), 1)
        self.assertTrue(scheduler.is_active)


if __name__ == "__main__":
    unittest.main()
