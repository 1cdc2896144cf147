#!/usr/bin/env python3
"""
Unit tests for bridge settings.
"""

import unittest

from izumi.bridge import BridgeSettings, Stage


class TestBridgeSettings(unittest.TestCase):
    """Test reading settings from properties and the environment."""

    def test_defaults(self):
        settings = BridgeSettings()

        self.assertFalse(settings.dedupe)
        self.assertTrue(settings.lazy_fallback)
        self.assertEqual(settings.stage, Stage.PRODUCTION)
        self.assertEqual(settings.excluded_sources, ())

    def test_from_properties(self):
        settings = BridgeSettings.from_properties(
            {
                "bridge.dedup": "true",
                "bridge.autowire_jit": "off",
                "bridge.stage": "Development",
                "bridge.modules.exclude": "legacy, test-fixtures,",
            }
        )

        self.assertTrue(settings.dedupe)
        self.assertFalse(settings.lazy_fallback)
        self.assertEqual(settings.stage, Stage.DEVELOPMENT)
        self.assertEqual(settings.excluded_sources, ("legacy", "test-fixtures"))

    def test_missing_properties_keep_defaults(self):
        self.assertEqual(BridgeSettings.from_properties({}), BridgeSettings())

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            BridgeSettings.from_properties({"bridge.dedup": "maybe"})
        with self.assertRaises(ValueError):
            BridgeSettings.from_properties({"bridge.stage": "staging"})

    def test_from_environ(self):
        settings = BridgeSettings.from_environ(
            {
                "IZUMI_BRIDGE_DEDUP": "1",
                "IZUMI_BRIDGE_STAGE": "tool",
                "IZUMI_BRIDGE_MODULES_EXCLUDE": "legacy",
                "UNRELATED": "x",
            }
        )

        self.assertTrue(settings.dedupe)
        self.assertTrue(settings.lazy_fallback)
        self.assertEqual(settings.stage, Stage.TOOL)
        self.assertEqual(settings.excluded_sources, ("legacy",))


if __name__ == "__main__":
    unittest.main()
