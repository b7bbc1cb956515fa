#!/usr/bin/env python3
"""Tests for adreel/strategies.py: strategy selection and rule shape."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
if str(_repo) not in sys.path:
    sys.path.insert(0, str(_repo))

from adreel.strategies import (
    AMAZON,
    GENERIC,
    SHOPIFY,
    ExtractionStrategy,
    StrategyRegistry,
    default_registry,
)


def _etsy() -> ExtractionStrategy:
    return ExtractionStrategy(
        name="etsy",
        matches=lambda host, path: host.endswith("etsy.com"),
        title=("h1[data-buy-box-listing-title]",),
    )


class TestSelect(unittest.TestCase):

    def setUp(self):
        self.registry = default_registry()

    def test_shopify(self):
        self.assertIs(self.registry.select("https://vital.myshopify.com/products/x"), SHOPIFY)

    def test_amazon(self):
        self.assertIs(self.registry.select("https://www.amazon.co.uk/dp/B0ABCDEFGH"), AMAZON)

    def test_unknown_falls_back(self):
        self.assertIs(self.registry.select("https://example.com/products/mug"), GENERIC)

    def test_host_case_insensitive(self):
        self.assertIs(self.registry.select("https://WWW.AMAZON.COM/dp/B0ABCDEFGH"), AMAZON)

    def test_names_order(self):
        self.assertEqual(self.registry.names(), ["shopify", "amazon", "generic"])


class TestRegister(unittest.TestCase):

    def test_extra_goes_before_fallback(self):
        registry = default_registry(extra=[_etsy()])
        self.assertEqual(registry.names(), ["shopify", "amazon", "etsy", "generic"])
        self.assertEqual(registry.select("https://www.etsy.com/listing/1").name, "etsy")

    def test_first_takes_priority(self):
        registry = default_registry()
        greedy = ExtractionStrategy(name="greedy", matches=lambda h, p: True, title=("h1",))
        registry.register(greedy, first=True)
        self.assertEqual(registry.select("https://www.amazon.com/dp/B0ABCDEFGH").name, "greedy")

    def test_empty_registry_uses_fallback(self):
        self.assertIs(StrategyRegistry().select("https://anything.test/"), GENERIC)


class TestRules(unittest.TestCase):

    def test_shape(self):
        rules = AMAZON.rules()
        self.assertEqual(rules["title"], ["#productTitle"])
        self.assertEqual(rules["featureMinLen"], 10)
        self.assertEqual(rules["maxImages"], 5)
        self.assertFalse(rules["cleanImages"])

    def test_shopify_cleans_images(self):
        self.assertTrue(SHOPIFY.rules()["cleanImages"])
        self.assertIn("cdn.shopify", SHOPIFY.rules()["imageHints"])

    def test_generic_reads_meta_description(self):
        self.assertIn('meta[name="description"]@content', GENERIC.rules()["description"])


if __name__ == "__main__":
    unittest.main()
