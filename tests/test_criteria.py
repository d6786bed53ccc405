# -*- coding: utf-8 -*-
import unittest

from criteria import (
    CRITERIA, CRITERION_IDS, SAATY_LABELS, ComparisonSet, PairwiseComparison,
    comparison_to_saaty_ratio, generate_comparison_pairs, get_criterion
)


class TestCriteriaCatalog(unittest.TestCase):
    """准则目录的单元测试"""

    def test_catalog_order(self):
        self.assertEqual(CRITERION_IDS, ("price", "location", "size", "condition",
                                         "amenities", "comfort", "air_quality"))
        self.assertEqual(len(CRITERIA), 7)

    def test_get_criterion(self):
        self.assertEqual(get_criterion("air_quality").name, "Air Quality")
        with self.assertRaises(ValueError):
            get_criterion("garden")

    def test_comparison_pairs(self):
        pairs = generate_comparison_pairs()
        self.assertEqual(len(pairs), 21)
        self.assertEqual(pairs[0], ("price", "location"))
        self.assertEqual(pairs[-1], ("comfort", "air_quality"))
        self.assertEqual(len(set(frozenset(p) for p in pairs)), 21)

    def test_saaty_labels(self):
        self.assertEqual(sorted(SAATY_LABELS), list(range(1, 10)))


class TestSaatyRatio(unittest.TestCase):
    """Saaty 比率换算的单元测试"""

    def test_equal(self):
        self.assertEqual(comparison_to_saaty_ratio(0), 1.0)

    def test_second_more_important(self):
        self.assertEqual(comparison_to_saaty_ratio(4), 5.0)
        self.assertEqual(comparison_to_saaty_ratio(8), 9.0)

    def test_first_more_important(self):
        self.assertAlmostEqual(comparison_to_saaty_ratio(-4), 0.2)
        self.assertAlmostEqual(comparison_to_saaty_ratio(-8), 1 / 9)

    def test_symmetric_values_are_reciprocal(self):
        for value in range(1, 9):
            self.assertAlmostEqual(comparison_to_saaty_ratio(value) * comparison_to_saaty_ratio(-value), 1.0)


class TestPairwiseComparison(unittest.TestCase):

    def test_value_out_of_range(self):
        with self.assertRaises(ValueError):
            PairwiseComparison("price", "location", 9)
        with self.assertRaises(ValueError):
            PairwiseComparison("price", "location", -9)

    def test_value_must_be_integer(self):
        with self.assertRaises(ValueError):
            PairwiseComparison("price", "location", 2.5)
        with self.assertRaises(ValueError):
            PairwiseComparison("price", "location", True)

    def test_reversed(self):
        comparison = PairwiseComparison("price", "location", -3).reversed()
        self.assertEqual(comparison, PairwiseComparison("location", "price", 3))


class TestComparisonSet(unittest.TestCase):
    """用户比较集合的单元测试"""

    def test_resubmission_replaces_pair(self):
        comparisons = ComparisonSet()
        comparisons.set("price", "location", -4)
        comparisons.set("price", "location", 2)
        self.assertEqual(len(comparisons), 1)
        self.assertEqual(comparisons.get("price", "location"), 2)

    def test_reverse_orientation_replaces_pair(self):
        comparisons = ComparisonSet()
        comparisons.set("price", "location", -4)
        comparisons.set("location", "price", -2)
        self.assertEqual(len(comparisons), 1)
        self.assertEqual(comparisons.get("price", "location"), 2)
        self.assertEqual(comparisons.get("location", "price"), -2)

    def test_missing_pair(self):
        self.assertIsNone(ComparisonSet().get("size", "comfort"))

    def test_completeness(self):
        comparisons = ComparisonSet()
        self.assertFalse(comparisons.is_complete())
        for a, b in generate_comparison_pairs():
            comparisons.set(a, b, 0)
        self.assertTrue(comparisons.is_complete())
        self.assertEqual(len(list(comparisons)), 21)

    def test_invalid_value_not_stored(self):
        comparisons = ComparisonSet()
        with self.assertRaises(ValueError):
            comparisons.set("price", "location", 12)
        self.assertEqual(len(comparisons), 0)


if __name__ == "__main__":
    unittest.main()
