# -*- coding: utf-8 -*-
import unittest

import numpy as np

from ahp_processor import (
    AHPProcessor, ComparisonMatrixBuilder, ConsistencyChecker, MatrixValidator, WeightCalculator
)
from criteria import CRITERION_IDS, PairwiseComparison, generate_comparison_pairs
from property_models import CriteriaScores, Property


def consistent_comparisons():
    """按权重 price=9, location=3, 其余=1 生成完全一致的 21 条比较"""
    target = {cid: 1 for cid in CRITERION_IDS}
    target.update(price=9, location=3)
    comparisons = []
    for a, b in generate_comparison_pairs():
        ratio = target[a] / target[b]
        value = -int(ratio - 1) if ratio >= 1 else int(1 / ratio - 1)
        comparisons.append(PairwiseComparison(a, b, value))
    return comparisons


def cyclic_comparisons():
    """price ≫ location ≫ size ≫ price，相互矛盾"""
    return [
        PairwiseComparison("price", "location", -8),
        PairwiseComparison("location", "size", -8),
        PairwiseComparison("size", "price", -8),
    ]


class TestComparisonMatrixBuilder(unittest.TestCase):
    """判断矩阵构建的单元测试"""

    def setUp(self):
        self.builder = ComparisonMatrixBuilder()

    def test_empty_comparisons_give_all_ones(self):
        matrix = self.builder.build([])
        np.testing.assert_array_equal(matrix, np.ones((7, 7)))

    def test_first_criterion_more_important(self):
        matrix = self.builder.build([PairwiseComparison("price", "location", -4)])
        self.assertAlmostEqual(matrix[0, 1], 5.0)
        self.assertAlmostEqual(matrix[1, 0], 0.2)

    def test_second_criterion_more_important(self):
        matrix = self.builder.build([PairwiseComparison("size", "comfort", 2)])
        size, comfort = CRITERION_IDS.index("size"), CRITERION_IDS.index("comfort")
        self.assertAlmostEqual(matrix[comfort, size], 3.0)
        self.assertAlmostEqual(matrix[size, comfort], 1 / 3)

    def test_unknown_and_self_comparisons_are_ignored(self):
        matrix = self.builder.build([
            PairwiseComparison("price", "garden", -3),
            PairwiseComparison("price", "price", 5),
        ])
        np.testing.assert_array_equal(matrix, np.ones((7, 7)))

    def test_later_comparison_overwrites_pair(self):
        matrix = self.builder.build([
            PairwiseComparison("price", "location", -4),
            PairwiseComparison("location", "price", -2),
        ])
        self.assertAlmostEqual(matrix[1, 0], 3.0)
        self.assertAlmostEqual(matrix[0, 1], 1 / 3)

    def test_reciprocal_invariant(self):
        values = list(range(-8, 9))
        comparisons = [
            PairwiseComparison(a, b, values[k % len(values)])
            for k, (a, b) in enumerate(generate_comparison_pairs())
        ]
        matrix = self.builder.build(comparisons)
        np.testing.assert_allclose(matrix * matrix.T, np.ones((7, 7)), rtol=1e-12)
        self.assertTrue(MatrixValidator().validate_matrix(matrix, "test"))

    def test_matrix_is_read_only(self):
        matrix = self.builder.build([])
        with self.assertRaises(ValueError):
            matrix[0, 1] = 2.0


class TestWeightCalculator(unittest.TestCase):
    """权重计算器的单元测试"""

    def test_two_by_two(self):
        calculator = WeightCalculator()
        matrix = np.array([[1, 2], [0.5, 1]])
        weights = calculator.calculate_weights(matrix)
        self.assertAlmostEqual(sum(weights), 1.0, places=9)
        self.assertAlmostEqual(weights[0], 0.6667, places=4)

    def test_all_methods_normalized_and_positive(self):
        calculator = WeightCalculator()
        builder = ComparisonMatrixBuilder()
        for comparisons in (consistent_comparisons(), cyclic_comparisons(), []):
            matrix = builder.build(comparisons)
            for method in calculator.available_methods:
                weights = calculator.calculate_weights(matrix, method=method)
                self.assertAlmostEqual(float(np.sum(weights)), 1.0, delta=1e-9)
                self.assertTrue(np.all(weights > 0), method)

    def test_consistent_matrix_recovers_target_weights(self):
        calculator = WeightCalculator()
        matrix = ComparisonMatrixBuilder().build(consistent_comparisons())
        expected = np.array([9, 3, 1, 1, 1, 1, 1]) / 17
        for method in calculator.available_methods:
            np.testing.assert_allclose(calculator.calculate_weights(matrix, method=method), expected, atol=1e-8)

    def test_zero_comparisons_give_uniform_weights(self):
        weights = WeightCalculator().calculate_weights(np.ones((7, 7)))
        np.testing.assert_allclose(weights, np.full(7, 1 / 7))

    def test_unknown_method_raises(self):
        with self.assertRaises(ValueError):
            WeightCalculator().calculate_weights(np.ones((3, 3)), method="arithmetic")


class TestConsistencyChecker(unittest.TestCase):
    """一致性检查器的单元测试"""

    def setUp(self):
        self.checker = ConsistencyChecker()
        self.builder = ComparisonMatrixBuilder()

    def test_two_by_two_is_consistent(self):
        result = self.checker.check_consistency(np.array([[1, 2], [0.5, 1]]))
        self.assertTrue(result.is_consistent)
        self.assertAlmostEqual(result.consistency_ratio, 0.0, places=6)

    def test_fully_consistent_comparisons(self):
        result = self.checker.check_consistency(self.builder.build(consistent_comparisons()))
        self.assertTrue(result.is_consistent)
        self.assertAlmostEqual(result.consistency_ratio, 0.0, places=9)
        self.assertAlmostEqual(result.random_index, 1.32)

    def test_partial_transitive_comparisons(self):
        matrix = self.builder.build([
            PairwiseComparison("price", "location", -2),
            PairwiseComparison("location", "size", -2),
            PairwiseComparison("price", "size", -4),
        ])
        result = self.checker.check_consistency(matrix)
        self.assertLess(result.consistency_ratio, 0.1)
        self.assertTrue(result.is_consistent)

    def test_cyclic_comparisons_are_inconsistent(self):
        result = self.checker.check_consistency(self.builder.build(cyclic_comparisons()))
        self.assertGreater(result.consistency_ratio, 0.1)
        self.assertFalse(result.is_consistent)
        self.assertGreater(result.max_eigenvalue, 7)

    def test_unsupported_size_raises(self):
        with self.assertRaises(ValueError):
            self.checker.check_consistency(np.ones((11, 11)))

    def test_non_square_raises(self):
        with self.assertRaises(ValueError):
            self.checker.check_consistency(np.ones((2, 3)))


class TestMatrixValidator(unittest.TestCase):

    def test_non_reciprocal_matrix_rejected(self):
        matrix = np.array([[1, 3], [3, 1]], dtype=float)
        with self.assertRaises(ValueError):
            MatrixValidator().validate_matrix(matrix, "test")


def make_property(prop_id, **scores):
    values = dict(price=5, location=5, size=5, condition=5, amenities=5, comfort=5, air_quality=5)
    values.update(scores)
    return Property(id=prop_id, name=prop_id, criteria_scores=CriteriaScores(**values))


class TestAHPProcessor(unittest.TestCase):
    """完整 AHP 计算流程的单元测试"""

    def setUp(self):
        self.properties = [
            make_property("cheap", price=10, location=3),
            make_property("central", price=2, location=10),
            Property(id="unscored", name="unscored"),
            make_property("average"),
        ]

    def test_price_priority_scenario(self):
        result = AHPProcessor().calculate([PairwiseComparison("price", "location", -4)], [])
        weights = result.weights_as_dict()
        self.assertEqual(max(weights, key=weights.get), "price")
        self.assertGreater(weights["price"], weights["location"])
        self.assertEqual(result.property_count, 0)
        self.assertEqual(result.rankings, ())

    def test_zero_comparisons(self):
        result = AHPProcessor().calculate([], self.properties)
        for weight in result.weights:
            self.assertAlmostEqual(weight.weight, 1 / 7)
        self.assertAlmostEqual(result.consistency_ratio, 0.0, places=9)
        self.assertTrue(result.is_consistent)

    def test_unscored_properties_excluded(self):
        result = AHPProcessor().calculate([], self.properties)
        ranked_ids = [r.property_id for r in result.rankings]
        self.assertNotIn("unscored", ranked_ids)
        self.assertEqual(result.property_count, 3)
        self.assertEqual(len(result.rankings), 3)

    def test_ranking_follows_priorities(self):
        result = AHPProcessor().calculate([PairwiseComparison("price", "location", -6)], self.properties)
        self.assertEqual(result.rankings[0].property_id, "cheap")

        result = AHPProcessor().calculate([PairwiseComparison("price", "location", 6)], self.properties)
        self.assertEqual(result.rankings[0].property_id, "central")

    def test_inconsistent_input_still_ranks(self):
        result = AHPProcessor().calculate(cyclic_comparisons(), self.properties)
        self.assertFalse(result.is_consistent)
        self.assertEqual(result.property_count, 3)

    def test_idempotent(self):
        processor = AHPProcessor()
        comparisons = cyclic_comparisons() + [PairwiseComparison("comfort", "amenities", 3)]
        first = processor.calculate(comparisons, self.properties, calculated_at="2026-01-01T00:00:00+00:00")
        second = AHPProcessor().calculate(comparisons, self.properties,
                                          calculated_at="2026-01-01T00:00:00+00:00")
        self.assertEqual(first, second)

    def test_score_bounds(self):
        extremes = [
            make_property("low", price=1, location=1, size=1, condition=1, amenities=1, comfort=1, air_quality=1),
            make_property("high", price=10, location=10, size=10, condition=10, amenities=10, comfort=10,
                          air_quality=10),
        ]
        for comparisons in ([], consistent_comparisons(), cyclic_comparisons()):
            for method in ("geometric", "power", "eigenvector"):
                result = AHPProcessor(weight_method=method).calculate(comparisons, self.properties + extremes)
                for ranking in result.rankings:
                    self.assertGreaterEqual(ranking.final_score, 10 - 1e-9)
                    self.assertLessEqual(ranking.final_score, 100 + 1e-9)
                self.assertAlmostEqual(result.rankings[0].final_score, 100.0, places=9)
                self.assertAlmostEqual(result.rankings[-1].final_score, 10.0, places=9)

    def test_weight_method_recorded(self):
        result = AHPProcessor(weight_method="power").calculate([], [])
        self.assertEqual(result.weight_method, "power")
        self.assertTrue(result.calculated_at)

    def test_invalid_weight_method(self):
        with self.assertRaises(ValueError):
            AHPProcessor(weight_method="median")


if __name__ == "__main__":
    unittest.main()
