# -*- coding: utf-8 -*-
import os
import tempfile
import unittest

import matplotlib

matplotlib.use("Agg")

from ahp_processor import AHPProcessor  # noqa: E402
from criteria import PairwiseComparison  # noqa: E402
from property_models import CriteriaScores, Property  # noqa: E402
from visualizer import RankingVisualizer  # noqa: E402


class TestRankingVisualizer(unittest.TestCase):
    """排序结果图表的单元测试"""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.visualizer = RankingVisualizer(output_dir=self.tmp.name, dpi=72)
        self.comparisons = [
            PairwiseComparison("price", "location", -8),
            PairwiseComparison("location", "size", -8),
            PairwiseComparison("size", "price", -8),
        ]
        self.processor = AHPProcessor()
        self.result = self.processor.calculate(self.comparisons, [
            Property("a", criteria_scores=CriteriaScores(price=9)),
            Property("b", criteria_scores=CriteriaScores(location=9)),
        ])

    def tearDown(self):
        self.tmp.cleanup()

    def test_charts_are_written(self):
        paths = [
            self.visualizer.plot_weights_pie(self.result),
            self.visualizer.plot_ranking_bar(self.result, {"a": "Flat A"}),
            self.visualizer.plot_comparison_heatmap(self.processor.matrix_builder.build(self.comparisons)),
        ]
        for path in paths:
            self.assertTrue(os.path.exists(path))

    def test_empty_ranking_is_skipped(self):
        result = self.processor.calculate(self.comparisons, [])
        self.assertIsNone(self.visualizer.plot_ranking_bar(result))


if __name__ == "__main__":
    unittest.main()
