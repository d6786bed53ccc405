# -*- coding: utf-8 -*-
"""
房源排序模块
将准则权重与房源归一化评分加权求和，得到 0-100 的综合得分并排序
"""

import logging
from dataclasses import dataclass, field
from typing import List, Dict, Tuple

from criteria import CriterionWeight
from property_models import CriteriaScores, Property

# 权重×评分的结果约在 [0, 10]，乘以 10 换算到百分制
SCORE_SCALE = 10
HIGHLIGHT_COUNT = 3


@dataclass(frozen=True)
class PropertyRanking:
    """单个房源的排序结果"""
    property_id: str
    final_score: float  # 综合得分（10-100）
    criteria_contributions: Dict[str, float] = field(default_factory=dict)  # 各准则对得分的贡献
    strengths: Tuple[str, ...] = ()  # 评分最高的三个准则
    weaknesses: Tuple[str, ...] = ()  # 评分最低的三个准则（由低到高）


class PropertyRanker:
    """根据用户权重对房源进行排序"""

    def __init__(self, highlight_count: int = HIGHLIGHT_COUNT):
        self.highlight_count = highlight_count
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def calculate_property_score(criteria_scores: CriteriaScores,
                                 weights: List[CriterionWeight]) -> Tuple[float, Dict[str, float]]:
        """
        计算单个房源的综合得分

        Args:
            criteria_scores (CriteriaScores): 房源的准则评分
            weights (List[CriterionWeight]): 准则权重

        Returns:
            Tuple[float, Dict[str, float]]: 综合得分, 各准则贡献
        """
        contributions = {}
        final_score = 0.0
        for weight in weights:
            contribution = criteria_scores.get(weight.criterion_id) * weight.weight * SCORE_SCALE
            contributions[weight.criterion_id] = contribution
            final_score += contribution
        return final_score, contributions

    def find_strengths_and_weaknesses(self, criteria_scores: CriteriaScores,
                                      weights: List[CriterionWeight]) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
        """
        按原始评分（而非贡献）找出优势与劣势准则，评分相同时保持准则目录顺序
        """
        ranked = sorted(
            (w.criterion_id for w in weights),
            key=criteria_scores.get,
            reverse=True
        )
        strengths = tuple(ranked[:self.highlight_count])
        weaknesses = tuple(reversed(ranked[-self.highlight_count:]))
        return strengths, weaknesses

    def rank_properties(self, properties: List[Property],
                        weights: List[CriterionWeight]) -> List[PropertyRanking]:
        """
        对房源进行排序，未生成准则评分的房源被忽略

        Args:
            properties (List[Property]): 房源列表
            weights (List[CriterionWeight]): 准则权重

        Returns:
            List[PropertyRanking]: 按综合得分降序排列的结果（得分相同保持输入顺序）
        """
        rankings = []
        for prop in properties:
            if prop.criteria_scores is None:
                self.logger.debug(f"房源 {prop.id} 缺少准则评分，跳过")
                continue

            final_score, contributions = self.calculate_property_score(prop.criteria_scores, weights)
            strengths, weaknesses = self.find_strengths_and_weaknesses(prop.criteria_scores, weights)

            rankings.append(PropertyRanking(
                property_id=prop.id,
                final_score=final_score,
                criteria_contributions=contributions,
                strengths=strengths,
                weaknesses=weaknesses
            ))

        return sorted(rankings, key=lambda r: r.final_score, reverse=True)
