# -*- coding: utf-8 -*-
"""
排序解释模块
根据用户最看重的准则说明房源排名靠前或需要注意的原因
"""

from dataclasses import dataclass, field
from typing import List

from criteria import CriterionWeight, get_criterion
from property_models import CriteriaScores
from property_ranker import PropertyRanking

TOP_PRIORITY_COUNT = 3
PRIORITY_HIGH_SCORE = 7
PRIORITY_LOW_SCORE = 4
EXTRA_STRENGTH_SCORE = 8
EXTRA_WEAKNESS_SCORE = 3
MAX_REASONS = 4
MAX_IMPROVEMENTS = 3


@dataclass
class PropertyExplanation:
    """房源排名解释"""
    why_high_rank: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)


def _format_score(score: float) -> str:
    return f"{score:g}/10"


class ExplanationGenerator:
    """生成排名解释文本，不修改排序结果"""

    def top_priorities(self, weights: List[CriterionWeight]) -> List[str]:
        """权重最高的三个准则（权重相同时保持目录顺序）"""
        ranked = sorted(weights, key=lambda w: w.weight, reverse=True)
        return [w.criterion_id for w in ranked[:TOP_PRIORITY_COUNT]]

    def explain(self, ranking: PropertyRanking,
                weights: List[CriterionWeight],
                criteria_scores: CriteriaScores) -> PropertyExplanation:
        """
        生成单个房源的解释

        Args:
            ranking (PropertyRanking): 房源排序结果
            weights (List[CriterionWeight]): 全局准则权重
            criteria_scores (CriteriaScores): 房源准则评分

        Returns:
            PropertyExplanation: 排名靠前的原因与待改进项
        """
        explanation = PropertyExplanation()
        priorities = self.top_priorities(weights)

        for rank, criterion_id in enumerate(priorities, start=1):
            score = criteria_scores.get(criterion_id)
            name = get_criterion(criterion_id).name
            if score >= PRIORITY_HIGH_SCORE:
                explanation.why_high_rank.append(f"{name}: {_format_score(score)} (your #{rank} priority)")
            elif score <= PRIORITY_LOW_SCORE:
                explanation.improvements.append(
                    f"{name}: {_format_score(score)} (important to you but weak here)")

        # 补充一个非优先准则上的突出优势
        for criterion_id in ranking.strengths:
            if criterion_id in priorities:
                continue
            score = criteria_scores.get(criterion_id)
            if score >= EXTRA_STRENGTH_SCORE and len(explanation.why_high_rank) < MAX_REASONS:
                explanation.why_high_rank.append(f"{get_criterion(criterion_id).name}: {_format_score(score)}")
                break

        # 补充一个非优先准则上的明显短板
        for criterion_id in ranking.weaknesses:
            if criterion_id in priorities:
                continue
            score = criteria_scores.get(criterion_id)
            if score <= EXTRA_WEAKNESS_SCORE and len(explanation.improvements) < MAX_IMPROVEMENTS:
                explanation.improvements.append(f"{get_criterion(criterion_id).name}: {_format_score(score)}")
                break

        return explanation
