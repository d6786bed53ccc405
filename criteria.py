# -*- coding: utf-8 -*-
"""
评价准则目录与 Saaty 标度模块
定义租房决策的七个固定准则、Saaty 1-9 标度换算以及用户两两比较的存储
"""

import logging
from dataclasses import dataclass
from typing import List, Dict, Tuple, Optional


@dataclass(frozen=True)
class Criterion:
    """评价准则定义，进程启动时创建，之后不可修改"""
    id: str  # 准则标识
    name: str  # 显示名称
    name_ru: str  # 俄文名称
    description: str  # 准则说明
    icon: str  # 图标名称（lucide）


# 准则顺序即判断矩阵的行列顺序
CRITERIA: Tuple[Criterion, ...] = (
    Criterion("price", "Price", "Цена", "Monthly rent cost", "Banknote"),
    Criterion("location", "Location", "Расположение",
              "Distance to center and neighborhood quality", "MapPin"),
    Criterion("size", "Size", "Размер", "Square meters, bedrooms, bathrooms", "Maximize2"),
    Criterion("condition", "Condition", "Состояние", "Renovation quality and modernity", "Sparkles"),
    Criterion("amenities", "Amenities", "Удобства", "Parking, balcony, appliances, etc.", "CheckSquare"),
    Criterion("comfort", "Comfort", "Комфорт", "Natural light, noise level, view", "Sun"),
    Criterion("air_quality", "Air Quality", "Воздух", "Environmental air quality index", "Wind"),
)

CRITERION_IDS: Tuple[str, ...] = tuple(c.id for c in CRITERIA)

# Saaty 标度的文字描述
SAATY_LABELS: Dict[int, str] = {
    1: "Equal importance",
    2: "Slightly more important",
    3: "Moderately more important",
    4: "Moderately to strongly more important",
    5: "Strongly more important",
    6: "Strongly to very strongly more important",
    7: "Very strongly more important",
    8: "Very to extremely more important",
    9: "Extremely more important",
}

MIN_COMPARISON_VALUE = -8
MAX_COMPARISON_VALUE = 8

logger = logging.getLogger(__name__)


def get_criterion(criterion_id: str) -> Criterion:
    """
    按标识查找准则

    Args:
        criterion_id (str): 准则标识

    Returns:
        Criterion: 准则定义

    Raises:
        ValueError: 如果准则标识未知
    """
    for criterion in CRITERIA:
        if criterion.id == criterion_id:
            return criterion
    raise ValueError(f"未知的评价准则: {criterion_id}")


def comparison_to_saaty_ratio(value: int) -> float:
    """
    将界面比较值（-8 到 +8）转换为 Saaty 比率

    Args:
        value (int): 比较值，0 表示同等重要，负数表示左侧准则更重要，正数表示右侧准则更重要

    Returns:
        float: Saaty 比率，正数表示右侧准则的相对重要性
    """
    if value == 0:
        return 1.0
    if value > 0:
        return float(value + 1)
    return 1.0 / (-value + 1)


def generate_comparison_pairs(criteria: Optional[List[Criterion]] = None) -> List[Tuple[str, str]]:
    """
    生成所有准则两两组合（7 个准则共 21 对）

    Args:
        criteria (Optional[List[Criterion]]): 准则列表，默认为完整目录

    Returns:
        List[Tuple[str, str]]: 按目录顺序排列的准则对
    """
    ids = [c.id for c in (criteria or CRITERIA)]
    return [(ids[i], ids[j]) for i in range(len(ids)) for j in range(i + 1, len(ids))]


@dataclass(frozen=True)
class CriterionWeight:
    """由判断矩阵推导出的准则权重，所有权重之和为 1"""
    criterion_id: str
    weight: float


@dataclass(frozen=True)
class PairwiseComparison:
    """用户对两个准则的一次比较判断"""
    criterion_a: str  # 左侧准则
    criterion_b: str  # 右侧准则
    value: int  # -8 到 +8，负数表示 A 更重要，正数表示 B 更重要

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValueError(f"比较值必须为整数: {self.value!r}")
        if not MIN_COMPARISON_VALUE <= self.value <= MAX_COMPARISON_VALUE:
            raise ValueError(f"比较值 {self.value} 超出范围 "
                             f"[{MIN_COMPARISON_VALUE}, {MAX_COMPARISON_VALUE}]")

    def reversed(self) -> "PairwiseComparison":
        """返回方向相反的等价比较"""
        return PairwiseComparison(self.criterion_b, self.criterion_a, -self.value)

    def same_pair(self, criterion_a: str, criterion_b: str) -> bool:
        """判断是否为同一对准则（不区分顺序）"""
        return {self.criterion_a, self.criterion_b} == {criterion_a, criterion_b}


class ComparisonSet:
    """
    用户两两比较集合
    每对准则最多保存一条比较，重复提交同一对准则时覆盖原有记录
    """

    def __init__(self, comparisons: Optional[List[PairwiseComparison]] = None,
                 criteria: Optional[List[Criterion]] = None):
        self.criteria = list(criteria or CRITERIA)
        self._comparisons: List[PairwiseComparison] = []
        self.logger = logging.getLogger(__name__)
        for comparison in comparisons or []:
            self.add(comparison)

    def set(self, criterion_a: str, criterion_b: str, value: int) -> PairwiseComparison:
        """提交一次比较判断"""
        return self.add(PairwiseComparison(criterion_a, criterion_b, value))

    def add(self, comparison: PairwiseComparison) -> PairwiseComparison:
        for index, existing in enumerate(self._comparisons):
            if existing.same_pair(comparison.criterion_a, comparison.criterion_b):
                self.logger.debug(f"覆盖已有比较: {existing} -> {comparison}")
                self._comparisons[index] = comparison
                return comparison
        self._comparisons.append(comparison)
        return comparison

    def get(self, criterion_a: str, criterion_b: str) -> Optional[int]:
        """
        获取两个准则的比较值，若只保存了反向比较则返回相反数

        Returns:
            Optional[int]: 比较值，未比较时返回 None
        """
        for comparison in self._comparisons:
            if comparison.criterion_a == criterion_a and comparison.criterion_b == criterion_b:
                return comparison.value
        for comparison in self._comparisons:
            if comparison.criterion_a == criterion_b and comparison.criterion_b == criterion_a:
                return -comparison.value
        return None

    def pairs(self) -> List[Tuple[str, str]]:
        return generate_comparison_pairs(self.criteria)

    def is_complete(self) -> bool:
        """是否所有准则对都已比较"""
        return all(self.get(a, b) is not None for a, b in self.pairs())

    def comparisons(self) -> List[PairwiseComparison]:
        return list(self._comparisons)

    def __len__(self) -> int:
        return len(self._comparisons)

    def __iter__(self):
        return iter(list(self._comparisons))
