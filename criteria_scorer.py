# -*- coding: utf-8 -*-
"""
准则评分归一化模块
将价格文本、直线距离、AI 子评分和空气质量读数统一换算为 1-10 分
所有输出均在 [1, 10] 范围内，缺失或异常数据一律使用中性分 5
"""

import dataclasses
import logging
import math
import re
from typing import List, Dict, Optional

import numpy as np

from property_models import (
    AirQualityReading, CenterPoint, CriteriaScores, Property, PropertyDistances, RawData
)

NEUTRAL_SCORE = 5
MIN_SCORE = 1
MAX_SCORE = 10
EARTH_RADIUS_KM = 6371.0

# 距离衰减阶梯：(距离上限 km, 评分)
DISTANCE_STEPS = (
    (0.5, 10), (1, 9), (2, 8), (4, 7), (6, 6),
    (10, 5), (15, 4), (25, 3), (40, 2),
)

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """四舍五入（.5 向上取整）"""
    return int(math.floor(value + 0.5))


def calculate_direct_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    计算两点之间的大圆距离（haversine 公式）

    Returns:
        float: 距离（公里）
    """
    phi1, phi2 = np.radians(lat1), np.radians(lat2)
    d_phi = np.radians(lat2 - lat1)
    d_lambda = np.radians(lng2 - lng1)
    a = np.sin(d_phi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return float(EARTH_RADIUS_KM * c)


def sanitize_score(value, criterion_id: str) -> float:
    """
    将单个准则评分规整到 [1, 10]

    缺失、为 0、无法转换为数值或非有限值时返回中性分 5，超出范围时截断并记录警告

    Args:
        value: 原始评分，可以是数值或数字字符串
        criterion_id (str): 准则标识，用于日志

    Returns:
        float: 1-10 评分，整数值以 int 返回
    """
    if value is None or isinstance(value, bool):
        return NEUTRAL_SCORE
    try:
        value = float(value)
    except (TypeError, ValueError):
        logger.warning(f"准则 {criterion_id} 的评分无效: {value!r}，使用中性评分")
        return NEUTRAL_SCORE
    if not math.isfinite(value) or value == 0:
        return NEUTRAL_SCORE
    if value < MIN_SCORE or value > MAX_SCORE:
        clipped = float(np.clip(value, MIN_SCORE, MAX_SCORE))
        logger.warning(f"准则 {criterion_id} 的评分 {value} 超出 1-10 范围，已截断为 {clipped}")
        value = clipped
    if value.is_integer():
        return int(value)
    return value


class CriteriaScorer:
    """准则评分器，负责生成每个房源的 CriteriaScores"""

    def __init__(self, center_point: Optional[CenterPoint] = None):
        """
        初始化准则评分器

        Args:
            center_point (Optional[CenterPoint]): 参考点，用于在缺少直线距离时根据坐标计算
        """
        self.center_point = center_point
        self.logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # 价格（逆向：越便宜分越高）
    # ------------------------------------------------------------------

    @staticmethod
    def extract_numeric_price(price_str: Optional[str]) -> Optional[int]:
        """
        从价格文本中提取数值，如 "£1,500 pcm" -> 1500

        Returns:
            Optional[int]: 价格数值，无法解析时返回 None
        """
        if not price_str:
            return None
        match = re.search(r"\d+", re.sub(r"[,\s]", "", str(price_str)))
        if not match:
            return None
        return int(match.group(0))

    @staticmethod
    def normalize_price_score(price: float, min_price: float, max_price: float) -> int:
        """最低价得 10 分，最高价得 1 分，线性插值"""
        if max_price == min_price:
            return NEUTRAL_SCORE
        normalized = 1 - (price - min_price) / (max_price - min_price)
        return round_half_up(1 + normalized * 9)

    def calculate_price_scores(self, properties: List[Property]) -> Dict[str, int]:
        """
        计算整个房源集合的价格评分

        Args:
            properties (List[Property]): 房源列表

        Returns:
            Dict[str, int]: 房源ID -> 价格评分
        """
        prices = {}
        for prop in properties:
            price = self.extract_numeric_price(prop.price)
            if price is not None:
                prices[prop.id] = price

        if not prices:
            self.logger.debug("没有可解析的价格，所有房源使用中性价格评分")
            return {prop.id: NEUTRAL_SCORE for prop in properties}

        min_price = min(prices.values())
        max_price = max(prices.values())

        scores = {}
        for prop in properties:
            if prop.id in prices:
                scores[prop.id] = self.normalize_price_score(prices[prop.id], min_price, max_price)
            else:
                self.logger.warning(f"房源 {prop.id} 的价格无法解析: {prop.price!r}，使用中性评分")
                scores[prop.id] = NEUTRAL_SCORE
        return scores

    # ------------------------------------------------------------------
    # 位置
    # ------------------------------------------------------------------

    @staticmethod
    def normalize_distance_score(distance_km: float) -> int:
        """按距离衰减阶梯换算评分"""
        for limit, score in DISTANCE_STEPS:
            if distance_km <= limit:
                return score
        return MIN_SCORE

    def calculate_location_score(self, distance_km: Optional[float],
                                 neighborhood_score: Optional[float]) -> int:
        """
        位置评分 = 距离评分与 AI 街区评分的平均值

        Args:
            distance_km (Optional[float]): 到参考点的直线距离
            neighborhood_score (Optional[float]): AI 街区评分

        Returns:
            int: 1-10 位置评分
        """
        if distance_km is None or not math.isfinite(distance_km) or distance_km < 0:
            distance_score = NEUTRAL_SCORE
        else:
            distance_score = self.normalize_distance_score(distance_km)

        neighborhood = sanitize_score(neighborhood_score, "location")
        return round_half_up((distance_score + neighborhood) / 2)

    def _resolve_distance(self, prop: Property) -> Optional[float]:
        if prop.distances is not None and prop.distances.direct is not None:
            return prop.distances.direct
        if prop.coordinates is not None and self.center_point is not None:
            return calculate_direct_distance(
                self.center_point.lat, self.center_point.lng,
                prop.coordinates.lat, prop.coordinates.lng
            )
        return None

    # ------------------------------------------------------------------
    # 汇总
    # ------------------------------------------------------------------

    def build_criteria_scores(self, prop: Property, price_score: int,
                              air_quality: Optional[AirQualityReading] = None) -> CriteriaScores:
        """
        组合价格评分、位置评分、AI 子评分和空气质量评分

        Args:
            prop (Property): 房源
            price_score (int): 集合内归一化后的价格评分
            air_quality (Optional[AirQualityReading]): 空气质量读数，无坐标的房源忽略该读数

        Returns:
            CriteriaScores: 完整的准则评分
        """
        assessment = prop.ai_assessment
        existing_raw = assessment.raw_data if assessment and assessment.raw_data else RawData()

        if prop.coordinates is None:
            air_quality = None

        ai_location = assessment.location if assessment else None
        location_score = self.calculate_location_score(self._resolve_distance(prop), ai_location)

        raw_data = dataclasses.replace(
            existing_raw,
            aqi=air_quality.aqi if air_quality else None,
            aqi_source=air_quality.source if air_quality else None,
            location_score=ai_location,
        )

        return CriteriaScores(
            price=sanitize_score(price_score, "price"),
            location=location_score,
            size=sanitize_score(assessment.size if assessment else None, "size"),
            condition=sanitize_score(assessment.condition if assessment else None, "condition"),
            amenities=sanitize_score(assessment.amenities if assessment else None, "amenities"),
            comfort=sanitize_score(assessment.comfort if assessment else None, "comfort"),
            air_quality=sanitize_score(air_quality.score if air_quality else None, "air_quality"),
            raw_data=raw_data,
        )

    def calculate_all_criteria_scores(
            self,
            properties: List[Property],
            air_quality: Optional[Dict[str, AirQualityReading]] = None
    ) -> List[Property]:
        """
        为所有房源生成准则评分，返回带有 criteria_scores 的新房源对象

        Args:
            properties (List[Property]): 房源列表
            air_quality (Optional[Dict[str, AirQualityReading]]): 房源ID -> 空气质量读数

        Returns:
            List[Property]: 更新后的房源列表（原对象不变）
        """
        air_quality = air_quality or {}
        price_scores = self.calculate_price_scores(properties)

        scored = []
        for prop in properties:
            scores = self.build_criteria_scores(
                prop,
                price_scores.get(prop.id, NEUTRAL_SCORE),
                air_quality.get(prop.id)
            )
            distances = prop.distances
            if distances is None or distances.direct is None:
                # 记录由坐标计算得到的直线距离
                direct = self._resolve_distance(prop)
                if direct is not None:
                    distances = PropertyDistances(direct=direct)
            scored.append(dataclasses.replace(prop, distances=distances, criteria_scores=scores))

        self.logger.info(f"已为 {len(scored)} 个房源生成准则评分")
        return scored


def has_complete_criteria_scores(prop: Property) -> bool:
    """房源是否具备全部七项准则评分"""
    scores = prop.criteria_scores
    if scores is None:
        return False
    return all(value is not None for value in scores.as_dict().values())


def count_properties_with_scores(properties: List[Property]) -> int:
    return sum(1 for prop in properties if prop.criteria_scores is not None)
