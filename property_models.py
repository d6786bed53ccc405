# -*- coding: utf-8 -*-
"""
房源数据模型
包含房源基本信息、AI 子评分、空气质量读数以及归一化后的准则评分
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Coordinates:
    """经纬度坐标"""
    lat: float
    lng: float


@dataclass
class CenterPoint:
    """用户参考点（如工作地点）"""
    name: str
    lat: float
    lng: float


@dataclass
class PropertyDistances:
    """房源到参考点的距离（公里）"""
    direct: Optional[float] = None  # 直线距离


@dataclass
class RawData:
    """原始数据记录，仅用于展示与调试，不参与评分计算"""
    sqm: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    floor: Optional[str] = None
    year_built: Optional[int] = None
    amenities_list: List[str] = field(default_factory=list)
    aqi: Optional[float] = None
    aqi_source: Optional[str] = None
    location_score: Optional[float] = None  # AI 给出的街区评分
    condition_notes: Optional[str] = None
    comfort_notes: Optional[str] = None


@dataclass
class AIAssessment:
    """外部 AI 解析得到的子评分（1-10），缺失时为 None"""
    location: Optional[float] = None
    size: Optional[float] = None
    condition: Optional[float] = None
    amenities: Optional[float] = None
    comfort: Optional[float] = None
    raw_data: Optional[RawData] = None


@dataclass
class AirQualityReading:
    """外部空气质量服务返回的读数"""
    aqi: Optional[float] = None  # 原始空气质量指数
    score: Optional[float] = None  # 已换算的 1-10 评分
    source: str = "unknown"


@dataclass
class CriteriaScores:
    """单个房源在七个准则上的归一化评分（1-10）"""
    price: float = 5
    location: float = 5
    size: float = 5
    condition: float = 5
    amenities: float = 5
    comfort: float = 5
    air_quality: float = 5
    raw_data: Optional[RawData] = None

    def get(self, criterion_id: str) -> float:
        """按准则标识取评分"""
        return getattr(self, criterion_id)

    def as_dict(self) -> dict:
        return {
            "price": self.price,
            "location": self.location,
            "size": self.size,
            "condition": self.condition,
            "amenities": self.amenities,
            "comfort": self.comfort,
            "air_quality": self.air_quality,
        }


@dataclass
class Property:
    """待排序的候选房源"""
    id: str
    name: str = ""
    address: str = ""
    url: str = ""
    price: Optional[str] = None  # 原始价格文本，如 "£1,500 pcm"
    coordinates: Optional[Coordinates] = None
    distances: Optional[PropertyDistances] = None
    ai_assessment: Optional[AIAssessment] = None
    criteria_scores: Optional[CriteriaScores] = None
