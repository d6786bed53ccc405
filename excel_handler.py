# -*- coding: utf-8 -*-
"""
数据读写模块
读取房源、用户比较和空气质量数据（JSON / CSV / Excel），
并将 AHP 排序结果格式化导出到 Excel
"""

import json
import logging
import math
import os
import time
from typing import List, Dict, Tuple, Optional, Any

import numpy as np
import pandas as pd
from openpyxl.styles import Alignment, PatternFill, Font, Border, Side

from ahp_processor import AHPResult
from criteria import CRITERIA, PairwiseComparison, get_criterion
from criteria_scorer import sanitize_score
from explanation_generator import PropertyExplanation
from property_models import (
    AIAssessment, AirQualityReading, Coordinates, CriteriaScores, Property, PropertyDistances, RawData
)

# CSV / Excel 房源表的列名
PROPERTY_COLUMNS = {
    "id": "ID",
    "name": "Name",
    "address": "Address",
    "url": "URL",
    "price": "Price",
    "lat": "Latitude",
    "lng": "Longitude",
    "direct": "Direct Distance (km)",
}

AI_SCORE_COLUMNS = {
    "location": "Location Score",
    "size": "Size Score",
    "condition": "Condition Score",
    "amenities": "Amenities Score",
    "comfort": "Comfort Score",
}


def _pick(data: Dict[str, Any], *keys: str, default=None):
    """按顺序返回第一个存在且不为空的键值，兼容 snake_case 与 camelCase"""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def _clean(value):
    """将 pandas 的 NaN 转换为 None"""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def _to_float(value) -> Optional[float]:
    """表格单元格转换为浮点数，空值或无法解析时返回 None"""
    value = _clean(value)
    if value is None or str(value).strip() == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class PropertyDataHandler:
    """输入数据处理器，负责读取房源、比较和空气质量数据"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def read_input(self, input_path: str) -> Tuple[List[Property], List[PairwiseComparison],
                                                   Dict[str, AirQualityReading]]:
        """
        读取 JSON 输入文件

        Args:
            input_path (str): 输入文件路径

        Returns:
            Tuple: 房源列表, 用户比较列表, 空气质量读数字典

        Raises:
            FileNotFoundError: 如果文件不存在
            ValueError: 如果文件内容不是 JSON 对象
        """
        if not os.path.exists(input_path):
            error_msg = f"文件未找到: {input_path}"
            self.logger.error(error_msg)
            raise FileNotFoundError(error_msg)

        with open(input_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, dict):
            error_msg = f"输入文件 {input_path} 必须为 JSON 对象"
            self.logger.error(error_msg)
            raise ValueError(error_msg)

        properties = self.parse_properties(data.get("properties", []))
        comparisons = self.parse_comparisons(data.get("comparisons", []))
        air_quality = self.parse_air_quality(_pick(data, "air_quality", "airQuality", default={}))

        self.logger.info(f"成功读取输入数据: {len(properties)} 个房源, {len(comparisons)} 条比较, "
                         f"{len(air_quality)} 条空气质量读数")
        return properties, comparisons, air_quality

    def read_properties(self, path: str) -> List[Property]:
        """
        读取房源表（.json / .csv / .xlsx）

        Raises:
            FileNotFoundError: 如果文件不存在
            ValueError: 如果文件格式不支持
        """
        if not os.path.exists(path):
            error_msg = f"文件未找到: {path}"
            self.logger.error(error_msg)
            raise FileNotFoundError(error_msg)

        extension = os.path.splitext(path)[1].lower()
        if extension == ".json":
            return self.read_input(path)[0]
        if extension == ".csv":
            df = pd.read_csv(path, dtype=str)
        elif extension in (".xlsx", ".xls"):
            df = pd.read_excel(path, dtype=str)
        else:
            error_msg = f"不支持的房源文件格式: {extension}"
            self.logger.error(error_msg)
            raise ValueError(error_msg)

        properties = []
        for row_index, row in df.iterrows():
            prop = self._property_from_row(row, row_index)
            if prop is not None:
                properties.append(prop)

        properties = self._drop_duplicate_ids(properties)
        self.logger.info(f"成功读取房源表 {path}，共 {len(properties)} 个房源")
        return properties

    def _property_from_row(self, row: pd.Series, row_index: int) -> Optional[Property]:
        prop_id = _clean(row.get(PROPERTY_COLUMNS["id"]))
        if prop_id is None:
            self.logger.warning(f"第 {row_index + 2} 行缺少房源ID，已跳过")
            return None

        lat = _to_float(row.get(PROPERTY_COLUMNS["lat"]))
        lng = _to_float(row.get(PROPERTY_COLUMNS["lng"]))
        direct = _to_float(row.get(PROPERTY_COLUMNS["direct"]))

        ai_scores = {key: _to_float(row.get(column)) for key, column in AI_SCORE_COLUMNS.items()}
        assessment = AIAssessment(**ai_scores) if any(v is not None for v in ai_scores.values()) else None

        return Property(
            id=str(prop_id),
            name=_clean(row.get(PROPERTY_COLUMNS["name"])) or "",
            address=_clean(row.get(PROPERTY_COLUMNS["address"])) or "",
            url=_clean(row.get(PROPERTY_COLUMNS["url"])) or "",
            price=_clean(row.get(PROPERTY_COLUMNS["price"])),
            coordinates=Coordinates(lat, lng) if lat is not None and lng is not None else None,
            distances=PropertyDistances(direct=direct) if direct is not None else None,
            ai_assessment=assessment,
        )

    def parse_properties(self, items: List[Dict[str, Any]]) -> List[Property]:
        """解析房源记录，缺少ID、格式错误或ID重复的记录记录警告后跳过"""
        properties = []
        for index, item in enumerate(items):
            if not isinstance(item, dict) or item.get("id") is None:
                self.logger.warning(f"第 {index + 1} 个房源缺少ID，已跳过")
                continue
            try:
                properties.append(self._property_from_dict(item))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                self.logger.warning(f"第 {index + 1} 个房源格式无效，已跳过: {str(e)}")
        return self._drop_duplicate_ids(properties)

    def _drop_duplicate_ids(self, properties: List[Property]) -> List[Property]:
        """同一ID只保留第一次出现的房源"""
        seen = set()
        unique = []
        for prop in properties:
            if prop.id in seen:
                self.logger.warning(f"房源ID重复: {prop.id}，已跳过后续记录")
                continue
            seen.add(prop.id)
            unique.append(prop)
        return unique

    def _property_from_dict(self, item: Dict[str, Any]) -> Property:
        coordinates = item.get("coordinates") or {}
        distances = item.get("distances") or {}
        assessment = _pick(item, "ai_assessment", "aiAssessment")
        scores = _pick(item, "criteria_scores", "criteriaScores")

        lat = _to_float(coordinates.get("lat"))
        lng = _to_float(coordinates.get("lng"))
        if coordinates and (lat is None or lng is None):
            self.logger.warning(f"房源 {item['id']} 的坐标不完整: {coordinates!r}，已忽略坐标")
        direct = _to_float(distances.get("direct"))

        return Property(
            id=str(item["id"]),
            name=item.get("name", ""),
            address=item.get("address", ""),
            url=item.get("url", ""),
            price=item.get("price"),
            coordinates=Coordinates(lat, lng) if lat is not None and lng is not None else None,
            distances=PropertyDistances(direct=direct) if direct is not None else None,
            ai_assessment=self._assessment_from_dict(assessment) if assessment else None,
            criteria_scores=self._scores_from_dict(scores) if scores else None,
        )

    @staticmethod
    def _raw_data_from_dict(raw: Optional[Dict[str, Any]]) -> Optional[RawData]:
        if not raw:
            return None
        return RawData(
            sqm=raw.get("sqm"),
            bedrooms=raw.get("bedrooms"),
            bathrooms=raw.get("bathrooms"),
            floor=raw.get("floor"),
            year_built=_pick(raw, "year_built", "yearBuilt"),
            amenities_list=list(_pick(raw, "amenities_list", "amenitiesList", default=[])),
            aqi=raw.get("aqi"),
            aqi_source=_pick(raw, "aqi_source", "aqiSource"),
            location_score=_pick(raw, "location_score", "locationScore"),
            condition_notes=_pick(raw, "condition_notes", "conditionNotes"),
            comfort_notes=_pick(raw, "comfort_notes", "comfortNotes"),
        )

    def _assessment_from_dict(self, data: Dict[str, Any]) -> AIAssessment:
        return AIAssessment(
            location=data.get("location"),
            size=data.get("size"),
            condition=data.get("condition"),
            amenities=data.get("amenities"),
            comfort=data.get("comfort"),
            raw_data=self._raw_data_from_dict(_pick(data, "raw_data", "rawData")),
        )

    def _scores_from_dict(self, data: Dict[str, Any]) -> CriteriaScores:
        values = {}
        for criterion in CRITERIA:
            value = _pick(data, criterion.id, "airQuality" if criterion.id == "air_quality" else criterion.id)
            if value is None:
                self.logger.warning(f"准则评分缺少 {criterion.id}，使用中性评分 5")
            values[criterion.id] = sanitize_score(value, criterion.id)
        return CriteriaScores(raw_data=self._raw_data_from_dict(_pick(data, "raw_data", "rawData")), **values)

    def parse_comparisons(self, items: List[Dict[str, Any]]) -> List[PairwiseComparison]:
        """解析用户比较，无效记录记录警告后跳过"""
        comparisons = []
        for item in items:
            try:
                comparisons.append(PairwiseComparison(
                    criterion_a=self._criterion_id(_pick(item, "criterion_a", "criterionA")),
                    criterion_b=self._criterion_id(_pick(item, "criterion_b", "criterionB")),
                    value=item.get("value"),
                ))
            except (ValueError, AttributeError) as e:
                self.logger.warning(f"忽略无效的比较记录 {item!r}: {str(e)}")
        return comparisons

    @staticmethod
    def _criterion_id(value: Optional[str]) -> Optional[str]:
        # 浏览器端存储使用 camelCase 的 airQuality
        return "air_quality" if value == "airQuality" else value

    def parse_air_quality(self, data: Dict[str, Any]) -> Dict[str, AirQualityReading]:
        readings = {}
        for prop_id, reading in (data or {}).items():
            if not isinstance(reading, dict):
                self.logger.warning(f"房源 {prop_id} 的空气质量读数格式无效，已跳过")
                continue
            readings[str(prop_id)] = AirQualityReading(
                aqi=reading.get("aqi"),
                score=reading.get("score"),
                source=reading.get("source", "unknown"),
            )
        return readings


class ExcelExporter:
    """
    Excel文件导出器，用于格式化输出排序结果
    """

    def __init__(self):
        """初始化Excel导出器"""
        self.logger = logging.getLogger(__name__)

        # 预定义样式
        self.header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        self.highlight_fill = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
        self.warning_fill = PatternFill(start_color="F4B183", end_color="F4B183", fill_type="solid")

        self.header_font = Font(color="FFFFFF", bold=True)

        self.border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

        self.center_alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

    def adjust_all_sheets(self, writer: pd.ExcelWriter) -> None:
        """
        调整所有工作表的列宽、对齐方式和表头样式

        Args:
            writer (pd.ExcelWriter): Excel写入器
        """
        for sheet_name in writer.sheets:
            worksheet = writer.sheets[sheet_name]

            for column_cells in worksheet.columns:
                max_length = max((len(str(cell.value)) for cell in column_cells if cell.value is not None),
                                 default=0)
                column_letter = column_cells[0].column_letter
                # 设置列宽（最大内容长度 + 4个字符的边距），最小宽度为10
                worksheet.column_dimensions[column_letter].width = min(max(max_length + 4, 10), 60)

                for cell in column_cells:
                    cell.alignment = self.center_alignment
                    cell.border = self.border

            for cell in worksheet[1]:
                cell.fill = self.header_fill
                cell.font = self.header_font

    def export_ahp_results(self,
                           result: AHPResult,
                           output_path: str,
                           properties: Optional[List[Property]] = None,
                           matrix: Optional[np.ndarray] = None,
                           explanations: Optional[Dict[str, PropertyExplanation]] = None) -> str:
        """
        导出AHP排序结果到Excel文件

        Args:
            result (AHPResult): AHP计算结果
            output_path (str): 输出文件路径（会追加时间戳）
            properties (Optional[List[Property]]): 房源列表，用于补充名称与评分
            matrix (Optional[np.ndarray]): 用户判断矩阵
            explanations (Optional[Dict[str, PropertyExplanation]]): 房源ID -> 排名解释

        Returns:
            str: 实际写入的文件路径
        """
        # 添加时间戳，避免覆盖文件
        timestamp = int(time.time())
        output_path = f"{os.path.splitext(output_path)[0]}_{timestamp}.xlsx"
        by_id = {p.id: p for p in properties or []}
        names = [c.name for c in CRITERIA]

        try:
            with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
                # 1. 汇总信息
                summary_data = {
                    "Metric": [
                        "Properties ranked",
                        "Weight method",
                        "Lambda max",
                        "Consistency index (CI)",
                        "Consistency ratio (CR)",
                        "Consistent",
                        "Calculated at",
                    ],
                    "Value": [
                        result.property_count,
                        result.weight_method,
                        round(result.max_eigenvalue, 4),
                        round(result.consistency_index, 4),
                        round(result.consistency_ratio, 4),
                        "yes" if result.is_consistent else "no",
                        result.calculated_at,
                    ]
                }
                pd.DataFrame(summary_data).to_excel(writer, sheet_name="Summary", index=False)

                # 2. 准则权重
                weights_data = [
                    {"Criterion": get_criterion(w.criterion_id).name, "Weight": round(w.weight, 4)}
                    for w in sorted(result.weights, key=lambda w: w.weight, reverse=True)
                ]
                pd.DataFrame(weights_data).to_excel(writer, sheet_name="Weights", index=False)

                # 3. 房源排名
                ranking_data = []
                for position, ranking in enumerate(result.rankings, start=1):
                    prop = by_id.get(ranking.property_id)
                    row = {
                        "Rank": position,
                        "Property": ranking.property_id,
                        "Name": prop.name if prop else "",
                        "Price": prop.price if prop else "",
                        "Score": round(ranking.final_score, 2),
                        "Strengths": ", ".join(get_criterion(c).name for c in ranking.strengths),
                        "Weaknesses": ", ".join(get_criterion(c).name for c in ranking.weaknesses),
                    }
                    explanation = (explanations or {}).get(ranking.property_id)
                    if explanation is not None:
                        row["Why it ranks high"] = "; ".join(explanation.why_high_rank)
                        row["Watch out for"] = "; ".join(explanation.improvements)
                    ranking_data.append(row)
                pd.DataFrame(ranking_data).to_excel(writer, sheet_name="Ranking", index=False)

                # 4. 各准则得分贡献
                contributions_df = pd.DataFrame(
                    [{get_criterion(c).name: round(v, 2) for c, v in r.criteria_contributions.items()}
                     for r in result.rankings],
                    index=[r.property_id for r in result.rankings]
                )
                contributions_df.to_excel(writer, sheet_name="Contributions", index_label="Property")

                # 5. 归一化评分
                scored = [p for p in by_id.values() if p.criteria_scores is not None]
                if scored:
                    scores_df = pd.DataFrame(
                        [{get_criterion(c).name: v for c, v in p.criteria_scores.as_dict().items()} for p in scored],
                        index=[p.id for p in scored]
                    )
                    scores_df.to_excel(writer, sheet_name="Criteria Scores", index_label="Property")

                # 6. 判断矩阵
                if matrix is not None:
                    matrix_df = pd.DataFrame(np.round(matrix, 4), index=names, columns=names)
                    matrix_df.to_excel(writer, sheet_name="Comparison Matrix")

                self.adjust_all_sheets(writer)

                # 突出显示第一名与不一致警告
                if ranking_data:
                    for cell in writer.sheets["Ranking"][2]:
                        cell.fill = self.highlight_fill
                if not result.is_consistent:
                    writer.sheets["Summary"]["B6"].fill = self.warning_fill

            self.logger.info(f"已导出AHP排序结果到: {output_path}")
            return output_path

        except Exception as e:
            self.logger.error(f"导出AHP结果时出错: {str(e)}")
            raise
