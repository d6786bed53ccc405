# -*- coding: utf-8 -*-
"""
租房候选房源排序工具主程序
根据用户对七个准则的两两比较，使用AHP计算权重并对候选房源排序
"""

import argparse
import json
import logging
import os
from datetime import datetime
from typing import Dict, List, Optional

from tabulate import tabulate
from tqdm import tqdm

# 导入自定义模块
from ahp_processor import AHPProcessor, AHPResult
from criteria import get_criterion
from criteria_scorer import CriteriaScorer
from excel_handler import ExcelExporter, PropertyDataHandler
from explanation_generator import ExplanationGenerator, PropertyExplanation
from property_models import AirQualityReading, CenterPoint, Property
from visualizer import RankingVisualizer


# 配置日志
def setup_logging(log_dir: str = "logs", log_level: int = logging.INFO) -> None:
    """
    设置日志配置

    Args:
        log_dir: 日志目录
        log_level: 日志级别
    """
    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(os.path.join(log_dir, f"rental_ahp_{timestamp}.log"), encoding="utf-8"),
            logging.StreamHandler()
        ]
    )

    # 设置第三方库的日志级别
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def create_default_config() -> Dict:
    """
    Create default configuration dictionary with sensible defaults

    Returns:
        Dict: Default configuration structure
    """
    return {
        "project": {
            "name": "租房候选房源排序",
            "description": "基于AHP的租房候选房源个性化排序",
            "version": "1.0.0"
        },
        "paths": {
            "input_file": "input/shortlist.json",
            "output_dir": "output/",
            "log_dir": "logs/"
        },
        "ahp_settings": {
            "weight_method": "geometric",
            "power_iterations": 100,
            "consistency_threshold": 0.1
        },
        "scoring": {
            "center_point": None,
            "prepare_missing_scores": True
        },
        "output": {
            "export_excel": True,
            "results_prefix": "ahp_results"
        },
        "visualization": {
            "enabled": True,
            "dpi": 300
        }
    }


def merge_defaults(target: Dict, source: Dict) -> None:
    """Recursively fill keys missing from target with values from source"""
    for key, value in source.items():
        if key not in target:
            target[key] = value
        elif isinstance(value, dict) and isinstance(target[key], dict):
            merge_defaults(target[key], value)


def validate_config(config: Dict) -> Dict:
    """
    Validate configuration dictionary and ensure required parameters exist

    Args:
        config: Configuration dictionary to validate

    Returns:
        Dict: Validated and normalized configuration

    Raises:
        FileNotFoundError: If the input file is missing
    """
    merge_defaults(config, create_default_config())

    # Normalize and create output directories
    for path_key in ["output_dir", "log_dir"]:
        if not config["paths"][path_key].endswith("/"):
            config["paths"][path_key] += "/"
        os.makedirs(config["paths"][path_key], exist_ok=True)

    input_file = config["paths"]["input_file"]
    if not os.path.exists(input_file):
        error_msg = f"Missing required input file: {input_file}"
        logging.error(error_msg)
        raise FileNotFoundError(error_msg)

    # Validate AHP settings
    ahp_settings = config["ahp_settings"]
    valid_weight_methods = ["geometric", "power", "eigenvector"]
    if ahp_settings["weight_method"] not in valid_weight_methods:
        logging.warning(f"Invalid weight method: {ahp_settings['weight_method']}. Using default: geometric")
        ahp_settings["weight_method"] = "geometric"

    iterations = ahp_settings["power_iterations"]
    if not isinstance(iterations, int) or isinstance(iterations, bool) or iterations < 1:
        logging.warning(f"Invalid power iterations: {iterations}. Using default: 100")
        ahp_settings["power_iterations"] = 100

    threshold = ahp_settings["consistency_threshold"]
    if not isinstance(threshold, (int, float)) or threshold <= 0 or threshold >= 1:
        logging.warning(f"Invalid consistency threshold: {threshold}. Using default: 0.1")
        ahp_settings["consistency_threshold"] = 0.1

    # Validate reference point
    center = config["scoring"]["center_point"]
    if center is not None and not (isinstance(center, dict) and "lat" in center and "lng" in center):
        logging.warning(f"Invalid center point: {center}. Distances will not be derived from coordinates")
        config["scoring"]["center_point"] = None

    # Validate visualization settings
    dpi = config["visualization"]["dpi"]
    if not isinstance(dpi, int) or dpi < 72:
        logging.warning(f"Invalid DPI value: {dpi}. Using default: 300")
        config["visualization"]["dpi"] = 300

    logging.info("Configuration validated successfully")
    return config


def load_config(config_path: str, input_override: Optional[str] = None) -> Dict:
    """
    Load and validate configuration

    Args:
        config_path: Path to configuration file
        input_override: Input file given on the command line

    Returns:
        Validated configuration dictionary
    """
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            config = json.load(f)
        logging.info(f"Loaded configuration from: {config_path}")
    else:
        config = create_default_config()
        os.makedirs(os.path.dirname(config_path) or ".", exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2, ensure_ascii=False)
        logging.info(f"Created default configuration: {config_path}")

    if input_override:
        config.setdefault("paths", {})["input_file"] = input_override

    return validate_config(config)


def prepare_properties(properties: List[Property],
                       air_quality: Dict[str, AirQualityReading],
                       scoring_config: Dict) -> List[Property]:
    """
    为缺少准则评分的房源生成评分，已提供评分的房源保持不变

    Args:
        properties: 房源列表
        air_quality: 空气质量读数
        scoring_config: 评分配置

    Returns:
        房源列表
    """
    if not scoring_config.get("prepare_missing_scores", True):
        return properties

    center = scoring_config.get("center_point")
    center_point = CenterPoint(center.get("name", ""), center["lat"], center["lng"]) if center else None

    # 价格评分在整个房源集合内归一化，因此对全部房源计算
    scored = CriteriaScorer(center_point).calculate_all_criteria_scores(properties, air_quality)
    return [original if original.criteria_scores is not None else prepared
            for original, prepared in zip(properties, scored)]


def present_weights(result: AHPResult) -> None:
    """
    打印准则权重与一致性结果

    Args:
        result: AHP计算结果
    """
    print("\n========== 准则权重 ==========")
    weights_table = [
        (get_criterion(w.criterion_id).name, f"{w.weight:.4f}")
        for w in sorted(result.weights, key=lambda w: w.weight, reverse=True)
    ]
    print(tabulate(weights_table, headers=["Criterion", "Weight"], tablefmt="grid", colalign=("left", "right")))

    print(f"\n一致性比率(CR): {result.consistency_ratio:.4f} "
          f"({'通过' if result.is_consistent else '不通过'})")
    if not result.is_consistent:
        print("提示: 您的比较存在一定矛盾，权重结果仅供参考，建议重新检查比较。")


def present_rankings(result: AHPResult,
                     properties: List[Property],
                     explanations: Dict[str, PropertyExplanation]) -> None:
    """
    打印房源排名与解释

    Args:
        result: AHP计算结果
        properties: 房源列表
        explanations: 房源ID -> 排名解释
    """
    by_id = {p.id: p for p in properties}
    print(f"\n========== 房源排名 ({result.property_count}/{len(properties)}) ==========")

    rows = []
    for position, ranking in enumerate(result.rankings, start=1):
        prop = by_id.get(ranking.property_id)
        explanation = explanations.get(ranking.property_id, PropertyExplanation())
        rows.append((
            position,
            (prop.name or prop.id) if prop else ranking.property_id,
            prop.price if prop and prop.price else "-",
            f"{ranking.final_score:.1f}",
            "\n".join(explanation.why_high_rank) or "-",
            "\n".join(explanation.improvements) or "-",
        ))
    print(tabulate(
        rows,
        headers=["#", "Property", "Price", "Score", "Why it ranks high", "Watch out for"],
        tablefmt="grid",
        colalign=("center", "left", "left", "right", "left", "left")
    ))


def main():
    """主函数"""
    parser = argparse.ArgumentParser(description="基于AHP的租房候选房源排序工具")
    parser.add_argument("--config", default="config.json", help="配置文件路径")
    parser.add_argument("--input", default=None, help="输入文件路径（覆盖配置文件）")
    parser.add_argument("--debug", action="store_true", help="启用调试模式")
    args = parser.parse_args()

    log_level = logging.DEBUG if args.debug else logging.INFO
    setup_logging(log_level=log_level)

    try:
        config = load_config(args.config, args.input)
        logging.info(f"已加载配置文件: {args.config}")

        output_dir = config["paths"]["output_dir"]
        ahp_settings = config["ahp_settings"]

        # 读取输入数据
        properties, comparisons, air_quality = PropertyDataHandler().read_input(config["paths"]["input_file"])
        properties = prepare_properties(properties, air_quality, config["scoring"])

        # 执行AHP计算
        processor = AHPProcessor(
            weight_method=ahp_settings["weight_method"],
            power_iterations=ahp_settings["power_iterations"],
            consistency_threshold=ahp_settings["consistency_threshold"]
        )
        result = processor.calculate(comparisons, properties)
        matrix = processor.matrix_builder.build(comparisons)

        # 生成排名解释
        by_id = {p.id: p for p in properties}
        generator = ExplanationGenerator()
        explanations = {}
        for ranking in tqdm(result.rankings, desc="生成排名解释"):
            explanations[ranking.property_id] = generator.explain(
                ranking, list(result.weights), by_id[ranking.property_id].criteria_scores
            )

        present_weights(result)
        present_rankings(result, properties, explanations)

        if config["output"]["export_excel"]:
            ExcelExporter().export_ahp_results(
                result,
                os.path.join(output_dir, f"{config['output']['results_prefix']}.xlsx"),
                properties=properties,
                matrix=matrix,
                explanations=explanations
            )

        if config["visualization"]["enabled"]:
            visualizer = RankingVisualizer(
                output_dir=os.path.join(output_dir, "visualizations"),
                dpi=config["visualization"]["dpi"]
            )
            visualizer.plot_weights_pie(result)
            visualizer.plot_ranking_bar(result, {p.id: p.name for p in properties})
            visualizer.plot_comparison_heatmap(matrix)

        print("\n分析完成！结果已保存到输出目录。")

    except Exception as e:
        logging.error(f"主程序执行出错: {str(e)}", exc_info=True)
        print(f"主程序执行出错: {str(e)}")
        return 1

    return 0


if __name__ == "__main__":
    exit_code = main()
    raise SystemExit(exit_code)
