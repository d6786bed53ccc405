# -*- coding: utf-8 -*-
"""
层次分析法(AHP)处理模块
根据用户的两两比较构建判断矩阵，计算准则权重并进行一致性检验，
最后结合房源准则评分生成排序结果
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Dict, Optional, Iterable, Sequence, Tuple

import numpy as np
from scipy.stats import gmean

from criteria import CRITERIA, Criterion, CriterionWeight, PairwiseComparison, comparison_to_saaty_ratio
from property_models import Property
from property_ranker import PropertyRanker, PropertyRanking

# 随机一致性指数表，键为矩阵阶数
RANDOM_INDEX: Dict[int, float] = {
    1: 0.00, 2: 0.00, 3: 0.58, 4: 0.90, 5: 1.12,
    6: 1.24, 7: 1.32, 8: 1.41, 9: 1.45, 10: 1.49
}

CONSISTENCY_THRESHOLD = 0.1


@dataclass
class ConsistencyResult:
    """一致性检查结果封装类，用于存储判断矩阵的一致性信息"""
    is_consistent: bool  # 是否一致（CR < 0.1）
    consistency_ratio: float  # 一致性比率（CR）
    max_eigenvalue: float  # 最大特征值估计（λmax）
    consistency_index: float = field(default=0.0)  # 一致性指标（CI）
    random_index: float = field(default=0.0)  # 随机一致性指标（RI）


@dataclass(frozen=True)
class AHPResult:
    """一次完整 AHP 计算的结果快照，重新计算时生成新对象"""
    weights: Tuple[CriterionWeight, ...]
    consistency_ratio: float
    is_consistent: bool
    rankings: Tuple[PropertyRanking, ...]
    calculated_at: str
    property_count: int
    max_eigenvalue: float = 0.0
    consistency_index: float = 0.0
    weight_method: str = "geometric"

    def weights_as_dict(self) -> Dict[str, float]:
        return {w.criterion_id: w.weight for w in self.weights}


class ConsistencyChecker:
    """一致性检查器，用于验证 AHP 判断矩阵的一致性"""

    def __init__(self, threshold: float = CONSISTENCY_THRESHOLD):
        """
        初始化一致性检查器

        Args:
            threshold (float): CR 阈值，小于该值视为通过
        """
        self.RI = dict(RANDOM_INDEX)
        self.threshold = threshold
        self.logger = logging.getLogger(__name__)

    def random_index(self, n: int) -> float:
        """
        查找随机一致性指标 RI

        Raises:
            ValueError: 如果矩阵阶数不在 RI 表范围内
        """
        if n not in self.RI:
            error_msg = f"不支持的矩阵阶数: {n}，RI 表仅覆盖 1-{max(self.RI)} 阶"
            self.logger.error(error_msg)
            raise ValueError(error_msg)
        return self.RI[n]

    @staticmethod
    def estimate_lambda_max(matrix: np.ndarray, weights: np.ndarray) -> float:
        """λmax ≈ mean((A·w)_i / w_i)"""
        return float(np.mean(matrix.dot(weights) / weights))

    def check_consistency(self, matrix: np.ndarray,
                          weights: Optional[np.ndarray] = None) -> ConsistencyResult:
        """
        检查判断矩阵的一致性，返回一致性结果

        Args:
            matrix (np.ndarray): 判断矩阵，需为方阵
            weights (Optional[np.ndarray]): 由该矩阵得到的权重向量，未提供时使用几何平均法计算

        Returns:
            ConsistencyResult: 包含一致性比率 (CR)、最大特征值等结果

        Raises:
            ValueError: 如果矩阵不是方阵或阶数超出 RI 表
        """
        matrix = np.asarray(matrix, dtype=float)
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            error_msg = "输入矩阵必须为方阵"
            self.logger.error(error_msg)
            raise ValueError(error_msg)

        n = len(matrix)
        RI = self.random_index(n)

        if weights is None:
            weights = WeightCalculator().calculate_weights(matrix, method="geometric")

        lambda_max = self.estimate_lambda_max(matrix, np.asarray(weights, dtype=float))

        # 计算一致性指标 CI = (λmax - n) / (n - 1)，浮点误差造成的负值按 0 处理
        CI = max((lambda_max - n) / (n - 1), 0.0) if n > 1 else 0.0

        # 计算一致性比率 CR = CI / RI
        CR = CI / RI if RI != 0 else 0.0

        is_consistent = CR < self.threshold

        self.logger.debug(f"矩阵一致性检查: 阶数={n}, λmax={lambda_max:.4f}, "
                          f"CI={CI:.4f}, RI={RI:.4f}, CR={CR:.4f}, "
                          f"一致性: {'通过' if is_consistent else '不通过'}")

        return ConsistencyResult(
            is_consistent=is_consistent,
            consistency_ratio=CR,
            max_eigenvalue=lambda_max,
            consistency_index=CI,
            random_index=RI
        )


class MatrixValidator:
    """判断矩阵验证器，用于检查矩阵的有效性"""

    def __init__(self, tolerance: float = 1e-9):
        self.tolerance = tolerance
        self.logger = logging.getLogger(__name__)

    def validate_matrix(self, matrix: np.ndarray, context: str = "") -> bool:
        """
        验证完整判断矩阵的有效性（方阵、元素为正、对角线为 1、互反）

        Args:
            matrix (np.ndarray): 输入矩阵
            context (str): 验证上下文，用于错误信息

        Returns:
            bool: 验证是否通过

        Raises:
            ValueError: 如果矩阵不符合要求
        """
        n = len(matrix)
        if matrix.shape[0] != matrix.shape[1]:
            error_msg = f"{context} 中的矩阵必须为方阵"
            self.logger.error(error_msg)
            raise ValueError(error_msg)

        if not np.all(matrix > 0):
            error_msg = f"{context} 中的矩阵元素必须为正数"
            self.logger.error(error_msg)
            raise ValueError(error_msg)

        if not np.allclose(np.diag(matrix), 1, atol=self.tolerance):
            error_msg = f"{context} 中的对角线元素必须为 1"
            self.logger.error(error_msg)
            raise ValueError(error_msg)

        # 验证互反性
        for i in range(n):
            for j in range(i + 1, n):
                if not np.isclose(matrix[i, j] * matrix[j, i], 1.0, atol=self.tolerance):
                    error_msg = f"{context} 中位置 ({j + 1}, {i + 1}) 的值应为 ({i + 1}, {j + 1}) 的倒数"
                    self.logger.error(error_msg)
                    raise ValueError(error_msg)

        return True


class ComparisonMatrixBuilder:
    """根据用户两两比较构建互反判断矩阵"""

    def __init__(self, criteria: Optional[Sequence[Criterion]] = None):
        """
        Args:
            criteria (Optional[Sequence[Criterion]]): 准则列表，其顺序决定矩阵行列顺序
        """
        self.criteria = list(criteria or CRITERIA)
        self.index = {c.id: i for i, c in enumerate(self.criteria)}
        self.logger = logging.getLogger(__name__)

    def build(self, comparisons: Iterable[PairwiseComparison]) -> np.ndarray:
        """
        构建判断矩阵，M[i][j] 表示准则 i 相对准则 j 的重要程度
        未比较的准则对默认为 1（同等重要），同一对准则的后续比较覆盖之前的结果

        Args:
            comparisons (Iterable[PairwiseComparison]): 用户比较列表

        Returns:
            np.ndarray: 只读的 N×N 判断矩阵
        """
        n = len(self.criteria)
        matrix = np.ones((n, n))

        for comparison in comparisons:
            i = self.index.get(comparison.criterion_a)
            j = self.index.get(comparison.criterion_b)
            if i is None or j is None:
                self.logger.debug(f"忽略包含未知准则的比较: {comparison}")
                continue
            if i == j:
                self.logger.debug(f"忽略准则与自身的比较: {comparison}")
                continue

            # ratio 为 B 相对 A 的重要程度
            ratio = comparison_to_saaty_ratio(comparison.value)
            matrix[i, j] = 1.0 / ratio
            matrix[j, i] = ratio

        matrix.flags.writeable = False
        return matrix


class WeightCalculator:
    """权重计算器，用于从判断矩阵计算优先级权重"""

    def __init__(self, power_iterations: int = 100):
        """
        初始化权重计算器

        Args:
            power_iterations (int): 幂迭代法的迭代次数
        """
        self.power_iterations = power_iterations
        self.logger = logging.getLogger(__name__)
        self.available_methods = ["geometric", "power", "eigenvector"]

    def calculate_weights(self, matrix: np.ndarray, method: str = "geometric") -> np.ndarray:
        """
        计算判断矩阵的权重向量

        Args:
            matrix (np.ndarray): 判断矩阵
            method (str): 计算方法 'geometric'(几何平均法，默认), 'power'(幂迭代法),
                         或 'eigenvector'(特征向量法)

        Returns:
            np.ndarray: 归一化后的权重向量

        Raises:
            ValueError: 如果指定的方法不支持
        """
        if method not in self.available_methods:
            error_msg = f"不支持的权重计算方法: {method}，可选: {', '.join(self.available_methods)}"
            self.logger.error(error_msg)
            raise ValueError(error_msg)

        matrix = np.asarray(matrix, dtype=float)
        if method == "geometric":
            weights = self._geometric_mean_method(matrix)
        elif method == "power":
            weights = self._power_iteration_method(matrix)
        else:  # eigenvector
            weights = self._eigenvector_method(matrix)

        # 确保权重之和为 1
        return weights / np.sum(weights)

    def _geometric_mean_method(self, matrix: np.ndarray) -> np.ndarray:
        """每行元素的几何平均值"""
        return np.array([gmean(row) for row in matrix])

    def _power_iteration_method(self, matrix: np.ndarray) -> np.ndarray:
        """
        使用幂迭代法逼近主特征向量

        Args:
            matrix (np.ndarray): 判断矩阵

        Returns:
            np.ndarray: 归一化后的权重向量
        """
        n = len(matrix)
        weights = np.full(n, 1.0 / n)
        for _ in range(self.power_iterations):
            weights = matrix.dot(weights)
            weights = weights / np.sum(weights)
        return weights

    def _eigenvector_method(self, matrix: np.ndarray) -> np.ndarray:
        """取最大特征值对应特征向量的实部"""
        eigenvalues, eigenvectors = np.linalg.eig(matrix)
        max_index = np.argmax(eigenvalues.real)
        return np.abs(eigenvectors[:, max_index].real)


class AHPProcessor:
    """AHP 处理模块，负责从用户比较到房源排序的完整计算"""

    def __init__(self,
                 weight_method: str = "geometric",
                 power_iterations: int = 100,
                 consistency_threshold: float = CONSISTENCY_THRESHOLD,
                 criteria: Optional[Sequence[Criterion]] = None):
        """
        初始化 AHP 处理器

        Args:
            weight_method (str): 权重计算方法
            power_iterations (int): 幂迭代次数
            consistency_threshold (float): 一致性比率阈值
            criteria (Optional[Sequence[Criterion]]): 准则列表
        """
        self.criteria = list(criteria or CRITERIA)
        self.weight_method = weight_method
        self.matrix_builder = ComparisonMatrixBuilder(self.criteria)
        self.matrix_validator = MatrixValidator()
        self.weight_calculator = WeightCalculator(power_iterations)
        self.consistency_checker = ConsistencyChecker(consistency_threshold)
        self.ranker = PropertyRanker()
        self.logger = logging.getLogger(__name__)

        if weight_method not in self.weight_calculator.available_methods:
            error_msg = (f"不支持的权重计算方法: {weight_method}，"
                         f"可选: {', '.join(self.weight_calculator.available_methods)}")
            self.logger.error(error_msg)
            raise ValueError(error_msg)

    def calculate_criteria_weights(self,
                                   comparisons: Iterable[PairwiseComparison]
                                   ) -> Tuple[np.ndarray, List[CriterionWeight], ConsistencyResult]:
        """
        计算准则权重与一致性

        Returns:
            Tuple[np.ndarray, List[CriterionWeight], ConsistencyResult]: 判断矩阵, 准则权重, 一致性结果
        """
        matrix = self.matrix_builder.build(comparisons)
        self.matrix_validator.validate_matrix(matrix, "用户判断矩阵")

        weights_array = self.weight_calculator.calculate_weights(matrix, method=self.weight_method)
        weights = [
            CriterionWeight(criterion_id=criterion.id, weight=float(weight))
            for criterion, weight in zip(self.criteria, weights_array)
        ]

        consistency = self.consistency_checker.check_consistency(matrix, weights_array)
        return matrix, weights, consistency

    def calculate(self,
                  comparisons: Iterable[PairwiseComparison],
                  properties: List[Property],
                  calculated_at: Optional[str] = None) -> AHPResult:
        """
        执行完整的 AHP 计算

        Args:
            comparisons (Iterable[PairwiseComparison]): 用户两两比较（可为 ComparisonSet）
            properties (List[Property]): 房源列表，未生成准则评分的房源不参与排序
            calculated_at (Optional[str]): 结果时间戳，默认为当前 UTC 时间

        Returns:
            AHPResult: 计算结果
        """
        comparisons = list(comparisons)
        _, weights, consistency = self.calculate_criteria_weights(comparisons)

        if not consistency.is_consistent:
            self.logger.warning(f"用户比较存在不一致，CR={consistency.consistency_ratio:.4f}，"
                                f"权重结果仅供参考")

        scored_properties = [p for p in properties if p.criteria_scores is not None]
        skipped = len(properties) - len(scored_properties)
        if skipped:
            self.logger.info(f"{skipped} 个房源尚未生成准则评分，不参与排序")

        rankings = self.ranker.rank_properties(scored_properties, weights)

        if calculated_at is None:
            calculated_at = datetime.now(timezone.utc).isoformat()

        self.logger.info(f"AHP 计算完成: {len(comparisons)} 条比较, {len(scored_properties)} 个房源, "
                         f"CR={consistency.consistency_ratio:.4f}")

        return AHPResult(
            weights=tuple(weights),
            consistency_ratio=consistency.consistency_ratio,
            is_consistent=consistency.is_consistent,
            rankings=tuple(rankings),
            calculated_at=calculated_at,
            property_count=len(scored_properties),
            max_eigenvalue=consistency.max_eigenvalue,
            consistency_index=consistency.consistency_index,
            weight_method=self.weight_method
        )
