# visualizer.py
import logging
import os
import platform
from typing import Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns
from matplotlib.font_manager import FontProperties

from ahp_processor import AHPResult
from criteria import CRITERIA, get_criterion


class RankingVisualizer:
    """AHP 排序结果可视化"""

    def __init__(self, output_dir: str = "output/visualizations", dpi: int = 300):
        """
        初始化可视化器

        参数:
            output_dir (str): 输出目录
            dpi (int): 图像分辨率
        """
        self.output_dir = output_dir
        self.dpi = dpi
        self.logger = logging.getLogger(__name__)

        os.makedirs(output_dir, exist_ok=True)

        self.font_properties = self.get_font()
        self.configure_fonts()

        # 准则颜色，按目录顺序固定
        palette = plt.cm.tab10(np.linspace(0, 1, len(CRITERIA)))
        self.criterion_colors = {c.id: palette[i] for i, c in enumerate(CRITERIA)}

    @staticmethod
    def get_font() -> FontProperties:
        """获取适合当前系统的字体"""
        system = platform.system()
        if system == 'Windows':
            font_path = r"C:\Windows\Fonts\msyh.ttc"
            if os.path.exists(font_path):
                return FontProperties(fname=font_path)
        elif system == 'Darwin':  # macOS
            font_path = "/System/Library/Fonts/PingFang.ttc"
            if os.path.exists(font_path):
                return FontProperties(fname=font_path)
        return FontProperties(family='sans-serif')

    @staticmethod
    def configure_fonts():
        """配置matplotlib字体"""
        system = platform.system()
        if system == 'Windows':
            plt.rcParams['font.sans-serif'] = ['Microsoft YaHei', 'SimHei']
        elif system == 'Darwin':  # macOS
            plt.rcParams['font.sans-serif'] = ['PingFang SC', 'Hiragino Sans GB']
        else:  # Linux and others
            plt.rcParams['font.sans-serif'] = ['DejaVu Sans']

        plt.rcParams['axes.unicode_minus'] = False  # 正确显示负号

    def _save(self, filename: str) -> str:
        output_path = os.path.join(self.output_dir, filename)
        plt.savefig(output_path, dpi=self.dpi, bbox_inches='tight')
        plt.close()
        self.logger.info(f"图表已保存到: {output_path}")
        return output_path

    def plot_weights_pie(self, result: AHPResult,
                         title: str = "Your priorities",
                         filename: str = "criteria_weights_pie.png") -> str:
        """绘制准则权重饼状图"""
        plt.figure(figsize=(10, 8))

        labels = [get_criterion(w.criterion_id).name for w in result.weights]
        sizes = [w.weight for w in result.weights]
        colors = [self.criterion_colors[w.criterion_id] for w in result.weights]

        patches, _, _ = plt.pie(
            sizes,
            labels=labels,
            autopct='%1.1f%%',
            startangle=90,
            colors=colors,
            textprops={'fontproperties': self.font_properties}
        )
        plt.axis('equal')  # 确保饼图是圆形的

        subtitle = f"CR = {result.consistency_ratio:.3f}"
        if not result.is_consistent:
            subtitle += " (inconsistent)"
        plt.title(f"{title}\n{subtitle}", fontproperties=self.font_properties, fontsize=16, pad=20)

        plt.legend(
            patches,
            [f"{l} ({s:.2%})" for l, s in zip(labels, sizes)],
            loc="center left",
            bbox_to_anchor=(1, 0.5),
            prop=self.font_properties
        )
        return self._save(filename)

    def plot_ranking_bar(self, result: AHPResult,
                         property_names: Optional[Dict[str, str]] = None,
                         top_n: int = 10,
                         filename: str = "property_ranking.png") -> Optional[str]:
        """
        绘制房源综合得分堆叠条形图，每段表示一个准则的贡献

        参数:
            result (AHPResult): 排序结果
            property_names (Optional[Dict[str, str]]): 房源ID -> 显示名称
            top_n (int): 最多显示的房源数量
            filename (str): 输出文件名
        """
        rankings = list(result.rankings[:top_n])
        if not rankings:
            self.logger.warning("没有可显示的排序结果，跳过排名图")
            return None

        property_names = property_names or {}
        labels = [property_names.get(r.property_id) or r.property_id for r in rankings]

        fig, ax = plt.subplots(figsize=(12, max(4, 0.6 * len(rankings) + 2)))
        left = np.zeros(len(rankings))
        for criterion in CRITERIA:
            values = np.array([r.criteria_contributions.get(criterion.id, 0.0) for r in rankings])
            ax.barh(labels, values, left=left, color=self.criterion_colors[criterion.id], label=criterion.name)
            left += values

        # 添加总分标签
        for y, total in enumerate(left):
            ax.text(total + 0.5, y, f"{total:.1f}", va='center')

        ax.invert_yaxis()  # 第一名在最上方
        ax.set_xlim(0, 100)
        ax.set_xlabel("Score (0-100)", fontproperties=self.font_properties)
        ax.set_title("Property ranking", fontproperties=self.font_properties, fontsize=14)
        ax.legend(loc="lower right", prop=self.font_properties)
        ax.grid(axis='x', alpha=0.3)
        plt.tight_layout()
        return self._save(filename)

    def plot_comparison_heatmap(self, matrix: np.ndarray,
                                filename: str = "comparison_matrix.png") -> str:
        """绘制判断矩阵热力图（以 log 刻度着色，使互反值对称）"""
        names: List[str] = [c.name for c in CRITERIA]
        plt.figure(figsize=(9, 7))
        sns.heatmap(
            np.log(matrix),
            annot=np.round(matrix, 2),
            fmt="",
            cmap="RdBu_r",
            center=0,
            xticklabels=names,
            yticklabels=names,
            cbar_kws={"label": "log(ratio)"}
        )
        plt.title("Pairwise comparison matrix", fontproperties=self.font_properties, fontsize=14)
        plt.tight_layout()
        return self._save(filename)
