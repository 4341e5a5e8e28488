"""图表类型分类与替代建议。

禁止类型以有序表描述，新增替代关系只需追加表项。判定规则：

* 按表顺序匹配，首个命中的表项即为权威结果，不推断额外意图。
* 未登记的类型一律放行，便于扩展。
* 堆叠面积图仅在系列数量已知且不超过阈值时放行。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from apps.chartguard.contracts.chart_spec import ChartType, normalize_chart_type
from apps.chartguard.contracts.decision import SubstitutionDecision

HORIZONTAL_BAR_OR_DOT_PLOT = "horizontal-bar-or-dot-plot"
BAR_2D = "2d-bar"
HEATMAP_OR_CONTOUR = "heatmap-or-contour"
SMALL_MULTIPLES = "small-multiples"
SMALL_MULTIPLES_OF_BAR_OR_DOT = "small-multiples-of-bar-or-dot"
SMALL_MULTIPLES_OF_LINE = "small-multiples-of-line"
SCATTER_WITH_DIRECT_LABELS = "scatter-with-direct-labels"
NUMBER_WITH_SPARKLINE = "number-with-sparkline"
BAR_OF_FREQUENCIES = "bar-of-frequencies"

STACKED_AREA_MAX_SERIES = 3


@dataclass(frozen=True)
class BannedChartEntry:
    """禁止类型表项。

    Attributes
    ----------
    chart_type: str
        被禁止的类型令牌。
    substitute_type: str
        推荐的替代类型。
    rationale: str
        一句话理由，将原样呈现给最终用户。
    max_allowed_series: Optional[int]
        若给出，则系列数量已知且不超过该值时放行。
    """

    chart_type: str
    substitute_type: str
    rationale: str
    max_allowed_series: Optional[int] = None

    def applies(self, series_count: Optional[int]) -> bool:
        """判断表项是否适用于给定的系列数量。"""

        if self.max_allowed_series is None or series_count is None:
            return True
        return series_count > self.max_allowed_series


BANNED_CHART_TABLE: Tuple[BannedChartEntry, ...] = (
    BannedChartEntry(
        chart_type=ChartType.PIE.value,
        substitute_type=HORIZONTAL_BAR_OR_DOT_PLOT,
        rationale="人眼比较角度和面积远不如比较共同基线上的长度准确。",
    ),
    BannedChartEntry(
        chart_type=ChartType.PIE_3D.value,
        substitute_type=HORIZONTAL_BAR_OR_DOT_PLOT,
        rationale="透视会放大近处扇区，在角度误读之上再叠加体积失真。",
    ),
    BannedChartEntry(
        chart_type=ChartType.DONUT.value,
        substitute_type=HORIZONTAL_BAR_OR_DOT_PLOT,
        rationale="去掉圆心后连角度线索也消失，只剩弧长可供比较。",
    ),
    BannedChartEntry(
        chart_type=ChartType.BAR_3D.value,
        substitute_type=BAR_2D,
        rationale="第三维不承载数据，透视让柱高无法对准刻度读数。",
    ),
    BannedChartEntry(
        chart_type=ChartType.SURFACE_3D.value,
        substitute_type=HEATMAP_OR_CONTOUR,
        rationale="曲面会遮挡自身，热力图或等值线可以完整展示二维场。",
    ),
    BannedChartEntry(
        chart_type=ChartType.DUAL_AXIS.value,
        substitute_type=SMALL_MULTIPLES,
        rationale="两条独立刻度可以任意缩放，制造出数据中并不存在的交叉与相关。",
    ),
    BannedChartEntry(
        chart_type=ChartType.RADAR.value,
        substitute_type=SMALL_MULTIPLES_OF_BAR_OR_DOT,
        rationale="多边形面积取决于轴的排列顺序，而不是数据本身。",
    ),
    BannedChartEntry(
        chart_type=ChartType.STACKED_AREA.value,
        substitute_type=SMALL_MULTIPLES_OF_LINE,
        rationale="超过三层后，上层系列没有共同基线，趋势无法读取。",
        max_allowed_series=STACKED_AREA_MAX_SERIES,
    ),
    BannedChartEntry(
        chart_type=ChartType.BUBBLE.value,
        substitute_type=SCATTER_WITH_DIRECT_LABELS,
        rationale="气泡面积的比较误差很大，第三个变量更适合直接标注。",
    ),
    BannedChartEntry(
        chart_type=ChartType.GAUGE.value,
        substitute_type=NUMBER_WITH_SPARKLINE,
        rationale="仪表盘用大量墨水表达一个数字，配上迷你走势图信息更多。",
    ),
    BannedChartEntry(
        chart_type=ChartType.WORD_CLOUD.value,
        substitute_type=BAR_OF_FREQUENCIES,
        rationale="字号同时受词长影响，频次无法比较，也无法排序。",
    ),
)

CHART_TYPE_ALIASES: Dict[str, str] = {
    "pie-chart": ChartType.PIE.value,
    "pie3d": ChartType.PIE_3D.value,
    "doughnut": ChartType.DONUT.value,
    "donut-chart": ChartType.DONUT.value,
    "bar3d": ChartType.BAR_3D.value,
    "3d-column": ChartType.BAR_3D.value,
    "surface": ChartType.SURFACE_3D.value,
    "surface3d": ChartType.SURFACE_3D.value,
    "dual-y-axis": ChartType.DUAL_AXIS.value,
    "twin-axis": ChartType.DUAL_AXIS.value,
    "spider": ChartType.RADAR.value,
    "spider-web": ChartType.RADAR.value,
    "area-stacked": ChartType.STACKED_AREA.value,
    "bubble-chart": ChartType.BUBBLE.value,
    "speedometer": ChartType.GAUGE.value,
    "wordcloud": ChartType.WORD_CLOUD.value,
    "tag-cloud": ChartType.WORD_CLOUD.value,
}


def resolve_chart_type(token: str) -> str:
    """归一令牌并展开别名。"""

    normalized = normalize_chart_type(token)
    return CHART_TYPE_ALIASES.get(normalized, normalized)


def classify(chart_type: str, series_count: Optional[int] = None) -> SubstitutionDecision:
    """判定图表类型是否被禁止，并给出替代类型。

    Parameters
    ----------
    chart_type: str
        请求的图表类型令牌，大小写与分隔符不敏感。
    series_count: Optional[int]
        系列数量，仅对带条件的表项生效。

    Returns
    -------
    SubstitutionDecision
        判定结果；未登记的类型视为允许。
    """

    if series_count is not None and series_count < 0:
        raise ValueError("series_count 不能为负数。")
    resolved = resolve_chart_type(chart_type)
    if not resolved:
        raise ValueError("chart_type 不能为空白。")
    for entry in BANNED_CHART_TABLE:
        if entry.chart_type != resolved:
            continue
        if not entry.applies(series_count=series_count):
            return SubstitutionDecision(
                chart_type=resolved,
                is_banned=False,
                rationale=f"系列数量 {series_count} 未超过 {entry.max_allowed_series}，允许使用。",
            )
        return SubstitutionDecision(
            chart_type=resolved,
            is_banned=True,
            substitute_type=entry.substitute_type,
            rationale=entry.rationale,
        )
    return SubstitutionDecision(chart_type=resolved, is_banned=False)


def banned_chart_types() -> Tuple[str, ...]:
    """返回禁止表中登记的类型，保持表顺序。"""

    return tuple(entry.chart_type for entry in BANNED_CHART_TABLE)
