"""图形完整性检查：谎言因子、零基线与跨面板尺度一致性。

所有检查只产出结论，不抛出异常；违规由调用方决定是否仍然渲染。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, Optional, Sequence, Tuple

from apps.chartguard.contracts.chart_spec import ChartType
from apps.chartguard.contracts.integrity import DistortionReport, LieFactorStatus
from apps.chartguard.contracts.layout import AxisFrame

LOGGER = logging.getLogger(__name__)

DEFAULT_LIE_FACTOR_TOLERANCE = 0.05

ZERO_BASELINE_TYPES: FrozenSet[str] = frozenset(
    {
        ChartType.BAR.value,
        ChartType.HORIZONTAL_BAR.value,
        ChartType.STACKED_BAR.value,
        ChartType.HISTOGRAM.value,
        ChartType.BAR_3D.value,
    },
)


@dataclass(frozen=True)
class LieFactorResult:
    """谎言因子计算结果。"""

    lie_factor: Optional[float]
    status: LieFactorStatus


def requires_zero_baseline(chart_type: str, start_at_zero: bool = False) -> bool:
    """判断图表类型或坐标轴是否要求零基线。"""

    return start_at_zero or chart_type in ZERO_BASELINE_TYPES


def measure_effect(first: float, second: float) -> Optional[float]:
    """计算从 first 到 second 的相对变化，first 为零时无定义。"""

    if first == 0:
        return None
    return (second - first) / first


def compute_lie_factor(
    depicted_effect: Optional[float],
    data_effect: Optional[float],
    tolerance: float = DEFAULT_LIE_FACTOR_TOLERANCE,
) -> LieFactorResult:
    """计算谎言因子 ``depicted / data`` 并判定是否落在 ``[1 - tol, 1 + tol]``。

    Parameters
    ----------
    depicted_effect: Optional[float]
        图形中呈现的效应大小。
    data_effect: Optional[float]
        数据中的真实效应大小。
    tolerance: float
        允许偏离 1 的幅度。

    Returns
    -------
    LieFactorResult
        任一效应缺失或为零时判定为 indeterminate，不做计算。
    """

    if tolerance < 0:
        raise ValueError("tolerance 不能为负数。")
    if not depicted_effect or not data_effect:
        return LieFactorResult(lie_factor=None, status="indeterminate")
    lie_factor = depicted_effect / data_effect
    lower = 1.0 - tolerance
    upper = 1.0 + tolerance
    # 容忍浮点误差，避免 1.05 这类边界值被误判。
    epsilon = 1e-9
    if lower - epsilon <= lie_factor <= upper + epsilon:
        return LieFactorResult(lie_factor=lie_factor, status="compliant")
    return LieFactorResult(lie_factor=lie_factor, status="violating")


def bar_baseline(values: Sequence[float], frame: AxisFrame) -> float:
    """返回柱形绘制时的起点：正值从下界起画，负值从上界起画。"""

    if values and all(value <= 0 for value in values):
        return frame.padded_max
    return frame.padded_min


def derive_bar_effects(values: Sequence[float], baseline: float) -> Optional[Tuple[float, float]]:
    """由柱长与数据值推导呈现效应与数据效应。

    取绝对值最小与最大的两个非零值，分别比较其数据变化与从基线量起的柱长
    变化。正负混合的数据无法用单一基线比较，返回 None。

    Returns
    -------
    Optional[Tuple[float, float]]
        ``(depicted_effect, data_effect)``，无法推导时为 None。
    """

    nonzero = [value for value in values if value != 0]
    if len(nonzero) < 2:
        return None
    if not (all(value > 0 for value in nonzero) or all(value < 0 for value in nonzero)):
        return None
    smallest = min(nonzero, key=abs)
    largest = max(nonzero, key=abs)
    data_effect = measure_effect(smallest, largest)
    depicted_effect = measure_effect(abs(smallest - baseline), abs(largest - baseline))
    if data_effect is None or depicted_effect is None:
        return None
    return depicted_effect, data_effect


def check_zero_baseline(chart_type: str, frame: AxisFrame, start_at_zero: bool = False) -> bool:
    """需要零基线时，范围框必须包含零。"""

    if not requires_zero_baseline(chart_type, start_at_zero=start_at_zero):
        return True
    return frame.padded_min <= 0.0 <= frame.padded_max


def check_panel_scales(frames: Sequence[AxisFrame]) -> bool:
    """所有面板必须来自同一份联合计算的范围框。"""

    if len(frames) <= 1:
        return True
    reference = frames[0]
    return all(frame == reference for frame in frames[1:])


def build_distortion_report(
    *,
    chart_type: str,
    value_frame: AxisFrame,
    panel_frames: Sequence[AxisFrame],
    effect: Optional[Tuple[float, float]],
    start_at_zero: bool = False,
    tolerance: float = DEFAULT_LIE_FACTOR_TOLERANCE,
) -> DistortionReport:
    """汇总三项完整性检查。

    Parameters
    ----------
    chart_type: str
        最终使用的图表类型。
    value_frame: AxisFrame
        数值轴的范围框。
    panel_frames: Sequence[AxisFrame]
        各面板的数值轴范围框，非小多图时为空。
    effect: Optional[Tuple[float, float]]
        ``(depicted_effect, data_effect)``。
    start_at_zero: bool
        数值轴是否被显式要求从零开始。
    tolerance: float
        谎言因子容差。

    Returns
    -------
    DistortionReport
        失真报告。
    """

    depicted, data = effect if effect is not None else (None, None)
    lie = compute_lie_factor(depicted, data, tolerance=tolerance)
    report = DistortionReport(
        lie_factor=lie.lie_factor,
        lie_factor_status=lie.status,
        depicted_effect=depicted,
        data_effect=data,
        zero_baseline_respected=check_zero_baseline(chart_type, value_frame, start_at_zero=start_at_zero),
        scales_consistent_across_panels=check_panel_scales(panel_frames),
    )
    if report.has_violation:
        LOGGER.warning(
            "检测到图形完整性问题",
            extra={
                "chart_type": chart_type,
                "lie_factor_status": report.lie_factor_status,
                "zero_baseline_respected": report.zero_baseline_respected,
                "scales_consistent_across_panels": report.scales_consistent_across_panels,
            },
        )
    return report
