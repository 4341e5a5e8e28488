"""范围框计算：坐标轴只覆盖数据实际范围，并给出精简刻度。"""

from __future__ import annotations

import logging
import math
from typing import Iterable, List, Literal, Sequence

from apps.chartguard.contracts.layout import AxisFrame
from apps.chartguard.services.errors import SchemaError

LOGGER = logging.getLogger(__name__)

DEFAULT_PADDING_RATIO = 0.05
DEFAULT_MIN_MARGIN = 1.0
DEFAULT_MAX_TICKS = 5

_NICE_FRACTIONS = (1.0, 2.0, 5.0, 10.0)


def _flatten(sequences: Iterable[Sequence[float]]) -> List[float]:
    """展开多个数值序列。"""

    values: List[float] = []
    for sequence in sequences:
        values.extend(float(value) for value in sequence)
    return values


def _nice_step(raw_step: float) -> float:
    """将原始步长向上取整到 1、2、5 × 10^n。"""

    exponent = math.floor(math.log10(raw_step))
    magnitude = 10.0 ** exponent
    fraction = raw_step / magnitude
    for nice in _NICE_FRACTIONS:
        if fraction <= nice:
            return nice * magnitude
    return 10.0 * magnitude


def _next_nice(step: float) -> float:
    """返回比当前步长更大的下一个整齐步长。"""

    return _nice_step(step * 1.000001)


def _precision(step: float) -> int:
    """整齐步长对应的小数位数。"""

    return max(0, -math.floor(math.log10(step)))


def _interior_ticks(data_min: float, data_max: float, step: float) -> List[float]:
    """取区间内部、且与两端保持半个步长以上距离的步长整数倍。"""

    digits = _precision(step)
    first = math.ceil(data_min / step)
    last = math.floor(data_max / step)
    ticks: List[float] = []
    for index in range(first, last + 1):
        value = round(index * step, digits)
        # 与端点过近的刻度会和端点标签重叠。
        if value - data_min < step * 0.5 or data_max - value < step * 0.5:
            continue
        ticks.append(value)
    return ticks


def select_ticks(data_min: float, data_max: float, max_ticks: int = DEFAULT_MAX_TICKS) -> List[float]:
    """选择精简刻度集合。

    端点 ``data_min`` 与 ``data_max`` 必然入选；内部刻度取整齐步长的整数倍
    （区间跨零时零点自然入选），总数不超过 ``max_ticks``。

    Parameters
    ----------
    data_min: float
        数据最小值。
    data_max: float
        数据最大值。
    max_ticks: int
        刻度总数上限，至少为 2。

    Returns
    -------
    List[float]
        严格递增的刻度列表。
    """

    if max_ticks < 2:
        raise ValueError("max_ticks 至少为 2。")
    if data_min > data_max:
        raise ValueError("data_min 不能大于 data_max。")
    if data_min == data_max:
        return [data_min]
    interior_budget = max_ticks - 2
    if interior_budget == 0:
        return [data_min, data_max]
    step = _nice_step((data_max - data_min) / (interior_budget + 1))
    interior = _interior_ticks(data_min, data_max, step)
    while len(interior) > interior_budget:
        step = _next_nice(step)
        interior = _interior_ticks(data_min, data_max, step)
    return [data_min, *interior, data_max]


def compute_range_frame(
    sequences: Iterable[Sequence[float]],
    *,
    axis: Literal["x", "y"] = "y",
    padding_ratio: float = DEFAULT_PADDING_RATIO,
    min_margin: float = DEFAULT_MIN_MARGIN,
    max_ticks: int = DEFAULT_MAX_TICKS,
    include_zero: bool = False,
) -> AxisFrame:
    """计算共享同一坐标轴的数值序列的范围框。

    Parameters
    ----------
    sequences: Iterable[Sequence[float]]
        共享该坐标轴的一个或多个数值序列。
    axis: Literal["x", "y"]
        坐标轴名称。
    padding_ratio: float
        两端留白占数据跨度的比例。
    min_margin: float
        数据跨度为零时的最小绝对留白，避免零宽范围框。
    max_ticks: int
        刻度数量上限。
    include_zero: bool
        需要零基线时，将靠近零的一侧留白边界收拢到零。

    Returns
    -------
    AxisFrame
        范围框与刻度集合。
    """

    if padding_ratio < 0:
        raise ValueError("padding_ratio 不能为负数。")
    if min_margin <= 0:
        raise ValueError("min_margin 必须为正数。")
    values = _flatten(sequences)
    if not values:
        raise SchemaError(
            field=f"{axis}_axis",
            constraint="至少一个数值",
            message=f"{axis} 轴没有任何数值，无法计算范围框。",
        )
    data_min = min(values)
    data_max = max(values)
    span = data_max - data_min
    if not math.isfinite(span):
        raise SchemaError(
            field=f"{axis}_axis",
            constraint="数据跨度可用有限浮点数表示",
            message=f"{axis} 轴数值跨度超出浮点范围，无法计算范围框。",
        )
    if span == 0:
        margin = max(abs(data_min) * padding_ratio, min_margin)
    else:
        margin = span * padding_ratio
    padded_min = data_min - margin
    padded_max = data_max + margin
    if not (math.isfinite(padded_min) and math.isfinite(padded_max)):
        raise SchemaError(
            field=f"{axis}_axis",
            constraint="留白后的边界可用有限浮点数表示",
            message=f"{axis} 轴留白后的边界超出浮点范围。",
        )
    if include_zero:
        if data_min >= 0:
            padded_min = 0.0
        elif data_max <= 0:
            padded_max = 0.0
    ticks = select_ticks(data_min, data_max, max_ticks=max_ticks)
    LOGGER.debug(
        "范围框计算完成",
        extra={
            "axis": axis,
            "value_count": len(values),
            "tick_count": len(ticks),
        },
    )
    return AxisFrame(
        axis=axis,
        data_min=data_min,
        data_max=data_max,
        padded_min=padded_min,
        padded_max=padded_max,
        tick_values=ticks,
    )


def compute_shared_frame(
    panels: Iterable[Iterable[Sequence[float]]],
    **options: object,
) -> AxisFrame:
    """为小多图的所有面板联合计算唯一的范围框。"""

    joined: List[Sequence[float]] = []
    for panel in panels:
        joined.extend(panel)
    return compute_range_frame(joined, **options)
