"""确定性配色分配。"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Sequence, Tuple

from apps.chartguard.contracts.chart_spec import PaletteMode
from apps.chartguard.contracts.layout import PaletteAssignment

GRAYSCALE_RAMP: Tuple[str, ...] = (
    "#252525",
    "#525252",
    "#737373",
    "#969696",
    "#bdbdbd",
)

NEUTRAL_TONE = "#a6a6a6"
ACCENT_TONE = "#c0392b"

# Okabe-Ito 色盲友好八色。
COLORBLIND_SAFE: Tuple[str, ...] = (
    "#000000",
    "#e69f00",
    "#56b4e9",
    "#009e73",
    "#f0e442",
    "#0072b2",
    "#d55e00",
    "#cc79a7",
)


def palette_size(mode: PaletteMode) -> int:
    """返回指定模式下可区分的颜色数量。"""

    if mode == "grayscale":
        return len(GRAYSCALE_RAMP)
    if mode == "colorblind_safe":
        return len(COLORBLIND_SAFE)
    if mode == "single_accent":
        return 2
    raise ValueError(f"未支持的配色模式: {mode}")


def assign_palette(
    series_ids: Sequence[str],
    mode: PaletteMode,
    *,
    highlight_id: Optional[str] = None,
) -> PaletteAssignment:
    """为有序系列分配颜色。

    分配结果只取决于系列顺序、模式与强调系列：灰阶与色盲友好模式按
    ``index mod 调色板大小`` 循环取色；单一强调色模式下除强调系列外全部使用
    中性色。

    Parameters
    ----------
    series_ids: Sequence[str]
        按顺序排列的系列标识。
    mode: PaletteMode
        配色模式。
    highlight_id: Optional[str]
        单一强调色模式下被突出的系列。

    Returns
    -------
    PaletteAssignment
        保持系列顺序的颜色映射。
    """

    if len(series_ids) != len(set(series_ids)):
        raise ValueError("series_ids 不能重复。")
    if highlight_id is not None and highlight_id not in series_ids:
        raise ValueError(f"highlight_id={highlight_id} 不在系列列表中。")
    colors: Dict[str, str] = {}
    if mode == "grayscale":
        for index, series_id in enumerate(series_ids):
            colors[series_id] = GRAYSCALE_RAMP[index % len(GRAYSCALE_RAMP)]
    elif mode == "colorblind_safe":
        for index, series_id in enumerate(series_ids):
            colors[series_id] = COLORBLIND_SAFE[index % len(COLORBLIND_SAFE)]
    elif mode == "single_accent":
        for series_id in series_ids:
            colors[series_id] = ACCENT_TONE if series_id == highlight_id else NEUTRAL_TONE
    else:
        raise ValueError(f"未支持的配色模式: {mode}")
    return PaletteAssignment(mode=mode, colors=colors, highlight_series_id=highlight_id)


def apply_explicit_colors(
    assignment: PaletteAssignment,
    overrides: Mapping[str, str],
) -> PaletteAssignment:
    """以调用方显式指定的颜色覆盖分配结果，保持原有顺序。"""

    unknown = [series_id for series_id in overrides if series_id not in assignment.colors]
    if unknown:
        message = f"显式颜色引用了未知系列: {', '.join(unknown)}"
        raise ValueError(message)
    if not overrides:
        return assignment
    merged = {
        series_id: overrides.get(series_id, color)
        for series_id, color in assignment.colors.items()
    }
    return PaletteAssignment(
        mode=assignment.mode,
        colors=merged,
        highlight_series_id=assignment.highlight_series_id,
    )
