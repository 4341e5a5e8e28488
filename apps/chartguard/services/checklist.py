"""版本化的最少墨水检查清单。

规则以表的形式声明，每条规则是互不依赖、无副作用的谓词。报告顺序即声明
顺序；同一输入重复评估得到完全相同的报告。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional, Sequence, Tuple

from apps.chartguard.contracts.chart_spec import ChartType, StyleDirectives
from apps.chartguard.contracts.checklist import ChecklistItem, ChecklistReport, RuleSeverity
from apps.chartguard.contracts.decision import SubstitutionDecision
from apps.chartguard.contracts.integrity import DistortionReport
from apps.chartguard.contracts.layout import AxisFrame, LabelPlacement, PanelLayout

CHECKLIST_VERSION = "1.0.0"

MAX_SMALL_MULTIPLE_PANELS = 25

BANNED_COLOR_MAPS: FrozenSet[str] = frozenset(
    {"jet", "rainbow", "hsv", "gist_rainbow", "nipy_spectral", "spectral", "gist_ncar"},
)

AXISLESS_CHART_TYPES: FrozenSet[str] = frozenset({ChartType.SPARKLINE.value, ChartType.TABLE.value})


@dataclass(frozen=True)
class ChecklistContext:
    """规则评估所需的全部输入。"""

    chart_type: str
    decision: SubstitutionDecision
    override_applied: bool
    style: StyleDirectives
    frames: Tuple[AxisFrame, ...]
    panels: Tuple[PanelLayout, ...] = ()
    label_placements: Tuple[LabelPlacement, ...] = ()
    distortion: Optional[DistortionReport] = None
    max_panels: int = MAX_SMALL_MULTIPLE_PANELS


RuleCheck = Callable[[ChecklistContext], Tuple[bool, str]]


@dataclass(frozen=True)
class ChecklistRule:
    """检查规则定义。"""

    rule_id: str
    severity: RuleSeverity
    description: str
    check: RuleCheck


def _chart_type_allowed(context: ChecklistContext) -> Tuple[bool, str]:
    if not context.decision.is_banned:
        return True, f"{context.chart_type} 为允许的图表类型。"
    if context.override_applied:
        return False, (
            f"用户确认后保留禁止类型 {context.chart_type}，"
            f"推荐替代为 {context.decision.substitute_type}。"
        )
    return False, f"{context.chart_type} 为禁止类型，推荐替代为 {context.decision.substitute_type}。"


def _spines_removed(context: ChecklistContext) -> Tuple[bool, str]:
    if context.style.remove_spines:
        return True, "上、右边框已移除。"
    return False, "保留了完整边框，属于非数据墨水。"


def _range_frame_applied(context: ChecklistContext) -> Tuple[bool, str]:
    if context.chart_type in AXISLESS_CHART_TYPES:
        return True, f"{context.chart_type} 不绘制坐标轴。"
    if not context.style.range_frame:
        return False, "坐标轴线未截断到数据范围。"
    if not context.frames:
        return False, "缺少范围框。"
    return True, "坐标轴线截断到数据范围。"


def _ticks_outward(context: ChecklistContext) -> Tuple[bool, str]:
    if context.style.tick_direction == "in":
        return False, "刻度朝内会与数据墨水重叠。"
    return True, f"刻度方向为 {context.style.tick_direction}。"


def _tick_density(context: ChecklistContext) -> Tuple[bool, str]:
    limit = context.style.max_ticks
    crowded = [frame.axis for frame in context.frames if len(frame.tick_values) > limit]
    if crowded:
        return False, f"{', '.join(crowded)} 轴刻度超过 {limit} 个。"
    return True, f"各轴刻度不超过 {limit} 个。"


def _serif_typography(context: ChecklistContext) -> Tuple[bool, str]:
    if context.style.font_family == "serif":
        return True, "使用衬线字体。"
    return False, f"字体族为 {context.style.font_family}，推荐衬线字体。"


def _legend_removed(context: ChecklistContext) -> Tuple[bool, str]:
    if context.style.show_legend:
        return False, "保留了图例，推荐直接标注系列。"
    return True, "图例已移除。"


def _gridlines_removed(context: ChecklistContext) -> Tuple[bool, str]:
    if context.style.show_grid:
        return False, "网格线不承载数据。"
    return True, "未绘制网格线。"


def _colormap_allowed(context: ChecklistContext) -> Tuple[bool, str]:
    color_map = context.style.color_map
    if color_map is not None and color_map.strip().lower() in BANNED_COLOR_MAPS:
        return False, f"色图 {color_map} 亮度不单调，会制造虚假边界。"
    return True, "未使用禁止的色图。"


def _zero_baseline(context: ChecklistContext) -> Tuple[bool, str]:
    if context.distortion is None:
        return True, "未执行完整性检查。"
    if context.distortion.zero_baseline_respected:
        return True, "零基线要求已满足。"
    return False, "需要零基线的图表，范围框未包含零。"


def _lie_factor_within_bounds(context: ChecklistContext) -> Tuple[bool, str]:
    distortion = context.distortion
    if distortion is None or distortion.lie_factor_status == "indeterminate":
        return True, "谎言因子无法计算。"
    if distortion.lie_factor_status == "compliant":
        return True, f"谎言因子 {distortion.lie_factor:.3f} 位于容差范围内。"
    return False, f"谎言因子 {distortion.lie_factor:.3f} 超出容差范围。"


def _scales_consistent_across_panels(context: ChecklistContext) -> Tuple[bool, str]:
    if context.distortion is not None and not context.distortion.scales_consistent_across_panels:
        return False, "各面板使用了不同的坐标尺度。"
    if context.panels:
        return True, f"{len(context.panels)} 个面板共享同一范围框。"
    return True, "单面板图表。"


def _panel_count_within_limit(context: ChecklistContext) -> Tuple[bool, str]:
    count = len(context.panels)
    if count > context.max_panels:
        return False, f"面板数量 {count} 超过上限 {context.max_panels}。"
    return True, f"面板数量 {count} 未超过上限 {context.max_panels}。"


def _labels_within_frame(context: ChecklistContext) -> Tuple[bool, str]:
    overflowing = [placement.side for placement in context.label_placements if placement.overflow]
    if overflowing:
        return False, f"{', '.join(overflowing)} 侧标签被推出范围框。"
    return True, "直接标注均位于范围框内。"


DEFAULT_RULES: Tuple[ChecklistRule, ...] = (
    ChecklistRule("chart_type_allowed", "info", "图表类型不在禁止表中。", _chart_type_allowed),
    ChecklistRule("spines_removed", "warning", "移除上、右边框。", _spines_removed),
    ChecklistRule("range_frame_applied", "warning", "坐标轴线只覆盖数据范围。", _range_frame_applied),
    ChecklistRule("ticks_outward", "warning", "刻度朝外或不绘制。", _ticks_outward),
    ChecklistRule("tick_density", "warning", "刻度数量不超过上限。", _tick_density),
    ChecklistRule("serif_typography", "warning", "使用衬线字体。", _serif_typography),
    ChecklistRule("legend_removed", "warning", "以直接标注替代图例。", _legend_removed),
    ChecklistRule("gridlines_removed", "warning", "不绘制网格线。", _gridlines_removed),
    ChecklistRule("colormap_allowed", "error", "不使用亮度不单调的色图。", _colormap_allowed),
    ChecklistRule("zero_baseline", "error", "柱形类图表包含零基线。", _zero_baseline),
    ChecklistRule("lie_factor_within_bounds", "error", "谎言因子位于 [0.95, 1.05]。", _lie_factor_within_bounds),
    ChecklistRule(
        "scales_consistent_across_panels",
        "error",
        "小多图各面板共享同一尺度。",
        _scales_consistent_across_panels,
    ),
    ChecklistRule("panel_count_within_limit", "warning", "小多图面板不超过 25 个。", _panel_count_within_limit),
    ChecklistRule("labels_within_frame", "warning", "直接标注未被推出范围框。", _labels_within_frame),
)


def evaluate_checklist(
    context: ChecklistContext,
    rules: Sequence[ChecklistRule] = DEFAULT_RULES,
) -> ChecklistReport:
    """按声明顺序执行全部规则并生成报告。

    Parameters
    ----------
    context: ChecklistContext
        规范化后的图表参数与各项检查结果。
    rules: Sequence[ChecklistRule]
        待执行的规则表。

    Returns
    -------
    ChecklistReport
        新构建的检查报告。
    """

    items: List[ChecklistItem] = []
    for rule in rules:
        passed, message = rule.check(context)
        items.append(
            ChecklistItem(
                rule_id=rule.rule_id,
                passed=passed,
                severity=rule.severity,
                message=message,
            ),
        )
    return ChecklistReport(version=CHECKLIST_VERSION, items=items)


def rule_catalogue(rules: Sequence[ChecklistRule] = DEFAULT_RULES) -> List[dict]:
    """返回规则目录，供调用方展示。"""

    return [
        {"rule_id": rule.rule_id, "severity": rule.severity, "description": rule.description}
        for rule in rules
    ]
