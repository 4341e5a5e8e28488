"""规范化编排器：分类 → 覆盖确认 → 范围框 / 标签 / 配色 / 完整性 → 检查清单。

编排器不做任何渲染，只输出渲染端可直接消费的 NormalizedChartSpec；遇到未确认
的禁止类型时返回 NeedsConfirmation 控制信号。除覆盖会话外，所有步骤都是纯函数。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple, Union
from uuid import uuid4

from apps.chartguard.contracts.chart_spec import ChartSpec, ChartType, PanelGroup, Series
from apps.chartguard.contracts.decision import NeedsConfirmation, SubstitutionDecision
from apps.chartguard.contracts.integrity import DistortionReport
from apps.chartguard.contracts.layout import AxisFrame, LabelPlacement, PanelLayout
from apps.chartguard.contracts.normalized import NormalizationWarning, NormalizedChartSpec
from apps.chartguard.services.checklist import MAX_SMALL_MULTIPLE_PANELS, ChecklistContext, evaluate_checklist
from apps.chartguard.services.classifier import classify, resolve_chart_type
from apps.chartguard.services.errors import SchemaError
from apps.chartguard.services.integrity import (
    DEFAULT_LIE_FACTOR_TOLERANCE,
    ZERO_BASELINE_TYPES,
    bar_baseline,
    build_distortion_report,
    derive_bar_effects,
    requires_zero_baseline,
)
from apps.chartguard.services.labels import LabelAnchor, resolve_label_positions
from apps.chartguard.services.palette import apply_explicit_colors, assign_palette
from apps.chartguard.services.range_frame import (
    DEFAULT_MIN_MARGIN,
    DEFAULT_PADDING_RATIO,
    compute_range_frame,
    compute_shared_frame,
)
from apps.chartguard.stores.override_store import OverrideSessionStore

LOGGER = logging.getLogger(__name__)

SHARED_SCALE_TYPES: FrozenSet[str] = frozenset({ChartType.SMALL_MULTIPLES.value, ChartType.SLOPE.value})
DIRECT_LABEL_TYPES: FrozenSet[str] = frozenset(
    {ChartType.LINE.value, ChartType.SLOPE.value, ChartType.SPARKLINE.value},
)
STACKED_TYPES: FrozenSet[str] = frozenset({ChartType.STACKED_BAR.value, ChartType.STACKED_AREA.value})


@dataclass(frozen=True)
class NormalizerConfig:
    """规范化流程的可调参数。"""

    padding_ratio: float = DEFAULT_PADDING_RATIO
    min_margin: float = DEFAULT_MIN_MARGIN
    label_gap_ratio: float = 0.03
    lie_factor_tolerance: float = DEFAULT_LIE_FACTOR_TOLERANCE
    max_panels: int = MAX_SMALL_MULTIPLE_PANELS

    def __post_init__(self) -> None:
        if self.label_gap_ratio <= 0:
            raise ValueError("label_gap_ratio 必须为正数。")
        if self.max_panels < 1:
            raise ValueError("max_panels 至少为 1。")


NormalizeOutcome = Union[NormalizedChartSpec, NeedsConfirmation]


def validate_chart_spec(spec: ChartSpec) -> None:
    """校验跨字段约束，失败时抛出 SchemaError。

    Parameters
    ----------
    spec: ChartSpec
        已通过字段级解析的图表请求。
    """

    series_ids = spec.series_ids()
    seen: set = set()
    for index, series_id in enumerate(series_ids):
        if series_id in seen:
            raise SchemaError(
                field=f"series[{index}].series_id",
                constraint="series_id 在同一请求内唯一",
                message=f"系列标识 {series_id} 重复。",
            )
        seen.add(series_id)
    categorical = {item.is_categorical for item in spec.series}
    if len(categorical) > 1:
        raise SchemaError(
            field="series",
            constraint="所有系列同为数值型或同为类别型",
            message="系列之间混用了数值型与类别型横坐标。",
        )
    if spec.highlight_series_id is not None and spec.highlight_series_id not in seen:
        raise SchemaError(
            field="highlight_series_id",
            constraint="引用已存在的 series_id",
            message=f"强调系列 {spec.highlight_series_id} 不存在。",
        )
    _validate_panels(spec=spec, series_ids=seen)
    chart_type = resolve_chart_type(spec.chart_type)
    if chart_type in SHARED_SCALE_TYPES:
        expected = len(spec.series[0].points)
        for index, item in enumerate(spec.series):
            if len(item.points) != expected:
                raise SchemaError(
                    field=f"series[{index}].points",
                    constraint=f"与 series[0] 相同的点数 {expected}",
                    message=f"{chart_type} 要求共享尺度，系列 {item.series_id} 的点数为 {len(item.points)}。",
                )
    if chart_type == ChartType.SLOPE.value and len(spec.series[0].points) < 2:
        raise SchemaError(
            field="series[0].points",
            constraint="至少 2 个点（左列与右列）",
            message="斜率图每个实体至少需要左右两个数值。",
        )


def _validate_panels(*, spec: ChartSpec, series_ids: set) -> None:
    """面板必须完整且不重叠地覆盖所有系列。"""

    if not spec.panels:
        return
    panel_ids: set = set()
    assigned: Dict[str, str] = {}
    for panel_index, panel in enumerate(spec.panels):
        if panel.panel_id in panel_ids:
            raise SchemaError(
                field=f"panels[{panel_index}].panel_id",
                constraint="panel_id 唯一",
                message=f"面板标识 {panel.panel_id} 重复。",
            )
        panel_ids.add(panel.panel_id)
        for series_id in panel.series_ids:
            if series_id not in series_ids:
                raise SchemaError(
                    field=f"panels[{panel_index}].series_ids",
                    constraint="引用已存在的 series_id",
                    message=f"面板 {panel.panel_id} 引用了不存在的系列 {series_id}。",
                )
            if series_id in assigned:
                raise SchemaError(
                    field=f"panels[{panel_index}].series_ids",
                    constraint="每个系列只属于一个面板",
                    message=f"系列 {series_id} 同时属于面板 {assigned[series_id]} 与 {panel.panel_id}。",
                )
            assigned[series_id] = panel.panel_id
    missing = [series_id for series_id in spec.series_ids() if series_id not in assigned]
    if missing:
        raise SchemaError(
            field="panels",
            constraint="每个系列都归属某个面板",
            message=f"以下系列未分配面板: {', '.join(missing)}",
        )


def _ordered_categories(series: Sequence[Series]) -> List[str]:
    """按首次出现顺序收集类别。"""

    categories: List[str] = []
    for item in series:
        for point in item.points:
            if point.category is not None and point.category not in categories:
                categories.append(point.category)
    return categories


def _stacked_totals(series: Sequence[Series]) -> List[float]:
    """按横坐标累加各层数值，得到堆叠后的顶端。"""

    totals: Dict[object, float] = {}
    for item in series:
        for point in item.points:
            key = point.category if point.category is not None else point.x
            totals[key] = totals.get(key, 0.0) + point.y
    return list(totals.values())


class ChartNormalizer:
    """规范化编排器。"""

    def __init__(
        self,
        *,
        session_store: OverrideSessionStore,
        config: Optional[NormalizerConfig] = None,
    ) -> None:
        """初始化编排器。

        Parameters
        ----------
        session_store: OverrideSessionStore
            覆盖确认会话存储，唯一的共享可变状态。
        config: Optional[NormalizerConfig]
            可调参数，缺省使用默认值。
        """

        self._sessions = session_store
        self._config = config or NormalizerConfig()

    @property
    def config(self) -> NormalizerConfig:
        """当前参数。"""

        return self._config

    def normalize(self, spec: ChartSpec) -> NormalizeOutcome:
        """规范化单个图表请求。

        Parameters
        ----------
        spec: ChartSpec
            调用方提交的图表请求。

        Returns
        -------
        NormalizeOutcome
            NormalizedChartSpec，或需要调用方确认时的 NeedsConfirmation。

        Raises
        ------
        SchemaError
            请求结构不完整或自相矛盾。
        """

        validate_chart_spec(spec)
        decision = classify(spec.chart_type, series_count=len(spec.series))
        override_applied = False
        if decision.is_banned:
            confirmation = self._gate_banned_type(spec=spec, decision=decision)
            if confirmation is not None:
                return confirmation
            override_applied = True
        normalized = self._assemble(spec=spec, decision=decision, override_applied=override_applied)
        if override_applied and spec.request_id is not None:
            # 请求完成即结束会话，后续提交重新走确认流程。
            self._sessions.complete(spec.request_id)
        LOGGER.info(
            "图表规范化完成",
            extra={
                "request_id": spec.request_id,
                "chart_type": normalized.chart_type,
                "override_applied": override_applied,
                "failed_rules": normalized.checklist.failed_rule_ids(),
            },
        )
        return normalized

    def _gate_banned_type(
        self,
        *,
        spec: ChartSpec,
        decision: SubstitutionDecision,
    ) -> Optional[NeedsConfirmation]:
        """禁止类型的确认闸门，已确认时返回 None。"""

        if spec.confirmed and spec.request_id is not None:
            session = self._sessions.confirm(spec.request_id, decision.chart_type)
            if session is not None:
                return None
            LOGGER.info(
                "确认引用的会话不存在或已过期，重新发起确认",
                extra={"request_id": spec.request_id, "chart_type": decision.chart_type},
            )
        request_id = spec.request_id or f"req_{uuid4()}"
        session = self._sessions.propose(request_id, decision)
        return NeedsConfirmation(
            request_id=request_id,
            banned_type=decision.chart_type,
            substitute_type=session.substitute_type,
            rationale=decision.rationale,
            session_state=session.state,
        )

    def _assemble(
        self,
        *,
        spec: ChartSpec,
        decision: SubstitutionDecision,
        override_applied: bool,
    ) -> NormalizedChartSpec:
        """计算全部派生参数并组装结果。"""

        chart_type = decision.chart_type
        categorical = spec.series[0].is_categorical
        panel_groups = self._panel_groups(spec=spec, chart_type=chart_type)
        y_frame = self._value_frame(spec=spec, chart_type=chart_type, panel_groups=panel_groups)
        x_frame: Optional[AxisFrame] = None
        if not categorical:
            x_frame = compute_range_frame(
                [[point.x for point in item.points] for item in spec.series],
                axis="x",
                padding_ratio=self._config.padding_ratio,
                min_margin=self._config.min_margin,
                max_ticks=spec.style.max_ticks,
                include_zero=spec.x_axis.start_at_zero,
            )
        panels = [
            PanelLayout(
                panel_id=group.panel_id,
                title=group.title,
                series_ids=list(group.series_ids),
                x_frame=x_frame,
                y_frame=y_frame,
            )
            for group in panel_groups
        ]
        placements = self._label_placements(spec=spec, chart_type=chart_type, frame=y_frame, has_panels=bool(panels))
        palette = assign_palette(
            spec.series_ids(),
            spec.palette_mode,
            highlight_id=spec.highlight_series_id,
        )
        palette = apply_explicit_colors(
            palette,
            {item.series_id: item.color for item in spec.series if item.color is not None},
        )
        distortion = build_distortion_report(
            chart_type=chart_type,
            value_frame=y_frame,
            panel_frames=[panel.y_frame for panel in panels],
            effect=self._effect(spec=spec, chart_type=chart_type, frame=y_frame),
            start_at_zero=spec.y_axis.start_at_zero,
            tolerance=self._config.lie_factor_tolerance,
        )
        frames: Tuple[AxisFrame, ...] = (x_frame, y_frame) if x_frame is not None else (y_frame,)
        checklist = evaluate_checklist(
            ChecklistContext(
                chart_type=chart_type,
                decision=decision,
                override_applied=override_applied,
                style=spec.style,
                frames=frames,
                panels=tuple(panels),
                label_placements=tuple(placements),
                distortion=distortion,
                max_panels=self._config.max_panels,
            ),
        )
        return NormalizedChartSpec(
            request_id=spec.request_id,
            chart_type=chart_type,
            override_applied=override_applied,
            source=spec,
            x_frame=x_frame,
            y_frame=y_frame,
            categories=_ordered_categories(spec.series) if categorical else [],
            panels=panels,
            label_placements=placements,
            palette=palette,
            distortion=distortion,
            style=spec.style,
            warnings=_collect_warnings(distortion=distortion, placements=placements),
            checklist=checklist,
        )

    def _panel_groups(self, *, spec: ChartSpec, chart_type: str) -> List[PanelGroup]:
        """小多图缺省时每个系列独占一个面板。"""

        if spec.panels:
            return list(spec.panels)
        if chart_type != ChartType.SMALL_MULTIPLES.value:
            return []
        return [
            PanelGroup(panel_id=item.series_id, title=item.label, series_ids=[item.series_id])
            for item in spec.series
        ]

    def _value_frame(
        self,
        *,
        spec: ChartSpec,
        chart_type: str,
        panel_groups: Sequence[PanelGroup],
    ) -> AxisFrame:
        """计算数值轴范围框；有面板时跨面板联合计算。"""

        options = {
            "axis": "y",
            "padding_ratio": self._config.padding_ratio,
            "min_margin": self._config.min_margin,
            "max_ticks": spec.style.max_ticks,
            "include_zero": requires_zero_baseline(chart_type, start_at_zero=spec.y_axis.start_at_zero),
        }
        if chart_type in STACKED_TYPES:
            sequences = [item.values() for item in spec.series]
            sequences.append(_stacked_totals(spec.series))
            return compute_range_frame(sequences, **options)
        if panel_groups:
            by_id = {item.series_id: item for item in spec.series}
            panel_values = [
                [by_id[series_id].values() for series_id in group.series_ids]
                for group in panel_groups
            ]
            return compute_shared_frame(panel_values, **options)
        return compute_range_frame([item.values() for item in spec.series], **options)

    def _label_placements(
        self,
        *,
        spec: ChartSpec,
        chart_type: str,
        frame: AxisFrame,
        has_panels: bool,
    ) -> List[LabelPlacement]:
        """为直接标注类图表解析标签位置，斜率图左右两列分别解析。"""

        if chart_type not in DIRECT_LABEL_TYPES or has_panels:
            return []
        min_gap = spec.label_min_gap or frame.span * self._config.label_gap_ratio
        extent = (frame.padded_min, frame.padded_max)
        if chart_type == ChartType.SLOPE.value:
            left = [LabelAnchor(item.series_id, item.label, item.points[0].y) for item in spec.series]
            right = [LabelAnchor(item.series_id, item.label, item.points[-1].y) for item in spec.series]
            return [
                resolve_label_positions(left, min_gap, side="left", extent=extent),
                resolve_label_positions(right, min_gap, side="right", extent=extent),
            ]
        ends = [LabelAnchor(item.series_id, item.label, item.points[-1].y) for item in spec.series]
        return [resolve_label_positions(ends, min_gap, side="end", extent=extent)]

    def _effect(
        self,
        *,
        spec: ChartSpec,
        chart_type: str,
        frame: AxisFrame,
    ) -> Optional[Tuple[float, float]]:
        """优先使用调用方给出的效应量，柱形类图表可由柱长推导。"""

        if spec.effect is not None:
            return spec.effect.depicted_effect, spec.effect.data_effect
        if chart_type not in ZERO_BASELINE_TYPES:
            return None
        values = [value for item in spec.series for value in item.values()]
        return derive_bar_effects(values, bar_baseline(values, frame))


def _collect_warnings(
    *,
    distortion: DistortionReport,
    placements: Sequence[LabelPlacement],
) -> List[NormalizationWarning]:
    """将完整性与布局问题整理为非致命告警。"""

    warnings: List[NormalizationWarning] = []
    if distortion.lie_factor_status == "violating":
        warnings.append(
            NormalizationWarning(
                kind="integrity",
                code="lie_factor_out_of_bounds",
                message=f"谎言因子 {distortion.lie_factor:.3f} 超出容差范围。",
            ),
        )
    if not distortion.zero_baseline_respected:
        warnings.append(
            NormalizationWarning(
                kind="integrity",
                code="non_zero_baseline",
                message="需要零基线的图表，范围框未包含零。",
            ),
        )
    if not distortion.scales_consistent_across_panels:
        warnings.append(
            NormalizationWarning(
                kind="integrity",
                code="inconsistent_panel_scales",
                message="各面板使用了不同的坐标尺度。",
            ),
        )
    for placement in placements:
        if placement.overflow:
            warnings.append(
                NormalizationWarning(
                    kind="layout",
                    code="labels_exceed_frame",
                    message=f"{placement.side} 侧标签被推出范围框。",
                ),
            )
    return warnings
