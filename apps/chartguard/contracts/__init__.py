"""数据契约模型包。

该模块提供规范化流程与调用方、渲染端交互时使用的全部契约。所有模型均可
通过 ``model_json_schema()`` 导出带 ``$id`` 的 JSONSchema，渲染端据此校验输入。
"""

from apps.chartguard.contracts.chart_spec import (
    AxisSpec,
    ChartSpec,
    ChartType,
    DataPoint,
    EffectMeasurement,
    PaletteMode,
    PanelGroup,
    Series,
    StyleDirectives,
    normalize_chart_type,
)
from apps.chartguard.contracts.checklist import ChecklistItem, ChecklistReport
from apps.chartguard.contracts.decision import NeedsConfirmation, OverrideSession, SubstitutionDecision
from apps.chartguard.contracts.integrity import DistortionReport
from apps.chartguard.contracts.layout import (
    AxisFrame,
    LabelPlacement,
    PaletteAssignment,
    PanelLayout,
    PlacedLabel,
)
from apps.chartguard.contracts.normalized import NormalizationWarning, NormalizedChartSpec

__all__ = [
    "AxisSpec",
    "ChartSpec",
    "ChartType",
    "DataPoint",
    "EffectMeasurement",
    "PaletteMode",
    "PanelGroup",
    "Series",
    "StyleDirectives",
    "normalize_chart_type",
    "ChecklistItem",
    "ChecklistReport",
    "NeedsConfirmation",
    "OverrideSession",
    "SubstitutionDecision",
    "DistortionReport",
    "AxisFrame",
    "LabelPlacement",
    "PaletteAssignment",
    "PanelLayout",
    "PlacedLabel",
    "NormalizationWarning",
    "NormalizedChartSpec",
]
