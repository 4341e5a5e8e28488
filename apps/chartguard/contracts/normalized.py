"""规范化结果契约，渲染端唯一需要消费的对象。"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import ConfigDict, Field

from apps.chartguard.contracts.chart_spec import ChartSpec, StyleDirectives
from apps.chartguard.contracts.checklist import ChecklistReport
from apps.chartguard.contracts.integrity import DistortionReport
from apps.chartguard.contracts.layout import AxisFrame, LabelPlacement, PaletteAssignment, PanelLayout
from apps.chartguard.contracts.metadata import ContractModel


class NormalizationWarning(ContractModel):
    """非致命告警，完整性或布局问题。"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def schema_name(cls) -> str:
        """返回告警契约名称。"""

        return "normalization_warning"

    kind: Literal["integrity", "layout"] = Field(description="告警类别。")
    code: str = Field(description="告警代码。", min_length=1)
    message: str = Field(description="告警说明。", min_length=1)


class NormalizedChartSpec(ContractModel):
    """原始数据与全部派生参数的组合。"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def schema_name(cls) -> str:
        """返回规范化图表契约名称。"""

        return "normalized_chart_spec"

    request_id: Optional[str] = Field(default=None, description="请求标识。")
    chart_type: str = Field(description="最终使用的图表类型。", min_length=1)
    override_applied: bool = Field(
        default=False,
        description="是否经用户确认保留了被禁止的类型。",
    )
    source: ChartSpec = Field(description="原始请求。")
    x_frame: Optional[AxisFrame] = Field(
        default=None,
        description="数值型横轴范围框，类别型横轴为空。",
    )
    y_frame: AxisFrame = Field(description="纵轴范围框。")
    categories: List[str] = Field(
        default_factory=list,
        description="类别型横轴的类别，按首次出现顺序排列。",
    )
    panels: List[PanelLayout] = Field(
        default_factory=list,
        description="小多图面板布局。",
    )
    label_placements: List[LabelPlacement] = Field(
        default_factory=list,
        description="直接标注的位置。",
    )
    palette: PaletteAssignment = Field(description="配色结果。")
    distortion: DistortionReport = Field(description="失真报告。")
    style: StyleDirectives = Field(description="生效的风格指令。")
    warnings: List[NormalizationWarning] = Field(
        default_factory=list,
        description="非致命告警。",
    )
    checklist: ChecklistReport = Field(description="检查清单报告。")
