"""布局派生结果契约：范围框、标签位置、配色与面板。"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import ConfigDict, Field, model_validator

from apps.chartguard.contracts.chart_spec import PaletteMode
from apps.chartguard.contracts.metadata import ContractModel


class AxisFrame(ContractModel):
    """单轴的范围框与刻度集合。

    ``padded_min <= data_min <= data_max <= padded_max`` 恒成立，刻度严格递增
    且全部落在 ``[data_min, data_max]`` 之内。
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def schema_name(cls) -> str:
        """返回范围框契约名称。"""

        return "axis_frame"

    axis: Literal["x", "y"] = Field(description="所属坐标轴。")
    data_min: float = Field(description="数据最小值。")
    data_max: float = Field(description="数据最大值。")
    padded_min: float = Field(description="留白后的下界。")
    padded_max: float = Field(description="留白后的上界。")
    tick_values: List[float] = Field(
        description="升序去重后的刻度值。",
        min_length=1,
    )

    @model_validator(mode="after")
    def validate_bounds(self) -> "AxisFrame":
        """校验边界次序与刻度范围。"""

        if not self.padded_min <= self.data_min <= self.data_max <= self.padded_max:
            raise ValueError("范围框边界必须满足 padded_min <= data_min <= data_max <= padded_max。")
        if self.padded_min == self.padded_max:
            raise ValueError("范围框宽度不能为零。")
        for previous, current in zip(self.tick_values, self.tick_values[1:]):
            if current <= previous:
                raise ValueError("tick_values 必须严格递增。")
        if self.tick_values[0] < self.data_min or self.tick_values[-1] > self.data_max:
            raise ValueError("tick_values 必须位于数据范围之内。")
        return self

    @property
    def span(self) -> float:
        """留白后的范围宽度。"""

        return self.padded_max - self.padded_min


class PlacedLabel(ContractModel):
    """解析后的单个标签位置。"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def schema_name(cls) -> str:
        """返回标签位置契约名称。"""

        return "placed_label"

    entity_id: str = Field(description="标签对应的实体标识。", min_length=1)
    text: str = Field(description="标签文本。")
    raw_value: float = Field(description="实体的原始数值。")
    position: float = Field(description="避让后的位置。")


class LabelPlacement(ContractModel):
    """同一侧标签的避让结果，按数值升序排列。"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def schema_name(cls) -> str:
        """返回标签布局契约名称。"""

        return "label_placement"

    side: Literal["left", "right", "end"] = Field(description="标签所在侧。")
    min_gap: float = Field(description="相邻标签最小间距。", gt=0.0)
    labels: List[PlacedLabel] = Field(description="按数值升序排列的标签。")
    overflow: bool = Field(
        default=False,
        description="标签是否被推出名义范围框。",
    )

    def position_of(self, entity_id: str) -> float:
        """返回指定实体的解析位置。"""

        for label in self.labels:
            if label.entity_id == entity_id:
                return label.position
        message = f"entity_id={entity_id} 不在标签布局中。"
        raise KeyError(message)


class PaletteAssignment(ContractModel):
    """系列到颜色令牌的映射，保持系列顺序。"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def schema_name(cls) -> str:
        """返回配色契约名称。"""

        return "palette_assignment"

    mode: PaletteMode = Field(description="配色模式。")
    colors: Dict[str, str] = Field(description="系列标识到颜色令牌的映射。")
    highlight_series_id: Optional[str] = Field(
        default=None,
        description="单一强调色模式下被突出的系列。",
    )


class PanelLayout(ContractModel):
    """小多图面板布局，所有面板共享同一组范围框。"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def schema_name(cls) -> str:
        """返回面板布局契约名称。"""

        return "panel_layout"

    panel_id: str = Field(description="面板标识。", min_length=1)
    title: Optional[str] = Field(default=None, description="面板标题。")
    series_ids: List[str] = Field(description="面板内的系列。")
    x_frame: Optional[AxisFrame] = Field(default=None, description="横轴范围框。")
    y_frame: AxisFrame = Field(description="纵轴范围框。")
