"""图表请求契约，描述调用方提交的抽象图表。

调用方只描述“画什么”：图表类型、有序的数据系列、坐标轴要求以及小多图的分组。
所有派生参数（坐标范围、刻度、标签位置、配色）均由规范化流程计算，不允许在
请求中直接指定。约束如下：

* 图表类型以字符串令牌表示，未知令牌不会被拒绝，只做大小写与分隔符归一。
* 数据点要么是数值 ``x``，要么是类别 ``category``，二者必须且只能出现一个。
* 数值必须有限，NaN 与无穷值在解析阶段即被拦截。
"""

from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from apps.chartguard.contracts.metadata import ContractModel


class ChartType(str, Enum):
    """已登记的图表类型令牌。"""

    BAR = "bar"
    HORIZONTAL_BAR = "horizontal-bar"
    STACKED_BAR = "stacked-bar"
    DOT_PLOT = "dot-plot"
    LINE = "line"
    SCATTER = "scatter"
    SLOPE = "slope"
    SMALL_MULTIPLES = "small-multiples"
    SPARKLINE = "sparkline"
    HISTOGRAM = "histogram"
    HEATMAP = "heatmap"
    BOX_PLOT = "box-plot"
    TABLE = "table"
    PIE = "pie"
    PIE_3D = "3d-pie"
    DONUT = "donut"
    BAR_3D = "3d-bar"
    SURFACE_3D = "3d-surface"
    DUAL_AXIS = "dual-axis"
    RADAR = "radar"
    STACKED_AREA = "stacked-area"
    BUBBLE = "bubble"
    GAUGE = "gauge"
    WORD_CLOUD = "word-cloud"


PaletteMode = Literal["grayscale", "single_accent", "colorblind_safe"]


def normalize_chart_type(token: str) -> str:
    """将图表类型令牌归一为小写连字符形式。

    >>> normalize_chart_type(" Horizontal_Bar ")
    'horizontal-bar'
    """

    collapsed = "-".join(token.strip().lower().replace("_", " ").split())
    return collapsed


class DataPoint(ContractModel):
    """单个数据点，数值型 ``(x, y)`` 或类别型 ``(category, y)``。"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def schema_name(cls) -> str:
        """返回数据点契约名称。"""

        return "data_point"

    x: Optional[float] = Field(
        default=None,
        description="数值型横坐标。",
        allow_inf_nan=False,
    )
    category: Optional[str] = Field(
        default=None,
        description="类别型横坐标。",
        min_length=1,
    )
    y: float = Field(description="数值。", allow_inf_nan=False)

    @model_validator(mode="after")
    def ensure_single_key(self) -> "DataPoint":
        """``x`` 与 ``category`` 必须且只能提供一个。"""

        if (self.x is None) == (self.category is None):
            raise ValueError("数据点必须且只能提供 x 或 category 其中之一。")
        return self


class Series(ContractModel):
    """有序数据系列，校验后不可变。"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def schema_name(cls) -> str:
        """返回数据系列契约名称。"""

        return "series"

    series_id: str = Field(description="系列唯一标识。", min_length=1)
    label: str = Field(description="用于直接标注的显示名称。", min_length=1)
    points: List[DataPoint] = Field(
        description="按顺序排列的数据点。",
        min_length=1,
    )
    color: Optional[str] = Field(
        default=None,
        description="调用方显式指定的颜色令牌，覆盖调色板分配。",
        min_length=1,
    )

    @model_validator(mode="after")
    def ensure_uniform_points(self) -> "Series":
        """同一系列内的数据点必须全部为数值型或全部为类别型。"""

        kinds = {point.x is None for point in self.points}
        if len(kinds) > 1:
            raise ValueError(f"系列 {self.series_id} 混用了数值型与类别型数据点。")
        return self

    @property
    def is_categorical(self) -> bool:
        """系列是否为类别型。"""

        return self.points[0].category is not None

    def values(self) -> List[float]:
        """返回按顺序排列的数值。"""

        return [point.y for point in self.points]


class AxisSpec(ContractModel):
    """坐标轴元数据。"""

    @classmethod
    def schema_name(cls) -> str:
        """返回坐标轴契约名称。"""

        return "axis_spec"

    title: Optional[str] = Field(default=None, description="坐标轴标题。")
    start_at_zero: bool = Field(
        default=False,
        description="该轴是否必须从零开始。",
    )


class PanelGroup(ContractModel):
    """小多图中的单个面板分组。"""

    @classmethod
    def schema_name(cls) -> str:
        """返回面板分组契约名称。"""

        return "panel_group"

    panel_id: str = Field(description="面板标识。", min_length=1)
    title: Optional[str] = Field(default=None, description="面板标题。")
    series_ids: List[str] = Field(
        description="归属该面板的系列标识。",
        min_length=1,
    )


class EffectMeasurement(ContractModel):
    """图形呈现的效应量与数据中真实效应量。"""

    @classmethod
    def schema_name(cls) -> str:
        """返回效应量契约名称。"""

        return "effect_measurement"

    depicted_effect: float = Field(
        description="图形中呈现的效应大小，例如面积或长度之比的变化。",
        allow_inf_nan=False,
    )
    data_effect: float = Field(
        description="数据中的真实效应大小。",
        allow_inf_nan=False,
    )


class StyleDirectives(ContractModel):
    """最少墨水风格指令，默认值即推荐设定。"""

    @classmethod
    def schema_name(cls) -> str:
        """返回风格指令契约名称。"""

        return "style_directives"

    remove_spines: bool = Field(
        default=True,
        description="是否移除上、右边框，仅保留范围框坐标轴。",
    )
    range_frame: bool = Field(
        default=True,
        description="坐标轴线是否截断到数据范围。",
    )
    tick_direction: Literal["out", "in", "none"] = Field(
        default="out",
        description="刻度线方向。",
    )
    max_ticks: int = Field(
        default=5,
        description="单轴允许的最大刻度数量。",
        ge=2,
        le=12,
    )
    font_family: Literal["serif", "sans-serif", "monospace"] = Field(
        default="serif",
        description="字体族。",
    )
    show_legend: bool = Field(
        default=False,
        description="是否展示图例，推荐以直接标注替代。",
    )
    show_grid: bool = Field(
        default=False,
        description="是否绘制网格线。",
    )
    color_map: Optional[str] = Field(
        default=None,
        description="连续色图名称，例如 viridis。",
    )


class ChartSpec(ContractModel):
    """调用方提交的抽象图表请求。"""

    @classmethod
    def schema_name(cls) -> str:
        """返回图表请求契约名称。"""

        return "chart_spec"

    request_id: Optional[str] = Field(
        default=None,
        description="请求标识，覆盖确认流程依赖该标识关联会话。",
        min_length=1,
    )
    chart_type: str = Field(description="请求的图表类型令牌。", min_length=1)
    series: List[Series] = Field(
        description="按顺序排列的数据系列。",
        min_length=1,
    )
    x_axis: AxisSpec = Field(default_factory=AxisSpec, description="横轴元数据。")
    y_axis: AxisSpec = Field(default_factory=AxisSpec, description="纵轴元数据。")
    panels: List[PanelGroup] = Field(
        default_factory=list,
        description="小多图的面板分组。",
    )
    confirmed: bool = Field(
        default=False,
        description="调用方是否已确认使用被禁止的图表类型。",
    )
    palette_mode: PaletteMode = Field(
        default="grayscale",
        description="配色模式。",
    )
    highlight_series_id: Optional[str] = Field(
        default=None,
        description="单一强调色模式下被突出的系列。",
    )
    label_min_gap: Optional[float] = Field(
        default=None,
        description="直接标注之间的最小间距（数据单位），缺省时按坐标范围推导。",
        gt=0.0,
        allow_inf_nan=False,
    )
    effect: Optional[EffectMeasurement] = Field(
        default=None,
        description="用于计算谎言因子的效应量。",
    )
    style: StyleDirectives = Field(
        default_factory=StyleDirectives,
        description="风格指令。",
    )

    @field_validator("chart_type")
    @classmethod
    def normalize_type(cls, value: str) -> str:
        """归一图表类型令牌。"""

        normalized = normalize_chart_type(value)
        if not normalized:
            raise ValueError("chart_type 不能为空白。")
        return normalized

    def series_ids(self) -> List[str]:
        """返回按顺序排列的系列标识。"""

        return [item.series_id for item in self.series]
