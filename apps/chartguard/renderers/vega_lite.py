"""Vega-Lite v5 参考渲染适配器。

只把规范化结果翻译为 Vega-Lite JSON：坐标域取留白后的范围框，刻度直接使用
刻度集合，标签位置直接使用避让结果，不做任何重新计算。
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from apps.chartguard.contracts.chart_spec import ChartType
from apps.chartguard.contracts.layout import AxisFrame, LabelPlacement
from apps.chartguard.contracts.normalized import NormalizedChartSpec

LOGGER = logging.getLogger(__name__)

VEGA_LITE_SCHEMA = "https://vega.github.io/schema/vega-lite/v5.json"

MARK_BY_CHART_TYPE: Dict[str, str] = {
    ChartType.BAR.value: "bar",
    ChartType.HORIZONTAL_BAR.value: "bar",
    ChartType.STACKED_BAR.value: "bar",
    ChartType.HISTOGRAM.value: "bar",
    ChartType.BAR_3D.value: "bar",
    ChartType.DOT_PLOT.value: "point",
    ChartType.SCATTER.value: "point",
    ChartType.BUBBLE.value: "point",
    ChartType.LINE.value: "line",
    ChartType.SLOPE.value: "line",
    ChartType.SPARKLINE.value: "line",
    ChartType.SMALL_MULTIPLES.value: "line",
    ChartType.DUAL_AXIS.value: "line",
    ChartType.RADAR.value: "line",
    ChartType.STACKED_AREA.value: "area",
    ChartType.HEATMAP.value: "rect",
    ChartType.SURFACE_3D.value: "rect",
    ChartType.BOX_PLOT.value: "boxplot",
    ChartType.PIE.value: "arc",
    ChartType.PIE_3D.value: "arc",
    ChartType.DONUT.value: "arc",
    ChartType.GAUGE.value: "arc",
    ChartType.WORD_CLOUD.value: "text",
    ChartType.TABLE.value: "text",
}

DEFAULT_MARK = "point"
TICK_SIZE = 5
LABEL_OFFSET = 6


class VegaLiteRenderer:
    """生成 Vega-Lite v5 规范字典。"""

    def __init__(self, *, width: int = 480, height: int = 320) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("width 与 height 必须为正数。")
        self._width = width
        self._height = height

    def render(self, spec: NormalizedChartSpec) -> Dict[str, Any]:
        """将规范化结果翻译为 Vega-Lite 规范。

        Parameters
        ----------
        spec: NormalizedChartSpec
            规范化结果。

        Returns
        -------
        Dict[str, Any]
            可直接序列化为 JSON 的 Vega-Lite 规范。
        """

        mark = MARK_BY_CHART_TYPE.get(spec.chart_type, DEFAULT_MARK)
        layers: List[Dict[str, Any]] = [self._data_layer(spec, mark)]
        if spec.style.range_frame and mark != "arc":
            layers.extend(self._range_frame_layers(spec))
        layers.extend(self._label_layer(spec, placement) for placement in spec.label_placements)
        document: Dict[str, Any] = {
            "$schema": VEGA_LITE_SCHEMA,
            "data": {"values": self._rows(spec)},
            "config": self._config(spec),
        }
        if spec.panels:
            document["facet"] = {"field": "panel", "type": "nominal", "title": None}
            document["columns"] = math.ceil(math.sqrt(len(spec.panels)))
            document["spec"] = {"width": self._width, "height": self._height, "layer": layers}
            document["resolve"] = {"scale": {"x": "shared", "y": "shared"}}
        else:
            document.update({"width": self._width, "height": self._height, "layer": layers})
        LOGGER.debug(
            "Vega-Lite 规范渲染完成",
            extra={"chart_type": spec.chart_type, "mark": mark, "layer_count": len(layers)},
        )
        return document

    def _rows(self, spec: NormalizedChartSpec) -> List[Dict[str, Any]]:
        """展开系列为扁平数据行。"""

        panel_of: Dict[str, str] = {}
        for panel in spec.panels:
            for series_id in panel.series_ids:
                panel_of[series_id] = panel.title or panel.panel_id
        rows: List[Dict[str, Any]] = []
        for item in spec.source.series:
            for order, point in enumerate(item.points):
                row: Dict[str, Any] = {
                    "series": item.series_id,
                    "label": item.label,
                    "order": order,
                    "y": point.y,
                }
                if point.category is not None:
                    row["category"] = point.category
                else:
                    row["x"] = point.x
                if panel_of:
                    row["panel"] = panel_of[item.series_id]
                rows.append(row)
        return rows

    def _config(self, spec: NormalizedChartSpec) -> Dict[str, Any]:
        """全局配置：字体、去网格与去边框。"""

        style = spec.style
        config: Dict[str, Any] = {
            "font": style.font_family,
            "axis": {
                "grid": style.show_grid,
                "domain": not style.range_frame,
                "ticks": style.tick_direction != "none",
                "tickSize": TICK_SIZE,
                "labelFont": style.font_family,
                "titleFont": style.font_family,
            },
            "legend": {"disable": not style.show_legend},
        }
        if style.remove_spines:
            config["view"] = {"stroke": None}
        if style.color_map is not None:
            config["range"] = {"heatmap": {"scheme": style.color_map}}
        return config

    def _value_scale(self, frame: AxisFrame) -> Dict[str, Any]:
        """坐标域取留白后的范围框，关闭自动取整。"""

        return {"domain": [frame.padded_min, frame.padded_max], "zero": False, "nice": False}

    def _axis(self, frame: AxisFrame, title: Optional[str]) -> Dict[str, Any]:
        """刻度直接使用刻度集合。"""

        return {"values": list(frame.tick_values), "title": title}

    def _data_layer(self, spec: NormalizedChartSpec, mark: str) -> Dict[str, Any]:
        """数据图层，坐标域与刻度全部取自范围框。"""

        color = {
            "field": "series",
            "type": "nominal",
            "scale": {
                "domain": list(spec.palette.colors.keys()),
                "range": list(spec.palette.colors.values()),
            },
            "legend": {} if spec.style.show_legend else None,
        }
        value_channel = {
            "field": "y",
            "type": "quantitative",
            "scale": self._value_scale(spec.y_frame),
            "axis": self._axis(spec.y_frame, spec.source.y_axis.title),
        }
        if mark == "arc":
            mark_def: Dict[str, Any] = {"type": "arc"}
            if spec.chart_type == ChartType.DONUT.value:
                mark_def["innerRadius"] = 50
            color_field = "category" if spec.categories else "series"
            return {
                "mark": mark_def,
                "encoding": {
                    "theta": {"field": "y", "type": "quantitative"},
                    "color": dict(color, field=color_field),
                },
            }
        if spec.x_frame is not None:
            position_channel = {
                "field": "x",
                "type": "quantitative",
                "scale": self._value_scale(spec.x_frame),
                "axis": self._axis(spec.x_frame, spec.source.x_axis.title),
            }
        else:
            position_channel = {
                "field": "category",
                "type": "nominal",
                "sort": list(spec.categories),
                "axis": {"title": spec.source.x_axis.title},
            }
        if spec.chart_type == ChartType.STACKED_BAR.value or mark == "area":
            value_channel["stack"] = "zero"
        elif mark in ("bar", "area"):
            value_channel["stack"] = None
        encoding: Dict[str, Any] = {"color": color, "detail": {"field": "series", "type": "nominal"}}
        value_axis, position_axis = _channel_names(spec)
        encoding[value_axis] = value_channel
        encoding[position_axis] = position_channel
        if mark == "line":
            encoding["order"] = {"field": "order", "type": "quantitative"}
        return {"mark": {"type": mark}, "encoding": encoding}

    def _range_frame_layers(self, spec: NormalizedChartSpec) -> List[Dict[str, Any]]:
        """轴线只覆盖数据范围：数值轴一条，数值型横坐标再加一条。"""

        value_axis, position_axis = _channel_names(spec)
        layers = [self._rule(spec.y_frame, value_axis)]
        if spec.x_frame is not None:
            layers.append(self._rule(spec.x_frame, position_axis))
        return layers

    def _rule(self, frame: AxisFrame, channel: str) -> Dict[str, Any]:
        """单条轴线规则。"""

        encoding: Dict[str, Any] = {
            channel: {"datum": frame.data_min, "type": "quantitative", "scale": self._value_scale(frame)},
            f"{channel}2": {"datum": frame.data_max},
        }
        if channel == "x":
            # 横向轴线贴在视图底部，与 x 轴重合。
            encoding["y"] = {"value": self._height}
        return {"mark": {"type": "rule", "color": "black"}, "encoding": encoding}

    def _label_layer(self, spec: NormalizedChartSpec, placement: LabelPlacement) -> Dict[str, Any]:
        """直接标注图层，纵向位置取避让后的结果。"""

        left = placement.side == "left"
        if spec.x_frame is not None:
            anchor: Any = spec.x_frame.data_min if left else spec.x_frame.data_max
            x_channel: Dict[str, Any] = {"datum": anchor, "type": "quantitative"}
        else:
            anchor = spec.categories[0] if left else spec.categories[-1]
            x_channel = {"datum": anchor, "type": "nominal"}
        return {
            "data": {
                "values": [
                    {"entity_id": label.entity_id, "text": label.text, "position": label.position}
                    for label in placement.labels
                ],
            },
            "mark": {
                "type": "text",
                "align": "right" if left else "left",
                "dx": -LABEL_OFFSET if left else LABEL_OFFSET,
            },
            "encoding": {
                "x": x_channel,
                "y": {"field": "position", "type": "quantitative", "scale": self._value_scale(spec.y_frame)},
                "text": {"field": "text"},
                "color": {
                    "field": "entity_id",
                    "type": "nominal",
                    "scale": {
                        "domain": list(spec.palette.colors.keys()),
                        "range": list(spec.palette.colors.values()),
                    },
                    "legend": None,
                },
            },
        }


def _channel_names(spec: NormalizedChartSpec) -> Tuple[str, str]:
    """返回 (数值通道, 位置通道)，横向条形图两者互换。"""

    if spec.chart_type == ChartType.HORIZONTAL_BAR.value:
        return "x", "y"
    return "y", "x"
