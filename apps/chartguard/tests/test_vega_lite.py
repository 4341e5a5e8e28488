"""Vega-Lite 参考渲染器测试。"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from apps.chartguard.contracts.chart_spec import ChartSpec, DataPoint, Series, StyleDirectives
from apps.chartguard.infra.clock import ManualClock
from apps.chartguard.renderers import ChartRenderer, VegaLiteRenderer
from apps.chartguard.services.normalizer import ChartNormalizer
from apps.chartguard.stores.override_store import OverrideSessionStore


def _normalize(spec: ChartSpec):
    store = OverrideSessionStore(clock=ManualClock(datetime(2026, 6, 1, tzinfo=timezone.utc)))
    return ChartNormalizer(session_store=store).normalize(spec)


def _series(series_id: str, pairs) -> Series:
    return Series(series_id=series_id, label=series_id.title(), points=[DataPoint(**pair) for pair in pairs])


def test_renderer_satisfies_protocol() -> None:
    """参考渲染器满足渲染协议。"""

    assert isinstance(VegaLiteRenderer(), ChartRenderer)


def test_bar_chart_uses_frame_and_ticks() -> None:
    """坐标域取范围框，刻度取刻度集合，去除网格与图例。"""

    normalized = _normalize(
        ChartSpec(
            chart_type="bar",
            series=[_series("sales", [{"category": "q1", "y": 10.0}, {"category": "q2", "y": 30.0}])],
        ),
    )
    document = VegaLiteRenderer().render(normalized)
    data_layer = document["layer"][0]
    assert data_layer["mark"]["type"] == "bar"
    y_channel = data_layer["encoding"]["y"]
    assert y_channel["scale"]["domain"] == [normalized.y_frame.padded_min, normalized.y_frame.padded_max]
    assert y_channel["axis"]["values"] == normalized.y_frame.tick_values
    assert data_layer["encoding"]["x"]["sort"] == ["q1", "q2"]
    assert document["config"]["axis"]["grid"] is False
    assert document["config"]["font"] == "serif"
    assert document["config"]["legend"]["disable"] is True
    rule_layer = document["layer"][1]
    assert rule_layer["encoding"]["y"]["datum"] == normalized.y_frame.data_min
    assert rule_layer["encoding"]["y2"]["datum"] == normalized.y_frame.data_max
    assert len(document["data"]["values"]) == 2


def test_horizontal_bar_swaps_channels() -> None:
    """横向条形图的数值通道位于 x。"""

    normalized = _normalize(
        ChartSpec(
            chart_type="horizontal-bar",
            series=[_series("s", [{"category": "a", "y": 1.0}, {"category": "b", "y": 2.0}])],
        ),
    )
    layers = VegaLiteRenderer().render(normalized)["layer"]
    encoding = layers[0]["encoding"]
    assert encoding["x"]["type"] == "quantitative"
    assert encoding["y"]["type"] == "nominal"
    rules = [layer for layer in layers if layer["mark"]["type"] == "rule"]
    assert len(rules) == 1
    rule = rules[0]["encoding"]
    assert rule["x"]["datum"] == normalized.y_frame.data_min
    assert rule["x2"]["datum"] == normalized.y_frame.data_max
    assert "datum" not in rule.get("y", {})


def test_numeric_x_axis_gets_its_own_range_frame() -> None:
    """数值型横坐标同样绘制只覆盖数据范围的轴线。"""

    normalized = _normalize(
        ChartSpec(
            chart_type="scatter",
            series=[_series("s", [{"x": 2.0, "y": 1.0}, {"x": 8.0, "y": 5.0}])],
        ),
    )
    layers = VegaLiteRenderer(height=300).render(normalized)["layer"]
    rules = [layer["encoding"] for layer in layers if layer["mark"]["type"] == "rule"]
    assert len(rules) == 2
    y_rule, x_rule = rules
    assert y_rule["y"]["datum"] == normalized.y_frame.data_min
    assert x_rule["x"]["datum"] == normalized.x_frame.data_min == 2.0
    assert x_rule["x2"]["datum"] == normalized.x_frame.data_max == 8.0
    assert x_rule["y"] == {"value": 300}


def test_slope_chart_adds_label_layers() -> None:
    """斜率图左右两列标签分别成为文本图层。"""

    normalized = _normalize(
        ChartSpec(
            chart_type="slope",
            series=[
                _series("a", [{"category": "2020", "y": 1.0}, {"category": "2024", "y": 2.0}]),
                _series("b", [{"category": "2020", "y": 3.0}, {"category": "2024", "y": 1.5}]),
            ],
            style=StyleDirectives(range_frame=False),
        ),
    )
    layers = VegaLiteRenderer().render(normalized)["layer"]
    text_layers = [layer for layer in layers if layer["mark"]["type"] == "text"]
    assert len(text_layers) == 2
    left = text_layers[0]
    assert left["mark"]["align"] == "right"
    assert left["encoding"]["x"]["datum"] == "2020"
    positions = [row["position"] for row in left["data"]["values"]]
    assert positions == [label.position for label in normalized.label_placements[0].labels]


def test_small_multiples_render_as_facet() -> None:
    """小多图以分面输出，并共享坐标尺度。"""

    normalized = _normalize(
        ChartSpec(
            chart_type="small-multiples",
            series=[
                _series("a", [{"x": 0.0, "y": 1.0}, {"x": 1.0, "y": 2.0}]),
                _series("b", [{"x": 0.0, "y": 10.0}, {"x": 1.0, "y": 20.0}]),
            ],
        ),
    )
    document = VegaLiteRenderer().render(normalized)
    assert document["facet"]["field"] == "panel"
    assert document["resolve"]["scale"] == {"x": "shared", "y": "shared"}
    assert {row["panel"] for row in document["data"]["values"]} == {"A", "B"}
    assert "layer" not in document
    assert document["spec"]["layer"][0]["mark"]["type"] == "line"


def test_render_is_logged(caplog) -> None:
    """渲染完成后记录图表类型与图层数量。"""

    caplog.set_level(logging.DEBUG, logger="apps.chartguard.renderers.vega_lite")
    normalized = _normalize(
        ChartSpec(chart_type="bar", series=[_series("s", [{"category": "a", "y": 1.0}])]),
    )
    document = VegaLiteRenderer().render(normalized)
    records = [record for record in caplog.records if record.getMessage() == "Vega-Lite 规范渲染完成"]
    assert len(records) == 1
    assert records[0].chart_type == "bar"
    assert records[0].layer_count == len(document["layer"])
