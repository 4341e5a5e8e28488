"""HTTP 路由测试，直接调用路由函数并注入依赖。"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi import HTTPException

from apps.chartguard.api.app import create_app
from apps.chartguard.api.routes import (
    classify_chart,
    discard_override,
    export_contract_schema,
    list_checklist_rules,
    mark_override_educated,
    normalize_chart,
    render_vega_lite,
)
from apps.chartguard.api.schemas import ClassifyRequest
from apps.chartguard.contracts.chart_spec import ChartSpec, DataPoint, Series
from apps.chartguard.infra.clock import ManualClock
from apps.chartguard.renderers.vega_lite import VegaLiteRenderer
from apps.chartguard.services.normalizer import ChartNormalizer
from apps.chartguard.stores.override_store import OverrideSessionStore


@pytest.fixture()
def store() -> OverrideSessionStore:
    return OverrideSessionStore(clock=ManualClock(datetime(2026, 5, 1, tzinfo=timezone.utc)))


@pytest.fixture()
def normalizer(store: OverrideSessionStore) -> ChartNormalizer:
    return ChartNormalizer(session_store=store)


def _spec(chart_type: str, **extra) -> ChartSpec:
    series = [
        Series(
            series_id="share",
            label="Share",
            points=[DataPoint(category=name, y=value) for name, value in [("a", 3.0), ("b", 2.0), ("c", 1.0)]],
        ),
    ]
    return ChartSpec(chart_type=chart_type, series=series, **extra)


def test_classify_route() -> None:
    """分类接口返回替代判定。"""

    decision = classify_chart(ClassifyRequest(chart_type="pie"))
    assert decision.is_banned
    assert decision.substitute_type == "horizontal-bar-or-dot-plot"
    with pytest.raises(HTTPException) as excinfo:
        classify_chart(ClassifyRequest(chart_type="   "))
    assert excinfo.value.status_code == 400


def test_override_round_trip(normalizer: ChartNormalizer, store: OverrideSessionStore) -> None:
    """确认请求、标记已解释、确认后放行。"""

    pending = normalize_chart(_spec("pie", request_id="req-api"), normalizer=normalizer)
    assert pending.status == "needs_confirmation"
    assert pending.confirmation.request_id == "req-api"
    assert pending.normalized is None

    educated = mark_override_educated("req-api", store=store)
    assert educated.state == "educated"

    done = normalize_chart(_spec("pie", request_id="req-api", confirmed=True), normalizer=normalizer)
    assert done.status == "normalized"
    assert done.normalized.override_applied


def test_schema_error_maps_to_422(normalizer: ChartNormalizer) -> None:
    """结构错误转换为 422，并携带字段信息。"""

    with pytest.raises(HTTPException) as excinfo:
        normalize_chart(_spec("bar", highlight_series_id="missing"), normalizer=normalizer)
    assert excinfo.value.status_code == 422
    assert excinfo.value.detail["field"] == "highlight_series_id"


def test_unknown_session_maps_to_404(store: OverrideSessionStore) -> None:
    """不存在的会话返回 404。"""

    with pytest.raises(HTTPException) as excinfo:
        mark_override_educated("missing", store=store)
    assert excinfo.value.status_code == 404
    with pytest.raises(HTTPException) as excinfo:
        discard_override("missing", store=store)
    assert excinfo.value.status_code == 404


def test_discard_override(normalizer: ChartNormalizer, store: OverrideSessionStore) -> None:
    """丢弃会话返回 204，之后确认需要重新发起。"""

    normalize_chart(_spec("gauge", request_id="req-x"), normalizer=normalizer)
    response = discard_override("req-x", store=store)
    assert response.status_code == 204
    again = normalize_chart(_spec("gauge", request_id="req-x", confirmed=True), normalizer=normalizer)
    assert again.status == "needs_confirmation"


def test_checklist_catalogue() -> None:
    """规则目录带版本号，顺序固定。"""

    catalogue = list_checklist_rules()
    assert catalogue.version == "1.0.0"
    assert catalogue.rules[0].rule_id == "chart_type_allowed"


def test_schema_export() -> None:
    """按名称导出契约 JSONSchema，未登记的名称返回 404。"""

    exported = export_contract_schema("normalized_chart_spec")
    assert exported.json_schema["$id"].endswith("/normalized_chart_spec.json")
    with pytest.raises(HTTPException) as excinfo:
        export_contract_schema("unknown")
    assert excinfo.value.status_code == 404


def test_render_route(normalizer: ChartNormalizer) -> None:
    """渲染接口输出 Vega-Lite 规范，禁止类型未确认时返回 409。"""

    document = render_vega_lite(_spec("bar"), normalizer=normalizer, renderer=VegaLiteRenderer())
    assert document["$schema"].endswith("v5.json")
    with pytest.raises(HTTPException) as excinfo:
        render_vega_lite(_spec("pie"), normalizer=normalizer, renderer=VegaLiteRenderer())
    assert excinfo.value.status_code == 409
    assert excinfo.value.detail["banned_type"] == "pie"


def test_app_registers_routes() -> None:
    """应用工厂注册全部路由。"""

    paths = set(create_app().openapi()["paths"])
    assert {
        "/api/charts/classify",
        "/api/charts/normalize",
        "/api/charts/render/vega-lite",
        "/api/overrides/{request_id}/educated",
        "/api/overrides/{request_id}",
        "/api/checklist/rules",
        "/api/schemas/{schema_name}",
    } <= paths
