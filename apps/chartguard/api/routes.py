"""FastAPI 路由定义。"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Response, status

from apps.chartguard.api.dependencies import get_normalizer, get_override_store, get_renderer
from apps.chartguard.api.schemas import (
    ChecklistCatalogueResponse,
    ChecklistRuleEntry,
    ClassifyRequest,
    NormalizeResponse,
    SchemaExportResponse,
)
from apps.chartguard.contracts.chart_spec import ChartSpec
from apps.chartguard.contracts.decision import NeedsConfirmation, OverrideSession, SubstitutionDecision
from apps.chartguard.contracts.metadata import registered_contracts
from apps.chartguard.renderers.vega_lite import VegaLiteRenderer
from apps.chartguard.services.checklist import CHECKLIST_VERSION, rule_catalogue
from apps.chartguard.services.classifier import classify
from apps.chartguard.services.errors import SchemaError
from apps.chartguard.services.normalizer import ChartNormalizer
from apps.chartguard.stores.override_store import OverrideSessionStore

LOGGER = logging.getLogger(__name__)

router = APIRouter()

SCHEMA_EXPORT_MODELS: dict[str, type] = registered_contracts()


def _log_error(endpoint: str, *, error_type: str, status_code: int) -> None:
    """记录接口失败。"""

    LOGGER.warning(
        "API 调用失败",
        extra={
            "endpoint": endpoint,
            "error_type": error_type,
            "status_code": status_code,
        },
    )


def _schema_error_to_http(endpoint: str, error: SchemaError) -> HTTPException:
    """将 SchemaError 转换为 422 响应。"""

    _log_error(endpoint, error_type=error.__class__.__name__, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=error.as_dict())


@router.post("/api/charts/classify", response_model=SubstitutionDecision)
def classify_chart(request: ClassifyRequest) -> SubstitutionDecision:
    """判定图表类型是否被禁止。"""

    endpoint = "api_charts_classify"
    try:
        return classify(request.chart_type, series_count=request.series_count)
    except ValueError as error:
        _log_error(endpoint, error_type=error.__class__.__name__, status_code=status.HTTP_400_BAD_REQUEST)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error)) from error


@router.post("/api/charts/normalize", response_model=NormalizeResponse)
def normalize_chart(
    spec: ChartSpec,
    normalizer: ChartNormalizer = Depends(get_normalizer),
) -> NormalizeResponse:
    """规范化图表请求，禁止类型未确认时返回确认请求。"""

    endpoint = "api_charts_normalize"
    try:
        outcome = normalizer.normalize(spec)
    except SchemaError as error:
        raise _schema_error_to_http(endpoint, error) from error
    except Exception:  # noqa: BLE001 - 记录未知异常并抛出
        LOGGER.exception("图表规范化失败", extra={"endpoint": endpoint, "request_id": spec.request_id})
        raise
    if isinstance(outcome, NeedsConfirmation):
        return NormalizeResponse(status="needs_confirmation", confirmation=outcome)
    return NormalizeResponse(status="normalized", normalized=outcome)


@router.post("/api/charts/render/vega-lite")
def render_vega_lite(
    spec: ChartSpec,
    normalizer: ChartNormalizer = Depends(get_normalizer),
    renderer: VegaLiteRenderer = Depends(get_renderer),
) -> Dict[str, Any]:
    """规范化后输出 Vega-Lite 规范，需要确认时返回 409。"""

    endpoint = "api_charts_render_vega_lite"
    try:
        outcome = normalizer.normalize(spec)
    except SchemaError as error:
        raise _schema_error_to_http(endpoint, error) from error
    if isinstance(outcome, NeedsConfirmation):
        _log_error(endpoint, error_type="NeedsConfirmation", status_code=status.HTTP_409_CONFLICT)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=outcome.model_dump(mode="json"),
        )
    return renderer.render(outcome)


@router.post("/api/overrides/{request_id}/educated", response_model=OverrideSession)
def mark_override_educated(
    request_id: str,
    store: OverrideSessionStore = Depends(get_override_store),
) -> OverrideSession:
    """记录替代理由已展示给最终用户。"""

    endpoint = "api_overrides_educated"
    try:
        return store.mark_educated(request_id)
    except KeyError as error:
        _log_error(endpoint, error_type=error.__class__.__name__, status_code=status.HTTP_404_NOT_FOUND)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error)) from error


@router.delete("/api/overrides/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def discard_override(
    request_id: str,
    store: OverrideSessionStore = Depends(get_override_store),
) -> Response:
    """丢弃覆盖会话，之后的提交将重新走确认流程。"""

    endpoint = "api_overrides_discard"
    if store.complete(request_id) is None:
        message = f"request_id={request_id} 没有有效的覆盖会话。"
        _log_error(endpoint, error_type="KeyError", status_code=status.HTTP_404_NOT_FOUND)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/api/checklist/rules", response_model=ChecklistCatalogueResponse)
def list_checklist_rules() -> ChecklistCatalogueResponse:
    """返回版本化的检查规则目录。"""

    return ChecklistCatalogueResponse(
        version=CHECKLIST_VERSION,
        rules=[ChecklistRuleEntry(**entry) for entry in rule_catalogue()],
    )


@router.get("/api/schemas/{schema_name}", response_model=SchemaExportResponse)
def export_contract_schema(schema_name: str) -> SchemaExportResponse:
    """导出指定契约的 JSONSchema。"""

    endpoint = "api_schemas_export"
    model = SCHEMA_EXPORT_MODELS.get(schema_name)
    if model is None:
        message = f"未登记的契约: {schema_name}"
        _log_error(endpoint, error_type="KeyError", status_code=status.HTTP_404_NOT_FOUND)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message)
    return SchemaExportResponse(schema_name=schema_name, json_schema=model.model_json_schema())
