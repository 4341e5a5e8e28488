"""HTTP 请求与响应模型。"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from apps.chartguard.contracts.decision import NeedsConfirmation
from apps.chartguard.contracts.normalized import NormalizedChartSpec


class ApiModel(BaseModel):
    """统一约束的 API 模型基类，强制禁止额外字段。"""

    model_config = ConfigDict(extra="forbid")


class ClassifyRequest(ApiModel):
    """图表类型分类请求。"""

    chart_type: str = Field(description="待判定的图表类型令牌。", min_length=1)
    series_count: Optional[int] = Field(
        default=None,
        description="系列数量，仅对带条件的禁止项生效。",
        ge=0,
    )


class NormalizeResponse(ApiModel):
    """规范化响应，二选一携带结果或确认请求。"""

    status: Literal["normalized", "needs_confirmation"] = Field(description="处理结果类别。")
    normalized: Optional[NormalizedChartSpec] = Field(
        default=None,
        description="规范化结果，仅在 status=normalized 时存在。",
    )
    confirmation: Optional[NeedsConfirmation] = Field(
        default=None,
        description="确认请求，仅在 status=needs_confirmation 时存在。",
    )

    @model_validator(mode="after")
    def ensure_payload(self) -> "NormalizeResponse":
        """载荷必须与 status 对应。"""

        if self.status == "normalized" and (self.normalized is None or self.confirmation is not None):
            raise ValueError("status=normalized 时必须且只能提供 normalized。")
        if self.status == "needs_confirmation" and (self.confirmation is None or self.normalized is not None):
            raise ValueError("status=needs_confirmation 时必须且只能提供 confirmation。")
        return self


class ChecklistRuleEntry(ApiModel):
    """检查规则目录条目。"""

    rule_id: str = Field(description="规则标识。", min_length=1)
    severity: Literal["error", "warning", "info"] = Field(description="严重级别。")
    description: str = Field(description="规则说明。")


class ChecklistCatalogueResponse(ApiModel):
    """版本化的规则目录。"""

    version: str = Field(description="检查清单版本。", min_length=1)
    rules: List[ChecklistRuleEntry] = Field(description="按评估顺序排列的规则。")


class SchemaExportResponse(ApiModel):
    """单个契约的 JSONSchema 导出。"""

    schema_name: str = Field(description="契约名称。", min_length=1)
    json_schema: Dict[str, object] = Field(description="JSONSchema 内容。")
