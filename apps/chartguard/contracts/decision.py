"""图表类型判定与覆盖确认契约。"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import ConfigDict, Field, model_validator

from apps.chartguard.contracts.metadata import ContractModel

SessionState = Literal["proposed", "educated", "confirmed", "expired"]


def _ensure_utc(dt: datetime, field_name: str) -> None:
    """确保时间戳包含 UTC 时区。"""

    if dt.tzinfo is None:
        message = f"{field_name} 必须包含 UTC 时区。"
        raise ValueError(message)
    if dt.tzinfo.utcoffset(dt) != timezone.utc.utcoffset(dt):
        message = f"{field_name} 必须为 UTC 时间。"
        raise ValueError(message)


class SubstitutionDecision(ContractModel):
    """一次分类调用的判定结果，创建后不再修改。"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def schema_name(cls) -> str:
        """返回替代判定契约名称。"""

        return "substitution_decision"

    chart_type: str = Field(description="归一后的图表类型。", min_length=1)
    is_banned: bool = Field(description="是否属于禁止类型。")
    substitute_type: Optional[str] = Field(default=None, description="推荐的替代类型。")
    rationale: str = Field(default="", description="一句话理由。")

    @model_validator(mode="after")
    def ensure_substitute(self) -> "SubstitutionDecision":
        """被禁止的类型必须附带替代类型与理由。"""

        if self.is_banned and (not self.substitute_type or not self.rationale):
            raise ValueError("被禁止的图表类型必须给出 substitute_type 与 rationale。")
        if not self.is_banned and self.substitute_type is not None:
            raise ValueError("允许的图表类型不应给出 substitute_type。")
        return self


class OverrideSession(ContractModel):
    """“先解释、后放行”的覆盖会话快照。"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def schema_name(cls) -> str:
        """返回覆盖会话契约名称。"""

        return "override_session"

    request_id: str = Field(description="请求标识。", min_length=1)
    banned_type: str = Field(description="被禁止的图表类型。", min_length=1)
    substitute_type: str = Field(description="推荐的替代类型。", min_length=1)
    state: SessionState = Field(description="会话状态。")
    created_at: datetime = Field(description="会话创建时间（UTC）。")
    updated_at: datetime = Field(description="最近一次状态变更时间（UTC）。")
    educated_at: Optional[datetime] = Field(
        default=None,
        description="理由被呈现给最终用户的时间（UTC）。",
    )

    @model_validator(mode="after")
    def ensure_utc(self) -> "OverrideSession":
        """强制时间戳为 UTC。"""

        _ensure_utc(dt=self.created_at, field_name="created_at")
        _ensure_utc(dt=self.updated_at, field_name="updated_at")
        if self.educated_at is not None:
            _ensure_utc(dt=self.educated_at, field_name="educated_at")
        return self

    @property
    def confirmed(self) -> bool:
        """会话是否已确认。"""

        return self.state == "confirmed"


class NeedsConfirmation(ContractModel):
    """控制信号：被禁止的类型在继续前需要调用方确认。"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def schema_name(cls) -> str:
        """返回确认请求契约名称。"""

        return "needs_confirmation"

    request_id: str = Field(description="用于重新提交的请求标识。", min_length=1)
    banned_type: str = Field(description="被禁止的图表类型。", min_length=1)
    substitute_type: str = Field(description="推荐的替代类型。", min_length=1)
    rationale: str = Field(description="需要向最终用户说明的理由。", min_length=1)
    session_state: SessionState = Field(description="当前会话状态。")
