"""图形完整性契约。"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import ConfigDict, Field, model_validator

from apps.chartguard.contracts.metadata import ContractModel

LieFactorStatus = Literal["compliant", "violating", "indeterminate"]


class DistortionReport(ContractModel):
    """失真度量结果，违规只做报告，不中断规范化。"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def schema_name(cls) -> str:
        """返回失真报告契约名称。"""

        return "distortion_report"

    lie_factor: Optional[float] = Field(
        default=None,
        description="呈现效应与数据效应之比，无法计算时为空。",
    )
    lie_factor_status: LieFactorStatus = Field(description="谎言因子判定结果。")
    depicted_effect: Optional[float] = Field(default=None, description="图形呈现的效应。")
    data_effect: Optional[float] = Field(default=None, description="数据中的效应。")
    zero_baseline_respected: bool = Field(description="需要零基线的图表是否包含零。")
    scales_consistent_across_panels: bool = Field(description="各面板是否共享同一坐标尺度。")

    @model_validator(mode="after")
    def ensure_status_matches(self) -> "DistortionReport":
        """谎言因子与状态必须一致。"""

        if self.lie_factor_status == "indeterminate" and self.lie_factor is not None:
            raise ValueError("indeterminate 状态下 lie_factor 必须为空。")
        if self.lie_factor_status != "indeterminate" and self.lie_factor is None:
            raise ValueError("已判定的谎言因子必须给出数值。")
        return self

    @property
    def has_violation(self) -> bool:
        """是否存在任一完整性违规。"""

        return (
            self.lie_factor_status == "violating"
            or not self.zero_baseline_respected
            or not self.scales_consistent_across_panels
        )
