"""检查清单报告契约。"""

from __future__ import annotations

from typing import List, Literal

from pydantic import ConfigDict, Field, model_validator

from apps.chartguard.contracts.metadata import ContractModel

RuleSeverity = Literal["error", "warning", "info"]


class ChecklistItem(ContractModel):
    """单条规则的判定结果。"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def schema_name(cls) -> str:
        """返回检查项契约名称。"""

        return "checklist_item"

    rule_id: str = Field(description="规则标识。", min_length=1)
    passed: bool = Field(description="是否通过。")
    severity: RuleSeverity = Field(description="未通过时的严重级别。")
    message: str = Field(description="判定说明。")


class ChecklistReport(ContractModel):
    """按规则声明顺序排列的检查报告，每次调用重新构建。"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def schema_name(cls) -> str:
        """返回检查报告契约名称。"""

        return "checklist_report"

    version: str = Field(description="规则集版本。", min_length=1)
    items: List[ChecklistItem] = Field(description="检查结果列表。")

    @model_validator(mode="after")
    def ensure_unique_rules(self) -> "ChecklistReport":
        """同一报告内规则标识不能重复。"""

        rule_ids = [item.rule_id for item in self.items]
        if len(rule_ids) != len(set(rule_ids)):
            raise ValueError("检查报告中存在重复的 rule_id。")
        return self

    @property
    def passed(self) -> bool:
        """除提示级别外全部通过。"""

        return all(item.passed for item in self.items if item.severity != "info")

    def failed_rule_ids(self) -> List[str]:
        """返回未通过的规则标识，保持声明顺序。"""

        return [item.rule_id for item in self.items if not item.passed]

    def require(self, rule_id: str) -> ChecklistItem:
        """按标识获取检查项，不存在时立即失败。"""

        for item in self.items:
            if item.rule_id == rule_id:
                return item
        message = f"rule_id={rule_id} 不在检查报告中。"
        raise KeyError(message)
