"""规范化流程的致命错误。"""

from __future__ import annotations

from typing import Any, Dict


class SchemaError(ValueError):
    """图表请求结构不完整或自相矛盾，本次调用中止且不返回部分结果。

    Attributes
    ----------
    field: str
        出错字段的路径，例如 ``series[1].points``。
    constraint: str
        期望满足的约束描述。
    """

    def __init__(self, *, field: str, constraint: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.constraint = constraint
        self.message = message

    def as_dict(self) -> Dict[str, Any]:
        """输出可直接返回给调用方的结构化详情。"""

        return {
            "error_type": self.__class__.__name__,
            "field": self.field,
            "constraint": self.constraint,
            "message": self.message,
        }
