"""渲染适配器协议。"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from apps.chartguard.contracts.normalized import NormalizedChartSpec


@runtime_checkable
class ChartRenderer(Protocol):
    """将规范化结果绘制为具体产物的适配器。

    适配器只消费 NormalizedChartSpec，不得重新计算范围框、刻度或标签位置。
    """

    def render(self, spec: NormalizedChartSpec) -> Any:
        """生成渲染产物。"""
