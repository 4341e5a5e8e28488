"""基础设施组件导出。"""

from apps.chartguard.infra.clock import Clock, ManualClock, UtcClock

__all__ = [
    "Clock",
    "ManualClock",
    "UtcClock",
]
