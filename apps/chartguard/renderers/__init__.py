"""渲染适配器导出。"""

from apps.chartguard.renderers.base import ChartRenderer
from apps.chartguard.renderers.vega_lite import VegaLiteRenderer

__all__ = [
    "ChartRenderer",
    "VegaLiteRenderer",
]
