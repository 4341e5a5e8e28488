"""服务层导出。"""

from apps.chartguard.services.classifier import classify, resolve_chart_type
from apps.chartguard.services.errors import SchemaError
from apps.chartguard.services.normalizer import ChartNormalizer, NormalizerConfig, validate_chart_spec

__all__ = [
    "ChartNormalizer",
    "NormalizerConfig",
    "SchemaError",
    "classify",
    "resolve_chart_type",
    "validate_chart_spec",
]
