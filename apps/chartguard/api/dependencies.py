"""FastAPI 依赖注入配置。"""

from __future__ import annotations

from functools import lru_cache

from apps.chartguard.infra.clock import UtcClock
from apps.chartguard.renderers.vega_lite import VegaLiteRenderer
from apps.chartguard.services.normalizer import ChartNormalizer, NormalizerConfig
from apps.chartguard.stores.override_store import DEFAULT_SESSION_TTL, OverrideSessionStore


@lru_cache
def get_clock() -> UtcClock:
    """提供全局 UTC 时钟实例。"""

    return UtcClock()


@lru_cache
def get_normalizer_config() -> NormalizerConfig:
    """提供规范化参数。"""

    return NormalizerConfig()


@lru_cache
def get_override_store() -> OverrideSessionStore:
    """提供覆盖确认会话存储。"""

    return OverrideSessionStore(clock=get_clock(), ttl=DEFAULT_SESSION_TTL)


@lru_cache
def get_normalizer() -> ChartNormalizer:
    """提供规范化编排器。"""

    return ChartNormalizer(
        session_store=get_override_store(),
        config=get_normalizer_config(),
    )


@lru_cache
def get_renderer() -> VegaLiteRenderer:
    """提供 Vega-Lite 参考渲染器。"""

    return VegaLiteRenderer()
