"""Store 层导出。"""

from apps.chartguard.stores.override_store import DEFAULT_SESSION_TTL, OverrideSessionStore

__all__ = [
    "DEFAULT_SESSION_TTL",
    "OverrideSessionStore",
]
