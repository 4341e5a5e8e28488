"""统一的 UTC 时钟接口，会话 TTL 判断只依赖此处。"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """会话存储所需的最小时钟接口。"""

    def now(self) -> datetime:
        """返回带时区的当前时间。"""


class UtcClock:
    """系统 UTC 时钟。"""

    def now(self) -> datetime:
        """返回当前 UTC 时间。

        Returns
        -------
        datetime
            带有 UTC 时区信息的当前时间。
        """

        # 使用 timezone.utc 确保附带时区信息，避免契约校验失败。
        return datetime.now(timezone.utc)


class ManualClock:
    """手动推进的时钟，用于重放会话过期场景。"""

    def __init__(self, start: datetime) -> None:
        if start.tzinfo is None:
            raise ValueError("start 必须包含 UTC 时区。")
        self._current = start

    def now(self) -> datetime:
        """返回当前设定的时间。"""

        return self._current

    def advance(self, delta: timedelta) -> datetime:
        """向前推进指定时长并返回新的时间。"""

        if delta < timedelta(0):
            raise ValueError("时钟只能向前推进。")
        self._current = self._current + delta
        return self._current
