"""覆盖确认会话 Store，按 request_id 隔离，仅在进程内保存。"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterator, List, Optional

from apps.chartguard.contracts.decision import OverrideSession, SubstitutionDecision
from apps.chartguard.infra.clock import Clock

LOGGER = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(minutes=15)


@dataclass
class _KeyLock:
    """单个 request_id 的锁及当前持有或等待它的线程数。"""

    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class OverrideSessionStore:
    """维护“先解释、后放行”的会话状态机。

    状态流转：``proposed → educated → confirmed``，``proposed`` 也可直接确认
    （确认请求本身已携带理由）；空闲超过 TTL 或请求完成后会话被丢弃，之后的
    重新提交将开启新的 ``proposed`` 会话。每个 request_id 拥有独立的锁，不同
    请求之间互不竞争。
    """

    def __init__(self, *, clock: Clock, ttl: timedelta = DEFAULT_SESSION_TTL) -> None:
        """初始化会话存储。

        Parameters
        ----------
        clock: Clock
            提供 UTC 时间的时钟。
        ttl: timedelta
            会话允许的最长空闲时间。
        """

        if ttl <= timedelta(0):
            raise ValueError("ttl 必须为正数。")
        self._clock = clock
        self._ttl = ttl
        self._sessions: Dict[str, OverrideSession] = {}
        self._locks: Dict[str, _KeyLock] = {}
        # 仅保护锁表本身的创建与清理。
        self._table_lock = threading.Lock()

    @property
    def ttl(self) -> timedelta:
        """会话空闲 TTL。"""

        return self._ttl

    def __len__(self) -> int:
        return len(self._sessions)

    def _entry_for(self, request_id: str) -> _KeyLock:
        """取出或创建锁表条目。调用方须持有表锁。"""

        entry = self._locks.get(request_id)
        if entry is None:
            entry = _KeyLock()
            self._locks[request_id] = entry
        return entry

    @contextmanager
    def _hold(self, request_id: str) -> Iterator[None]:
        """独占 request_id 的键锁。

        持有计数在表锁内增加，sweep 只清理计数为零的条目，取锁与加锁之间
        不会被换成新的锁对象。
        """

        with self._table_lock:
            entry = self._entry_for(request_id)
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._table_lock:
                entry.holders -= 1

    def _is_expired(self, session: OverrideSession, now: datetime) -> bool:
        return now - session.updated_at >= self._ttl

    def _live_session(self, request_id: str, now: datetime) -> Optional[OverrideSession]:
        """返回未过期的会话；过期会话在此处被丢弃。调用方须持有键锁。"""

        session = self._sessions.get(request_id)
        if session is None:
            return None
        if self._is_expired(session, now):
            del self._sessions[request_id]
            LOGGER.info(
                "覆盖会话已过期",
                extra={
                    "request_id": request_id,
                    "banned_type": session.banned_type,
                    "state": session.state,
                },
            )
            return None
        return session

    def get(self, request_id: str) -> Optional[OverrideSession]:
        """读取未过期的会话。"""

        with self._hold(request_id):
            return self._live_session(request_id, self._clock.now())

    def propose(self, request_id: str, decision: SubstitutionDecision) -> OverrideSession:
        """为被禁止的类型创建 proposed 会话，已有同类型会话时原样返回。

        Parameters
        ----------
        request_id: str
            请求标识。
        decision: SubstitutionDecision
            分类结果，必须为禁止类型。

        Returns
        -------
        OverrideSession
            当前有效的会话。
        """

        if not decision.is_banned or decision.substitute_type is None:
            message = f"{decision.chart_type} 不是禁止类型，无需创建覆盖会话。"
            raise ValueError(message)
        self.sweep()
        with self._hold(request_id):
            now = self._clock.now()
            existing = self._live_session(request_id, now)
            if existing is not None and existing.banned_type == decision.chart_type:
                return existing
            session = OverrideSession(
                request_id=request_id,
                banned_type=decision.chart_type,
                substitute_type=decision.substitute_type,
                state="proposed",
                created_at=now,
                updated_at=now,
            )
            self._sessions[request_id] = session
        LOGGER.info(
            "创建覆盖会话",
            extra={
                "request_id": request_id,
                "banned_type": decision.chart_type,
                "replaced": existing is not None,
            },
        )
        return session

    def mark_educated(self, request_id: str) -> OverrideSession:
        """记录理由已呈现给最终用户，会话不存在时立即失败。"""

        with self._hold(request_id):
            now = self._clock.now()
            session = self._live_session(request_id, now)
            if session is None:
                message = f"request_id={request_id} 没有有效的覆盖会话。"
                raise KeyError(message)
            if session.state != "proposed":
                return session
            updated = session.model_copy(
                update={"state": "educated", "educated_at": now, "updated_at": now},
            )
            self._sessions[request_id] = updated
            return updated

    def confirm(self, request_id: str, banned_type: str) -> Optional[OverrideSession]:
        """确认覆盖。会话不存在、已过期或类型不一致时返回 None。

        Parameters
        ----------
        request_id: str
            请求标识。
        banned_type: str
            重新提交时的图表类型，必须与会话登记的类型一致。

        Returns
        -------
        Optional[OverrideSession]
            已确认的会话；返回 None 表示调用方需要重新走确认流程。
        """

        with self._hold(request_id):
            now = self._clock.now()
            session = self._live_session(request_id, now)
            if session is None or session.banned_type != banned_type:
                return None
            if session.state == "confirmed":
                return session
            confirmed = session.model_copy(
                update={
                    "state": "confirmed",
                    "educated_at": session.educated_at or now,
                    "updated_at": now,
                },
            )
            self._sessions[request_id] = confirmed
        LOGGER.info(
            "覆盖会话已确认",
            extra={"request_id": request_id, "banned_type": banned_type},
        )
        return confirmed

    def complete(self, request_id: str) -> Optional[OverrideSession]:
        """请求完成后丢弃会话，返回被丢弃会话的 expired 快照。"""

        with self._hold(request_id):
            session = self._sessions.pop(request_id, None)
            if session is None:
                return None
            return session.model_copy(update={"state": "expired", "updated_at": self._clock.now()})

    def sweep(self) -> int:
        """清理过期会话与空闲锁，返回清理的会话数量。"""

        with self._table_lock:
            request_ids: List[str] = list(self._locks)
        removed = 0
        now = self._clock.now()
        for request_id in request_ids:
            with self._hold(request_id):
                session = self._sessions.get(request_id)
                if session is not None and self._is_expired(session, now):
                    del self._sessions[request_id]
                    removed += 1
        with self._table_lock:
            for request_id in request_ids:
                entry = self._locks.get(request_id)
                if entry is not None and entry.holders == 0 and request_id not in self._sessions:
                    del self._locks[request_id]
        if removed:
            LOGGER.debug("已清理过期覆盖会话", extra={"removed": removed})
        return removed
