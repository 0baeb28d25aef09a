"""
In-memory progression store

Process-local backend used when STORAGE_BACKEND=memory and in tests.
Nothing is persisted across restarts. Per-user serialization uses one
asyncio.Lock per user; writes are buffered and applied only when the
transaction block exits cleanly.

Locks are created on first use and never pruned, so memory grows with the
number of distinct users seen. Fine for tests and local runs; use the
PostgreSQL backend for anything long-lived.
"""

import asyncio
import itertools
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, Dict, List, Optional, Tuple

from schoolhub.gamification.store import ProgressionStore, ProgressionTransaction
from schoolhub.models.progression import (
    ActivityKind,
    LeaderboardEntry,
    UserProgression,
    XpActivityRecord,
)
from schoolhub.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)


class _MemoryTransaction(ProgressionTransaction):
    def __init__(self, store: "InMemoryProgressionStore", user_id: str):
        self._store = store
        self.user_id = user_id
        self._progression: Optional[UserProgression] = None
        self._dirty = False
        self._pending: List[XpActivityRecord] = []

    async def load_progression(self) -> Tuple[UserProgression, bool]:
        # Yield to the loop the way a database round-trip would
        await asyncio.sleep(0)

        existing = self._store._progressions.get(self.user_id)
        if existing is None:
            stamp = now_utc()
            self._progression = UserProgression(user_id=self.user_id, created_at=stamp, updated_at=stamp)
            self._dirty = True
            logger.info(f"Created new progression record for user {self.user_id}")
            return self._progression.model_copy(), True

        self._progression = existing.model_copy()
        return self._progression.model_copy(), False

    async def save_progression(self, progression: UserProgression) -> None:
        await asyncio.sleep(0)
        self._progression = progression.model_copy()
        self._dirty = True

    async def append_activity(self, record: XpActivityRecord) -> XpActivityRecord:
        stored = record.model_copy(update={"id": next(self._store._ids)})
        self._pending.append(stored)
        return stored.model_copy()

    async def count_activities_since(self, activity_kind: ActivityKind, since: datetime) -> int:
        records = self._store._activities.get(self.user_id, []) + self._pending
        return sum(
            1 for r in records
            if r.activity_kind == activity_kind and r.created_at >= since
        )

    def _commit(self) -> None:
        if self._dirty and self._progression is not None:
            self._store._progressions[self.user_id] = self._progression.model_copy(
                update={"updated_at": now_utc()}
            )
        if self._pending:
            self._store._activities[self.user_id].extend(self._pending)


class InMemoryProgressionStore(ProgressionStore):
    """Dict-backed progression store"""

    def __init__(self):
        self._progressions: Dict[str, UserProgression] = {}
        self._activities: Dict[str, List[XpActivityRecord]] = defaultdict(list)
        self._locks: Dict[str, asyncio.Lock] = {}
        self._ids = itertools.count(1)
        logger.debug("InMemoryProgressionStore initialized")

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        return self._locks.setdefault(user_id, asyncio.Lock())

    @asynccontextmanager
    async def transaction(self, user_id: str) -> AsyncGenerator[ProgressionTransaction, None]:
        async with self._lock_for(user_id):
            txn = _MemoryTransaction(self, user_id)
            yield txn
            txn._commit()

    async def get_xp_activities(self, user_id: str, limit: int = 20) -> List[XpActivityRecord]:
        records = sorted(
            self._activities.get(user_id, []),
            key=lambda r: (r.created_at, r.id),
            reverse=True,
        )
        return [r.model_copy() for r in records[:limit]]

    async def get_leaderboard(self, limit: int = 10) -> List[LeaderboardEntry]:
        ranked = sorted(
            self._progressions.values(),
            key=lambda p: (-p.total_xp, p.user_id),
        )
        return [
            LeaderboardEntry(user_id=p.user_id, total_xp=p.total_xp, level=p.level)
            for p in ranked[:limit]
        ]

    async def ping(self) -> bool:
        return True
