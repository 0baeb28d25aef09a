"""PostgreSQL-backed progression store"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, List, Tuple

import psycopg

from schoolhub.db import queries
from schoolhub.db.connection import Database, db as default_db
from schoolhub.exceptions import wrap_database_exception
from schoolhub.gamification.store import ProgressionStore, ProgressionTransaction
from schoolhub.models.progression import (
    ActivityKind,
    LeaderboardEntry,
    UserProgression,
    XpActivityRecord,
)
from schoolhub.observability.metrics import progression_store_errors_total
from schoolhub.utils.datetime_helpers import to_utc

logger = logging.getLogger(__name__)


class _PostgresTransaction(ProgressionTransaction):
    def __init__(self, conn: psycopg.AsyncConnection, user_id: str):
        self._conn = conn
        self.user_id = user_id

    async def load_progression(self) -> Tuple[UserProgression, bool]:
        row, created = await queries.lock_user_progression(self._conn, self.user_id)
        return UserProgression(**row), created

    async def save_progression(self, progression: UserProgression) -> None:
        await queries.update_user_progression(self._conn, progression.model_dump())

    async def append_activity(self, record: XpActivityRecord) -> XpActivityRecord:
        row = await queries.add_xp_activity(
            self._conn,
            record.user_id,
            record.activity_kind.value,
            record.description,
            record.xp_earned,
            to_utc(record.created_at),
        )
        return XpActivityRecord(**row)

    async def count_activities_since(self, activity_kind: ActivityKind, since: datetime) -> int:
        return await queries.count_xp_activities_since(
            self._conn, self.user_id, activity_kind.value, to_utc(since)
        )


class PostgresProgressionStore(ProgressionStore):
    """
    Progression store on PostgreSQL

    Per-user serialization comes from the row lock taken by
    SELECT ... FOR UPDATE, held until the transaction commits or rolls back.
    """

    def __init__(self, database: Database = default_db):
        self.db = database

    @asynccontextmanager
    async def transaction(self, user_id: str) -> AsyncGenerator[ProgressionTransaction, None]:
        try:
            async with self.db.transaction() as conn:
                yield _PostgresTransaction(conn, user_id)
        except psycopg.Error as e:
            progression_store_errors_total.labels(operation="transaction").inc()
            raise wrap_database_exception(e, operation="progression_transaction", user_id=user_id)

    async def get_xp_activities(self, user_id: str, limit: int = 20) -> List[XpActivityRecord]:
        try:
            rows = await queries.get_xp_activities(user_id, limit)
        except psycopg.Error as e:
            progression_store_errors_total.labels(operation="get_xp_activities").inc()
            raise wrap_database_exception(e, operation="get_xp_activities", user_id=user_id)
        return [XpActivityRecord(**row) for row in rows]

    async def get_leaderboard(self, limit: int = 10) -> List[LeaderboardEntry]:
        try:
            rows = await queries.get_top_xp_users(limit)
        except psycopg.Error as e:
            progression_store_errors_total.labels(operation="get_leaderboard").inc()
            raise wrap_database_exception(e, operation="get_leaderboard")
        return [LeaderboardEntry(**row) for row in rows]

    async def ping(self) -> bool:
        try:
            return await queries.ping()
        except (psycopg.Error, RuntimeError) as e:
            logger.warning(f"Database ping failed: {e}")
            return False
