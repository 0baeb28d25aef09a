"""Unit tests for PostgresProgressionStore with mocked queries"""
import pytest
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import psycopg

from schoolhub.db.progression_store import PostgresProgressionStore
from schoolhub.exceptions import DatabaseConnectionError, QueryError
from schoolhub.models.progression import ActivityKind, XpActivityRecord

QUERIES = "schoolhub.db.progression_store.queries"


class FakeDatabase:
    """Stands in for the pool; records whether the transaction block failed"""

    def __init__(self):
        self.conn = MagicMock(name="conn")
        self.rolled_back = False
        self.committed = False

    @asynccontextmanager
    async def transaction(self):
        try:
            yield self.conn
        except Exception:
            self.rolled_back = True
            raise
        self.committed = True


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def pg_store(fake_db):
    return PostgresProgressionStore(database=fake_db)


def progression_row(user_id="student_42", **overrides):
    row = {
        "user_id": user_id,
        "current_streak": 0,
        "longest_streak": 0,
        "last_activity_at": None,
        "total_xp": 0,
        "level": 1,
        "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    row.update(overrides)
    return row


@pytest.mark.asyncio
async def test_transaction_loads_and_saves(pg_store, fake_db, test_user_id):
    """Test load locks the row and save writes it back on the same connection"""
    with patch(f"{QUERIES}.lock_user_progression", new_callable=AsyncMock) as mock_lock, \
         patch(f"{QUERIES}.update_user_progression", new_callable=AsyncMock) as mock_update:
        mock_lock.return_value = (progression_row(test_user_id, total_xp=40), False)

        async with pg_store.transaction(test_user_id) as txn:
            progression, created = await txn.load_progression()
            progression.total_xp += 10
            await txn.save_progression(progression)

    assert created is False
    mock_lock.assert_awaited_once_with(fake_db.conn, test_user_id)
    saved = mock_update.await_args.args[1]
    assert saved["total_xp"] == 50
    assert fake_db.committed is True


@pytest.mark.asyncio
async def test_append_activity_stores_utc(pg_store, fake_db, test_user_id):
    """Test ledger timestamps are converted to UTC before insert"""
    from zoneinfo import ZoneInfo

    local = datetime(2024, 1, 15, 10, 0, tzinfo=ZoneInfo("Europe/Berlin"))
    record = XpActivityRecord(
        user_id=test_user_id,
        activity_kind=ActivityKind.WATCH_VIDEO,
        description="Video",
        xp_earned=20,
        created_at=local,
    )

    with patch(f"{QUERIES}.add_xp_activity", new_callable=AsyncMock) as mock_add:
        mock_add.return_value = {
            "id": 7, "user_id": test_user_id, "activity_kind": "watch_video",
            "description": "Video", "xp_earned": 20,
            "created_at": datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc),
        }

        async with pg_store.transaction(test_user_id) as txn:
            stored = await txn.append_activity(record)

    args = mock_add.await_args.args
    assert args[2] == "watch_video"
    assert args[5] == datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)
    assert args[5].utcoffset().total_seconds() == 0
    assert stored.id == 7


@pytest.mark.asyncio
async def test_database_error_rolls_back_and_wraps(pg_store, fake_db, test_user_id):
    """Test psycopg errors roll back the transaction and surface as QueryError"""
    with patch(f"{QUERIES}.lock_user_progression", new_callable=AsyncMock) as mock_lock, \
         patch(f"{QUERIES}.add_xp_activity", new_callable=AsyncMock) as mock_add:
        mock_lock.return_value = (progression_row(test_user_id), False)
        mock_add.side_effect = psycopg.errors.CheckViolation("xp_earned must be positive")

        with pytest.raises(QueryError) as exc_info:
            async with pg_store.transaction(test_user_id) as txn:
                await txn.load_progression()
                await txn.append_activity(
                    XpActivityRecord(
                        user_id=test_user_id,
                        activity_kind=ActivityKind.QUIZ_COMPLETION,
                        description="Quiz",
                        xp_earned=50,
                        created_at=datetime(2024, 1, 15, tzinfo=timezone.utc),
                    )
                )

    assert fake_db.rolled_back is True
    assert exc_info.value.operation == "progression_transaction"
    assert exc_info.value.user_id == test_user_id


@pytest.mark.asyncio
async def test_connection_error_wrapped(pg_store, test_user_id):
    """Test connection failures surface as DatabaseConnectionError"""
    with patch(f"{QUERIES}.lock_user_progression", new_callable=AsyncMock) as mock_lock:
        mock_lock.side_effect = psycopg.OperationalError("server closed the connection")

        with pytest.raises(DatabaseConnectionError):
            async with pg_store.transaction(test_user_id) as txn:
                await txn.load_progression()


@pytest.mark.asyncio
async def test_count_activities_since(pg_store, fake_db, test_user_id):
    """Test daily-cap counts query by kind value and UTC instant"""
    since = datetime(2024, 1, 15, tzinfo=timezone.utc)

    with patch(f"{QUERIES}.count_xp_activities_since", new_callable=AsyncMock) as mock_count:
        mock_count.return_value = 3

        async with pg_store.transaction(test_user_id) as txn:
            count = await txn.count_activities_since(ActivityKind.USE_AI_TUTOR, since)

    assert count == 3
    mock_count.assert_awaited_once_with(fake_db.conn, test_user_id, "use_ai_tutor", since)


@pytest.mark.asyncio
async def test_get_leaderboard(pg_store):
    """Test leaderboard rows map to entries"""
    with patch(f"{QUERIES}.get_top_xp_users", new_callable=AsyncMock) as mock_top:
        mock_top.return_value = [
            {"user_id": "ben", "total_xp": 1200, "level": 2},
            {"user_id": "ana", "total_xp": 300, "level": 1},
        ]

        entries = await pg_store.get_leaderboard(limit=2)

    mock_top.assert_awaited_once_with(2)
    assert [(e.user_id, e.level) for e in entries] == [("ben", 2), ("ana", 1)]


@pytest.mark.asyncio
async def test_get_xp_activities_error_wrapped(pg_store, test_user_id):
    """Test read failures are wrapped with the operation name"""
    with patch(f"{QUERIES}.get_xp_activities", new_callable=AsyncMock) as mock_get:
        mock_get.side_effect = psycopg.errors.UndefinedTable("relation does not exist")

        with pytest.raises(QueryError) as exc_info:
            await pg_store.get_xp_activities(test_user_id)

    assert exc_info.value.operation == "get_xp_activities"


@pytest.mark.asyncio
async def test_ping_false_when_pool_missing(pg_store):
    """Test ping reports unreachable instead of raising"""
    with patch(f"{QUERIES}.ping", new_callable=AsyncMock) as mock_ping:
        mock_ping.side_effect = RuntimeError("Database pool not initialized")

        assert await pg_store.ping() is False
