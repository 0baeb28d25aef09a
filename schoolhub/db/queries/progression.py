"""Progression database queries"""
import logging
from datetime import datetime
from typing import Optional
import psycopg
from schoolhub.db.connection import db

logger = logging.getLogger(__name__)

PROGRESSION_COLUMNS = """
    user_id, current_streak, longest_streak, last_activity_at,
    total_xp, level, created_at, updated_at
"""

ACTIVITY_COLUMNS = "id, user_id, activity_kind, description, xp_earned, created_at"


# ==========================================
# Locked reads and writes (inside a transaction)
# ==========================================

async def lock_user_progression(conn: psycopg.AsyncConnection, user_id: str) -> tuple[dict, bool]:
    """
    Lock the user's progression row, creating it with defaults if absent

    Must run inside a transaction; the row lock is held until it ends.

    Returns:
        (row, created)
    """
    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO user_progression (user_id)
            VALUES (%s)
            ON CONFLICT (user_id) DO NOTHING
            RETURNING user_id
            """,
            (user_id,)
        )
        created = await cur.fetchone() is not None

        await cur.execute(
            f"""
            SELECT {PROGRESSION_COLUMNS}
            FROM user_progression
            WHERE user_id = %s
            FOR UPDATE
            """,
            (user_id,)
        )
        row = await cur.fetchone()

    if created:
        logger.info(f"Created new progression record for user {user_id}")

    return dict(row), created


async def update_user_progression(conn: psycopg.AsyncConnection, progression: dict) -> None:
    """
    Write streak and XP fields of a progression row

    Args:
        progression: Dict with user_id, current_streak, longest_streak,
            last_activity_at, total_xp, level
    """
    async with conn.cursor() as cur:
        await cur.execute(
            """
            UPDATE user_progression
            SET current_streak = %s,
                longest_streak = %s,
                last_activity_at = %s,
                total_xp = %s,
                level = %s,
                updated_at = CURRENT_TIMESTAMP
            WHERE user_id = %s
            """,
            (
                progression['current_streak'],
                progression['longest_streak'],
                progression['last_activity_at'],
                progression['total_xp'],
                progression['level'],
                progression['user_id']
            )
        )


async def add_xp_activity(
    conn: psycopg.AsyncConnection,
    user_id: str,
    activity_kind: str,
    description: str,
    xp_earned: int,
    created_at: datetime
) -> dict:
    """
    Append an XP ledger entry

    Returns:
        The inserted row
    """
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            INSERT INTO xp_activities (user_id, activity_kind, description, xp_earned, created_at)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {ACTIVITY_COLUMNS}
            """,
            (user_id, activity_kind, description, xp_earned, created_at)
        )
        return dict(await cur.fetchone())


async def count_xp_activities_since(
    conn: psycopg.AsyncConnection,
    user_id: str,
    activity_kind: str,
    since: datetime
) -> int:
    """Count ledger entries of one kind at or after a point in time"""
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT COUNT(*) AS count
            FROM xp_activities
            WHERE user_id = %s AND activity_kind = %s AND created_at >= %s
            """,
            (user_id, activity_kind, since)
        )
        row = await cur.fetchone()
        return row['count'] if row else 0


# ==========================================
# Plain reads
# ==========================================

async def get_xp_activities(user_id: str, limit: Optional[int] = 20) -> list[dict]:
    """
    Get recent XP activities for user

    Returns:
        List of activities ordered by created_at DESC (id DESC on ties)
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {ACTIVITY_COLUMNS}
                FROM xp_activities
                WHERE user_id = %s
                ORDER BY created_at DESC, id DESC
                LIMIT %s
                """,
                (user_id, limit)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


async def get_top_xp_users(limit: int = 10) -> list[dict]:
    """
    Get users with the most XP

    Returns:
        List of {user_id, total_xp, level} ordered by total_xp DESC
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT user_id, total_xp, level
                FROM user_progression
                ORDER BY total_xp DESC, user_id
                LIMIT %s
                """,
                (limit,)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


async def ping() -> bool:
    """Run a trivial query to check connectivity"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute("SELECT 1 AS ok")
            row = await cur.fetchone()
            return bool(row and row['ok'] == 1)
