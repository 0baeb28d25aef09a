"""
Database queries - re-exported so callers can use 'from schoolhub.db import queries'.

Module organization:
- progression.py: streak/XP records, XP activity ledger, leaderboard
"""

from schoolhub.db.queries.progression import (
    lock_user_progression,
    update_user_progression,
    add_xp_activity,
    count_xp_activities_since,
    get_xp_activities,
    get_top_xp_users,
    ping,
)

__all__ = [
    "lock_user_progression",
    "update_user_progression",
    "add_xp_activity",
    "count_xp_activities_since",
    "get_xp_activities",
    "get_top_xp_users",
    "ping",
]
