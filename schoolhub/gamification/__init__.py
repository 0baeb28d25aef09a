"""
Gamification system for SchoolHub

- XP and leveling (flat 1000 XP per level)
- Daily login streaks
- Storage contract shared by the PostgreSQL and in-memory backends
"""

from schoolhub.gamification.xp_system import (
    XP_ACTIONS,
    XpRewardTable,
    apply_xp,
    calculate_level_from_xp,
    get_level_progress,
    validate_xp_amount,
)
from schoolhub.gamification.streak_system import LoginTransition, apply_login, classify_login

__all__ = [
    "XP_ACTIONS",
    "XpRewardTable",
    "apply_xp",
    "calculate_level_from_xp",
    "get_level_progress",
    "validate_xp_amount",
    "LoginTransition",
    "apply_login",
    "classify_login",
]
