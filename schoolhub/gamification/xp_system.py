"""
XP and Leveling System

Manages XP rewards, level calculations and level-up detection.

Leveling Curve:
- Flat 1000 XP per level: level = 1 + floor(total_xp / 1000)

XP Reward Table (defaults):
- Daily login: 10 XP
- Quiz completed: 50 XP
- Perfect quiz score: 100 XP
- Homework help question: 15 XP
- Seven-day streak maintained: 70 XP
- Challenge completed: 75 XP
- Learning video watched: 20 XP
- Flashcards session: 25 XP
- AI tutor interaction: 5 XP
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Union
import logging

from schoolhub.exceptions import InvalidXpAmountError, ValidationError
from schoolhub.models.progression import ActivityKind, UserProgression

logger = logging.getLogger(__name__)

XP_PER_LEVEL = 1000

# Reward constants under the names the client app uses
XP_ACTIONS: Dict[str, int] = {
    "DAILY_LOGIN": 10,
    "COMPLETE_QUIZ": 50,
    "PERFECT_QUIZ_SCORE": 100,
    "HOMEWORK_HELP_QUESTION": 15,
    "MAINTAIN_STREAK_WEEK": 70,
    "COMPLETE_CHALLENGE": 75,
    "WATCH_VIDEO": 20,
    "USE_FLASHCARDS": 25,
    "USE_AI_TUTOR": 5,
}

_ACTION_KINDS: Dict[str, ActivityKind] = {
    "DAILY_LOGIN": ActivityKind.DAILY_LOGIN,
    "COMPLETE_QUIZ": ActivityKind.QUIZ_COMPLETION,
    "PERFECT_QUIZ_SCORE": ActivityKind.PERFECT_QUIZ,
    "HOMEWORK_HELP_QUESTION": ActivityKind.HOMEWORK_HELP,
    "MAINTAIN_STREAK_WEEK": ActivityKind.STREAK_MILESTONE,
    "COMPLETE_CHALLENGE": ActivityKind.CHALLENGE_COMPLETE,
    "WATCH_VIDEO": ActivityKind.WATCH_VIDEO,
    "USE_FLASHCARDS": ActivityKind.FLASHCARDS,
    "USE_AI_TUTOR": ActivityKind.USE_AI_TUTOR,
}

ACTIVITY_DESCRIPTIONS: Dict[ActivityKind, str] = {
    ActivityKind.DAILY_LOGIN: "Daily login",
    ActivityKind.QUIZ_COMPLETION: "Completed a quiz",
    ActivityKind.PERFECT_QUIZ: "Perfect quiz score",
    ActivityKind.HOMEWORK_HELP: "Asked a homework help question",
    ActivityKind.USE_AI_TUTOR: "Used the AI learning assistant",
    ActivityKind.CHALLENGE_COMPLETE: "Completed a challenge",
    ActivityKind.WATCH_VIDEO: "Watched a learning video",
    ActivityKind.FLASHCARDS: "Studied flashcards",
    ActivityKind.STREAK_MILESTONE: "Maintained a 7-day streak",
}


def parse_activity_kind(value: Union[str, ActivityKind]) -> ActivityKind:
    """Resolve an activity kind from its tag, raising ValidationError if unknown"""
    if isinstance(value, ActivityKind):
        return value
    try:
        return ActivityKind(value)
    except ValueError:
        raise ValidationError(
            message=f"Unknown activity kind '{value}'",
            field="activity_kind",
            value=value,
        )


@dataclass(frozen=True)
class XpRewardTable:
    """
    Injectable mapping of activity kind to XP amount

    Hosts can tune rewards without touching engine logic:

        rewards = XpRewardTable().with_overrides({"daily_login": 15})
    """

    amounts: Mapping[ActivityKind, int] = field(
        default_factory=lambda: {_ACTION_KINDS[name]: amount for name, amount in XP_ACTIONS.items()}
    )

    def amount_for(self, kind: Union[str, ActivityKind]) -> int:
        """XP granted for one occurrence of an activity"""
        return self.amounts[parse_activity_kind(kind)]

    def with_overrides(self, overrides: Mapping[str, int]) -> "XpRewardTable":
        """Return a new table with some amounts replaced"""
        amounts = dict(self.amounts)
        for kind, amount in overrides.items():
            validate_xp_amount(amount)
            amounts[parse_activity_kind(kind)] = amount
        return XpRewardTable(amounts=amounts)


def validate_xp_amount(amount: Any) -> int:
    """
    Check that an XP amount is a positive integer

    Booleans are rejected even though they subclass int.

    Raises:
        InvalidXpAmountError: If the amount is not a positive integer
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidXpAmountError(amount)
    return amount


def calculate_level_from_xp(total_xp: int) -> int:
    """Level derived from total XP (level 1 at zero XP)"""
    return 1 + max(total_xp, 0) // XP_PER_LEVEL


def xp_for_level(level: int) -> int:
    """Total XP at which a level starts"""
    return (level - 1) * XP_PER_LEVEL


def get_level_progress(total_xp: int) -> Dict[str, int]:
    """
    Progress-to-next-level display values

    Returns:
        {
            'level': int,
            'xp_for_current_level': int,
            'xp_into_current_level': int,
            'xp_needed_for_next_level': int,
            'xp_to_next_level': int,
            'progress_percent': int (0-100)
        }
    """
    level = calculate_level_from_xp(total_xp)
    xp_into_level = total_xp - xp_for_level(level)

    return {
        "level": level,
        "xp_for_current_level": xp_for_level(level),
        "xp_into_current_level": xp_into_level,
        "xp_needed_for_next_level": XP_PER_LEVEL,
        "xp_to_next_level": XP_PER_LEVEL - xp_into_level,
        "progress_percent": min(100, round(xp_into_level * 100 / XP_PER_LEVEL)),
    }


def apply_xp(progression: UserProgression, amount: int) -> Dict[str, Any]:
    """
    Add XP to a progression record in place and recompute its level

    This is the only place total_xp and level change. Streak fields and
    last_activity_at are left alone.

    Returns:
        {
            'xp_earned': int,
            'total_xp': int,
            'level': int,
            'old_level': int,
            'level_up': bool
        }
    """
    validate_xp_amount(amount)

    old_level = progression.level
    progression.total_xp += amount
    progression.level = calculate_level_from_xp(progression.total_xp)
    level_up = progression.level > old_level

    if level_up:
        logger.info(
            f"User {progression.user_id} leveled up from {old_level} to {progression.level}!"
        )

    return {
        "xp_earned": amount,
        "total_xp": progression.total_xp,
        "level": progression.level,
        "old_level": old_level,
        "level_up": level_up,
    }
