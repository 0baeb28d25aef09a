"""
Daily Login Streak System

Decides how a login changes a user's consecutive-day streak:
- First login ever: streak starts at 1
- Same calendar day as the last login: no streak change
- Next calendar day and less than 48 hours later: streak continues
- Anything else: streak resets to 1

Calendar days are evaluated in one configured timezone. Callers pass the
current instant in; nothing here reads a clock.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Union
from zoneinfo import ZoneInfo
import logging

from schoolhub.models.progression import UserProgression
from schoolhub.utils.datetime_helpers import ensure_aware, local_date, to_utc

logger = logging.getLogger(__name__)

# Raw duration a next-day login must stay under to continue the streak
STREAK_CONTINUATION_WINDOW = timedelta(hours=48)


class LoginTransition(str, Enum):
    """Outcome of comparing a login to the previous one"""
    FIRST_LOGIN = "first_login"
    SAME_DAY = "same_day"
    NEXT_DAY = "next_day"
    BROKEN = "broken"


def classify_login(
    last_activity_at: Optional[datetime],
    now: datetime,
    calendar_tz: Union[str, ZoneInfo] = "UTC"
) -> LoginTransition:
    """
    Classify a login relative to the previous one

    A next-day login needs both conditions: the calendar dates differ by
    exactly one day AND less than 48 hours have passed. Around DST changes
    adjacent dates can be more than 48 hours apart; those reset.

    Args:
        last_activity_at: Previous login instant (None if never logged in)
        now: Current login instant (timezone-aware)
        calendar_tz: Timezone that defines day boundaries

    Returns:
        LoginTransition
    """
    now = ensure_aware(now, field="now")
    if last_activity_at is None:
        return LoginTransition.FIRST_LOGIN
    last_activity_at = ensure_aware(last_activity_at, field="last_activity_at")

    last_day = local_date(last_activity_at, calendar_tz)
    today = local_date(now, calendar_tz)

    if last_day == today:
        return LoginTransition.SAME_DAY

    # Same-tzinfo subtraction ignores offsets, so compare in UTC
    elapsed = to_utc(now) - to_utc(last_activity_at)
    if (today - last_day).days == 1 and timedelta(0) < elapsed < STREAK_CONTINUATION_WINDOW:
        return LoginTransition.NEXT_DAY

    return LoginTransition.BROKEN


def apply_login(
    progression: UserProgression,
    now: datetime,
    calendar_tz: Union[str, ZoneInfo] = "UTC"
) -> LoginTransition:
    """
    Update streak fields of a progression record in place for a login

    XP is not touched here; the daily login reward goes through the XP path.

    Returns:
        The transition that was applied
    """
    transition = classify_login(progression.last_activity_at, now, calendar_tz)
    now = to_utc(now)
    old_streak = progression.current_streak

    if transition == LoginTransition.SAME_DAY:
        # Already counted for today, only the timestamp moves forward
        progression.last_activity_at = max(progression.last_activity_at, now)

    elif transition == LoginTransition.NEXT_DAY:
        progression.current_streak += 1
        progression.last_activity_at = now

    else:
        # First login or broken streak
        progression.current_streak = 1
        progression.last_activity_at = now
        if transition == LoginTransition.BROKEN:
            logger.info(
                f"User {progression.user_id} streak broken. Was {old_streak} days"
            )

    if progression.current_streak > progression.longest_streak:
        progression.longest_streak = progression.current_streak

    logger.info(
        f"Updated login streak for user {progression.user_id} ({transition.value}): "
        f"{old_streak} → {progression.current_streak} days"
    )

    return transition
