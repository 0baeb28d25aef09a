"""
ProgressionService - Streak and XP Business Logic

Runs the streak and XP rules inside one per-user store transaction, so the
ledger append and the progression update commit together or not at all.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union
from zoneinfo import ZoneInfo

from schoolhub import config
from schoolhub.gamification.store import ProgressionStore, ProgressionTransaction
from schoolhub.gamification.streak_system import apply_login
from schoolhub.gamification.xp_system import (
    ACTIVITY_DESCRIPTIONS,
    XpRewardTable,
    apply_xp,
    get_level_progress,
    parse_activity_kind,
    validate_xp_amount,
)
from schoolhub.models.progression import (
    ActivityKind,
    LeaderboardEntry,
    UserProgression,
    XpActivityRecord,
)
from schoolhub.observability.metrics import (
    daily_logins_total,
    level_ups_total,
    xp_awarded_total,
    xp_awards_capped_total,
)
from schoolhub.utils.datetime_helpers import as_zoneinfo, ensure_aware, get_day_start_utc

logger = logging.getLogger(__name__)


class ProgressionService:
    """
    Service for streak and XP progression.

    Responsibilities:
    - Daily login streak evaluation
    - XP awards with level recomputation
    - Reward table lookups and per-activity daily caps
    - Read models for streak, activity history and leaderboard

    Callers pass `now` explicitly; the service never reads a clock for
    decisions.
    """

    def __init__(
        self,
        store: ProgressionStore,
        rewards: Optional[XpRewardTable] = None,
        calendar_tz: Union[str, ZoneInfo] = "UTC",
        daily_caps: Optional[Mapping[Union[str, ActivityKind], int]] = None,
    ):
        """
        Initialize ProgressionService.

        Args:
            store: Progression storage backend
            rewards: XP per activity kind (defaults to the standard table)
            calendar_tz: Timezone defining calendar-day boundaries
            daily_caps: Max rewarded occurrences per day for some activity kinds,
                applied by award_activity() only
        """
        self.store = store
        self.rewards = rewards or XpRewardTable()
        self.calendar_tz = as_zoneinfo(calendar_tz)
        self.daily_caps: Dict[ActivityKind, int] = {
            parse_activity_kind(kind): cap
            for kind, cap in (daily_caps or {}).items()
            if cap > 0
        }
        logger.debug("ProgressionService initialized")

    async def record_daily_login(self, user_id: str, now: datetime) -> Dict[str, Any]:
        """
        Evaluate the daily streak for a session start and grant the login reward.

        Repeated logins on one calendar day leave the streak alone but each
        still grants the daily login XP.

        Returns:
            {
                'current_streak': int,
                'longest_streak': int,
                'xp_earned': int,
                'total_xp': int,
                'level': int,
                'level_up': bool,
                'transition': str
            }
        """
        now = ensure_aware(now, field="now")
        kind = ActivityKind.DAILY_LOGIN
        xp_amount = self.rewards.amount_for(kind)

        async with self.store.transaction(user_id) as txn:
            progression, _ = await txn.load_progression()
            transition = apply_login(progression, now, self.calendar_tz)
            award = await self._award_in_transaction(
                txn, progression, kind, ACTIVITY_DESCRIPTIONS[kind], xp_amount, now
            )

        daily_logins_total.labels(transition=transition.value).inc()
        self._record_award_metrics(kind, award)

        return {
            "current_streak": progression.current_streak,
            "longest_streak": progression.longest_streak,
            "xp_earned": award["xp_earned"],
            "total_xp": award["total_xp"],
            "level": award["level"],
            "level_up": award["level_up"],
            "transition": transition.value,
        }

    async def award_xp(
        self,
        user_id: str,
        activity_kind: Union[str, ActivityKind],
        description: str,
        xp_amount: int,
        now: datetime,
    ) -> Dict[str, Any]:
        """
        Append a ledger entry and add its XP to the user's total.

        No caps or deduplication here; the amount given is the amount granted.
        Streak fields and last_activity_at are not touched.

        Raises:
            InvalidXpAmountError: Before any persistence, if xp_amount is not a positive integer
            ValidationError: For an unknown activity kind or naive `now`
            PersistenceError: If the store fails; nothing is committed

        Returns:
            {'xp_earned': int, 'total_xp': int, 'level': int, 'level_up': bool}
        """
        validate_xp_amount(xp_amount)
        kind = parse_activity_kind(activity_kind)
        now = ensure_aware(now, field="now")
        description = description or ACTIVITY_DESCRIPTIONS[kind]

        async with self.store.transaction(user_id) as txn:
            progression, _ = await txn.load_progression()
            award = await self._award_in_transaction(txn, progression, kind, description, xp_amount, now)

        self._record_award_metrics(kind, award)
        logger.info(
            f"Awarded {xp_amount} XP to user {user_id} for {kind.value}. "
            f"Total: {award['total_xp']} XP, Level: {award['level']}"
        )

        return {
            "xp_earned": award["xp_earned"],
            "total_xp": award["total_xp"],
            "level": award["level"],
            "level_up": award["level_up"],
        }

    async def award_activity(
        self,
        user_id: str,
        activity_kind: Union[str, ActivityKind],
        now: datetime,
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Award the reward-table amount for an activity, honoring daily caps.

        A capped call writes nothing and reports awarded=False.

        Returns:
            {
                'awarded': bool,
                'xp_earned': int,
                'total_xp': int,
                'level': int,
                'level_up': bool
            }
        """
        kind = parse_activity_kind(activity_kind)
        now = ensure_aware(now, field="now")
        xp_amount = self.rewards.amount_for(kind)
        description = description or ACTIVITY_DESCRIPTIONS[kind]
        cap = self.daily_caps.get(kind)

        async with self.store.transaction(user_id) as txn:
            progression, _ = await txn.load_progression()

            if cap is not None:
                since = get_day_start_utc(now, self.calendar_tz)
                awarded_today = await txn.count_activities_since(kind, since)
                if awarded_today >= cap:
                    xp_awards_capped_total.labels(activity_kind=kind.value).inc()
                    logger.info(
                        f"Daily cap reached for user {user_id} on {kind.value} "
                        f"({awarded_today}/{cap}), no XP awarded"
                    )
                    return {
                        "awarded": False,
                        "xp_earned": 0,
                        "total_xp": progression.total_xp,
                        "level": progression.level,
                        "level_up": False,
                    }

            award = await self._award_in_transaction(txn, progression, kind, description, xp_amount, now)

        self._record_award_metrics(kind, award)

        return {
            "awarded": True,
            "xp_earned": award["xp_earned"],
            "total_xp": award["total_xp"],
            "level": award["level"],
            "level_up": award["level_up"],
        }

    async def get_streak(self, user_id: str) -> Dict[str, Any]:
        """
        Current progression plus level progress, creating the zero-state record on first access.
        """
        progression = await self.store.get_progression(user_id)
        return {
            **progression.model_dump(),
            "progress": get_level_progress(progression.total_xp),
        }

    async def get_xp_activities(self, user_id: str, limit: int = 20) -> List[XpActivityRecord]:
        """Most recent XP activities, newest first"""
        return await self.store.get_xp_activities(user_id, limit)

    async def get_leaderboard(self, limit: int = 10) -> List[LeaderboardEntry]:
        """Top users by total XP"""
        return await self.store.get_leaderboard(limit)

    async def _award_in_transaction(
        self,
        txn: ProgressionTransaction,
        progression: UserProgression,
        kind: ActivityKind,
        description: str,
        xp_amount: int,
        now: datetime,
    ) -> Dict[str, Any]:
        await txn.append_activity(
            XpActivityRecord(
                user_id=progression.user_id,
                activity_kind=kind,
                description=description,
                xp_earned=xp_amount,
                created_at=now,
            )
        )
        award = apply_xp(progression, xp_amount)
        await txn.save_progression(progression)
        return award

    @staticmethod
    def _record_award_metrics(kind: ActivityKind, award: Dict[str, Any]) -> None:
        xp_awarded_total.labels(activity_kind=kind.value).inc(award["xp_earned"])
        if award["level_up"]:
            level_ups_total.inc()


def create_progression_service(store: Optional[ProgressionStore] = None) -> ProgressionService:
    """
    Build a ProgressionService from configuration

    Args:
        store: Storage backend; defaults to the one named by STORAGE_BACKEND
    """
    if store is None:
        if config.STORAGE_BACKEND == "memory":
            from schoolhub.gamification.memory_store import InMemoryProgressionStore
            store = InMemoryProgressionStore()
            logger.warning("Using in-memory progression store - progress is NOT persisted")
        else:
            from schoolhub.db.progression_store import PostgresProgressionStore
            store = PostgresProgressionStore()

    rewards = XpRewardTable().with_overrides(config.parse_reward_overrides(config.XP_REWARD_OVERRIDES))
    daily_caps = {ActivityKind.USE_AI_TUTOR: config.AI_TUTOR_DAILY_CAP}

    return ProgressionService(
        store,
        rewards=rewards,
        calendar_tz=config.STREAK_TIMEZONE,
        daily_caps=daily_caps,
    )
