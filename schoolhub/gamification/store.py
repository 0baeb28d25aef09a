"""
Persistence contract for progression records and the XP ledger

Every read-modify-write of a user's progression runs inside
`store.transaction(user_id)`. Implementations must:
- serialize transactions for the same user (no lost updates)
- never make transactions for different users wait on each other
- commit all writes of a transaction together, or none of them
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import List, Tuple

from schoolhub.models.progression import (
    ActivityKind,
    LeaderboardEntry,
    UserProgression,
    XpActivityRecord,
)


class ProgressionTransaction(ABC):
    """Unit of work holding the per-user lock"""

    user_id: str

    @abstractmethod
    async def load_progression(self) -> Tuple[UserProgression, bool]:
        """
        Load the user's progression, creating the zero-state record if absent

        Returns:
            (progression, created) where created is True for a new record
        """

    @abstractmethod
    async def save_progression(self, progression: UserProgression) -> None:
        ...

    @abstractmethod
    async def append_activity(self, record: XpActivityRecord) -> XpActivityRecord:
        """Append a ledger entry, returning it with its id set"""

    @abstractmethod
    async def count_activities_since(self, activity_kind: ActivityKind, since: datetime) -> int:
        """Number of ledger entries of one kind created at or after `since`"""


class ProgressionStore(ABC):
    """Base class for progression storage backends"""

    @abstractmethod
    def transaction(self, user_id: str) -> AbstractAsyncContextManager[ProgressionTransaction]:
        ...

    async def get_progression(self, user_id: str) -> UserProgression:
        """Read a progression, persisting the zero-state record on first access"""
        async with self.transaction(user_id) as txn:
            progression, _ = await txn.load_progression()
            return progression

    @abstractmethod
    async def get_xp_activities(self, user_id: str, limit: int = 20) -> List[XpActivityRecord]:
        """Most recent ledger entries, newest first"""

    @abstractmethod
    async def get_leaderboard(self, limit: int = 10) -> List[LeaderboardEntry]:
        """Users ordered by total XP, highest first"""

    @abstractmethod
    async def ping(self) -> bool:
        """Whether the backend is reachable"""
