"""Progression models for streaks and XP"""
from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ActivityKind(str, Enum):
    """XP-earning activities"""
    DAILY_LOGIN = "daily_login"
    QUIZ_COMPLETION = "quiz_completion"
    PERFECT_QUIZ = "perfect_quiz"
    HOMEWORK_HELP = "homework_help"
    USE_AI_TUTOR = "use_ai_tutor"
    CHALLENGE_COMPLETE = "challenge_complete"
    WATCH_VIDEO = "watch_video"
    FLASHCARDS = "flashcards"
    STREAK_MILESTONE = "streak_milestone"


class UserProgression(BaseModel):
    """One user's streak and XP record"""
    user_id: str
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_activity_at: Optional[datetime] = None  # None until the first login
    total_xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class XpActivityRecord(BaseModel):
    """Append-only ledger entry for earned XP"""
    id: Optional[int] = None
    user_id: str
    activity_kind: ActivityKind
    description: str
    xp_earned: int = Field(..., gt=0)
    created_at: datetime


class LeaderboardEntry(BaseModel):
    """User ranked by total XP"""
    user_id: str
    total_xp: int
    level: int
