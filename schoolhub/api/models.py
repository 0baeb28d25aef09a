"""Pydantic models for API request/response validation"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model serialized with camelCase keys for the web client"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class XpAwardRequest(ApiModel):
    """Request to award XP for an action"""
    action: str = Field(..., description="Activity kind, e.g. quiz_completion")
    description: str = Field(default="", description="Label shown in the activity feed")
    xp_amount: StrictInt = Field(..., description="XP to grant (positive integer, no coercion)")


class ActivityRequest(ApiModel):
    """Request to award the standard reward for an activity"""
    action: str = Field(..., description="Activity kind, e.g. use_ai_tutor")
    description: Optional[str] = Field(default=None, description="Optional feed label")


class LoginResponse(ApiModel):
    """Result of a daily login"""
    streak: int
    longest_streak: int
    xp_earned: int
    total_xp: int
    level: int
    level_up: bool


class XpAwardResponse(ApiModel):
    """Result of an XP award"""
    xp_earned: int
    total_xp: int
    level: int
    level_up: bool


class ActivityAwardResponse(XpAwardResponse):
    """Result of an activity award (awarded is False when a daily cap applied)"""
    awarded: bool


class LevelProgress(ApiModel):
    """Progress toward the next level"""
    level: int
    xp_for_current_level: int
    xp_into_current_level: int
    xp_needed_for_next_level: int
    xp_to_next_level: int
    progress_percent: int


class StreakResponse(ApiModel):
    """User's streak and XP record"""
    user_id: str
    current_streak: int
    longest_streak: int
    last_activity_at: Optional[datetime] = None
    total_xp: int
    level: int
    progress: LevelProgress


class XpActivityResponse(ApiModel):
    """One XP ledger entry"""
    id: Optional[int] = None
    user_id: str
    activity: str
    description: str
    xp_earned: int
    created_at: datetime


class LeaderboardUser(ApiModel):
    """User reference on the leaderboard"""
    id: str


class LeaderboardEntryResponse(ApiModel):
    """Leaderboard row"""
    user: LeaderboardUser
    total_xp: int
    level: int


class HealthCheckResponse(ApiModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    storage: str = Field(..., description="Storage backend status")
    timestamp: datetime = Field(..., description="Check timestamp")
