"""API routes for streaks, XP and leaderboards"""
import logging
from typing import List
from fastapi import APIRouter, Depends, Query, Request, Response, status
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from schoolhub.api.auth import verify_api_key
from schoolhub.api.middleware import limiter
from schoolhub.api.models import (
    XpAwardRequest, XpAwardResponse,
    ActivityRequest, ActivityAwardResponse,
    LoginResponse, StreakResponse,
    XpActivityResponse,
    LeaderboardEntryResponse, LeaderboardUser,
    HealthCheckResponse,
)
from schoolhub.services.progression_service import ProgressionService
from schoolhub.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)

router = APIRouter()


def get_progression_service(request: Request) -> ProgressionService:
    """Service instance attached to the app at startup"""
    return request.app.state.progression_service


@router.post("/api/v1/users/{user_id}/login", response_model=LoginResponse)
@limiter.limit("30/minute")
async def record_login(
    request: Request,
    user_id: str,
    service: ProgressionService = Depends(get_progression_service),
    api_key: str = Depends(verify_api_key)
):
    """
    Record a session start: update the daily streak and grant login XP

    Rate limit: 30/minute
    """
    result = await service.record_daily_login(user_id, now_utc())

    return LoginResponse(
        streak=result["current_streak"],
        longest_streak=result["longest_streak"],
        xp_earned=result["xp_earned"],
        total_xp=result["total_xp"],
        level=result["level"],
        level_up=result["level_up"],
    )


@router.post("/api/v1/users/{user_id}/xp", response_model=XpAwardResponse)
@limiter.limit("60/minute")
async def award_xp_endpoint(
    request: Request,
    user_id: str,
    payload: XpAwardRequest,
    service: ProgressionService = Depends(get_progression_service),
    api_key: str = Depends(verify_api_key)
):
    """Award an explicit amount of XP for an action (Rate limit: 60/minute)"""
    result = await service.award_xp(
        user_id,
        payload.action,
        payload.description,
        payload.xp_amount,
        now_utc(),
    )
    return XpAwardResponse(**result)


@router.post("/api/v1/users/{user_id}/activities", response_model=ActivityAwardResponse)
@limiter.limit("60/minute")
async def award_activity_endpoint(
    request: Request,
    user_id: str,
    payload: ActivityRequest,
    service: ProgressionService = Depends(get_progression_service),
    api_key: str = Depends(verify_api_key)
):
    """
    Award the standard XP for an activity, subject to daily caps

    Rate limit: 60/minute
    """
    result = await service.award_activity(
        user_id,
        payload.action,
        now_utc(),
        description=payload.description,
    )
    return ActivityAwardResponse(**result)


@router.get("/api/v1/users/{user_id}/streak", response_model=StreakResponse)
@limiter.limit("60/minute")
async def get_streak_endpoint(
    request: Request,
    user_id: str,
    service: ProgressionService = Depends(get_progression_service),
    api_key: str = Depends(verify_api_key)
):
    """Get streak, XP and level progress (Rate limit: 60/minute)"""
    streak = await service.get_streak(user_id)
    return StreakResponse(**streak)


@router.get("/api/v1/users/{user_id}/xp-activities", response_model=List[XpActivityResponse])
@limiter.limit("60/minute")
async def get_xp_activities_endpoint(
    request: Request,
    user_id: str,
    limit: int = Query(20, ge=1, le=100),
    service: ProgressionService = Depends(get_progression_service),
    api_key: str = Depends(verify_api_key)
):
    """Get most recent XP activities, newest first (Rate limit: 60/minute)"""
    activities = await service.get_xp_activities(user_id, limit)

    return [
        XpActivityResponse(
            id=a.id,
            user_id=a.user_id,
            activity=a.activity_kind.value,
            description=a.description,
            xp_earned=a.xp_earned,
            created_at=a.created_at,
        )
        for a in activities
    ]


@router.get("/api/v1/xp-leaderboard", response_model=List[LeaderboardEntryResponse])
@limiter.limit("60/minute")
async def get_xp_leaderboard(
    request: Request,
    limit: int = Query(10, ge=1, le=100),
    service: ProgressionService = Depends(get_progression_service),
    api_key: str = Depends(verify_api_key)
):
    """Get top users by total XP (Rate limit: 60/minute)"""
    entries = await service.get_leaderboard(limit)

    return [
        LeaderboardEntryResponse(
            user=LeaderboardUser(id=e.user_id),
            total_xp=e.total_xp,
            level=e.level,
        )
        for e in entries
    ]


@router.get("/api/health", response_model=HealthCheckResponse)
@limiter.limit("60/minute")
async def health_check(
    request: Request,
    response: Response,
    service: ProgressionService = Depends(get_progression_service)
):
    """Health check endpoint (Rate limit: 60/minute for monitoring systems)"""
    storage_ok = await service.store.ping()
    if not storage_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthCheckResponse(
        status="healthy" if storage_ok else "degraded",
        storage="connected" if storage_ok else "unreachable",
        timestamp=now_utc(),
    )


@router.get("/metrics")
async def metrics():
    """
    Prometheus metrics endpoint.

    Returns:
        Metrics in Prometheus exposition format
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
