"""
Service Layer Package

Business logic between the HTTP layer and the progression store.

Core Services:
- ProgressionService: daily login streaks, XP awards, leaderboards
"""

from schoolhub.services.progression_service import ProgressionService, create_progression_service

__all__ = [
    "ProgressionService",
    "create_progression_service",
]
