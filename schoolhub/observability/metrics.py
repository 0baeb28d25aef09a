"""
Prometheus metrics definitions for the progression service.

Categories:
- Progression metrics: XP awarded, logins by streak transition, level-ups
- Storage metrics: persistence failures

Metrics are exposed at the /metrics endpoint for Prometheus scraping.
"""

import logging
from prometheus_client import Counter

logger = logging.getLogger(__name__)

# =============================================================================
# Progression Metrics
# =============================================================================

xp_awarded_total = Counter(
    "xp_awarded_total",
    "Total XP awarded to users",
    ["activity_kind"],
)

xp_awards_capped_total = Counter(
    "xp_awards_capped_total",
    "XP awards skipped because a daily cap was reached",
    ["activity_kind"],
)

daily_logins_total = Counter(
    "daily_logins_total",
    "Daily logins recorded",
    ["transition"],  # transition: first_login/same_day/next_day/broken
)

level_ups_total = Counter(
    "level_ups_total",
    "Number of times a user reached a new level",
)

# =============================================================================
# Storage Metrics
# =============================================================================

progression_store_errors_total = Counter(
    "progression_store_errors_total",
    "Persistence failures in the progression store",
    ["operation"],
)
