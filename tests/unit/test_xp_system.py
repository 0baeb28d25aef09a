"""Unit tests for XP and Leveling System (schoolhub/gamification/xp_system.py)"""
import pytest

from schoolhub.exceptions import InvalidXpAmountError, ValidationError
from schoolhub.gamification.xp_system import (
    XP_ACTIONS,
    XpRewardTable,
    apply_xp,
    calculate_level_from_xp,
    get_level_progress,
    parse_activity_kind,
    validate_xp_amount,
    xp_for_level,
)
from schoolhub.models.progression import ActivityKind, UserProgression


# ============================================================================
# Level Calculation Tests
# ============================================================================

def test_calculate_level_from_xp_level_1_zero():
    """Test level 1 with 0 XP"""
    assert calculate_level_from_xp(0) == 1


def test_calculate_level_from_xp_boundaries():
    """Test values either side of level boundaries"""
    assert calculate_level_from_xp(999) == 1
    assert calculate_level_from_xp(1000) == 2
    assert calculate_level_from_xp(1999) == 2
    assert calculate_level_from_xp(2000) == 3


def test_calculate_level_from_xp_large_values():
    """Test very large XP values"""
    assert calculate_level_from_xp(123_456) == 124


def test_xp_for_level():
    """Test XP threshold where each level starts"""
    assert xp_for_level(1) == 0
    assert xp_for_level(2) == 1000
    assert xp_for_level(10) == 9000


def test_get_level_progress_mid_level():
    """Test progress display values within a level"""
    progress = get_level_progress(2350)

    assert progress["level"] == 3
    assert progress["xp_for_current_level"] == 2000
    assert progress["xp_into_current_level"] == 350
    assert progress["xp_needed_for_next_level"] == 1000
    assert progress["xp_to_next_level"] == 650
    assert progress["progress_percent"] == 35


def test_get_level_progress_exact_boundary():
    """Test progress resets to zero exactly on a level boundary"""
    progress = get_level_progress(1000)

    assert progress["level"] == 2
    assert progress["xp_into_current_level"] == 0
    assert progress["progress_percent"] == 0


# ============================================================================
# XP Amount Validation Tests
# ============================================================================

@pytest.mark.parametrize("amount", [0, -5, 2.5, "10", None, True])
def test_validate_xp_amount_rejects_invalid(amount):
    """Test non-positive and non-integer amounts are rejected"""
    with pytest.raises(InvalidXpAmountError) as exc_info:
        validate_xp_amount(amount)

    assert exc_info.value.field == "xp_amount"


def test_validate_xp_amount_accepts_positive_int():
    """Test positive integers pass through"""
    assert validate_xp_amount(1) == 1
    assert validate_xp_amount(500) == 500


# ============================================================================
# Apply XP Tests
# ============================================================================

def test_apply_xp_level_up():
    """Test crossing a level boundary reports level_up"""
    progression = UserProgression(user_id="u1", total_xp=990, level=1)

    result = apply_xp(progression, 20)

    assert result["total_xp"] == 1010
    assert result["level"] == 2
    assert result["old_level"] == 1
    assert result["level_up"] is True
    assert progression.total_xp == 1010
    assert progression.level == 2


def test_apply_xp_no_level_up():
    """Test XP within a level keeps the level"""
    progression = UserProgression(user_id="u1", total_xp=100, level=1)

    result = apply_xp(progression, 20)

    assert result["total_xp"] == 120
    assert result["level"] == 1
    assert result["level_up"] is False


def test_apply_xp_multiple_levels_at_once():
    """Test a big award can skip several levels"""
    progression = UserProgression(user_id="u1", total_xp=500, level=1)

    result = apply_xp(progression, 2600)

    assert result["level"] == 4
    assert result["level_up"] is True


def test_apply_xp_leaves_streak_fields_alone(base_time):
    """Test XP awards never touch streak state"""
    progression = UserProgression(
        user_id="u1", current_streak=4, longest_streak=9, last_activity_at=base_time
    )

    apply_xp(progression, 50)

    assert progression.current_streak == 4
    assert progression.longest_streak == 9
    assert progression.last_activity_at == base_time


def test_apply_xp_rejects_invalid_amount_without_mutation():
    """Test an invalid amount leaves the record unchanged"""
    progression = UserProgression(user_id="u1", total_xp=300, level=1)

    with pytest.raises(InvalidXpAmountError):
        apply_xp(progression, 0)

    assert progression.total_xp == 300


# ============================================================================
# Reward Table Tests
# ============================================================================

def test_default_reward_table_matches_xp_actions():
    """Test defaults replicate the reward constants"""
    rewards = XpRewardTable()

    assert rewards.amount_for(ActivityKind.DAILY_LOGIN) == XP_ACTIONS["DAILY_LOGIN"] == 10
    assert rewards.amount_for("quiz_completion") == 50
    assert rewards.amount_for("perfect_quiz") == 100
    assert rewards.amount_for("homework_help") == 15
    assert rewards.amount_for("streak_milestone") == 70
    assert rewards.amount_for("challenge_complete") == 75
    assert rewards.amount_for("watch_video") == 20
    assert rewards.amount_for("flashcards") == 25
    assert rewards.amount_for("use_ai_tutor") == 5


def test_reward_table_overrides_return_new_table():
    """Test overrides do not mutate the original table"""
    base = XpRewardTable()
    tuned = base.with_overrides({"daily_login": 15})

    assert tuned.amount_for("daily_login") == 15
    assert tuned.amount_for("quiz_completion") == 50
    assert base.amount_for("daily_login") == 10


def test_reward_table_rejects_bad_overrides():
    """Test unknown kinds and bad amounts are rejected"""
    with pytest.raises(ValidationError):
        XpRewardTable().with_overrides({"napping": 5})

    with pytest.raises(InvalidXpAmountError):
        XpRewardTable().with_overrides({"daily_login": 0})


def test_parse_activity_kind_unknown():
    """Test unknown activity tags raise ValidationError"""
    with pytest.raises(ValidationError) as exc_info:
        parse_activity_kind("speedrun")

    assert exc_info.value.field == "activity_kind"
