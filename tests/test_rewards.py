"""Tests for adaptation/rewards.py and adaptation/reaction.py."""
import pytest

from adaptation.reaction import score_reaction
from adaptation.rewards import compute_speed_bonus, compute_tokens
from config.settings import ReactionConfig
from data.errors import InvalidMeasurement
from data.models import GameSessionResult, ReactionMeasurement


def result(accuracy, streak, total_time):
    return GameSessionResult(score=0, accuracy_percent=accuracy, streak=streak, total_time_sec=total_time)


def test_perfect_session_reward():
    assert compute_tokens(result(100, 10, 30)).tokens_earned == 25


def test_empty_session_gets_base_reward():
    assert compute_tokens(result(0, 0, 0)).tokens_earned == 3


def test_streak_bonus_is_capped():
    assert compute_tokens(result(100, 25, 30)).tokens_earned == 25


def test_reward_rounds_half_up():
    # 3 + 1 + 1.5 = 5.5
    assert compute_tokens(result(50, 1, 0)).tokens_earned == 6


def test_reward_never_negative():
    assert compute_tokens(GameSessionResult(score=10, accuracy_percent=-500, streak=0)).tokens_earned == 0


def test_speed_bonus_window():
    assert compute_speed_bonus(0) == 0.0
    assert compute_speed_bonus(90) == 0.0
    assert compute_speed_bonus(120) == 0.0
    assert compute_speed_bonus(30) == pytest.approx(5.0)
    assert compute_speed_bonus(60) == pytest.approx(2.5)


def test_speed_bonus_grows_above_max_for_fast_sessions():
    assert compute_speed_bonus(1) == pytest.approx(5 * (1 + 29 / 60))
    assert compute_speed_bonus(1) > 5.0


def test_from_raw_sanitises_garbage():
    raw = GameSessionResult.from_raw(score="abc", accuracy=None, streak=float("nan"), total_time=True)
    assert raw.score == 0.0
    assert raw.accuracy_percent == 0.0
    assert raw.streak == 0
    assert raw.total_time_sec == 0.0
    assert raw.difficulty == 1
    assert compute_tokens(raw).tokens_earned == 3


def test_from_raw_clamps_out_of_range_values():
    raw = GameSessionResult.from_raw(
        score=-40, accuracy=100000, streak=-3, total_time=-10, difficulty=-2, questions_answered=-1
    )
    assert raw.score == 0.0
    assert raw.accuracy_percent == 100.0
    assert raw.streak == 0
    assert raw.total_time_sec == 0.0
    assert raw.difficulty == 1
    assert raw.questions_answered == 0


def test_inflated_accuracy_cannot_exceed_perfect_reward():
    raw = GameSessionResult.from_raw(score=5, accuracy=100000, streak=999, total_time=30)
    assert compute_tokens(raw).tokens_earned == 25


def test_reaction_tokens():
    assert score_reaction(ReactionMeasurement(0, 500)).tokens_earned == 20
    assert score_reaction(ReactionMeasurement(0, 3000)).tokens_earned == 3
    assert score_reaction(ReactionMeasurement(0, 100)).tokens_earned == 100


def test_slow_reaction_still_earns_one_token():
    scored = score_reaction(ReactionMeasurement(1000, 11000))
    assert scored.reaction_time_ms == 10000
    assert scored.tokens_earned == 1


@pytest.mark.parametrize("start, end", [(0, 50), (0, 99), (0, 10001), (500, 0)])
def test_reaction_out_of_range_rejected(start, end):
    with pytest.raises(InvalidMeasurement) as exc_info:
        score_reaction(ReactionMeasurement(start, end))
    assert exc_info.value.reason == "invalid_reaction_time"


def test_invalid_measurement_is_value_error():
    with pytest.raises(ValueError):
        score_reaction(ReactionMeasurement(0, 10))


def test_reaction_bounds_are_configurable():
    cfg = ReactionConfig(min_reaction_ms=50)
    assert score_reaction(ReactionMeasurement(0, 50), cfg).tokens_earned == 200
