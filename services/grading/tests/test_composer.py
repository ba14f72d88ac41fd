"""Tests for submission score composition."""

from datetime import datetime, timedelta

import pytest

from packages.common.errors import ConfigurationError
from packages.schemas.grading import CriterionScore, LatePolicy, PeerReviewScore, PeerReviewSettings
from services.grading.composer import (
    aggregate_peer_reviews,
    compose,
    days_late,
    is_open,
    late_penalty_percent,
    normalize_review,
)

DUE = datetime(2024, 3, 10, 23, 59)
POLICY = LatePolicy(per_day_penalty_percent=10, max_late_days=3)


def _compose(**kw):
    args = dict(
        raw_auto_score=80,
        manual_score=None,
        submitted_at=DUE - timedelta(hours=1),
        due_date=DUE,
        late_policy=POLICY,
        total_points=100,
        passing_score=60,
    )
    args.update(kw)
    return compose(**args)


def test_on_time_submission_has_no_penalty() -> None:
    s = _compose()
    assert s.is_late is False
    assert s.late_penalty_percent == 0
    assert s.final_score == 80
    assert s.percentage == 80
    assert s.passed is True


def test_one_day_late_deducts_ten_percent_of_score() -> None:
    s = _compose(submitted_at=DUE + timedelta(days=1))
    assert s.days_late == 1
    assert s.late_penalty_percent == 10
    assert s.final_score == pytest.approx(72)
    assert s.percentage == 72


def test_partial_day_counts_as_whole_day() -> None:
    assert days_late(DUE + timedelta(minutes=1), DUE) == 1
    assert days_late(DUE + timedelta(days=1, seconds=1), DUE) == 2
    assert days_late(DUE, DUE) == 0


def test_penalty_is_capped_at_max_late_days() -> None:
    assert late_penalty_percent(DUE + timedelta(days=10), DUE, POLICY) == 30
    assert _compose(submitted_at=DUE + timedelta(days=10)).final_score == pytest.approx(56)


def test_penalty_is_monotonic_in_days_late() -> None:
    finals = [_compose(submitted_at=DUE + timedelta(days=d)).final_score for d in range(0, 6)]
    assert all(a >= b for a, b in zip(finals, finals[1:]))


def test_final_score_never_negative() -> None:
    heavy = LatePolicy(per_day_penalty_percent=60, max_late_days=3)
    s = _compose(submitted_at=DUE + timedelta(days=3), late_policy=heavy)
    assert s.final_score == 0
    assert s.percentage == 0


def test_manual_score_overrides_auto_score() -> None:
    s = _compose(raw_auto_score=30, manual_score=90)
    assert s.raw_score == 90
    assert s.percentage == 90
    # zero is still an override
    assert _compose(raw_auto_score=30, manual_score=0).percentage == 0


def test_compose_is_idempotent() -> None:
    kw = dict(submitted_at=DUE + timedelta(days=2), raw_auto_score=67.5)
    assert _compose(**kw).model_dump_json() == _compose(**kw).model_dump_json()


@pytest.mark.parametrize("total", [0, -5])
def test_non_positive_total_points_is_configuration_error(total) -> None:
    with pytest.raises(ConfigurationError):
        _compose(total_points=total)


def test_peer_review_blend_replaces_percentage() -> None:
    settings = PeerReviewSettings(enabled=True, reviews_required=2, peer_review_weight=20)
    s = _compose(raw_auto_score=70, peer_review=PeerReviewScore(average=90, reviews_received=2), peer_settings=settings)
    assert s.peer_blended is True
    assert s.percentage == 74
    assert s.peer_review_score == 90


def test_peer_blend_ignores_late_penalty() -> None:
    settings = PeerReviewSettings(enabled=True, reviews_required=2, peer_review_weight=20)
    s = _compose(
        raw_auto_score=70,
        submitted_at=DUE + timedelta(days=2),
        peer_review=PeerReviewScore(average=90, reviews_received=2),
        peer_settings=settings,
    )
    assert s.late_penalty_percent == 20
    assert s.percentage == 74


def test_no_blend_until_enough_reviews() -> None:
    settings = PeerReviewSettings(enabled=True, reviews_required=3, peer_review_weight=20)
    s = _compose(raw_auto_score=70, peer_review=PeerReviewScore(average=90, reviews_received=2), peer_settings=settings)
    assert s.peer_blended is False
    assert s.percentage == 70


def test_weights_must_sum_to_hundred() -> None:
    bad = PeerReviewSettings(enabled=True, peer_review_weight=20, instructor_weight=70)
    with pytest.raises(ConfigurationError):
        _compose(peer_review=PeerReviewScore(average=90, reviews_received=2), peer_settings=bad)


def test_normalize_and_aggregate_reviews() -> None:
    review = [CriterionScore(criteria="clarity", score=4, max_score=5), CriterionScore(criteria="depth", score=9, max_score=10)]
    assert normalize_review(review) == 87  # 13/15 = 86.67
    agg = aggregate_peer_reviews([85, 95, 90])
    assert agg.average == 90 and agg.reviews_received == 3
    assert aggregate_peer_reviews([]).reviews_received == 0
    with pytest.raises(ConfigurationError):
        normalize_review([CriterionScore(criteria="x", score=0, max_score=0)])


def test_is_open_window() -> None:
    start = DUE - timedelta(days=7)
    assert is_open(DUE - timedelta(days=1), start, DUE) is True
    assert is_open(start - timedelta(seconds=1), start, DUE) is False
    assert is_open(DUE + timedelta(days=1), start, DUE) is False
    assert is_open(DUE + timedelta(days=1), start, DUE, late_due_date=DUE + timedelta(days=2)) is True
    assert is_open(DUE - timedelta(days=1), start, DUE, status="closed") is False


@pytest.fixture
def env_settings(monkeypatch):
    from packages.common.config import get_settings

    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


def test_policy_defaults_follow_environment(env_settings) -> None:
    from packages.schemas.coursework import AssignmentDefinition

    env_settings.setenv("PEER_REVIEW_WEIGHT", "40")
    env_settings.setenv("PEER_REVIEWS_REQUIRED", "3")
    env_settings.setenv("LATE_PENALTY_PER_DAY", "5")
    env_settings.setenv("MAX_LATE_DAYS", "7")
    env_settings.setenv("DEFAULT_PASSING_SCORE", "70")

    peer = PeerReviewSettings(enabled=True)
    assert (peer.peer_review_weight, peer.reviews_required) == (40, 3)
    late = LatePolicy()
    assert (late.per_day_penalty_percent, late.max_late_days) == (5, 7)
    a = AssignmentDefinition(id="a", title="t", available_from=DUE - timedelta(days=1), due_date=DUE)
    assert a.late_policy == late
    assert a.peer_review.reviews_required == 3
    assert a.passing_score == 70


def test_manual_override_above_total_is_capped() -> None:
    s = _compose(manual_score=130)
    assert s.final_score == 100
    assert s.percentage == 100
