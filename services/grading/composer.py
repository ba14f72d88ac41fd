# services/grading/composer.py
"""Submission score composition.

Combines the auto-graded (or manual override) score with the late-submission
penalty and, once enough reviews are in, the peer-review score. Every function
here is pure: same inputs, same `SubmissionScore`.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from prometheus_client import Counter

from packages.common.errors import ConfigurationError
from packages.schemas.grading import (
    CriterionScore,
    LatePolicy,
    PeerReviewScore,
    PeerReviewSettings,
    SubmissionScore,
)
from .rounding import clamp, round_half_up

log = logging.getLogger(__name__)

_LATE_SUBMISSIONS = Counter("grading_late_submissions_total", "Composed scores that carried a late penalty.")
_PEER_BLENDS = Counter("grading_peer_blends_total", "Composed scores blended with peer reviews.")

_DAY = timedelta(days=1)


def is_late(submitted_at: datetime, due_date: datetime) -> bool:
    return submitted_at > due_date


def days_late(submitted_at: datetime, due_date: datetime) -> int:
    """Whole days past the due date, any part of a day counting as one."""
    if not is_late(submitted_at, due_date):
        return 0
    return math.ceil((submitted_at - due_date) / _DAY)


def late_penalty_percent(submitted_at: datetime, due_date: datetime, policy: LatePolicy) -> float:
    """Percentage of the score deducted, capped at `policy.max_late_days` days."""
    effective = min(days_late(submitted_at, due_date), policy.max_late_days)
    return effective * policy.per_day_penalty_percent


def is_open(
    now: datetime,
    available_from: datetime,
    due_date: datetime,
    late_due_date: Optional[datetime] = None,
    status: str = "published",
) -> bool:
    """Whether a published assignment accepts submissions at `now`."""
    if status != "published" or now < available_from:
        return False
    return now <= due_date or (late_due_date is not None and now <= late_due_date)


def resolve_weights(settings: PeerReviewSettings) -> tuple[float, float]:
    """Return (instructor_weight, peer_weight), validated to sum to 100.

    Raises:
        ConfigurationError: weights outside 0..100 or not summing to 100.
    """
    peer = settings.peer_review_weight
    instructor = settings.instructor_weight if settings.instructor_weight is not None else 100 - peer
    if not (0 <= peer <= 100 and 0 <= instructor <= 100) or not math.isclose(peer + instructor, 100):
        raise ConfigurationError(
            f"peer review weights must sum to 100 (instructor={instructor}, peer={peer})"
        )
    return instructor, peer


def normalize_review(scores: Sequence[CriterionScore]) -> int:
    """Normalize one rubric-based review to a 0..100 total score.

    Raises:
        ConfigurationError: the rubric has no attainable points.
    """
    max_total = sum(s.max_score for s in scores)
    if max_total <= 0:
        raise ConfigurationError("peer review rubric has no attainable points")
    total = sum(min(s.score, s.max_score) for s in scores)
    return round_half_up(total / max_total * 100)


def aggregate_peer_reviews(total_scores: Iterable[float]) -> PeerReviewScore:
    """Average the reviewers' normalized `total_score` values (rounded)."""
    values = [float(v) for v in total_scores]
    if not values:
        return PeerReviewScore(average=0, reviews_received=0)
    return PeerReviewScore(average=round_half_up(sum(values) / len(values)), reviews_received=len(values))


def compose(
    raw_auto_score: float,
    manual_score: Optional[float],
    submitted_at: datetime,
    due_date: datetime,
    late_policy: LatePolicy,
    total_points: float,
    passing_score: float,
    peer_review: Optional[PeerReviewScore] = None,
    peer_settings: Optional[PeerReviewSettings] = None,
) -> SubmissionScore:
    """Compose the final submission score.

    Args:
        raw_auto_score: Sum of per-answer (auto or manual) scores.
        manual_score: Instructor's overall score; replaces `raw_auto_score` when not None.
        submitted_at: Submission timestamp.
        due_date: Assignment due date.
        late_policy: Per-day penalty and cap.
        total_points: Assignment total; must be positive.
        passing_score: Minimum percentage to pass.
        peer_review: Aggregated received reviews, if any.
        peer_settings: Peer review configuration; blending happens only when
            enabled and `reviews_received >= reviews_required`.

    Returns:
        The composed `SubmissionScore`. A peer blend replaces the
        late-penalty-adjusted percentage rather than compounding with it. `final_score`
        stays within `[0, total_points]` even for an oversized manual score.

    Raises:
        ConfigurationError: zero/negative total points or invalid peer weights.
    """
    if total_points <= 0:
        raise ConfigurationError(f"assignment total points must be positive, got {total_points}")

    raw = float(manual_score) if manual_score is not None else float(raw_auto_score)
    late = is_late(submitted_at, due_date)
    penalty = late_penalty_percent(submitted_at, due_date, late_policy)
    final = clamp(raw - raw * penalty / 100, 0, total_points)
    percentage = int(clamp(round_half_up(final / total_points * 100), 0, 100))
    if late:
        _LATE_SUBMISSIONS.inc()

    blended = False
    peer_value = None
    if peer_settings is not None and peer_settings.enabled:
        instructor_w, peer_w = resolve_weights(peer_settings)
        if peer_review is not None and peer_review.reviews_received >= peer_settings.reviews_required:
            raw_percent = raw / total_points * 100
            weighted = raw_percent * instructor_w / 100 + peer_review.average * peer_w / 100
            percentage = int(clamp(round_half_up(weighted), 0, 100))
            final = clamp(weighted, 0, 100) * total_points / 100
            peer_value = peer_review.average
            blended = True
            _PEER_BLENDS.inc()

    score = SubmissionScore(
        raw_score=raw,
        is_late=late,
        days_late=days_late(submitted_at, due_date),
        late_penalty_percent=penalty,
        final_score=final,
        percentage=percentage,
        passed=percentage >= passing_score,
        peer_review_score=peer_value,
        peer_blended=blended,
    )
    log.debug("composed score raw=%s penalty=%s%% pct=%s blended=%s", raw, penalty, percentage, blended)
    return score
