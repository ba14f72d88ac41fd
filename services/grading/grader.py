from __future__ import annotations

"""
grader
------
Runs the answer evaluator over an ordered question list and aggregates the
attempt into a `GradingOutcome` (points, rounded percentage, pass/fail).
Includes lightweight Prometheus metrics on the grading path.
"""

import logging
import time
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from prometheus_client import Counter, Histogram

from packages.schemas.grading import AUTO_GRADED_TYPES, Answer, EvaluationResult, GradingOutcome
from .evaluator import evaluate
from .rounding import round_half_up

log = logging.getLogger(__name__)

# -------- Observability (Prometheus) --------
_GRADINGS = Counter(
    "grading_outcomes_total",
    "Total number of graded attempts, labeled by pass/fail.",
    ["result"],
)
_GRADE_SECONDS = Histogram(
    "grading_grade_seconds",
    "Latency of grade() in seconds.",
)


def align_answers(answers: Iterable[Answer], question_count: int) -> List[Optional[Answer]]:
    """Place answers at their `question_index`; unanswered slots stay None.

    Indices outside the question range are ignored; a later answer for the
    same index replaces an earlier one.
    """
    slots: List[Optional[Answer]] = [None] * question_count
    for a in answers:
        if 0 <= a.question_index < question_count:
            slots[a.question_index] = a
        else:
            log.warning("dropping answer for out-of-range question_index=%s", a.question_index)
    return slots


def grade(questions: Sequence, answers: Sequence, passing_score: float) -> GradingOutcome:
    """Grade an attempt question-by-question in lockstep.

    Args:
        questions: Ordered question models.
        answers: Ordered answers (`Answer`, raw values or None); may be shorter
            than `questions`, missing entries count as unanswered.
        passing_score: Minimum percentage to pass.

    Returns:
        A fresh `GradingOutcome`; percentage is 0 when there are no points.

    Raises:
        ConfigurationError: a question definition is not gradable.
    """
    t0 = time.time()
    results: List[EvaluationResult] = []
    for index, question in enumerate(questions):
        answer = answers[index] if index < len(answers) else None
        results.append(evaluate(question, answer))

    total = sum(q.points for q in questions)
    earned = sum(r.points_earned for r in results)
    percentage = round_half_up(earned / total * 100) if total > 0 else 0
    percentage = max(0, min(100, percentage))
    passed = percentage >= passing_score
    outcome = GradingOutcome(
        earned_points=earned,
        total_points=total,
        percentage=percentage,
        correct_count=sum(1 for r in results if r.is_correct is True),
        passed=passed,
        passing_score=passing_score,
        results=tuple(results),
    )

    _GRADINGS.labels(result="passed" if passed else "failed").inc()
    _GRADE_SECONDS.observe(time.time() - t0)
    log.debug("graded %d questions: %s/%s (%s%%)", len(results), earned, total, percentage)
    return outcome


def itemized_score(results: Sequence[EvaluationResult], manual_scores: Optional[Mapping[int, float]] = None) -> float:
    """Sum per-answer scores, taking an instructor's per-answer score over the auto score.

    Args:
        results: Evaluation results ordered by question index.
        manual_scores: question_index -> manually awarded points.
    """
    manual: Dict[int, float] = dict(manual_scores or {})
    total = 0.0
    for index, r in enumerate(results):
        if index in manual:
            total += min(max(0.0, manual[index]), r.points_possible)
        else:
            total += r.points_earned
    return total


def auto_gradable(questions: Sequence) -> bool:
    """True when every question is graded without an instructor."""
    return bool(questions) and all(q.type in AUTO_GRADED_TYPES for q in questions)
