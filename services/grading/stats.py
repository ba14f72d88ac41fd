"""Reporting over graded work: assignment statistics, per-question analysis,
weighted course grade and module progress."""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from packages.common.errors import ConfigurationError
from packages.schemas.grading import (
    AssignmentStats,
    CourseGrade,
    GradingOutcome,
    QuestionStats,
    ScoreBucket,
    SubmissionScore,
)
from .rounding import round_half_up

DEFAULT_COURSE_WEIGHTS = {"quizzes": 30, "assignments": 40, "attendance": 15, "final_exam": 15}

# (label, low inclusive, high exclusive); the last bucket includes 100
_BUCKETS = (("0-20", 0, 20), ("20-40", 20, 40), ("40-60", 40, 60), ("60-80", 60, 80), ("80-100", 80, 101))

_LETTERS = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))


def assignment_stats(scores: Sequence[SubmissionScore]) -> AssignmentStats:
    """Summarize the graded submissions of one assignment."""
    if not scores:
        return AssignmentStats()
    percentages = [s.percentage for s in scores]
    passed = sum(1 for s in scores if s.passed)
    return AssignmentStats(
        graded_submissions=len(scores),
        average_score=round_half_up(sum(percentages) / len(percentages)),
        highest_score=max(percentages),
        lowest_score=min(percentages),
        pass_rate=round_half_up(passed / len(scores) * 100),
        passed_count=passed,
        failed_count=len(scores) - passed,
        score_distribution=tuple(
            ScoreBucket(range=label, count=sum(1 for p in percentages if low <= p < high))
            for label, low, high in _BUCKETS
        ),
        late_submissions=sum(1 for s in scores if s.is_late),
    )


def question_analysis(questions: Sequence, outcomes: Sequence[GradingOutcome]) -> list[QuestionStats]:
    """Correct rate and average points per question across graded attempts."""
    analysis = []
    for index, question in enumerate(questions):
        results = [o.results[index] for o in outcomes if index < len(o.results)]
        n = len(results)
        correct = sum(1 for r in results if r.is_correct is True)
        points = sum(r.points_earned for r in results)
        analysis.append(
            QuestionStats(
                question_index=index,
                question_id=question.id,
                correct_rate=round_half_up(correct / n * 100) if n else 0,
                average_score=round_half_up(points / n) if n else 0,
            )
        )
    return analysis


def letter_grade(grade: float) -> str:
    for floor, letter in _LETTERS:
        if grade >= floor:
            return letter
    return "F"


def course_grade(averages: Mapping[str, Optional[float]], weights: Optional[Mapping[str, float]] = None) -> CourseGrade:
    """Weighted overall course grade.

    Args:
        averages: Component averages (0..100) keyed like the weights; missing
            components count as 0.
        weights: Component weights in percent; must sum to 100.

    Raises:
        ConfigurationError: weights do not sum to 100.
    """
    weights = dict(weights or DEFAULT_COURSE_WEIGHTS)
    if abs(sum(weights.values()) - 100) > 1e-9:
        raise ConfigurationError(f"course grade weights must sum to 100, got {sum(weights.values())}")
    overall = sum((averages.get(k) or 0) * w / 100 for k, w in weights.items())
    # the letter uses the unrounded grade
    return CourseGrade(overall_grade=round_half_up(overall), letter_grade=letter_grade(overall))


def module_progress(lessons_completed: int, total_lessons: int, quiz_passed: bool, quiz_required: bool = True) -> int:
    """Lessons weigh 70% (100% without a quiz), a passed quiz adds 30%; capped at 100."""
    lesson_weight = 70 if quiz_required else 100
    progress = lessons_completed / total_lessons * lesson_weight if total_lessons > 0 else 0
    if quiz_required and quiz_passed:
        progress += 30
    return min(round_half_up(progress), 100)
