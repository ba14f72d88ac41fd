"""Tests for grading statistics and course-level aggregates."""

import pytest

from packages.common.errors import ConfigurationError
from packages.schemas.grading import SubmissionScore
from services.grading.evaluator import parse_question
from services.grading.grader import grade
from services.grading.stats import assignment_stats, course_grade, module_progress, question_analysis


def _score(pct: int, late: bool = False) -> SubmissionScore:
    return SubmissionScore(
        raw_score=pct, is_late=late, days_late=int(late), late_penalty_percent=0,
        final_score=pct, percentage=pct, passed=pct >= 60,
    )


def test_assignment_stats() -> None:
    stats = assignment_stats([_score(100), _score(55, late=True), _score(80), _score(19)])
    assert stats.graded_submissions == 4
    assert stats.average_score == 64  # 63.5 rounds up
    assert (stats.highest_score, stats.lowest_score) == (100, 19)
    assert stats.pass_rate == 50
    assert stats.late_submissions == 1
    assert [b.count for b in stats.score_distribution] == [1, 0, 1, 0, 2]


def test_assignment_stats_empty() -> None:
    assert assignment_stats([]).graded_submissions == 0


def test_question_analysis() -> None:
    qs = [parse_question({"id": "q1", "type": "multiple-choice", "points": 4, "correct_answer": "A"})]
    outcomes = [grade(qs, ["A"], 60), grade(qs, ["B"], 60), grade(qs, ["A"], 60)]
    [row] = question_analysis(qs, outcomes)
    assert row.correct_rate == 67
    assert row.average_score == 3  # 8 / 3 = 2.67


def test_course_grade_and_letter() -> None:
    g = course_grade({"quizzes": 90, "assignments": 85, "attendance": 100, "final_exam": 70})
    # 27 + 34 + 15 + 10.5 = 86.5
    assert g.overall_grade == 87
    assert g.letter_grade == "B"
    assert course_grade({}).letter_grade == "F"
    with pytest.raises(ConfigurationError):
        course_grade({}, {"quizzes": 50})


@pytest.mark.parametrize(
    "done,total,passed,required,expected",
    [(5, 10, False, True, 35), (10, 10, True, True, 100), (10, 10, False, False, 100), (0, 0, True, True, 30)],
)
def test_module_progress(done, total, passed, required, expected) -> None:
    assert module_progress(done, total, passed, required) == expected
