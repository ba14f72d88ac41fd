"""Tests for placement level assignment."""

import pytest

from packages.schemas.placement import GroupScore, PlacementBreakdown
from services.grading.evaluator import parse_question
from services.grading.placement import (
    analyze_performance,
    assign_level,
    build_breakdown,
    grade_placement,
    level_for_score,
)
from services.grading.grader import grade


@pytest.mark.parametrize(
    "score,level",
    [(0, "beginner"), (49.999, "beginner"), (50, "intermediate"), (55, "intermediate"),
     (79.99, "intermediate"), (80, "advanced"), (100, "advanced")],
)
def test_level_thresholds(score, level) -> None:
    if level_for_score(score) != level:
        pytest.fail(f"{score} -> {level_for_score(score)}, expected {level}")


def test_assign_level_intermediate_metadata() -> None:
    outcome = assign_level(PlacementBreakdown(), 55)
    assert outcome.assigned_level == "intermediate"
    assert outcome.level_code == "B1-B2"
    assert outcome.duration_weeks == 8
    assert len(outcome.feedback.recommendations) == 5


def _breakdown() -> PlacementBreakdown:
    return PlacementBreakdown(
        total_questions=20,
        correct_answers=12,
        category_scores=(
            GroupScore(name="networking", total_questions=4, correct_answers=4, percentage=100),
            GroupScore(name="security", total_questions=4, correct_answers=1, percentage=25),
            GroupScore(name="database", total_questions=4, correct_answers=3, percentage=75),
            GroupScore(name="algorithms", total_questions=4, correct_answers=2, percentage=50),
        ),
        skill_scores=(
            GroupScore(name="recognition", total_questions=10, correct_answers=8, percentage=80),
            GroupScore(name="application", total_questions=10, correct_answers=4, percentage=40),
        ),
    )


def test_strengths_and_weaknesses_are_ranked_and_exclusive() -> None:
    strengths, weaknesses = analyze_performance(_breakdown(), strength_from=75, weakness_below=50)
    assert strengths == ["Networking (100%)", "Term Recognition", "Database Systems (75%)"]
    assert weaknesses == ["Cybersecurity (25%)", "Practical Application"]
    assert not any("Algorithms" in s for s in strengths + weaknesses)


def test_lists_capped_at_five() -> None:
    groups = tuple(GroupScore(name=f"c{i}", total_questions=1, correct_answers=1, percentage=100) for i in range(8))
    strengths, _ = analyze_performance(PlacementBreakdown(category_scores=groups))
    assert len(strengths) == 5


def test_feedback_is_deterministic_and_names_top_areas() -> None:
    a = assign_level(_breakdown(), 60)
    b = assign_level(_breakdown(), 60)
    assert a == b
    assert "Networking (100%)" in a.feedback.headline
    assert "Cybersecurity (25%)" in a.feedback.headline
    assert a.feedback.summary.startswith("Good job! You scored 60%")
    assert a.feedback.strengths[0] == "Strong in Networking (100%)"


def test_feedback_defaults_without_labels() -> None:
    fb = assign_level(PlacementBreakdown(), 30).feedback
    assert fb.strengths == ("Keep practicing to develop your strengths!",)
    assert fb.weaknesses == ("Well-rounded performance across all areas!",)


def test_grade_placement_uses_correct_count_not_points() -> None:
    questions = [
        parse_question({"id": "a", "type": "multiple-choice", "points": 10, "correct_answer": "A",
                        "category": "networking", "difficulty": "hard", "skills": ["recognition"]}),
        parse_question({"id": "b", "type": "multiple-choice", "points": 1, "correct_answer": "A",
                        "category": "security", "difficulty": "easy", "skills": ["recognition"]}),
    ]
    outcome = grade_placement(questions, ["B", "A"])
    assert outcome.percentage_score == 50
    assert outcome.assigned_level == "intermediate"
    assert outcome.correct_answers == 1
    by_cat = {g.name: g.percentage for g in outcome.category_scores}
    assert by_cat == {"networking": 0, "security": 100}
    assert outcome.skill_scores[0].total_questions == 2


def test_build_breakdown_defaults_buckets() -> None:
    questions = [parse_question({"id": "a", "type": "true-false", "correct_answer": True})]
    breakdown = build_breakdown(questions, grade(questions, [True], 0))
    assert breakdown.category_scores[0].name == "general"
    assert breakdown.difficulty_scores[0].name == "medium"
