# services/grading/placement.py
"""Placement test grading and level assignment.

The overall percentage alone decides the level; category and skill
breakdowns only label strengths and weaknesses and shape the feedback.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from prometheus_client import Counter

from packages.common.config import get_settings
from packages.schemas.grading import GradingOutcome
from packages.schemas.placement import (
    GroupScore,
    Level,
    PlacementBreakdown,
    PlacementFeedback,
    PlacementOutcome,
)
from .grader import grade
from .rounding import round_half_up

log = logging.getLogger(__name__)

_PLACEMENTS = Counter("placement_levels_total", "Assigned placement levels.", ["level"])

# level -> (code, duration in weeks)
LEVELS: Dict[str, Tuple[str, int]] = {
    "beginner": ("A1-A2", 6),
    "intermediate": ("B1-B2", 8),
    "advanced": ("C1-C2", 14),
}

INTERMEDIATE_FROM = 50
ADVANCED_FROM = 80
MAX_LISTED = 5

CATEGORY_NAMES = {
    "programming": "Programming Concepts",
    "networking": "Networking",
    "database": "Database Systems",
    "security": "Cybersecurity",
    "ai-ml": "AI & Machine Learning",
    "web-development": "Web Development",
    "data-structures": "Data Structures",
    "algorithms": "Algorithms",
    "software-engineering": "Software Engineering",
    "operating-systems": "Operating Systems",
    "general": "General CS Terms",
}

SKILL_NAMES = {
    "recognition": "Term Recognition",
    "definition": "Definition Knowledge",
    "context-usage": "Contextual Usage",
    "application": "Practical Application",
    "comprehension": "Reading Comprehension",
}

RECOMMENDATIONS: Dict[str, Tuple[str, ...]] = {
    "beginner": (
        "Start with flashcards to memorize basic terms",
        "Focus on understanding acronyms and their meanings",
        "Practice identifying terms in simple contexts",
        "Complete all beginner modules before moving on",
        "Use the glossary frequently for reference",
    ),
    "intermediate": (
        "Practice using jargon in sentences and paragraphs",
        "Read technical documentation to see terms in context",
        "Focus on understanding nuanced differences between similar terms",
        "Attempt comprehension exercises with technical passages",
        "Participate in peer review activities",
    ),
    "advanced": (
        "Read research papers and technical articles",
        "Practice explaining complex concepts using proper terminology",
        "Focus on professional communication and documentation",
        "Work on advanced comprehension and application exercises",
        "Prepare for technical interviews using proper jargon",
    ),
}


def level_for_score(score: float) -> Level:
    """Map an unrounded overall percentage to a level (<50, 50..80, >=80)."""
    if score >= ADVANCED_FROM:
        return "advanced"
    if score >= INTERMEDIATE_FROM:
        return "intermediate"
    return "beginner"


def format_category(name: str) -> str:
    return CATEGORY_NAMES.get(name, name)


def format_skill(name: str) -> str:
    return SKILL_NAMES.get(name, name)


def _group_scores(stats: "OrderedDict[str, List[int]]") -> Tuple[GroupScore, ...]:
    return tuple(
        GroupScore(
            name=name,
            total_questions=total,
            correct_answers=correct,
            percentage=round_half_up(correct / total * 100),
        )
        for name, (total, correct) in stats.items()
    )


def build_breakdown(questions: Sequence, outcome: GradingOutcome) -> PlacementBreakdown:
    """Aggregate a graded placement test per category, skill and difficulty.

    Questions without a category count as "general"; without a difficulty as "medium".
    """
    categories: "OrderedDict[str, List[int]]" = OrderedDict()
    skills: "OrderedDict[str, List[int]]" = OrderedDict()
    difficulties: "OrderedDict[str, List[int]]" = OrderedDict()

    def _tally(bucket, key, hit):
        entry = bucket.setdefault(key, [0, 0])
        entry[0] += 1
        entry[1] += 1 if hit else 0

    for question, result in zip(questions, outcome.results):
        hit = result.is_correct is True
        _tally(categories, question.category or "general", hit)
        for skill in question.skills:
            _tally(skills, skill, hit)
        _tally(difficulties, question.difficulty or "medium", hit)

    return PlacementBreakdown(
        total_questions=len(outcome.results),
        correct_answers=outcome.correct_count,
        earned_points=outcome.earned_points,
        total_points=outcome.total_points,
        category_scores=_group_scores(categories),
        skill_scores=_group_scores(skills),
        difficulty_scores=_group_scores(difficulties),
    )


def analyze_performance(
    breakdown: PlacementBreakdown,
    strength_from: Optional[float] = None,
    weakness_below: Optional[float] = None,
) -> Tuple[List[str], List[str]]:
    """Label strong (>= strength_from) and weak (< weakness_below) areas.

    Categories are listed with their percentage, skills by name only; a skill
    whose display name is already listed is skipped. Strengths are ordered by
    percentage descending, weaknesses ascending, ties by label; each list is
    capped at five entries.
    """
    s = get_settings()
    strength_from = s.STRENGTH_THRESHOLD if strength_from is None else strength_from
    weakness_below = s.WEAKNESS_THRESHOLD if weakness_below is None else weakness_below

    strong: List[Tuple[int, str]] = []
    weak: List[Tuple[int, str]] = []

    def _add(bucket, pct, label):
        if not any(label in existing for _, existing in bucket):
            bucket.append((pct, label))

    for g in breakdown.category_scores:
        label = f"{format_category(g.name)} ({g.percentage}%)"
        if g.percentage >= strength_from:
            _add(strong, g.percentage, label)
        elif g.percentage < weakness_below:
            _add(weak, g.percentage, label)
    for g in breakdown.skill_scores:
        label = format_skill(g.name)
        if g.percentage >= strength_from:
            _add(strong, g.percentage, label)
        elif g.percentage < weakness_below:
            _add(weak, g.percentage, label)

    strong.sort(key=lambda t: (-t[0], t[1]))
    weak.sort(key=lambda t: (t[0], t[1]))
    return [label for _, label in strong[:MAX_LISTED]], [label for _, label in weak[:MAX_LISTED]]


def _summary(score: int) -> str:
    if score >= 80:
        return (
            f"Excellent performance! You demonstrated strong understanding of CS terminology with a score of "
            f"{score}%. You've been placed in the Advanced level where you'll master professional and academic "
            f"jargon usage."
        )
    if score >= 60:
        return (
            f"Good job! You scored {score}% showing solid foundational knowledge. You've been placed in the "
            f"Intermediate level to strengthen your contextual usage of CS terms."
        )
    if score >= 40:
        return (
            f"You scored {score}%. There's room for improvement, and that's exactly what we're here for! "
            f"The Beginner level will help you build a strong foundation in CS vocabulary."
        )
    return (
        f"You scored {score}%. Don't worry - everyone starts somewhere! "
        f"The Beginner level is designed to help you learn CS jargon from the ground up."
    )


def generate_feedback(
    score: float, level: Level, strengths: Sequence[str], weaknesses: Sequence[str]
) -> PlacementFeedback:
    """Deterministic feedback text; the same inputs always give the same text."""
    code, weeks = LEVELS[level]
    headline = f"Placed at {level.capitalize()} ({code}, {weeks} weeks)."
    if strengths:
        headline += f" Top strength: {strengths[0]}."
    if weaknesses:
        headline += f" Focus area: {weaknesses[0]}."
    return PlacementFeedback(
        headline=headline,
        summary=_summary(round_half_up(score)),
        strengths=tuple(f"Strong in {s}" for s in strengths) or ("Keep practicing to develop your strengths!",),
        weaknesses=tuple(f"Focus on improving {w}" for w in weaknesses)
        or ("Well-rounded performance across all areas!",),
        recommendations=RECOMMENDATIONS[level],
    )


def assign_level(breakdown: PlacementBreakdown, percentage_score: float) -> PlacementOutcome:
    """Assign a level from the overall percentage and describe the result.

    Args:
        breakdown: Per-category/skill/difficulty aggregates (informational).
        percentage_score: Overall percentage, compared unrounded against the thresholds.
    """
    level = level_for_score(percentage_score)
    code, weeks = LEVELS[level]
    strengths, weaknesses = analyze_performance(breakdown)
    _PLACEMENTS.labels(level=level).inc()
    log.info("placement score=%s level=%s", percentage_score, level)
    return PlacementOutcome(
        percentage_score=percentage_score,
        correct_answers=breakdown.correct_answers,
        total_questions=breakdown.total_questions,
        category_scores=breakdown.category_scores,
        skill_scores=breakdown.skill_scores,
        difficulty_scores=breakdown.difficulty_scores,
        assigned_level=level,
        level_code=code,
        duration_weeks=weeks,
        strengths=strengths,
        weaknesses=weaknesses,
        feedback=generate_feedback(percentage_score, level, strengths, weaknesses),
    )


def grade_placement(questions: Sequence, answers: Iterable) -> PlacementOutcome:
    """Grade a completed placement test and assign the level.

    The overall score counts correct answers over questions asked, so a
    question's point value does not weigh on placement.
    """
    answers = list(answers)
    outcome = grade(questions, answers, passing_score=0)
    breakdown = build_breakdown(questions, outcome)
    count = len(questions)
    percentage = round_half_up(outcome.correct_count / count * 100) if count else 0
    return assign_level(breakdown, percentage)
