"""Placement test schemas: per-group breakdowns, feedback and the assigned level."""

from typing import List, Literal, Tuple

from pydantic import BaseModel, ConfigDict

Level = Literal["beginner", "intermediate", "advanced"]


class GroupScore(BaseModel):
    """Aggregate for one category, skill or difficulty bucket."""
    model_config = ConfigDict(frozen=True)

    name: str
    total_questions: int
    correct_answers: int
    percentage: int


class PlacementBreakdown(BaseModel):
    """Per-category/skill/difficulty results of a graded placement test."""
    model_config = ConfigDict(frozen=True)

    total_questions: int = 0
    correct_answers: int = 0
    earned_points: float = 0
    total_points: float = 0
    category_scores: Tuple[GroupScore, ...] = ()
    skill_scores: Tuple[GroupScore, ...] = ()
    difficulty_scores: Tuple[GroupScore, ...] = ()


class PlacementFeedback(BaseModel):
    model_config = ConfigDict(frozen=True)

    headline: str
    summary: str
    strengths: Tuple[str, ...]
    weaknesses: Tuple[str, ...]
    recommendations: Tuple[str, ...]


class PlacementOutcome(BaseModel):
    """Created once per completed placement test; immutable thereafter."""
    model_config = ConfigDict(frozen=True)

    percentage_score: float
    correct_answers: int
    total_questions: int
    category_scores: Tuple[GroupScore, ...]
    skill_scores: Tuple[GroupScore, ...]
    difficulty_scores: Tuple[GroupScore, ...]
    assigned_level: Level
    level_code: str
    duration_weeks: int
    strengths: List[str]
    weaknesses: List[str]
    feedback: PlacementFeedback
