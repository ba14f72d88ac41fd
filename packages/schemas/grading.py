"""Grading schemas: question definitions, answers, evaluation and score results."""

from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from packages.common.config import get_settings

QuestionType = Literal[
    "multiple-choice",
    "true-false",
    "fill-blank",
    "matching",
    "categorization",
    "short-answer",
    "long-answer",
    "definition",
    "paraphrase",
]
Difficulty = Literal["easy", "medium", "hard"]

AUTO_GRADED_TYPES = frozenset({"multiple-choice", "true-false", "fill-blank", "matching", "categorization"})
MANUAL_TYPES = frozenset({"short-answer", "long-answer", "definition", "paraphrase"})


class Option(BaseModel):
    """A selectable option of a choice question."""
    id: str
    text: str = ""


class ColumnItem(BaseModel):
    """One entry of a matching question column."""
    id: str
    text: str = ""


class MatchPair(BaseModel):
    """A left→right association in a matching question or answer."""
    model_config = ConfigDict(frozen=True)

    left_id: str
    right_id: str


class Rubric(BaseModel):
    """Manual grading rubric attached to free-text questions."""
    criteria: List[str] = []
    max_points: Optional[float] = None


class _QuestionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str = ""
    points: float = Field(default=1, gt=0)
    category: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    skills: List[str] = []


class MultipleChoiceQuestion(_QuestionBase):
    type: Literal["multiple-choice"] = "multiple-choice"
    options: List[Option] = []
    correct_answer: str


class TrueFalseQuestion(_QuestionBase):
    type: Literal["true-false"] = "true-false"
    correct_answer: bool


class FillBlankQuestion(_QuestionBase):
    type: Literal["fill-blank"] = "fill-blank"
    blank_sentence: str = ""
    acceptable_answers: List[str] = Field(min_length=1)


class MatchingQuestion(_QuestionBase):
    type: Literal["matching"] = "matching"
    left_column: List[ColumnItem] = []
    right_column: List[ColumnItem] = []
    correct_matches: List[MatchPair] = Field(min_length=1)


class CategorizationQuestion(_QuestionBase):
    type: Literal["categorization"] = "categorization"
    options: List[Option] = []
    categories: List[str] = []
    correct_answer: List[str] = Field(min_length=1)


class TextQuestion(_QuestionBase):
    """Free-text question; graded manually through the score composer."""
    type: Literal["short-answer", "long-answer", "definition", "paraphrase"] = "short-answer"
    rubric: Optional[Rubric] = None


Question = Annotated[
    Union[
        MultipleChoiceQuestion,
        TrueFalseQuestion,
        FillBlankQuestion,
        MatchingQuestion,
        CategorizationQuestion,
        TextQuestion,
    ],
    Field(discriminator="type"),
]
QuestionAdapter: TypeAdapter = TypeAdapter(Question)


class Answer(BaseModel):
    """A raw submitted answer; `value` is untrusted and shaped per question type."""
    question_index: int = Field(default=0, ge=0)
    value: Any = None
    time_spent: Optional[float] = None


# Typed answer shapes the evaluator coerces raw values into.

class ChoiceAnswer(BaseModel):
    kind: Literal["choice"] = "choice"
    selected_id: Union[bool, str]


class TextAnswer(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class MatchingAnswer(BaseModel):
    kind: Literal["matching"] = "matching"
    pairs: List[MatchPair]


class CategorizationAnswer(BaseModel):
    kind: Literal["categorization"] = "categorization"
    items: List[str]


AnswerValue = Annotated[
    Union[ChoiceAnswer, TextAnswer, MatchingAnswer, CategorizationAnswer],
    Field(discriminator="kind"),
]


class EvaluationResult(BaseModel):
    """Outcome of grading one answer; `is_correct` is None for manual questions."""
    model_config = ConfigDict(frozen=True)

    question_id: str
    question_type: QuestionType
    is_correct: Optional[bool]
    points_earned: float
    points_possible: float
    feedback: Optional[str] = None


class GradingOutcome(BaseModel):
    """Result of one quiz/test attempt. A new attempt yields a new outcome."""
    model_config = ConfigDict(frozen=True)

    earned_points: float
    total_points: float
    percentage: int
    correct_count: int
    passed: bool
    passing_score: float
    results: Tuple[EvaluationResult, ...]


class LatePolicy(BaseModel):
    """Per-day percentage deduction, capped at `max_late_days` days."""
    model_config = ConfigDict(frozen=True)

    per_day_penalty_percent: float = Field(default_factory=lambda: get_settings().LATE_PENALTY_PER_DAY)
    max_late_days: int = Field(default_factory=lambda: get_settings().MAX_LATE_DAYS)


class PeerReviewSettings(BaseModel):
    """Peer review configuration of an assignment.

    `instructor_weight` defaults to `100 - peer_review_weight`; when given
    explicitly the two must sum to 100.
    """
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    reviews_required: int = Field(default_factory=lambda: get_settings().PEER_REVIEWS_REQUIRED)
    peer_review_weight: float = Field(default_factory=lambda: get_settings().PEER_REVIEW_WEIGHT)
    instructor_weight: Optional[float] = None
    is_anonymous: bool = True
    review_deadline: Optional[datetime] = None


class CriterionScore(BaseModel):
    criteria: str
    score: float = Field(ge=0)
    max_score: float = Field(ge=0)
    comment: Optional[str] = None


class PeerReview(BaseModel):
    """A single received review; `total_score` is normalized to 0..100."""
    reviewer_id: str
    scores: List[CriterionScore] = []
    total_score: float = Field(ge=0, le=100)
    overall_feedback: Optional[str] = None
    strengths: List[str] = []
    improvements: List[str] = []
    reviewed_at: Optional[datetime] = None
    time_spent: Optional[float] = None


class PeerReviewScore(BaseModel):
    """Aggregated average of received peer review scores."""
    model_config = ConfigDict(frozen=True)

    average: float = 0
    reviews_received: int = 0


class SubmissionScore(BaseModel):
    """Assignment-level composed score; recomputed whenever its inputs change."""
    model_config = ConfigDict(frozen=True)

    raw_score: float
    is_late: bool
    days_late: int
    late_penalty_percent: float
    final_score: float
    percentage: int
    passed: bool
    peer_review_score: Optional[float] = None
    peer_blended: bool = False


# Reporting aggregates over graded submissions.

class ScoreBucket(BaseModel):
    model_config = ConfigDict(frozen=True)

    range: str
    count: int


class AssignmentStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    graded_submissions: int = 0
    average_score: int = 0
    highest_score: int = 0
    lowest_score: int = 0
    pass_rate: int = 0
    passed_count: int = 0
    failed_count: int = 0
    score_distribution: Tuple[ScoreBucket, ...] = ()
    late_submissions: int = 0


class QuestionStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_index: int
    question_id: str
    correct_rate: int
    average_score: int


class CourseGrade(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall_grade: int
    letter_grade: Literal["A", "B", "C", "D", "F"]
