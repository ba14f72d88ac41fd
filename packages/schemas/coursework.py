"""Coursework schemas consumed by the submission, module-quiz and peer-review workflows.

These are plain records: the persistence layer loads them, the workflows
compute new values, and the persistence layer saves the result.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from packages.common.config import get_settings

from .grading import (
    Answer,
    EvaluationResult,
    LatePolicy,
    PeerReview,
    PeerReviewSettings,
    Question,
    SubmissionScore,
)

AssignmentStatus = Literal["draft", "published", "closed", "archived"]
SubmissionStatus = Literal[
    "draft",
    "submitted",
    "auto-graded",
    "pending-review",
    "under-review",
    "graded",
    "returned",
    "resubmit-requested",
]


class AssignmentDefinition(BaseModel):
    id: str
    title: str
    questions: List[Question] = []
    total_points: float = 100
    passing_score: float = Field(default_factory=lambda: get_settings().DEFAULT_PASSING_SCORE)
    status: AssignmentStatus = "published"
    available_from: datetime
    due_date: datetime
    late_due_date: Optional[datetime] = None
    late_policy: LatePolicy = Field(default_factory=LatePolicy)
    peer_review: PeerReviewSettings = Field(default_factory=PeerReviewSettings)
    max_attempts: int = 1


class SubmissionRecord(BaseModel):
    """State of one learner's submission as the workflows see it."""
    id: str
    assignment_id: str
    student_id: str
    attempt_number: int = 1
    status: SubmissionStatus = "draft"
    answers: List[Answer] = []
    submitted_at: Optional[datetime] = None
    results: List[EvaluationResult] = []
    auto_graded_score: float = 0
    manual_answer_scores: Dict[int, float] = {}
    manual_score: Optional[float] = None
    score: Optional[SubmissionScore] = None
    peer_reviews: List[PeerReview] = []


class QuizDefinition(BaseModel):
    title: str = ""
    questions: List[Question] = []
    passing_score: float = Field(default_factory=lambda: get_settings().DEFAULT_PASSING_SCORE)
    attempts_allowed: int = 3
    time_limit: Optional[int] = None  # minutes


class QuizAttempt(BaseModel):
    attempt_number: int
    started_at: datetime
    completed_at: datetime
    results: List[EvaluationResult]
    score: float
    percentage: int
    passed: bool
    time_spent: float = 0


class ModuleProgress(BaseModel):
    user_id: str
    module_id: str
    total_lessons: int = 0
    lessons_completed: int = 0
    quiz_attempts: List[QuizAttempt] = []
    best_quiz_score: int = 0
    quiz_passed: bool = False
    progress_percentage: int = Field(default=0, ge=0, le=100)
    is_completed: bool = False
    completed_at: Optional[datetime] = None


class SubmissionReceipt(BaseModel):
    """Updated submission plus the user-facing text sent with it."""
    submission: SubmissionRecord
    title: str
    message: str
