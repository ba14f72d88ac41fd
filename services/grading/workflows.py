# services/grading/workflows.py
"""Grading workflows over loaded records.

Each function takes plain records (as the persistence layer loaded them),
runs the pure grading components and returns updated copies for the caller
to save. Events and notifications are published afterwards through the
`EventBus`; a failed publish is logged by the bus and never fails grading.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence

from packages.common.errors import AttemptLimitError, SubmissionRejectedError
from packages.common.events import EventBus, get_bus
from packages.schemas.coursework import (
    AssignmentDefinition,
    ModuleProgress,
    QuizAttempt,
    QuizDefinition,
    SubmissionReceipt,
    SubmissionRecord,
)
from packages.schemas.grading import Answer, CriterionScore, PeerReview, SubmissionScore
from packages.schemas.placement import PlacementOutcome
from .composer import aggregate_peer_reviews, compose, is_open, late_penalty_percent, normalize_review
from .grader import align_answers, auto_gradable, grade, itemized_score
from .placement import grade_placement
from .stats import module_progress

log = logging.getLogger(__name__)


def _compose_for(assignment: AssignmentDefinition, submission: SubmissionRecord, raw: float) -> SubmissionScore:
    peer = aggregate_peer_reviews(r.total_score for r in submission.peer_reviews)
    return compose(
        raw_auto_score=raw,
        manual_score=submission.manual_score,
        submitted_at=submission.submitted_at,
        due_date=assignment.due_date,
        late_policy=assignment.late_policy,
        total_points=assignment.total_points,
        passing_score=assignment.passing_score,
        peer_review=peer,
        peer_settings=assignment.peer_review,
    )


def submission_message(title: str, penalty_percent: Optional[float]) -> str:
    """User-facing receipt text; a late submission names its penalty."""
    msg = f'Your submission for "{title}" has been received.'
    if penalty_percent is not None:
        msg += f" (Late submission - {penalty_percent:g}% penalty applied)"
    return msg


def submit_assignment(
    assignment: AssignmentDefinition,
    submission: SubmissionRecord,
    answers: Iterable[Answer],
    submitted_at: datetime,
    bus: Optional[EventBus] = None,
) -> SubmissionReceipt:
    """Submit a draft: grade it and, when every question is auto-graded, score it.

    Raises:
        SubmissionRejectedError: the assignment is not open or the submission was already sent.
        AttemptLimitError: the attempt number exceeds `max_attempts`.
        ConfigurationError: the assignment definition cannot be graded.
    """
    if submission.status != "draft":
        raise SubmissionRejectedError(f"submission {submission.id} is already {submission.status}")
    if submission.attempt_number > assignment.max_attempts:
        raise AttemptLimitError(f"all {assignment.max_attempts} attempts used for {assignment.id}")
    if not is_open(
        submitted_at, assignment.available_from, assignment.due_date, assignment.late_due_date, assignment.status
    ):
        raise SubmissionRejectedError(f"assignment {assignment.id} is not currently open for submissions")

    answers = list(answers)
    slots = align_answers(answers, len(assignment.questions))
    outcome = grade(assignment.questions, slots, assignment.passing_score)
    updated = submission.model_copy(
        update={
            "answers": answers,
            "submitted_at": submitted_at,
            "results": list(outcome.results),
            "auto_graded_score": itemized_score(outcome.results),
        }
    )

    if auto_gradable(assignment.questions):
        score = _compose_for(assignment, updated, updated.auto_graded_score)
        updated = updated.model_copy(update={"score": score, "status": "graded"})
    elif assignment.peer_review.enabled:
        updated = updated.model_copy(update={"status": "pending-review"})
    else:
        updated = updated.model_copy(update={"status": "submitted"})

    log.info(
        "submission %s status=%s", updated.id, updated.status,
        extra={"user_id": updated.student_id, "assignment_id": assignment.id, "submission_id": updated.id},
    )
    late = submitted_at > assignment.due_date
    penalty = late_penalty_percent(submitted_at, assignment.due_date, assignment.late_policy) if late else None
    title = "Assignment Submitted!"
    message = submission_message(assignment.title, penalty)

    bus = bus or get_bus()
    bus.publish(
        "assignment.submitted",
        updated.student_id,
        {
            "assignment_id": assignment.id,
            "submission_id": updated.id,
            "status": updated.status,
            "is_late": late,
            "percentage": updated.score.percentage if updated.score else None,
        },
    )
    bus.notify(updated.student_id, title, message, kind="assignment-graded")
    return SubmissionReceipt(submission=updated, title=title, message=message)


def grade_submission(
    assignment: AssignmentDefinition,
    submission: SubmissionRecord,
    manual_answer_scores: Optional[Mapping[int, float]] = None,
    manual_score: Optional[float] = None,
    bus: Optional[EventBus] = None,
) -> SubmissionRecord:
    """Instructor grading: per-answer scores and/or an overall override.

    An overall `manual_score` replaces the itemized sum entirely.

    Raises:
        SubmissionRejectedError: the submission has not been submitted.
    """
    if submission.submitted_at is None or submission.status == "draft":
        raise SubmissionRejectedError(f"submission {submission.id} has not been submitted")

    per_answer = dict(submission.manual_answer_scores)
    per_answer.update(manual_answer_scores or {})
    override = manual_score if manual_score is not None else submission.manual_score
    raw = itemized_score(submission.results, per_answer)
    updated = submission.model_copy(update={"manual_answer_scores": per_answer, "manual_score": override})
    score = _compose_for(assignment, updated, raw)
    updated = updated.model_copy(update={"score": score, "status": "graded"})
    log.info(
        "submission %s graded percentage=%s", updated.id, score.percentage,
        extra={"user_id": updated.student_id, "submission_id": updated.id},
    )

    bus = bus or get_bus()
    bus.notify(
        updated.student_id,
        "Assignment Graded",
        f'Your submission for "{assignment.title}" has been graded: {score.percentage}%.',
        kind="assignment-graded",
    )
    return updated


def record_peer_review(
    assignment: AssignmentDefinition,
    submission: SubmissionRecord,
    reviewer_id: str,
    scores: Sequence[CriterionScore],
    reviewed_at: datetime,
    overall_feedback: Optional[str] = None,
    strengths: Sequence[str] = (),
    improvements: Sequence[str] = (),
    bus: Optional[EventBus] = None,
) -> SubmissionRecord:
    """Attach one rubric review; once enough reviews arrive, blend and grade.

    Raises:
        SubmissionRejectedError: the submission is still a draft, peer review is
            disabled, the reviewer is the author, or the reviewer already reviewed
            this submission.
        ConfigurationError: the rubric has no attainable points or weights are invalid.
    """
    if submission.submitted_at is None or submission.status == "draft":
        raise SubmissionRejectedError(f"submission {submission.id} has not been submitted")
    if not assignment.peer_review.enabled:
        raise SubmissionRejectedError(f"peer review is not enabled for {assignment.id}")
    if reviewer_id == submission.student_id:
        raise SubmissionRejectedError("reviewers cannot review their own submission")
    if any(r.reviewer_id == reviewer_id for r in submission.peer_reviews):
        raise SubmissionRejectedError(f"{reviewer_id} has already reviewed {submission.id}")

    review = PeerReview(
        reviewer_id=reviewer_id,
        scores=list(scores),
        total_score=normalize_review(scores),
        overall_feedback=overall_feedback,
        strengths=list(strengths),
        improvements=list(improvements),
        reviewed_at=reviewed_at,
    )
    updated = submission.model_copy(update={"peer_reviews": [*submission.peer_reviews, review]})
    received = len(updated.peer_reviews)
    if received >= assignment.peer_review.reviews_required:
        raw = itemized_score(updated.results, updated.manual_answer_scores)
        score = _compose_for(assignment, updated, raw)
        updated = updated.model_copy(update={"score": score, "status": "graded"})
    else:
        updated = updated.model_copy(update={"status": "under-review"})

    bus = bus or get_bus()
    bus.notify(
        updated.student_id,
        "New Peer Review Received",
        f'You\'ve received a peer review for your "{assignment.title}" submission.',
        kind="assignment-graded",
    )
    return updated


def submit_module_quiz(
    progress: ModuleProgress,
    quiz: QuizDefinition,
    answers: Sequence,
    started_at: datetime,
    completed_at: datetime,
    bus: Optional[EventBus] = None,
) -> ModuleProgress:
    """Grade a module quiz attempt and fold it into the learner's progress.

    `best_quiz_score` only ever rises and `quiz_passed` stays true once set.

    Raises:
        AttemptLimitError: every allowed attempt has been used.
    """
    if len(progress.quiz_attempts) >= quiz.attempts_allowed:
        raise AttemptLimitError(f"You have used all {quiz.attempts_allowed} attempts for this quiz")

    outcome = grade(quiz.questions, list(answers), quiz.passing_score)
    attempt = QuizAttempt(
        attempt_number=len(progress.quiz_attempts) + 1,
        started_at=started_at,
        completed_at=completed_at,
        results=list(outcome.results),
        score=outcome.earned_points,
        percentage=outcome.percentage,
        passed=outcome.passed,
        time_spent=(completed_at - started_at).total_seconds(),
    )
    quiz_passed = progress.quiz_passed or outcome.passed
    pct = module_progress(progress.lessons_completed, progress.total_lessons, quiz_passed)
    done = quiz_passed and progress.lessons_completed >= progress.total_lessons
    updated = progress.model_copy(
        update={
            "quiz_attempts": [*progress.quiz_attempts, attempt],
            "best_quiz_score": max(progress.best_quiz_score, outcome.percentage),
            "quiz_passed": quiz_passed,
            "progress_percentage": pct,
            "is_completed": done,
            "completed_at": progress.completed_at or (completed_at if done else None),
        }
    )

    bus = bus or get_bus()
    bus.publish(
        "module.quiz.completed",
        progress.user_id,
        {
            "module_id": progress.module_id,
            "attempt": attempt.attempt_number,
            "percentage": outcome.percentage,
            "passed": outcome.passed,
        },
    )
    return updated


def complete_placement(
    user_id: str, questions: Sequence, answers: Iterable, bus: Optional[EventBus] = None
) -> PlacementOutcome:
    """Grade a finished placement test and announce the assigned level."""
    outcome = grade_placement(questions, answers)
    bus = bus or get_bus()
    bus.publish(
        "placement.completed",
        user_id,
        {"level": outcome.assigned_level, "level_code": outcome.level_code, "score": outcome.percentage_score},
    )
    bus.notify(
        user_id,
        "Placement Test Complete!",
        f"You scored {outcome.percentage_score:g}% and have been placed at the "
        f"{outcome.assigned_level.capitalize()} level ({outcome.level_code}).",
        kind="placement",
        priority="high",
    )
    return outcome
