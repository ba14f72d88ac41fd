# services/grading/evaluator.py
"""Answer evaluation for a single question.

Functions:
- parse_question: build a typed question from raw data, failing with `ConfigurationError`.
- coerce_answer: read an untrusted raw answer into the typed shape for a question.
- evaluate: grade one answer and return an `EvaluationResult` (never raises for bad answers).
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from pydantic import ValidationError

from packages.common.errors import ConfigurationError, InvalidInputError
from packages.schemas.grading import (
    Answer,
    AnswerValue,
    CategorizationAnswer,
    CategorizationQuestion,
    ChoiceAnswer,
    EvaluationResult,
    FillBlankQuestion,
    MatchingAnswer,
    MatchingQuestion,
    MatchPair,
    MultipleChoiceQuestion,
    QuestionAdapter,
    TextAnswer,
    TextQuestion,
    TrueFalseQuestion,
)
from .rounding import round_half_up

log = logging.getLogger(__name__)


def parse_question(data: Any):
    """Validate raw question data into a typed question model.

    Raises:
        ConfigurationError: unknown type, non-positive points or a missing
            correct-answer specification.
    """
    try:
        return QuestionAdapter.validate_python(data)
    except ValidationError as e:
        qid = data.get("id", "?") if isinstance(data, dict) else "?"
        raise ConfigurationError(f"invalid question definition {qid}: {e.errors()[0]['msg']}") from e


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (list, tuple, dict)) and not value:
        return True
    return False


def _read_bool(question_type: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise InvalidInputError(question_type, f"expected true/false, got {value!r}")


def _read_pairs(question_type: str, value: Any) -> list[MatchPair]:
    if not isinstance(value, (list, tuple)):
        raise InvalidInputError(question_type, "expected a list of left/right pairs")
    pairs = []
    for item in value:
        if isinstance(item, MatchPair):
            pairs.append(item)
        elif isinstance(item, dict):
            left = item.get("left_id", item.get("leftId"))
            right = item.get("right_id", item.get("rightId"))
            if left is None or right is None:
                raise InvalidInputError(question_type, f"pair is missing an id: {item!r}")
            pairs.append(MatchPair(left_id=str(left), right_id=str(right)))
        else:
            raise InvalidInputError(question_type, f"unreadable pair {item!r}")
    return pairs


def coerce_answer(question, value: Any) -> AnswerValue:
    """Convert a raw answer value into the typed answer for `question.type`.

    Already-typed answer values pass through when their kind fits.

    Raises:
        InvalidInputError: the value does not fit the question type.
        ConfigurationError: the question type is unknown.
    """
    qtype = getattr(question, "type", None)
    if isinstance(value, (ChoiceAnswer, TextAnswer, MatchingAnswer, CategorizationAnswer)):
        value = value.model_dump(exclude={"kind"})
        value = next(iter(value.values()))
    if isinstance(question, TrueFalseQuestion):
        return ChoiceAnswer(selected_id=_read_bool(qtype, value))
    if isinstance(question, MultipleChoiceQuestion):
        if isinstance(value, dict):
            value = value.get("selected_id", value.get("id"))
        if not isinstance(value, (str, int)) or isinstance(value, bool):
            raise InvalidInputError(qtype, f"expected an option id, got {value!r}")
        return ChoiceAnswer(selected_id=str(value))
    if isinstance(question, (FillBlankQuestion, TextQuestion)):
        if not isinstance(value, str):
            raise InvalidInputError(qtype, f"expected text, got {type(value).__name__}")
        return TextAnswer(text=value)
    if isinstance(question, MatchingQuestion):
        return MatchingAnswer(pairs=_read_pairs(qtype, value))
    if isinstance(question, CategorizationQuestion):
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
            raise InvalidInputError(qtype, "expected a list of item ids")
        return CategorizationAnswer(items=list(value))
    raise ConfigurationError(f"unknown question type {qtype!r}")


def _result(question, is_correct, points: float, feedback: str | None = None) -> EvaluationResult:
    return EvaluationResult(
        question_id=question.id,
        question_type=question.type,
        is_correct=is_correct,
        points_earned=points,
        points_possible=question.points,
        feedback=feedback,
    )


def _eval_choice(question, answer: ChoiceAnswer) -> EvaluationResult:
    ok = answer.selected_id == question.correct_answer
    return _result(question, ok, question.points if ok else 0)


def _eval_fill_blank(question: FillBlankQuestion, answer: TextAnswer) -> EvaluationResult:
    given = answer.text.strip().lower()
    ok = any(given == a.strip().lower() for a in question.acceptable_answers)
    return _result(question, ok, question.points if ok else 0)


def _eval_matching(question: MatchingQuestion, answer: MatchingAnswer) -> EvaluationResult:
    """Partial credit: round(correct pairs / total pairs * points)."""
    submitted = {p.left_id: p.right_id for p in answer.pairs}
    total = len(question.correct_matches)
    correct = sum(1 for m in question.correct_matches if submitted.get(m.left_id) == m.right_id)
    ok = correct == total and len(submitted) == total
    points = question.points if ok else round_half_up(correct / total * question.points)
    return _result(question, ok, points, f"{correct}/{total} pairs matched")


def _eval_categorization(question: CategorizationQuestion, answer: CategorizationAnswer) -> EvaluationResult:
    ok = sorted(answer.items) == sorted(question.correct_answer)
    return _result(question, ok, question.points if ok else 0)


def _eval_manual(question: TextQuestion, answer: TextAnswer) -> EvaluationResult:
    return _result(question, None, 0, "awaiting manual grading")


_EVALUATORS: Dict[type, Callable[[Any, Any], EvaluationResult]] = {
    MultipleChoiceQuestion: _eval_choice,
    TrueFalseQuestion: _eval_choice,
    FillBlankQuestion: _eval_fill_blank,
    MatchingQuestion: _eval_matching,
    CategorizationQuestion: _eval_categorization,
    TextQuestion: _eval_manual,
}


def evaluate(question, answer: Answer | Any | None) -> EvaluationResult:
    """Grade `answer` against `question`.

    `answer` may be an `Answer`, a bare value or None. Missing answers and
    answers of the wrong shape score zero with `is_correct=False`.

    Raises:
        ConfigurationError: the question is not a known question model.
    """
    handler = _EVALUATORS.get(type(question))
    if handler is None:
        raise ConfigurationError(f"unknown question type {getattr(question, 'type', type(question).__name__)!r}")

    value = answer.value if isinstance(answer, Answer) else answer
    if _is_blank(value):
        return _result(question, False, 0, "no answer")
    try:
        typed = coerce_answer(question, value)
    except InvalidInputError as e:
        log.info("answer rejected for question %s: %s", question.id, e)
        return _result(question, False, 0, str(e))
    return handler(question, typed)
