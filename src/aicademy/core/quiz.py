"""Quiz grading.

Deterministic comparison only:
- multiple_choice: correct iff the selected index equals correct_index
- free_response: correct iff the trimmed, case-insensitive text equals
  the stored answer exactly (no partial credit)
"""

from __future__ import annotations

from enum import Enum
from typing import Union

from aicademy.db.modules_repository import FreeResponseQuestion, MultipleChoiceQuestion, QuizQuestion
from aicademy.db.progress_repository import QuizAttemptRecord

Answer = Union[int, float, str, None]


class QuestionState(str, Enum):
    """Display state of a question for one student."""

    UNATTEMPTED = "unattempted"
    CORRECT = "correct"
    INCORRECT = "incorrect"
    PENDING = "pending"


def normalize_free_text(text: str | None) -> str:
    return (text or "").strip().lower()


def normalize_choice(answer: Answer) -> int | None:
    """Normalize a multiple-choice answer to an index, or None if empty/invalid."""
    if answer is None or isinstance(answer, bool):
        return None
    if isinstance(answer, int):
        return answer
    if isinstance(answer, str):
        stripped = answer.strip()
        if not stripped:
            return None
        try:
            return int(stripped)
        except ValueError:
            return None
    return None


def normalize_text(answer: Answer) -> str | None:
    """Normalize a free-response answer to text; JSON numbers count as text."""
    if answer is None or isinstance(answer, bool):
        return None
    if isinstance(answer, (int, float)):
        return str(answer)
    if isinstance(answer, str):
        return answer
    return None


def choice_in_range(question: MultipleChoiceQuestion, answer: Answer) -> bool:
    """Whether a multiple-choice answer names one of the question's options."""
    selected = normalize_choice(answer)
    return selected is not None and 0 <= selected < len(question.options)


def is_answered(question: QuizQuestion, answer: Answer) -> bool:
    """Whether an answer counts as given for the question's variant."""
    if isinstance(question, MultipleChoiceQuestion):
        return normalize_choice(answer) is not None
    return bool((normalize_text(answer) or "").strip())


def grade_answer(question: QuizQuestion, answer: Answer) -> bool:
    """Grade one answer against its question."""
    if isinstance(question, MultipleChoiceQuestion):
        selected = normalize_choice(answer)
        return selected is not None and selected == question.correct_index
    text = normalize_text(answer)
    if text is None:
        return False
    return normalize_free_text(text) == normalize_free_text(question.correct_answer_text)


def lesson_passed(questions: list[QuizQuestion], answers: dict[str, Answer]) -> bool:
    """Completion gate: every multiple-choice question answered correctly.

    Free-response correctness is not part of the gate.
    """
    return all(
        grade_answer(question, answers.get(question.id))
        for question in questions
        if isinstance(question, MultipleChoiceQuestion)
    )


def question_state(question: QuizQuestion, attempt: QuizAttemptRecord | None) -> QuestionState:
    """Display state of a question given the student's stored attempt.

    PENDING is reported only for a free-response attempt stored without a
    grade; submissions always store one.
    """
    if attempt is None:
        return QuestionState.UNATTEMPTED
    if isinstance(question, MultipleChoiceQuestion):
        if attempt.selected_index == question.correct_index:
            return QuestionState.CORRECT
        return QuestionState.INCORRECT
    if attempt.is_correct is None:
        return QuestionState.PENDING
    return QuestionState.CORRECT if attempt.is_correct else QuestionState.INCORRECT


def attempt_is_answered(question: QuizQuestion, attempt: QuizAttemptRecord | None) -> bool:
    """Whether a stored attempt holds a real answer for the question."""
    if attempt is None:
        return False
    if isinstance(question, FreeResponseQuestion):
        return bool((attempt.answer_text or "").strip())
    return attempt.selected_index is not None
