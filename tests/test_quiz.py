"""Tests for quiz grading rules."""

import pytest

from aicademy.core.quiz import (
    QuestionState,
    grade_answer,
    choice_in_range,
    is_answered,
    lesson_passed,
    normalize_choice,
    normalize_text,
    question_state,
)
from aicademy.db.modules_repository import FreeResponseQuestion, MultipleChoiceQuestion
from aicademy.db.progress_repository import QuizAttemptRecord

MC = MultipleChoiceQuestion(
    id="q1", lesson_id="l1", question="2 + 2?", options=["3", "4", "5"], correct_index=1
)
FR = FreeResponseQuestion(id="q2", lesson_id="l1", question="Capital of France?", correct_answer_text="Paris")


def _attempt(question_id, selected_index=None, answer_text=None, is_correct=None):
    return QuizAttemptRecord(
        student_id="s1",
        question_id=question_id,
        selected_index=selected_index,
        answer_text=answer_text,
        is_correct=is_correct,
        attempted_at="2026-10-19T10:00:00+00:00",
    )


class TestGradeAnswer:
    """Tests for grade_answer."""

    def test_multiple_choice(self):
        assert grade_answer(MC, 1) is True
        assert grade_answer(MC, 0) is False

    def test_multiple_choice_string_index(self):
        """Form posts may send the index as text."""
        assert grade_answer(MC, " 1 ") is True

    @pytest.mark.parametrize("answer", ["Paris", "paris", "  PARIS  "])
    def test_free_response_trimmed_case_insensitive(self, answer):
        assert grade_answer(FR, answer) is True

    @pytest.mark.parametrize("answer", ["Pari", "Paris, France", ""])
    def test_free_response_exact_match_only(self, answer):
        assert grade_answer(FR, answer) is False


class TestIsAnswered:
    def test_choice_answers(self):
        assert is_answered(MC, 0) is True
        assert is_answered(MC, None) is False
        assert is_answered(MC, "") is False
        assert is_answered(MC, True) is False

    def test_text_answers(self):
        assert is_answered(FR, "x") is True
        assert is_answered(FR, "   ") is False
        assert is_answered(FR, None) is False
        assert is_answered(FR, 42) is True
        assert is_answered(FR, False) is False

    def test_numbers_are_text_answers(self):
        numeric = FreeResponseQuestion(id="q3", lesson_id="l1", question="6 x 7?", correct_answer_text="42")
        assert normalize_text(42) == "42"
        assert grade_answer(numeric, 42) is True

    def test_choice_in_range(self):
        assert choice_in_range(MC, 2) is True
        assert choice_in_range(MC, "0") is True
        assert choice_in_range(MC, 3) is False
        assert choice_in_range(MC, -1) is False

    def test_normalize_choice_rejects_garbage(self):
        assert normalize_choice("abc") is None


class TestLessonPassed:
    """The completion gate only looks at multiple-choice answers."""

    def test_free_response_does_not_gate(self):
        assert lesson_passed([MC, FR], {"q1": 1, "q2": "London"}) is True

    def test_wrong_choice_fails(self):
        assert lesson_passed([MC, FR], {"q1": 2, "q2": "Paris"}) is False

    def test_free_response_only_lesson_passes(self):
        assert lesson_passed([FR], {"q2": "anything"}) is True


class TestQuestionState:
    def test_unattempted(self):
        assert question_state(MC, None) == QuestionState.UNATTEMPTED

    def test_multiple_choice_states(self):
        assert question_state(MC, _attempt("q1", selected_index=1)) == QuestionState.CORRECT
        assert question_state(MC, _attempt("q1", selected_index=0)) == QuestionState.INCORRECT

    def test_free_response_states(self):
        assert question_state(FR, _attempt("q2", answer_text="Paris", is_correct=True)) == QuestionState.CORRECT
        assert question_state(FR, _attempt("q2", answer_text="Rome", is_correct=False)) == QuestionState.INCORRECT

    def test_ungraded_free_response_is_pending(self):
        assert question_state(FR, _attempt("q2", answer_text="Paris")) == QuestionState.PENDING
