"""Tests for quiz submission and module progress."""

import pytest

from aicademy.core.assignments import AssignmentTarget, assign_module
from aicademy.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from aicademy.core.modules import LessonDraft, ModuleDraft, QuestionDraft, create_module
from aicademy.core.progress import complete_reading_lesson, submit_lesson_quiz
from aicademy.db.database import get_db
from aicademy.db.progress_repository import get_student_module, list_lesson_progress


def _answers(lesson, first=0, second=1, text="Denominator"):
    q1, q2, q3 = lesson.questions
    return {q1.id: first, q2.id: second, q3.id: text}


def _attempt_count(student_id):
    with get_db() as conn:
        return conn.execute(
            "SELECT COUNT(*) AS n FROM quiz_attempts WHERE student_id = ?", (student_id,)
        ).fetchone()["n"]


class TestSubmitLessonQuiz:
    """Tests for submit_lesson_quiz."""

    def test_all_correct_completes_lesson(self, student, enrolled):
        lesson = enrolled.lessons[0]

        result = submit_lesson_quiz(student, lesson.lesson.id, _answers(lesson))

        assert result.lesson_completed is True
        assert result.correct_count == 3
        assert result.module_progress == 0.5
        assert result.module_completed is False
        with get_db() as conn:
            row = list_lesson_progress(conn, student.id, enrolled.module.id)[lesson.lesson.id]
        assert row.completed is True
        assert row.completed_at is not None

    def test_wrong_free_response_still_completes(self, student, enrolled):
        """Free-response correctness is recorded but does not gate completion."""
        lesson = enrolled.lessons[0]

        result = submit_lesson_quiz(student, lesson.lesson.id, _answers(lesson, text="Numerator"))

        assert result.lesson_completed is True
        assert [r.is_correct for r in result.results] == [True, True, False]

    def test_free_response_trimmed_case_insensitive(self, student, enrolled):
        lesson = enrolled.lessons[0]
        result = submit_lesson_quiz(student, lesson.lesson.id, _answers(lesson, text="  dEnOmInAtOr "))
        assert result.results[2].is_correct is True

    def test_wrong_choice_leaves_lesson_incomplete(self, student, enrolled):
        lesson = enrolled.lessons[0]

        result = submit_lesson_quiz(student, lesson.lesson.id, _answers(lesson, first=2))

        assert result.lesson_completed is False
        assert result.module_progress == 0.0
        assert _attempt_count(student.id) == 3

    def test_missing_answer_writes_nothing(self, student, enrolled):
        lesson = enrolled.lessons[0]
        answers = _answers(lesson)
        answers.pop(lesson.questions[1].id)

        with pytest.raises(ValidationError, match="Please answer every question before submitting."):
            submit_lesson_quiz(student, lesson.lesson.id, answers)

        assert _attempt_count(student.id) == 0

    def test_blank_text_answer_rejected(self, student, enrolled):
        lesson = enrolled.lessons[0]
        with pytest.raises(ValidationError):
            submit_lesson_quiz(student, lesson.lesson.id, _answers(lesson, text="   "))

    def test_unknown_question_rejected(self, student, enrolled):
        lesson = enrolled.lessons[0]
        answers = _answers(lesson)
        answers["bogus"] = 1
        with pytest.raises(ValidationError, match="Unknown question"):
            submit_lesson_quiz(student, lesson.lesson.id, answers)

    @pytest.mark.parametrize("bad_index", [99, -3, 3])
    def test_out_of_range_option_rejected(self, student, enrolled, bad_index):
        lesson = enrolled.lessons[0]

        with pytest.raises(ValidationError, match="Invalid option"):
            submit_lesson_quiz(student, lesson.lesson.id, _answers(lesson, first=bad_index))
        assert _attempt_count(student.id) == 0

    def test_numeric_free_response_is_text(self, student, enrolled):
        lesson = enrolled.lessons[0]

        result = submit_lesson_quiz(student, lesson.lesson.id, _answers(lesson, text=42))

        assert result.lesson_completed is True
        assert result.correct_count == 2
        with get_db() as conn:
            row = conn.execute(
                "SELECT answer_text FROM quiz_attempts WHERE question_id = ?", (lesson.questions[2].id,)
            ).fetchone()
        assert row["answer_text"] == "42"

    def test_resubmission_overwrites(self, student, enrolled):
        lesson = enrolled.lessons[0]
        submit_lesson_quiz(student, lesson.lesson.id, _answers(lesson, first=2))

        result = submit_lesson_quiz(student, lesson.lesson.id, _answers(lesson))

        assert result.lesson_completed is True
        assert _attempt_count(student.id) == 3

    def test_reading_lesson_has_no_quiz(self, student, enrolled):
        with pytest.raises(ValidationError, match="This lesson has no quiz."):
            submit_lesson_quiz(student, enrolled.lessons[1].lesson.id, {})

    def test_unassigned_student_cannot_submit(self, make_user, fractions):
        outsider = make_user("student")
        lesson = fractions.lessons[0]
        with pytest.raises(NotFoundError):
            submit_lesson_quiz(outsider, lesson.lesson.id, _answers(lesson))

    def test_draft_module_hidden(self, teacher, student, module_draft):
        draft = create_module(teacher, module_draft(status="draft"))
        assign_module(teacher, draft.module.id, [AssignmentTarget("student", student.id)])
        lesson = draft.lessons[0]

        with pytest.raises(NotFoundError):
            submit_lesson_quiz(student, lesson.lesson.id, _answers(lesson))

    def test_teachers_cannot_submit(self, teacher, enrolled):
        lesson = enrolled.lessons[0]
        with pytest.raises(PermissionDeniedError):
            submit_lesson_quiz(teacher, lesson.lesson.id, _answers(lesson))


class TestModuleCompletion:
    """Tests for derived module progress."""

    def test_single_question_last_lesson_completes_module(self, teacher, student):
        """One-question quiz answered with the correct index finishes the module."""
        detail = create_module(
            teacher,
            ModuleDraft(
                title="Cells",
                subject="Biology",
                description="The unit of life",
                status="published",
                lessons=[
                    LessonDraft(
                        title="Organelles",
                        content="<p>The nucleus holds DNA.</p>",
                        questions=[
                            QuestionDraft(
                                question="Which organelle holds DNA?",
                                options=["Ribosome", "Nucleus"],
                                correct_index=1,
                            )
                        ],
                    )
                ],
            ),
        )
        assign_module(teacher, detail.module.id, [AssignmentTarget("student", student.id)])
        lesson = detail.lessons[0]

        result = submit_lesson_quiz(student, lesson.lesson.id, {lesson.questions[0].id: 1})

        assert result.lesson_completed is True
        assert result.module_progress == 1.0
        assert result.module_completed is True
        with get_db() as conn:
            assert get_student_module(conn, student.id, detail.module.id).completed_at is not None

    def test_reading_and_quiz_complete_module(self, student, enrolled):
        quiz_lesson, reading_lesson = enrolled.lessons
        submit_lesson_quiz(student, quiz_lesson.lesson.id, _answers(quiz_lesson))

        result = complete_reading_lesson(student, reading_lesson.lesson.id)

        assert result.module_progress == 1.0
        assert result.module_completed is True

    def test_completed_at_kept_on_repeat(self, student, enrolled):
        quiz_lesson, reading_lesson = enrolled.lessons
        submit_lesson_quiz(student, quiz_lesson.lesson.id, _answers(quiz_lesson))
        complete_reading_lesson(student, reading_lesson.lesson.id)
        with get_db() as conn:
            first = get_student_module(conn, student.id, enrolled.module.id).completed_at

        complete_reading_lesson(student, reading_lesson.lesson.id)

        with get_db() as conn:
            assert get_student_module(conn, student.id, enrolled.module.id).completed_at == first

    def test_failed_resubmission_reopens_module(self, student, enrolled):
        quiz_lesson, reading_lesson = enrolled.lessons
        submit_lesson_quiz(student, quiz_lesson.lesson.id, _answers(quiz_lesson))
        complete_reading_lesson(student, reading_lesson.lesson.id)

        result = submit_lesson_quiz(student, quiz_lesson.lesson.id, _answers(quiz_lesson, second=0))

        assert result.module_progress == 0.5
        assert result.module_completed is False

    def test_quiz_lesson_cannot_be_marked_read(self, student, enrolled):
        with pytest.raises(ValidationError, match="This lesson has a quiz."):
            complete_reading_lesson(student, enrolled.lessons[0].lesson.id)
