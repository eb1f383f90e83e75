"""Demo accounts.

Two fixed identities (demo.student@<domain> and demo.teacher@<domain>)
are created on first use through the auth provider's admin API. Every
demo login returns a fresh session for the same identity.

setup_demo_content() seeds classes, memberships, modules and
assignments for the demo pair and can be run any number of times.
cleanup_demo_accounts() removes the throwaway timestamped accounts
(demo.student+1712345678@<domain>) left behind by older demo flows.
"""

from __future__ import annotations

import re
import sqlite3
from dataclasses import dataclass, field

import structlog

from aicademy.auth import provider
from aicademy.config.app_config import load_app_config
from aicademy.core.accounts import REDIRECTS, ROLES, LoginResult
from aicademy.core.errors import ValidationError
from aicademy.core.progress import derive_module_progress
from aicademy.db import (
    assignments_repository,
    classes_repository,
    modules_repository,
    progress_repository,
)
from aicademy.db.database import get_db, utc_now
from aicademy.db.modules_repository import FreeResponseQuestion, MultipleChoiceQuestion, QuizQuestion
from aicademy.db.users_repository import UserRecord, get_user_by_id, insert_user

logger = structlog.get_logger(__name__)

DEMO_PROFILES = {
    "student": {"full_name": "Demo Student", "role": "student", "grade_level": "11"},
    "teacher": {"full_name": "Demo Teacher", "role": "teacher"},
}

DEMO_CLASSES = [
    {"code": "DEMOCS101", "name": "AP Computer Science", "description": "Learn programming fundamentals"},
    {"code": "DEMOMT201", "name": "Advanced Mathematics", "description": "Advanced math concepts"},
    {"code": "DEMOPH301", "name": "Physics", "description": "Introduction to Physics"},
]

DEMO_MODULES = [
    {
        "class_code": "DEMOCS101",
        "title": "Introduction to Programming",
        "subject": "Computer Science",
        "description": "Learn basic programming concepts",
        "completed": True,
        "lessons": [
            {
                "title": "Variables and Data Types",
                "content": (
                    "A variable is a name that refers to a value. Every value has a "
                    "type: integers hold whole numbers, strings hold text and booleans "
                    "hold True or False."
                ),
                "questions": [
                    {
                        "question": "Which type holds text?",
                        "options": ["Integer", "String", "Boolean"],
                        "correct_index": 1,
                    },
                ],
            },
            {
                "title": "Control Flow",
                "content": (
                    "If statements choose between branches; loops repeat a block "
                    "while a condition holds or once per item of a sequence."
                ),
                "questions": [
                    {
                        "question": "Which keyword starts a conditional branch?",
                        "correct_answer_text": "if",
                    },
                ],
            },
        ],
    },
    {
        "class_code": "DEMOMT201",
        "title": "Advanced Algebra",
        "subject": "Mathematics",
        "description": "Master algebraic concepts",
        "completed": False,
        "lessons": [
            {
                "title": "Quadratic Equations",
                "content": (
                    "A quadratic equation has the form ax^2 + bx + c = 0 and is "
                    "solved with the quadratic formula x = (-b ± sqrt(b^2 - 4ac)) / 2a."
                ),
                "questions": [
                    {
                        "question": "How many real roots does x^2 + 1 = 0 have?",
                        "options": ["0", "1", "2"],
                        "correct_index": 0,
                    },
                ],
            },
            {
                "title": "Functions",
                "content": "A function maps every input to exactly one output. Its graph shows that mapping.",
                "questions": [],
            },
        ],
    },
    {
        "class_code": "DEMOPH301",
        "title": "Physics Mechanics",
        "subject": "Physics",
        "description": "Understanding motion and forces",
        "completed": False,
        "lessons": [
            {
                "title": "Newton's Laws",
                "content": (
                    "An object stays at rest or in uniform motion unless a net force "
                    "acts on it. Force equals mass times acceleration. Every action "
                    "has an equal and opposite reaction."
                ),
                "questions": [
                    {
                        "question": "Force equals mass times what?",
                        "options": ["Velocity", "Acceleration", "Distance"],
                        "correct_index": 1,
                    },
                ],
            },
            {
                "title": "Kinematics",
                "content": "Kinematics describes motion through position, velocity and acceleration over time.",
                "questions": [],
            },
        ],
    },
]


@dataclass
class DemoSetupResult:
    """What setup_demo_content() created (zero counts on a rerun)."""

    teacher_id: str
    student_id: str
    class_ids: list[str] = field(default_factory=list)
    module_ids: list[str] = field(default_factory=list)
    classes_created: int = 0
    modules_created: int = 0
    assignments_created: int = 0


def demo_email(role: str) -> str:
    return f"demo.{role}@{load_app_config().demo.email_domain}"


def is_demo_email(email: str) -> bool:
    """Whether an email belongs to a demo identity (fixed or timestamped)."""
    domain = re.escape(load_app_config().demo.email_domain)
    return re.match(rf"^demo\.(student|teacher)(\+\d+)?@{domain}$", (email or "").lower()) is not None


def _ensure_demo_user(conn: sqlite3.Connection, role: str) -> UserRecord:
    """Create the demo identity and its profile on first use."""
    settings = load_app_config().demo
    email = demo_email(role)
    profile = DEMO_PROFILES[role]

    auth_user = provider.get_user_by_email(conn, email)
    if auth_user is None:
        auth_user = provider.admin_create_user(
            conn, email, settings.password, user_metadata=profile, email_confirm=True
        )
        logger.info("demo.user_created", role=role, user_id=auth_user.id)

    user = get_user_by_id(conn, auth_user.id)
    if user is None:
        user = insert_user(
            conn,
            auth_user.id,
            auth_user.email,
            profile["full_name"],
            role,
            profile.get("grade_level"),
        )
    return user


def demo_login(role: str) -> LoginResult:
    """Open a session for the fixed demo identity of a role.

    Raises:
        ValidationError: Role is not student or teacher
    """
    if role not in ROLES:
        raise ValidationError("Invalid role")

    with get_db() as conn:
        user = _ensure_demo_user(conn, role)
        session = provider.create_session(conn, user.id)

    logger.info("demo.login", role=role, user_id=user.id)
    return LoginResult(session=session, user=user, needs_profile=False, redirect_to=REDIRECTS[role])


def setup_demo_content() -> DemoSetupResult:
    """Seed the demo teacher's classes and modules, enrolling the demo student."""
    with get_db() as conn:
        teacher = _ensure_demo_user(conn, "teacher")
        student = _ensure_demo_user(conn, "student")
        result = DemoSetupResult(teacher_id=teacher.id, student_id=student.id)

        classes_by_code = {}
        for seed in DEMO_CLASSES:
            cls = classes_repository.get_class_by_code(conn, seed["code"])
            if cls is None:
                cls = classes_repository.insert_class(
                    conn, seed["name"], seed["code"], teacher.id, seed["description"]
                )
                result.classes_created += 1
            classes_by_code[cls.code] = cls
            result.class_ids.append(cls.id)

            membership = classes_repository.get_membership(conn, cls.id, student.id)
            if membership is None:
                classes_repository.insert_membership(conn, cls.id, student.id, status="approved")
            elif membership.status != "approved":
                classes_repository.update_membership_status(conn, membership.id, "approved")

        existing_modules = {m.title: m for m in modules_repository.list_modules_by_teacher(conn, teacher.id)}
        for seed in DEMO_MODULES:
            module = existing_modules.get(seed["title"])
            created = module is None
            if created:
                module = _insert_demo_module(conn, teacher.id, seed)
                result.modules_created += 1
            result.module_ids.append(module.id)

            cls = classes_by_code[seed["class_code"]]
            assigned = {a.target for a in assignments_repository.list_assignments(conn, module.id)}
            if ("class", cls.id) not in assigned:
                assignments_repository.insert_assignment(conn, module.id, class_id=cls.id)
                result.assignments_created += 1
            progress_repository.ensure_student_module(conn, student.id, module.id)

            if created and seed["completed"]:
                finished_at = utc_now()
                for lesson in modules_repository.list_lessons(conn, module.id):
                    progress_repository.upsert_lesson_progress(
                        conn, student.id, lesson.id, completed=True, completed_at=finished_at
                    )
                derive_module_progress(conn, student.id, module.id)

    logger.info(
        "demo.setup_completed",
        classes_created=result.classes_created,
        modules_created=result.modules_created,
        assignments_created=result.assignments_created,
    )
    return result


def _seed_question(seed: dict, lesson_id: str, order_index: int) -> QuizQuestion:
    """Build a fresh question from its seed."""
    if "options" in seed:
        return MultipleChoiceQuestion(
            id="",
            lesson_id=lesson_id,
            question=seed["question"],
            options=list(seed["options"]),
            correct_index=seed["correct_index"],
            order_index=order_index,
        )
    return FreeResponseQuestion(
        id="",
        lesson_id=lesson_id,
        question=seed["question"],
        correct_answer_text=seed["correct_answer_text"],
        order_index=order_index,
    )


def _insert_demo_module(conn: sqlite3.Connection, teacher_id: str, seed: dict):
    module = modules_repository.insert_module(
        conn,
        title=seed["title"],
        subject=seed["subject"],
        description=seed["description"],
        teacher_id=teacher_id,
        status="published",
    )
    for order_index, lesson_seed in enumerate(seed["lessons"]):
        lesson = modules_repository.insert_lesson(
            conn, module.id, lesson_seed["title"], lesson_seed["content"], order_index
        )
        for q_index, question_seed in enumerate(lesson_seed["questions"]):
            modules_repository.insert_question(
                conn, lesson.id, _seed_question(question_seed, lesson.id, q_index)
            )
    return module


def cleanup_demo_accounts() -> int:
    """Delete timestamped demo identities (and their profiles).

    Returns:
        Number of identities deleted
    """
    domain = re.escape(load_app_config().demo.email_domain)
    pattern = re.compile(rf"^demo\.(student|teacher)\+\d+@{domain}$")

    deleted = 0
    with get_db() as conn:
        for user in provider.admin_list_users(conn):
            if pattern.match(user.email) and provider.admin_delete_user(conn, user.id):
                logger.info("demo.user_removed", email=user.email)
                deleted += 1

    logger.info("demo.cleanup_completed", deleted=deleted)
    return deleted
