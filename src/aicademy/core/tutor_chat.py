"""AI tutor chat.

The system prompt is assembled from the student's profile, the module and
lesson being studied, the student's module progress and their most recent
quiz attempts, then prepended to the conversation forwarded to the chat
server. Model failures never raise: the caller gets a fixed fallback
message with a status code telling connectivity problems apart from
everything else.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from aicademy.config.app_config import load_app_config
from aicademy.core.demo import is_demo_email
from aicademy.db import modules_repository, progress_repository
from aicademy.db.database import get_db
from aicademy.db.users_repository import get_user_by_id
from aicademy.llm.client import LLMClient, LLMConnectionError, LLMError, Message
from aicademy.prompts.registry import get_prompt

logger = structlog.get_logger(__name__)

CONNECTION_FALLBACK = (
    "### Error\nUnable to connect to AI service. Please check if the Ollama server is running."
)
ERROR_FALLBACK = "### Error\nError contacting AI service. Please try again."
DEMO_REPLY = (
    "### Demo Mode\nThe AI tutor is not connected for demo accounts. "
    "Sign up for a full account to chat about your lessons."
)

# Client-side role names accepted in the history
_ROLE_ALIASES = {"user": "user", "assistant": "assistant", "ai": "assistant"}


@dataclass
class ChatReply:
    """Assistant message plus the HTTP status it should be sent with."""

    content: str
    status_code: int = 200

    def to_message(self) -> dict[str, str]:
        return {"role": "assistant", "content": self.content}


def build_system_prompt(user_id: str, module_id: str, lesson_id: str | None = None) -> str:
    """Render the tutor system prompt for a student and module."""
    recent_limit = load_app_config().tutor.recent_attempts

    with get_db() as conn:
        user = get_user_by_id(conn, user_id)
        module = modules_repository.get_module(conn, module_id)
        lesson = modules_repository.get_lesson(conn, lesson_id) if lesson_id else None
        progress_row = progress_repository.get_student_module(conn, user_id, module_id)
        attempts = progress_repository.list_recent_attempts(conn, user_id, recent_limit)

    if attempts:
        correct = sum(1 for a in attempts if a.is_correct)
        quiz_performance = f"{correct}/{len(attempts)} correct"
    else:
        quiz_performance = "No recent attempts"

    progress_percentage = round(progress_row.progress * 100) if progress_row else 0

    return get_prompt(
        "tutor/system_prompt",
        student_name=user.full_name if user else "Student",
        grade_level=(user.grade_level if user and user.grade_level else "N/A"),
        module_title=module.title if module else "Current Module",
        lesson_title=lesson.title if lesson else "Current Lesson",
        lesson_content=lesson.content if lesson else "No lesson content provided",
        progress_percentage=str(progress_percentage),
        quiz_performance=quiz_performance,
    )


def _to_messages(history: list[dict[str, Any]]) -> list[Message]:
    """Client history to model messages. Unknown roles and system entries are dropped."""
    messages = []
    for entry in history:
        role = _ROLE_ALIASES.get(str(entry.get("role", "")).lower())
        content = entry.get("content")
        if role is None or not isinstance(content, str):
            continue
        messages.append(Message(role=role, content=content))
    return messages


def chat(
    history: list[dict[str, Any]],
    user_id: str,
    module_id: str,
    lesson_id: str | None = None,
    client: LLMClient | None = None,
) -> ChatReply:
    """Answer the latest message of a conversation.

    Args:
        history: Prior messages as {"role", "content"} dicts, oldest first
        user_id: Student asking
        module_id: Module being studied
        lesson_id: Lesson being studied, if any
        client: LLM client (built from configuration if not given)

    Returns:
        ChatReply; status 503 when the server is unreachable, 502 on other
        model errors
    """
    with get_db() as conn:
        user = get_user_by_id(conn, user_id)
    if user is not None and is_demo_email(user.email):
        logger.info("tutor_chat.demo_reply", user_id=user_id)
        return ChatReply(DEMO_REPLY)

    system_prompt = build_system_prompt(user_id, module_id, lesson_id)
    messages = [Message(role="system", content=system_prompt)] + _to_messages(history)

    try:
        if client is None:
            client = LLMClient()
        response = client.chat(messages)
    except LLMConnectionError as e:
        logger.warning("tutor_chat.connection_failed", error=str(e))
        return ChatReply(CONNECTION_FALLBACK, status_code=503)
    except LLMError as e:
        logger.error("tutor_chat.failed", error=str(e))
        return ChatReply(ERROR_FALLBACK, status_code=502)

    logger.info(
        "tutor_chat.replied",
        user_id=user_id,
        module_id=module_id,
        tokens=response.total_tokens,
    )
    return ChatReply(response.content)
