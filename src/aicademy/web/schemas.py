"""Pydantic schemas for the Web API.

Request bodies and response models for auth, classes, modules,
assignments, student progress, tutor chat and demo endpoints.
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, Field


# =============================================================================
# COMMON
# =============================================================================


class HealthResponse(BaseModel):
    """Response for health check."""

    status: str
    version: str
    timestamp: str


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


# =============================================================================
# AUTH SCHEMAS
# =============================================================================


class SignUpRequest(BaseModel):
    """Request body for self-service registration."""

    email: str = ""
    password: str = ""
    full_name: str = ""
    role: str = ""
    grade_level: str | None = None


class LoginRequest(BaseModel):
    """Request body for password login.

    intended_role is the login button the user pressed, if any.
    """

    email: str = ""
    password: str = ""
    intended_role: Literal["student", "teacher"] | None = None


class CompleteProfileRequest(BaseModel):
    """Request body for completing a profile after login."""

    full_name: str = ""
    role: str = ""
    grade_level: str | None = None


class UpdateProfileRequest(BaseModel):
    full_name: str = ""


class ChangePasswordRequest(BaseModel):
    password: str = ""
    confirm_password: str = ""


class UserResponse(BaseModel):
    """Application profile of a user."""

    id: str
    email: str
    full_name: str
    role: str
    grade_level: str | None = None
    created_at: str

    model_config = {"from_attributes": True}


class SessionResponse(BaseModel):
    """Bearer session."""

    access_token: str
    token_type: str = "bearer"
    user_id: str
    expires_at: str


class SignUpResponse(BaseModel):
    user_id: str
    email: str
    email_confirmed: bool


class LoginResponse(BaseModel):
    """Outcome of login: the session plus where the client goes next."""

    session: SessionResponse
    user: UserResponse | None = None
    needs_profile: bool = False
    redirect_to: str


class MeResponse(BaseModel):
    user_id: str
    user: UserResponse | None = None
    needs_profile: bool


# =============================================================================
# CLASS SCHEMAS
# =============================================================================


class ClassCreate(BaseModel):
    """Request body for creating a class."""

    name: str = ""
    description: str | None = None


class ClassResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    code: str
    teacher_id: str
    created_at: str

    model_config = {"from_attributes": True}


class MembershipResponse(BaseModel):
    id: str
    class_id: str
    student_id: str
    status: str
    created_at: str
    updated_at: str | None = None

    model_config = {"from_attributes": True}


class ClassMemberResponse(BaseModel):
    membership: MembershipResponse
    student_name: str
    student_email: str


class TeacherClassResponse(BaseModel):
    """A teacher's class with pending and approved members."""

    class_: ClassResponse = Field(..., alias="class")
    pending: list[ClassMemberResponse]
    approved: list[ClassMemberResponse]

    model_config = {"populate_by_name": True}


class TeacherClassListResponse(BaseModel):
    classes: list[TeacherClassResponse]
    count: int


class AddStudentRequest(BaseModel):
    email: str = ""


class JoinByCodeRequest(BaseModel):
    code: str = ""


class ClassSearchResult(BaseModel):
    class_: ClassResponse = Field(..., alias="class")
    teacher_name: str

    model_config = {"populate_by_name": True}


class ClassSearchResponse(BaseModel):
    results: list[ClassSearchResult]
    count: int


class StudentClassResponse(BaseModel):
    class_: ClassResponse = Field(..., alias="class")
    teacher_name: str
    status: str
    assigned_modules: int

    model_config = {"populate_by_name": True}


class StudentClassListResponse(BaseModel):
    classes: list[StudentClassResponse]
    count: int


# =============================================================================
# MODULE SCHEMAS
# =============================================================================


class QuestionInput(BaseModel):
    """A quiz question in the authoring form."""

    id: str | None = None
    question: str = ""
    type: Literal["multiple_choice", "free_response"] = "multiple_choice"
    options: list[str] = Field(default_factory=list)
    correct_index: int | None = None
    correct_answer_text: str | None = None


class LessonInput(BaseModel):
    """A lesson in the authoring form."""

    id: str | None = None
    title: str = ""
    content: str = ""
    questions: list[QuestionInput] = Field(default_factory=list)


class ModuleInput(BaseModel):
    """Request body for creating or updating a module."""

    title: str = ""
    subject: str = ""
    description: str = ""
    status: Literal["draft", "published"] = "draft"
    lessons: list[LessonInput] = Field(default_factory=list)


class ModuleResponse(BaseModel):
    id: str
    title: str
    subject: str
    description: str
    teacher_id: str
    status: str
    created_at: str
    updated_at: str | None = None

    model_config = {"from_attributes": True}


class ModuleListResponse(BaseModel):
    modules: list[ModuleResponse]
    count: int


class MultipleChoiceQuestionResponse(BaseModel):
    id: str
    type: Literal["multiple_choice"] = "multiple_choice"
    question: str
    options: list[str]
    correct_index: int
    order_index: int

    model_config = {"from_attributes": True}


class FreeResponseQuestionResponse(BaseModel):
    id: str
    type: Literal["free_response"] = "free_response"
    question: str
    correct_answer_text: str
    order_index: int

    model_config = {"from_attributes": True}


QuestionResponse = Union[MultipleChoiceQuestionResponse, FreeResponseQuestionResponse]


class LessonResponse(BaseModel):
    id: str
    title: str
    content: str
    order_index: int
    questions: list[QuestionResponse]


class ModuleDetailResponse(BaseModel):
    """A module with ordered lessons and questions (teacher view)."""

    module: ModuleResponse
    lessons: list[LessonResponse]


# =============================================================================
# ASSIGNMENT SCHEMAS
# =============================================================================


class AssignmentTargetInput(BaseModel):
    id: str
    due_date: str | None = None


class AssignmentsInput(BaseModel):
    """The complete set of targets a module should be assigned to."""

    classes: list[AssignmentTargetInput] = Field(default_factory=list)
    students: list[AssignmentTargetInput] = Field(default_factory=list)


class AssignmentResponse(BaseModel):
    id: str
    module_id: str
    class_id: str | None = None
    student_id: str | None = None
    due_date: str | None = None
    created_at: str

    model_config = {"from_attributes": True}


class AssignmentListResponse(BaseModel):
    module_id: str
    assignments: list[AssignmentResponse]
    added: int = 0
    removed: int = 0
    updated: int = 0
    student_modules_created: int = 0


class ProgressRowResponse(BaseModel):
    student_id: str
    student_name: str
    progress: float
    completed_at: str | None = None

    model_config = {"from_attributes": True}


class ProgressReportResponse(BaseModel):
    module_id: str
    students: list[ProgressRowResponse]
    count: int


# =============================================================================
# STUDENT SCHEMAS
# =============================================================================


class StudentModuleSummaryResponse(BaseModel):
    module: ModuleResponse
    progress: float
    completed: bool
    completed_at: str | None = None
    due_date: str | None = None


class StudentModuleListResponse(BaseModel):
    modules: list[StudentModuleSummaryResponse]
    count: int


class StudentQuestionResponse(BaseModel):
    """A question as shown to a student.

    Correct answers are only present once the student has attempted it.
    """

    id: str
    type: str
    question: str
    options: list[str] | None = None
    state: str
    selected_index: int | None = None
    answer_text: str | None = None
    correct_index: int | None = None
    correct_answer_text: str | None = None


class StudentLessonResponse(BaseModel):
    id: str
    title: str
    content: str
    order_index: int
    completed: bool
    questions: list[StudentQuestionResponse]


class StudentModuleViewResponse(BaseModel):
    module: ModuleResponse
    progress: float
    completed_at: str | None = None
    answered_questions: int
    total_questions: int
    lessons: list[StudentLessonResponse]


class QuizSubmission(BaseModel):
    """Answers keyed by question id: option index or free text."""

    answers: dict[str, Union[int, float, str, None]] = Field(default_factory=dict)


class QuestionResultResponse(BaseModel):
    question_id: str
    is_correct: bool


class SubmissionResponse(BaseModel):
    lesson_id: str
    module_id: str
    lesson_completed: bool
    module_progress: float
    module_completed: bool
    correct_count: int
    results: list[QuestionResultResponse] = Field(default_factory=list)


# =============================================================================
# CHAT SCHEMAS
# =============================================================================


class ChatMessage(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    """Conversation so far plus what the student is studying."""

    messages: list[ChatMessage] = Field(default_factory=list)
    module_id: str = Field(..., alias="moduleId")
    lesson_id: str | None = Field(default=None, alias="lessonId")

    model_config = {"populate_by_name": True}


class ChatResponse(BaseModel):
    ai_message: ChatMessage = Field(..., alias="aiMessage")

    model_config = {"populate_by_name": True}


# =============================================================================
# DEMO SCHEMAS
# =============================================================================


class DemoAuthRequest(BaseModel):
    role: str = ""


class DemoAuthResponse(BaseModel):
    success: bool = True
    session: SessionResponse
    user: UserResponse
    redirect_to: str


class DemoSetupResponse(BaseModel):
    success: bool = True
    teacher_id: str
    student_id: str
    class_ids: list[str]
    module_ids: list[str]
    classes_created: int
    modules_created: int
    assignments_created: int


class DemoCleanupResponse(BaseModel):
    success: bool = True
    deleted_count: int = Field(..., alias="deletedCount")

    model_config = {"populate_by_name": True}


def error_body(detail: str, **extra: Any) -> dict[str, Any]:
    """Error payload shared by the exception handlers."""
    return {"detail": detail, **extra}
