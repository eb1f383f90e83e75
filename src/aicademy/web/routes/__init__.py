"""Route handlers for the Web API."""

from aicademy.web.routes.health import router as health_router
from aicademy.web.routes.auth import router as auth_router
from aicademy.web.routes.classes import router as classes_router
from aicademy.web.routes.modules import router as modules_router
from aicademy.web.routes.student import router as student_router
from aicademy.web.routes.chat import router as chat_router
from aicademy.web.routes.demo import router as demo_router

__all__ = [
    "health_router",
    "auth_router",
    "classes_router",
    "modules_router",
    "student_router",
    "chat_router",
    "demo_router",
]
