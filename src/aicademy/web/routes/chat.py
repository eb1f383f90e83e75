"""AI tutor chat endpoint."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from aicademy.core import tutor_chat
from aicademy.db.users_repository import UserRecord
from aicademy.web.deps import get_current_user
from aicademy.web.schemas import ChatMessage, ChatRequest, ChatResponse

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/ai-chat", response_model=ChatResponse)
def ai_chat(request: ChatRequest, user: UserRecord = Depends(get_current_user)):
    """Answer the latest message for the signed-in user.

    Model failures come back as a fallback message with status 503
    (server unreachable) or 502 (other errors).
    """
    reply = tutor_chat.chat(
        [m.model_dump() for m in request.messages],
        user_id=user.id,
        module_id=request.module_id,
        lesson_id=request.lesson_id,
    )
    body = ChatResponse(ai_message=ChatMessage(**reply.to_message()))
    if reply.status_code != 200:
        return JSONResponse(status_code=reply.status_code, content=body.model_dump(by_alias=True))
    return body
