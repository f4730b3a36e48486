"""Chat API controller with FastAPI endpoints."""

import logging

from fastapi import APIRouter, BackgroundTasks, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import enforce_chat_rate_limit, get_current_user, get_db
from app.domains.chat.service import ChatService
from app.domains.session_meta.service import refresh_session_metadata
from app.schemas.chat import ChatRequest, ChatResponse
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


@router.post(
    "/chat",
    response_model=ChatResponse,
    dependencies=[Depends(enforce_chat_rate_limit)],
)
async def send_chat_message(
    background_tasks: BackgroundTasks,
    chat_request: ChatRequest = Body(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Send a message to the AI mentor.

    Args:
        chat_request: Chat request with message and optional session ID
        current_user: Current authenticated student
        db: Database session

    Returns:
        The mentor reply. Session metadata is refreshed after the response.
    """
    service = ChatService(db)
    result = await service.send_message(chat_request, current_user)
    background_tasks.add_task(refresh_session_metadata, result.session_id)
    return result
