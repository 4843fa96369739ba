"""REST API for customer/staff chat threads. Clients poll GET /threads/{id} for updates."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from vanguard_desk.core.database import get_session
from vanguard_desk.core.security import get_current_user
from vanguard_desk.models.user import User
from vanguard_desk.services import threads
from vanguard_desk.services.errors import DeskError

router = APIRouter()
logger = logging.getLogger(__name__)


class ThreadOpen(BaseModel):
    subject: str = ""


class MessageCreate(BaseModel):
    type: str = "text"  # text | image | video | audio
    text: str | None = None
    url: str | None = None


def _http_error(e: DeskError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/threads")
async def list_threads(
    user: User = Depends(get_current_user), session: Session = Depends(get_session)
):
    return threads.list_threads(session, user)


@router.post("/threads")
async def open_thread(
    body: ThreadOpen,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Reuse the caller's latest thread with this subject, or start a new one."""
    try:
        thread = threads.open_thread(session, user, body.subject)
    except DeskError as e:
        raise _http_error(e)
    return threads.render_thread(thread, threads.list_messages(session, thread.id))  # type: ignore[arg-type]


@router.get("/threads/{thread_id}")
async def get_thread(
    thread_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    try:
        thread = threads.get_thread_for(session, thread_id, user)
    except DeskError as e:
        raise _http_error(e)
    return threads.render_thread(thread, threads.list_messages(session, thread_id))


@router.post("/threads/{thread_id}/messages")
async def post_message(
    thread_id: int,
    body: MessageCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    try:
        messages = threads.append_message(session, thread_id, user, body.type, body.text, body.url)
    except DeskError as e:
        raise _http_error(e)
    return {"messages": [threads.render_message(m) for m in messages]}


@router.put("/threads/{thread_id}/messages/{message_id}/recall")
async def recall_message(
    thread_id: int,
    message_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    try:
        messages = threads.recall_message(session, thread_id, message_id, user)
    except DeskError as e:
        logger.debug(f"Recall of {message_id} in thread {thread_id} refused: {e}")
        raise _http_error(e)
    return {"messages": [threads.render_message(m) for m in messages]}


@router.put("/threads/{thread_id}/read")
async def mark_thread_read(
    thread_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    try:
        threads.mark_read(session, thread_id, user)
    except DeskError as e:
        raise _http_error(e)
    return {"status": "read"}
