"""REST API for the public contact form and the staff inquiry back-office."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from pydantic import BaseModel, EmailStr, Field
from sqlmodel import Session

from vanguard_desk.api.threads import MessageCreate
from vanguard_desk.core.database import get_session
from vanguard_desk.core.security import (
    get_current_user,
    get_optional_user,
    require_admin,
    require_staff,
)
from vanguard_desk.models.thread import InquiryType, Priority, ThreadStatus
from vanguard_desk.models.user import User
from vanguard_desk.services import inquiries, notifications, threads
from vanguard_desk.services.errors import DeskError
from vanguard_desk.services.threads import render_message, render_thread

router = APIRouter()
logger = logging.getLogger(__name__)


class ContactCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    subject: str = Field(min_length=2, max_length=200)
    message: str = Field(min_length=1)
    phone: str | None = Field(default=None, max_length=20)
    company: str | None = Field(default=None, max_length=100)
    country: str | None = Field(default=None, max_length=100)
    product_interest: str | None = Field(default=None, max_length=200)
    inquiry_type: InquiryType = InquiryType.GENERAL


class StatusUpdate(BaseModel):
    status: ThreadStatus
    priority: Priority | None = None
    assigned_to: int | None = None


class ResponseCreate(BaseModel):
    response: str = Field(min_length=1)


@router.post("/")
async def submit_contact(
    body: ContactCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User | None = Depends(get_optional_user),
    session: Session = Depends(get_session),
):
    if not body.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")

    thread = inquiries.submit_inquiry(
        session,
        name=body.name,
        email=body.email,
        subject=body.subject,
        message=body.message,
        user=user,
        phone=body.phone,
        company=body.company,
        country=body.country,
        product_interest=body.product_interest,
        inquiry_type=body.inquiry_type,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )

    # Mail goes out after the response; failures are logged, never raised
    snapshot = render_thread(thread)
    background_tasks.add_task(notifications.send_confirmation, snapshot)
    background_tasks.add_task(notifications.send_admin_notification, snapshot)

    return {"message": "Contact form submitted successfully", "contact_id": thread.id}


@router.get("/")
async def list_contacts(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    status: ThreadStatus | None = None,
    priority: Priority | None = None,
    search: str | None = None,
    staff: User = Depends(require_staff),
    session: Session = Depends(get_session),
):
    contacts, pagination = inquiries.list_inquiries(session, page, limit, status, priority, search)
    return {
        "contacts": [
            {**render_thread(t), "assigned_user": inquiries.assignee_name(session, t)}
            for t in contacts
        ],
        "pagination": pagination,
    }


@router.get("/{contact_id}")
async def get_contact(
    contact_id: int,
    staff: User = Depends(require_staff),
    session: Session = Depends(get_session),
):
    try:
        thread = inquiries.open_inquiry(session, contact_id)
    except DeskError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {**render_thread(thread), "assigned_user": inquiries.assignee_name(session, thread)}


@router.put("/{contact_id}/status")
async def update_contact_status(
    contact_id: int,
    body: StatusUpdate,
    staff: User = Depends(require_staff),
    session: Session = Depends(get_session),
):
    try:
        thread = inquiries.update_status(
            session, contact_id, body.status, body.priority, body.assigned_to
        )
    except DeskError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return render_thread(thread)


@router.put("/{contact_id}/respond")
async def respond_to_contact(
    contact_id: int,
    body: ResponseCreate,
    background_tasks: BackgroundTasks,
    staff: User = Depends(require_staff),
    session: Session = Depends(get_session),
):
    try:
        thread = inquiries.respond(session, contact_id, staff, body.response)
    except DeskError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    background_tasks.add_task(notifications.send_response, render_thread(thread))
    return {"message": "Response sent successfully"}


@router.put("/{contact_id}/read")
async def mark_contact_read(
    contact_id: int,
    staff: User = Depends(require_staff),
    session: Session = Depends(get_session),
):
    try:
        inquiries.open_inquiry(session, contact_id)
    except DeskError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"message": "Marked as read"}


@router.post("/{contact_id}/messages")
async def post_contact_message(
    contact_id: int,
    body: MessageCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Older clients post to the inquiry path; same rules as the thread route."""
    try:
        messages = threads.append_message(session, contact_id, user, body.type, body.text, body.url)
    except DeskError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"messages": [render_message(m) for m in messages]}


@router.put("/{contact_id}/messages/{message_id}/recall")
async def recall_contact_message(
    contact_id: int,
    message_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    try:
        messages = threads.recall_message(session, contact_id, message_id, user)
    except DeskError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"messages": [render_message(m) for m in messages]}


@router.delete("/{contact_id}")
async def delete_contact(
    contact_id: int,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    try:
        inquiries.delete_inquiry(session, contact_id)
    except DeskError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"message": "Contact inquiry deleted successfully"}
