"""Contact-form intake and the staff back-office for inquiries."""

import logging
import math
from typing import Any

from sqlalchemy import func, or_
from sqlmodel import Session, select

from vanguard_desk.models.thread import (
    InquiryType,
    MessageOrigin,
    Priority,
    Thread,
    ThreadMessage,
    ThreadStatus,
    utcnow,
)
from vanguard_desk.models.user import User
from vanguard_desk.services.errors import NotFound, ValidationError
from vanguard_desk.services.threads import get_thread

logger = logging.getLogger(__name__)


def submit_inquiry(
    session: Session,
    *,
    name: str,
    email: str,
    subject: str,
    message: str,
    user: User | None = None,
    phone: str | None = None,
    company: str | None = None,
    country: str | None = None,
    product_interest: str | None = None,
    inquiry_type: InquiryType = InquiryType.GENERAL,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> Thread:
    """Record a contact-form submission as a new thread seeded with its body.

    Always creates a new thread, even if the same person asked the same thing before.
    """
    origin = MessageOrigin.guest() if user is None else MessageOrigin.customer(user.id)  # type: ignore[arg-type]
    thread = Thread(
        name=name,
        email=email,
        subject=subject,
        message=message,
        phone=phone,
        company=company,
        country=country,
        product_interest=product_interest,
        inquiry_type=inquiry_type,
        user_id=user.id if user else None,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    session.add(thread)
    session.flush()

    session.add(
        ThreadMessage(
            thread_id=thread.id,  # type: ignore[arg-type]
            sender=origin.role,
            sender_user_id=origin.user_id,
            text=message,
            at=thread.created_at,
        )
    )
    session.commit()
    session.refresh(thread)
    logger.info(f"New inquiry {thread.id} from {email} ({origin.role.value})")
    return thread


def list_inquiries(
    session: Session,
    page: int = 1,
    limit: int = 20,
    status: ThreadStatus | None = None,
    priority: Priority | None = None,
    search: str | None = None,
) -> tuple[list[Thread], dict[str, Any]]:
    """One page of inquiries, newest first, plus pagination info."""
    filters = []
    if status is not None:
        filters.append(Thread.status == status)
    if priority is not None:
        filters.append(Thread.priority == priority)
    if search:
        filters.append(
            or_(
                Thread.name.contains(search),  # type: ignore[attr-defined]
                Thread.email.contains(search),  # type: ignore[attr-defined]
                Thread.subject.contains(search),  # type: ignore[attr-defined]
                Thread.message.contains(search),  # type: ignore[attr-defined]
            )
        )

    count_query = select(func.count()).select_from(Thread)
    page_query = select(Thread)
    for condition in filters:
        count_query = count_query.where(condition)
        page_query = page_query.where(condition)

    total = session.exec(count_query).one()
    threads = session.exec(
        page_query
        .order_by(Thread.created_at.desc())  # type: ignore
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    pagination = {
        "current": page,
        "pages": math.ceil(total / limit),
        "total": total,
        "has_next": page * limit < total,
        "has_prev": page > 1,
    }
    return list(threads), pagination


def open_inquiry(session: Session, thread_id: int) -> Thread:
    """Staff detail view; opening an inquiry marks it read."""
    thread = get_thread(session, thread_id)
    if not thread.is_read:
        thread.is_read = True
        session.add(thread)
        session.commit()
        session.refresh(thread)
    return thread


def update_status(
    session: Session,
    thread_id: int,
    status: ThreadStatus,
    priority: Priority | None = None,
    assigned_to: int | None = None,
) -> Thread:
    thread = get_thread(session, thread_id)
    if assigned_to is not None:
        assignee = session.get(User, assigned_to)
        if not assignee:
            raise ValidationError("Assigned user does not exist")
        thread.assigned_to = assigned_to

    thread.status = status
    if priority is not None:
        thread.priority = priority
    thread.touch()
    session.add(thread)
    session.commit()
    session.refresh(thread)
    return thread


def respond(session: Session, thread_id: int, responder: User, text: str) -> Thread:
    """Store a formal staff response and mark the inquiry responded."""
    text = text.strip()
    if not text:
        raise ValidationError("Response message is required")

    thread = get_thread(session, thread_id)
    thread.response = {
        "message": text,
        "responded_by": responder.id,
        "responded_at": utcnow().isoformat(),
    }
    thread.status = ThreadStatus.RESPONDED
    thread.touch()
    session.add(thread)
    session.commit()
    session.refresh(thread)
    logger.info(f"Inquiry {thread_id} responded by user {responder.id}")
    return thread


def delete_inquiry(session: Session, thread_id: int) -> None:
    thread = session.get(Thread, thread_id)
    if not thread:
        raise NotFound("Contact inquiry not found")
    session.delete(thread)
    session.commit()
    logger.info(f"Deleted inquiry {thread_id}")


def assignee_name(session: Session, thread: Thread) -> str | None:
    if thread.assigned_to is None:
        return None
    user = session.get(User, thread.assigned_to)
    return user.username if user else None
