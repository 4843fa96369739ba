"""Chat threads: opening, posting, recalling, read tracking and listing.

Every function takes the caller's ``User`` and enforces access itself:
staff (editors and admins) may act on any thread, customers only on threads
they own.
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from vanguard_desk.core.config import settings
from vanguard_desk.models.thread import (
    MessageOrigin,
    MessageType,
    SenderRole,
    Thread,
    ThreadMessage,
    ThreadStatus,
    as_utc,
    utcnow,
)
from vanguard_desk.models.user import User
from vanguard_desk.services.errors import NotFound, PermissionDenied, RecallWindowExpired, ValidationError

logger = logging.getLogger(__name__)

RECALLED_PLACEHOLDER = "This message has been recalled"

PREVIEW_LABELS = {
    MessageType.IMAGE: "[image]",
    MessageType.VIDEO: "[video]",
    MessageType.AUDIO: "[audio]",
}


# --- Access ---

def get_thread(session: Session, thread_id: int) -> Thread:
    thread = session.get(Thread, thread_id)
    if not thread:
        raise NotFound("Thread not found")
    return thread


def can_access(thread: Thread, user: User) -> bool:
    return user.is_staff or (thread.user_id is not None and thread.user_id == user.id)


def get_thread_for(session: Session, thread_id: int, user: User) -> Thread:
    """Load a thread the caller is allowed to see."""
    thread = get_thread(session, thread_id)
    if not can_access(thread, user):
        logger.debug(f"User {user.id} denied access to thread {thread_id}")
        raise PermissionDenied("Not permitted")
    return thread


def list_messages(session: Session, thread_id: int) -> list[ThreadMessage]:
    return list(
        session.exec(
            select(ThreadMessage)
            .where(ThreadMessage.thread_id == thread_id)
            .order_by(ThreadMessage.seq)  # type: ignore
        ).all()
    )


# --- Opening ---

def open_thread(session: Session, user: User, subject: str | None) -> Thread:
    """Return the caller's latest thread with this subject, creating one if needed.

    Two concurrent calls for the same (user, subject) may both create a thread.
    """
    subject = (subject or "").strip() or settings.default_chat_subject
    if not 2 <= len(subject) <= 200:
        raise ValidationError("Subject must be 2-200 characters")

    existing = session.exec(
        select(Thread)
        .where(Thread.user_id == user.id, Thread.subject == subject)
        .order_by(Thread.updated_at.desc())  # type: ignore
        .limit(1)
    ).first()
    if existing:
        return existing

    thread = Thread(
        name=user.username,
        email=user.email,
        subject=subject,
        message="",
        status=ThreadStatus.IN_PROGRESS,
        user_id=user.id,
    )
    session.add(thread)
    session.commit()
    session.refresh(thread)
    logger.info(f"Opened thread {thread.id} for user {user.id} ({subject!r})")
    return thread


# --- Posting ---

def _validate_payload(type_: str | None, text: str | None, url: str | None) -> tuple[MessageType, str, str]:
    raw_type = (type_ or MessageType.TEXT.value).strip().lower()
    try:
        message_type = MessageType(raw_type)
    except ValueError:
        raise ValidationError(f"Unsupported message type: {raw_type}")

    text = text.strip() if isinstance(text, str) else ""
    url = url.strip() if isinstance(url, str) else ""

    if message_type == MessageType.TEXT and not text:
        raise ValidationError("Message text is required")
    if message_type != MessageType.TEXT and not url:
        raise ValidationError("Media url is required")
    return message_type, text, url


def append_message(
    session: Session,
    thread_id: int,
    user: User,
    type_: str | None,
    text: str | None = None,
    url: str | None = None,
) -> list[ThreadMessage]:
    """Post a message as ``user`` and return the thread's full message list."""
    thread = get_thread_for(session, thread_id, user)
    message_type, text, url = _validate_payload(type_, text, url)
    origin = MessageOrigin.of(user)

    message = ThreadMessage(
        thread_id=thread.id,  # type: ignore[arg-type]
        sender=origin.role,
        sender_user_id=origin.user_id,
        type=message_type,
        text=text if message_type == MessageType.TEXT else "",
        url=url if message_type != MessageType.TEXT else "",
        at=utcnow(),
    )
    session.add(message)

    if not origin.is_staff:
        thread.is_read = False
    if thread.status == ThreadStatus.NEW:
        thread.status = ThreadStatus.IN_PROGRESS
    thread.touch()
    session.add(thread)
    session.commit()

    logger.debug(f"Thread {thread_id}: {origin.role.value} {user.id} posted {message_type.value} {message.uid}")
    return list_messages(session, thread_id)


# --- Recall ---

def recall_message(
    session: Session,
    thread_id: int,
    message_uid: str,
    user: User,
    now: datetime | None = None,
) -> list[ThreadMessage]:
    """Hide one of the caller's own messages, within the recall window."""
    thread = get_thread_for(session, thread_id, user)
    message = session.exec(
        select(ThreadMessage).where(
            ThreadMessage.thread_id == thread.id,
            ThreadMessage.uid == message_uid,
        )
    ).first()
    if not message:
        raise NotFound("Message not found")

    if message.sender_user_id is None or message.sender_user_id != user.id:
        raise PermissionDenied("Can only recall your own messages")

    if message.recalled:
        return list_messages(session, thread_id)

    now = now or utcnow()
    window = timedelta(seconds=settings.recall_window_seconds)
    if now - as_utc(message.at) >= window:
        raise RecallWindowExpired("Recall window expired")

    message.recalled = True
    session.add(message)
    session.commit()
    logger.info(f"Thread {thread_id}: message {message_uid} recalled by user {user.id}")
    return list_messages(session, thread_id)


# --- Read tracking ---

def mark_read(session: Session, thread_id: int, user: User) -> Thread:
    """Staff mark the whole thread read; a customer moves their read marker to now."""
    thread = get_thread_for(session, thread_id, user)
    if user.is_staff:
        thread.is_read = True
    else:
        thread.customer_last_read_at = utcnow()
    session.add(thread)
    session.commit()
    session.refresh(thread)
    return thread


def unread_count(thread: Thread, messages: list[ThreadMessage], user: User) -> int:
    if user.is_staff:
        return 0 if thread.is_read else 1

    last_read = as_utc(thread.customer_last_read_at) if thread.customer_last_read_at else None
    return sum(
        1
        for m in messages
        if m.sender == SenderRole.ADMIN
        and not m.recalled
        and (last_read is None or as_utc(m.at) > last_read)
    )


# --- Rendering ---

def _iso(value: datetime | None) -> str | None:
    return as_utc(value).isoformat() if value else None


def render_message(message: ThreadMessage) -> dict[str, Any]:
    """Client view of a message. Recalled content is never included."""
    data: dict[str, Any] = {
        "id": message.uid,
        "from": message.sender.value,
        "from_user_id": message.sender_user_id,
        "type": message.type.value,
        "at": _iso(message.at),
        "recalled": message.recalled,
    }
    if message.recalled:
        data.update(text=None, url=None, placeholder=RECALLED_PLACEHOLDER)
    else:
        data.update(text=message.text, url=message.url)
    return data


def message_preview(message: ThreadMessage | None) -> dict[str, Any] | None:
    if message is None:
        return None
    if message.recalled:
        text = "[recalled]"
    elif message.type == MessageType.TEXT:
        text = message.text
    else:
        text = PREVIEW_LABELS.get(message.type, "")
    return {"text": text, "type": message.type.value, "at": _iso(message.at)}


def render_thread(thread: Thread, messages: list[ThreadMessage] | None = None) -> dict[str, Any]:
    data = {
        "id": thread.id,
        "user_id": thread.user_id,
        "assigned_to": thread.assigned_to,
        "name": thread.name,
        "email": thread.email,
        "phone": thread.phone,
        "company": thread.company,
        "country": thread.country,
        "subject": thread.subject,
        "message": thread.message,
        "product_interest": thread.product_interest,
        "inquiry_type": thread.inquiry_type.value,
        "source": thread.source.value,
        "tags": thread.tags or [],
        "status": thread.status.value,
        "priority": thread.priority.value,
        "is_read": thread.is_read,
        "response": thread.response,
        "created_at": _iso(thread.created_at),
        "updated_at": _iso(thread.updated_at),
    }
    if messages is not None:
        data["messages"] = [render_message(m) for m in messages]
    return data


# --- Listing ---

def list_threads(session: Session, user: User) -> list[dict[str, Any]]:
    """Threads visible to the caller, most recently active first."""
    query = select(Thread).options(selectinload(Thread.messages))  # type: ignore[arg-type]
    if not user.is_staff:
        query = query.where(Thread.user_id == user.id)
    threads = session.exec(query.order_by(Thread.updated_at.desc())).all()  # type: ignore

    owner_ids = {t.user_id for t in threads if t.user_id is not None}
    owners = {}
    if owner_ids:
        owners = {
            u.id: u
            for u in session.exec(select(User).where(User.id.in_(list(owner_ids)))).all()  # type: ignore
        }

    result = []
    for thread in threads:
        messages = list(thread.messages)
        owner = owners.get(thread.user_id)
        entry = render_thread(thread)
        entry["user"] = (
            {"id": owner.id, "username": owner.username, "email": owner.email} if owner else None
        )
        entry["unread_count"] = unread_count(thread, messages, user)
        entry["last_message"] = message_preview(messages[-1] if messages else None)
        result.append(entry)
    return result
