"""Contact threads and their messages.

A thread starts life either as a public contact-form inquiry (no owner) or as a
chat opened by a signed-in customer. Messages live in their own table so that
appending is a single INSERT: two parties posting at the same moment both land,
ordered by the auto-increment ``seq`` column.
"""

import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from vanguard_desk.models.user import User


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands datetimes back naive; they were stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ThreadStatus(str, Enum):
    NEW = "New"
    IN_PROGRESS = "In Progress"
    RESPONDED = "Responded"
    CLOSED = "Closed"


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class InquiryType(str, Enum):
    GENERAL = "General Inquiry"
    PRODUCT = "Product Information"
    QUOTE = "Quote Request"
    SUPPORT = "Technical Support"
    PARTNERSHIP = "Partnership"
    OTHER = "Other"


class Source(str, Enum):
    WEBSITE_FORM = "Website Form"
    EMAIL = "Email"
    PHONE = "Phone"
    SOCIAL_MEDIA = "Social Media"
    REFERRAL = "Referral"


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class SenderRole(str, Enum):
    GUEST = "guest"
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class MessageOrigin:
    """Who wrote a message: a guest, a customer account or a staff account."""

    role: SenderRole
    user_id: int | None = None

    @classmethod
    def guest(cls) -> "MessageOrigin":
        return cls(SenderRole.GUEST)

    @classmethod
    def customer(cls, user_id: int) -> "MessageOrigin":
        return cls(SenderRole.USER, user_id)

    @classmethod
    def staff(cls, user_id: int) -> "MessageOrigin":
        return cls(SenderRole.ADMIN, user_id)

    @classmethod
    def of(cls, user: User | None) -> "MessageOrigin":
        if user is None:
            return cls.guest()
        if user.is_staff:
            return cls.staff(user.id)  # type: ignore[arg-type]
        return cls.customer(user.id)  # type: ignore[arg-type]

    @property
    def is_staff(self) -> bool:
        return self.role == SenderRole.ADMIN


_UID_ALPHABET = string.digits + string.ascii_lowercase


def new_message_uid() -> str:
    """Millisecond timestamp followed by a 9-character base-36 suffix."""
    suffix = "".join(secrets.choice(_UID_ALPHABET) for _ in range(9))
    return f"{int(time.time() * 1000)}{suffix}"


class Thread(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    assigned_to: Optional[int] = Field(default=None, foreign_key="user.id")

    name: str = Field(max_length=100)
    email: str = Field(max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    company: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)
    subject: str = Field(max_length=200, index=True)
    message: str = Field(default="")
    product_interest: Optional[str] = Field(default=None, max_length=200)
    inquiry_type: InquiryType = Field(default=InquiryType.GENERAL)
    source: Source = Field(default=Source.WEBSITE_FORM)
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    status: ThreadStatus = Field(default=ThreadStatus.NEW)
    priority: Priority = Field(default=Priority.MEDIUM)
    is_read: bool = Field(default=False)
    customer_last_read_at: Optional[datetime] = None
    response: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    ip_address: Optional[str] = Field(default=None, max_length=45)
    user_agent: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, index=True)

    messages: list["ThreadMessage"] = Relationship(
        back_populates="thread",
        sa_relationship_kwargs={
            "order_by": "ThreadMessage.seq",
            "cascade": "all, delete-orphan",
        },
    )

    def touch(self) -> None:
        self.updated_at = utcnow()


class ThreadMessage(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("thread_id", "uid"),)

    seq: Optional[int] = Field(default=None, primary_key=True)
    uid: str = Field(default_factory=new_message_uid, max_length=32)
    thread_id: int = Field(foreign_key="thread.id", index=True)
    sender: SenderRole
    sender_user_id: Optional[int] = Field(default=None, foreign_key="user.id")
    type: MessageType = Field(default=MessageType.TEXT)
    text: str = Field(default="")
    url: str = Field(default="")
    at: datetime = Field(default_factory=utcnow)
    recalled: bool = Field(default=False)

    thread: Optional[Thread] = Relationship(back_populates="messages")

    @property
    def origin(self) -> MessageOrigin:
        return MessageOrigin(self.sender, self.sender_user_id)
