"""Token-addressed notifications and the transactional email outbox."""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database.base import Base


class NotificationType(enum.StrEnum):
    COMPANY_APPROVED = "company_approved"
    COMPANY_REJECTED = "company_rejected"


class DeliveryStatus(enum.StrEnum):
    QUEUED = "queued"
    SENT = "sent"
    FAILED = "failed"


class Notification(Base):
    """A message for a requester, readable by anyone holding its token until it expires."""

    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    token = Column(String(64), nullable=False, unique=True, index=True)
    recipient_hash = Column(String(64), nullable=False, index=True)
    type = Column(
        SQLEnum(NotificationType, values_callable=lambda e: [t.value for t in e]),
        nullable=False,
    )
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, default=dict)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    expires_at = Column(DateTime(timezone=True), nullable=False)

    deliveries = relationship("EmailDelivery", back_populates="notification")


class EmailDelivery(Base):
    """Outbox row: one transactional email, sent after the deciding transaction commits."""

    __tablename__ = "email_deliveries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    notification_id = Column(
        UUID(as_uuid=True),
        ForeignKey("notifications.id", ondelete="SET NULL"),
        nullable=True,
    )
    recipient_email = Column(String(255), nullable=False)
    recipient_name = Column(String(255), nullable=True)
    email_type = Column(
        SQLEnum(NotificationType, name="emailtype", values_callable=lambda e: [t.value for t in e]),
        nullable=False,
    )
    company_name = Column(String(255), nullable=False)
    notification_token = Column(String(64), nullable=False)
    rejection_reason = Column(Text, nullable=True)

    status = Column(
        SQLEnum(DeliveryStatus, values_callable=lambda e: [s.value for s in e]),
        nullable=False,
        default=DeliveryStatus.QUEUED,
        index=True,
    )
    attempts = Column(Integer, default=0, nullable=False)
    last_error = Column(Text, nullable=True)
    message_id = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    sent_at = Column(DateTime(timezone=True), nullable=True)

    notification = relationship("Notification", back_populates="deliveries")
