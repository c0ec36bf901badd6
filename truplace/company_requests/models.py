"""Company request model: a user's proposal to add a company, triaged by admins."""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, Index, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID

from ..database.base import Base


class RequestStatus(enum.StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CompanyRequest(Base):
    __tablename__ = "company_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Requester identity: the hash addresses notifications, the email addresses mail
    requester_hash = Column(String(64), nullable=False, index=True)
    requester_email = Column(String(255), nullable=False)

    company_name = Column(String(100), nullable=False)
    company_website = Column(String(500), nullable=False)
    email_domains = Column(JSON, default=list)
    industry = Column(String(100), nullable=False)
    company_size = Column(String(50), nullable=False)
    description = Column(Text, default="")
    justification = Column(Text, default="")

    status = Column(
        SQLEnum(RequestStatus, values_callable=lambda e: [s.value for s in e]),
        nullable=False,
        default=RequestStatus.PENDING,
    )
    admin_notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(String(255), nullable=True)

    __table_args__ = (Index("idx_company_requests_status_created", "status", "created_at"),)
