"""Company model and the fixed vocabularies used to describe companies."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database.base import Base

COMPANY_SIZES = (
    "1-50 employees",
    "51-200 employees",
    "201-1000 employees",
    "1000+ employees",
)

INDUSTRIES = (
    "Technology",
    "Finance",
    "Healthcare",
    "Manufacturing",
    "Retail",
    "Education",
    "Government",
    "Non-Profit",
    "Consulting",
    "Media",
    "Real Estate",
    "Other",
)

SOURCE_USER_REQUEST = "user_request"


class Company(Base):
    __tablename__ = "companies"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    industry = Column(String(100), default="")
    size = Column(String(50), default="")
    logo_url = Column(String(500), nullable=True)
    website = Column(String(500), nullable=True)
    email_domains = Column(JSON, default=list)

    # Provenance: set when the company was created by approving a request
    source = Column(String(50), nullable=True)
    request_id = Column(
        UUID(as_uuid=True),
        ForeignKey("company_requests.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    reviews = relationship("Review", back_populates="company", cascade="all, delete-orphan")

    __table_args__ = (Index("idx_companies_name", "name"),)
