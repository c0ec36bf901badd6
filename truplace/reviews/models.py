"""Review model and rating vocabulary."""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database.base import Base

DIMENSIONS = (
    "compensation",
    "management",
    "culture",
    "career",
    "recognition",
    "environment",
    "worklife",
    "cooperation",
    "business_health",
)


class Recommendation(enum.StrEnum):
    HIGHLY_RECOMMEND = "highly-recommend"
    MAYBE = "maybe"
    NOT_RECOMMENDED = "not-recommended"


class Review(Base):
    __tablename__ = "reviews"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(
        UUID(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    overall_rating = Column(Integer, nullable=False)
    recommendation = Column(
        SQLEnum(Recommendation, values_callable=lambda e: [r.value for r in e]),
        nullable=False,
    )
    role = Column(String(255), default="")
    pros = Column(JSON, default=list)
    cons = Column(JSON, default=list)
    advice = Column(Text, nullable=True)

    # One column per dimension so stats can be averaged in SQL
    compensation = Column(Integer, nullable=False)
    management = Column(Integer, nullable=False)
    culture = Column(Integer, nullable=False)
    career = Column(Integer, nullable=False)
    recognition = Column(Integer, nullable=False)
    environment = Column(Integer, nullable=False)
    worklife = Column(Integer, nullable=False)
    cooperation = Column(Integer, nullable=False)
    business_health = Column(Integer, nullable=False)

    helpful_count = Column(Integer, default=0)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
    )

    company = relationship("Company", back_populates="reviews")
    user = relationship("User", back_populates="reviews")

    __table_args__ = (
        Index("idx_reviews_company", "company_id"),
        Index("idx_reviews_created", "created_at"),
    )

    @property
    def dimensions(self) -> dict[str, int]:
        return {d: getattr(self, d) for d in DIMENSIONS}
