"""Review request/response schemas."""

import enum

from pydantic import BaseModel, Field, field_validator

from .models import DIMENSIONS, Recommendation


class ReviewSort(str, enum.Enum):
    RECENT = "recent"
    RATING_HIGH = "rating-high"
    RATING_LOW = "rating-low"
    HELPFUL = "helpful"


class DimensionInput(BaseModel):
    """Rating for one dimension, with the reviewer's optional comment."""

    rating: int = Field(..., ge=1, le=5)
    feedback: str = Field("", max_length=500)


class ReviewCreateRequest(BaseModel):
    company_id: str
    role: str = Field(..., max_length=255)
    recommendation: Recommendation
    ratings: dict[str, DimensionInput]
    advice: str = Field("", max_length=500)

    @field_validator("role")
    @classmethod
    def role_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please enter your role or department")
        return v

    @field_validator("ratings")
    @classmethod
    def all_dimensions_rated(cls, v: dict[str, DimensionInput]) -> dict[str, DimensionInput]:
        unknown = sorted(set(v) - set(DIMENSIONS))
        if unknown:
            raise ValueError(f"Unknown rating dimensions: {', '.join(unknown)}")
        missing = [d for d in DIMENSIONS if d not in v]
        if missing:
            raise ValueError(f"Please rate every dimension (missing: {', '.join(missing)})")
        return v

