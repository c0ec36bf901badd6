"""Company request/response schemas."""

import enum

from pydantic import BaseModel, Field, field_validator

from .models import COMPANY_SIZES


class CompanySort(str, enum.Enum):
    REVIEWS = "reviews"
    RATING = "rating"
    NAME = "name"
    RECENT = "recent"


class CompanyUpdateRequest(BaseModel):
    name: str = Field(..., max_length=255)
    industry: str = Field(..., min_length=1, max_length=100)
    size: str
    logo_url: str | None = Field(None, max_length=500)

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Company name is required")
        return v

    @field_validator("size")
    @classmethod
    def known_size(cls, v: str) -> str:
        if v not in COMPANY_SIZES:
            raise ValueError("Please select company size")
        return v

    @field_validator("logo_url")
    @classmethod
    def blank_logo_is_none(cls, v: str | None) -> str | None:
        return v.strip() or None if v else None

