"""Company request submission and review schemas."""

import re

from pydantic import BaseModel, Field, field_validator

from ..companies.models import COMPANY_SIZES

WEBSITE_RE = re.compile(r"^https?://.+\..+")
DOMAIN_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]{0,61}[a-zA-Z0-9]?\.[a-zA-Z]{2,}$")

MIN_REJECTION_REASON = 20
MAX_REJECTION_REASON = 1000


def _check_name(v: str) -> str:
    v = v.strip()
    if len(v) < 2:
        raise ValueError("Company name must be at least 2 characters")
    if len(v) > 100:
        raise ValueError("Company name must be less than 100 characters")
    return v


def _check_website(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Company website is required")
    if not WEBSITE_RE.match(v):
        raise ValueError("Please enter a valid website URL (e.g., https://company.com)")
    return v


def _check_domains(v: list[str]) -> list[str]:
    domains: list[str] = []
    for raw in v:
        domain = raw.strip().lower()
        if not DOMAIN_RE.match(domain):
            raise ValueError(f"Invalid domain format: {raw}")
        if domain not in domains:
            domains.append(domain)
    if not domains:
        raise ValueError("At least one email domain is required")
    return domains


def _check_size(v: str) -> str:
    if v not in COMPANY_SIZES:
        raise ValueError("Please select company size")
    return v


class CompanyRequestCreate(BaseModel):
    company_name: str
    company_website: str
    email_domains: list[str]
    industry: str
    company_size: str
    description: str = ""
    justification: str = ""

    @field_validator("company_name")
    @classmethod
    def valid_name(cls, v: str) -> str:
        return _check_name(v)

    @field_validator("company_website")
    @classmethod
    def valid_website(cls, v: str) -> str:
        return _check_website(v)

    @field_validator("email_domains")
    @classmethod
    def valid_domains(cls, v: list[str]) -> list[str]:
        return _check_domains(v)

    @field_validator("industry")
    @classmethod
    def industry_selected(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please select an industry")
        return v

    @field_validator("company_size")
    @classmethod
    def valid_size(cls, v: str) -> str:
        return _check_size(v)

    @field_validator("description")
    @classmethod
    def short_description(cls, v: str) -> str:
        v = v.strip()
        if len(v) > 500:
            raise ValueError("Description must be less than 500 characters")
        return v

    @field_validator("justification")
    @classmethod
    def short_justification(cls, v: str) -> str:
        v = v.strip()
        if len(v) > 300:
            raise ValueError("Justification must be less than 300 characters")
        return v


class CompanyOverrides(BaseModel):
    """Admin edits applied to the company created on approval."""

    name: str | None = None
    website: str | None = None
    email_domains: list[str] | None = None
    industry: str | None = None
    size: str | None = None

    @field_validator("name")
    @classmethod
    def valid_name(cls, v: str | None) -> str | None:
        return _check_name(v) if v is not None else None

    @field_validator("website")
    @classmethod
    def valid_website(cls, v: str | None) -> str | None:
        return _check_website(v) if v is not None else None

    @field_validator("email_domains")
    @classmethod
    def valid_domains(cls, v: list[str] | None) -> list[str] | None:
        return _check_domains(v) if v is not None else None

    @field_validator("industry")
    @classmethod
    def industry_selected(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("Please select an industry")
        return v

    @field_validator("size")
    @classmethod
    def valid_size(cls, v: str | None) -> str | None:
        return _check_size(v) if v is not None else None


class ApproveRequest(BaseModel):
    admin_notes: str = Field("", max_length=500)
    company: CompanyOverrides | None = None


class RejectRequest(BaseModel):
    # Length is enforced by the service so the check also guards direct callers
    rejection_reason: str = ""
    admin_notes: str = Field("", max_length=500)

