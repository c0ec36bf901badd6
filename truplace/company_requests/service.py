"""Company request workflow: submission, listing, and the admin approve/reject decision.

A decision is one conditional transition out of ``pending``. The request update,
the created company (on approval), the requester notification and the queued
email are all flushed into the caller's transaction; the route commits once and
sends the email afterwards.
"""

import hashlib
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..companies.models import SOURCE_USER_REQUEST, Company
from ..companies.service import create_company, parse_uuid
from ..notifications.email import queue_email
from ..notifications.models import EmailDelivery, Notification, NotificationType
from ..notifications.service import create_notification
from .models import CompanyRequest, RequestStatus
from .schemas import MAX_REJECTION_REASON, MIN_REJECTION_REASON, CompanyOverrides, CompanyRequestCreate

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


class RequestNotFound(LookupError):
    """No company request has the given id."""


class RequestAlreadyReviewed(Exception):
    """The request has left ``pending``; a second decision changes nothing."""


class InvalidRejectionReason(ValueError):
    """Rejection reason is missing or outside the allowed length."""


@dataclass
class Decision:
    request: CompanyRequest
    notification: Notification
    delivery: EmailDelivery
    company: Company | None = None


def hash_email(email: str) -> str:
    """SHA-256 hex digest of the lowercased email."""
    return hashlib.sha256(email.strip().lower().encode()).hexdigest()


def submit_request(db: Session, requester_email: str, payload: CompanyRequestCreate) -> CompanyRequest:
    req = CompanyRequest(
        requester_hash=hash_email(requester_email),
        requester_email=requester_email,
        company_name=payload.company_name,
        company_website=payload.company_website,
        email_domains=payload.email_domains,
        industry=payload.industry,
        company_size=payload.company_size,
        description=payload.description,
        justification=payload.justification,
        status=RequestStatus.PENDING,
    )
    db.add(req)
    db.flush()
    logger.info("Company request submitted for %r", req.company_name)
    return req


def get_request(db: Session, request_id: str | UUID) -> CompanyRequest | None:
    uid = parse_uuid(request_id)
    if uid is None:
        return None
    return db.query(CompanyRequest).filter(CompanyRequest.id == uid).first()


def list_requests(
    db: Session,
    status: RequestStatus | None = None,
    industry: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[CompanyRequest]:
    q = db.query(CompanyRequest)
    if status:
        q = q.filter(CompanyRequest.status == status)
    if industry:
        q = q.filter(CompanyRequest.industry == industry)
    q = q.order_by(CompanyRequest.created_at.desc())

    if offset:
        q = q.offset(offset).limit(limit or DEFAULT_PAGE_SIZE)
    elif limit:
        q = q.limit(limit)
    return q.all()


def get_request_stats(db: Session) -> dict:
    counts = {s.value: 0 for s in RequestStatus}
    rows = db.query(CompanyRequest.status, func.count(CompanyRequest.id)).group_by(CompanyRequest.status).all()
    for status, count in rows:
        counts[str(status)] = count
    return {"total": sum(counts.values()), **counts}


def _transition(
    db: Session,
    request_id: str | UUID,
    new_status: RequestStatus,
    reviewer: str,
    admin_notes: str | None,
    rejection_reason: str | None = None,
) -> CompanyRequest:
    """Move a pending request to ``new_status``; only one caller can win."""
    req = get_request(db, request_id)
    if req is None:
        raise RequestNotFound(str(request_id))

    updated = (
        db.query(CompanyRequest)
        .filter(CompanyRequest.id == req.id, CompanyRequest.status == RequestStatus.PENDING)
        .update(
            {
                CompanyRequest.status: new_status,
                CompanyRequest.admin_notes: admin_notes or None,
                CompanyRequest.rejection_reason: rejection_reason,
                CompanyRequest.reviewed_at: datetime.now(UTC),
                CompanyRequest.reviewed_by: reviewer,
            },
            synchronize_session=False,
        )
    )
    if updated == 0:
        raise RequestAlreadyReviewed(str(req.id))
    db.refresh(req)
    return req


def approve_request(
    db: Session,
    request_id: str | UUID,
    reviewer: str,
    admin_notes: str = "",
    overrides: CompanyOverrides | None = None,
) -> Decision:
    """Approve a pending request, creating its company, notification and email."""
    overrides = overrides or CompanyOverrides()
    req = _transition(db, request_id, RequestStatus.APPROVED, reviewer, admin_notes.strip())

    try:
        company = create_company(
            db,
            name=overrides.name or req.company_name,
            industry=overrides.industry or req.industry,
            size=overrides.size or req.company_size,
            website=overrides.website or req.company_website,
            email_domains=overrides.email_domains or req.email_domains,
            source=SOURCE_USER_REQUEST,
            request_id=req.id,
        )
    except IntegrityError as exc:
        # A company already carries this request id
        raise RequestAlreadyReviewed(str(req.id)) from exc

    notification = create_notification(
        db,
        recipient_hash=req.requester_hash,
        type=NotificationType.COMPANY_APPROVED,
        title="Company Request Approved!",
        message=(
            f'Your request to add "{company.name}" has been approved. You can now submit your review.'
        ),
        data={
            "company_id": str(company.id),
            "company_name": company.name,
            "request_id": str(req.id),
        },
    )
    delivery = queue_email(db, notification, req.requester_email, company.name)

    logger.info("Request %s approved by %s, company %s created", req.id, reviewer, company.id)
    return Decision(request=req, notification=notification, delivery=delivery, company=company)


def validate_rejection_reason(reason: str | None) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise InvalidRejectionReason("Rejection reason is required")
    if len(reason) < MIN_REJECTION_REASON:
        raise InvalidRejectionReason(f"Rejection reason must be at least {MIN_REJECTION_REASON} characters")
    if len(reason) > MAX_REJECTION_REASON:
        raise InvalidRejectionReason(f"Rejection reason must be at most {MAX_REJECTION_REASON} characters")
    return reason


def reject_request(
    db: Session,
    request_id: str | UUID,
    reviewer: str,
    rejection_reason: str,
    admin_notes: str = "",
) -> Decision:
    """Reject a pending request. The reason is validated before anything is written."""
    reason = validate_rejection_reason(rejection_reason)
    req = _transition(db, request_id, RequestStatus.REJECTED, reviewer, admin_notes.strip(), reason)

    notification = create_notification(
        db,
        recipient_hash=req.requester_hash,
        type=NotificationType.COMPANY_REJECTED,
        title="Company Request Update",
        message=f'Your request to add "{req.company_name}" could not be approved. Reason: {reason}',
        data={
            "company_name": req.company_name,
            "rejection_reason": reason,
            "request_id": str(req.id),
        },
    )
    delivery = queue_email(db, notification, req.requester_email, req.company_name, rejection_reason=reason)

    logger.info("Request %s rejected by %s", req.id, reviewer)
    return Decision(request=req, notification=notification, delivery=delivery)


def serialize_request(req: CompanyRequest, include_requester: bool = True) -> dict:
    data = {
        "id": str(req.id),
        "company_name": req.company_name,
        "company_website": req.company_website,
        "email_domains": req.email_domains or [],
        "industry": req.industry,
        "company_size": req.company_size,
        "description": req.description or "",
        "justification": req.justification or "",
        "status": str(req.status),
        "admin_notes": req.admin_notes,
        "rejection_reason": req.rejection_reason,
        "created_at": req.created_at.isoformat() if req.created_at else None,
        "reviewed_at": req.reviewed_at.isoformat() if req.reviewed_at else None,
        "reviewed_by": req.reviewed_by,
    }
    if include_requester:
        data["requester_email"] = req.requester_email
    return data
