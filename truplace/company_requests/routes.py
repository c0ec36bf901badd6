"""Company request JSON routes: user submission, duplicate check, admin triage."""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..audit.service import audit
from ..auth.service import SessionContext
from ..config import settings
from ..database.base import get_db
from ..dependencies import get_cache, get_current_admin, get_current_user
from ..integrations.cache import POPULAR_COMPANIES_KEY, CacheService
from ..notifications.email import deliver_queued_email, is_configured
from ..rate_limit import limiter
from .duplicates import detect_duplicates, summarize_duplicates
from .models import RequestStatus
from .schemas import ApproveRequest, CompanyRequestCreate, RejectRequest
from .service import (
    Decision,
    InvalidRejectionReason,
    RequestAlreadyReviewed,
    RequestNotFound,
    approve_request,
    get_request,
    get_request_stats,
    list_requests,
    reject_request,
    serialize_request,
    submit_request,
)

router = APIRouter(prefix="/company-requests", tags=["company-requests"])


def _decision_payload(decision: Decision) -> dict:
    payload = {
        "ok": True,
        "request": serialize_request(decision.request),
        "notification_token": decision.notification.token,
    }
    if decision.company is not None:
        payload["company"] = {"id": str(decision.company.id), "name": decision.company.name}
    return payload


def _schedule_email(background_tasks: BackgroundTasks, decision: Decision) -> None:
    # Queued rows stay in the outbox until the service is configured
    if is_configured():
        background_tasks.add_task(deliver_queued_email, decision.delivery.id)


@router.post("")
@limiter.limit(settings.rate_limit_submit)
def create_request(
    request: Request,
    body: CompanyRequestCreate,
    db: Session = Depends(get_db),
    user: SessionContext = Depends(get_current_user),
):
    req = submit_request(db, user.email, body)
    audit(db, request, "company_request_submit", f"company={req.company_name}", user_id=user.user_id)
    db.commit()
    return JSONResponse({"ok": True, "request": serialize_request(req)}, status_code=201)


@router.get("/duplicates")
def check_duplicates(
    company_name: str = Query("", max_length=100),
    company_website: str = Query("", max_length=500),
    db: Session = Depends(get_db),
):
    matches = detect_duplicates(db, company_name, company_website)
    return JSONResponse({"duplicates": [m.to_dict() for m in matches], **summarize_duplicates(matches)})


@router.get("")
def admin_list_requests(
    status: RequestStatus | None = None,
    industry: str | None = Query(None, max_length=100),
    limit: int | None = Query(None, ge=1, le=200),
    offset: int | None = Query(None, ge=0),
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(get_current_admin),
):
    requests = list_requests(db, status=status, industry=industry, limit=limit, offset=offset)
    return JSONResponse({"requests": [serialize_request(r) for r in requests]})


@router.get("/stats")
def admin_request_stats(
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(get_current_admin),
):
    return JSONResponse(get_request_stats(db))


@router.get("/{request_id}")
def admin_get_request(
    request_id: str,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(get_current_admin),
):
    req = get_request(db, request_id)
    if not req:
        return JSONResponse({"error": "Request not found"}, status_code=404)
    return JSONResponse({"request": serialize_request(req)})


@router.post("/{request_id}/approve")
def admin_approve_request(
    request: Request,
    request_id: str,
    body: ApproveRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(get_current_admin),
    cache: CacheService = Depends(get_cache),
):
    try:
        decision = approve_request(db, request_id, admin.email, body.admin_notes, body.company)
    except RequestNotFound:
        return JSONResponse({"error": "Request not found"}, status_code=404)
    except RequestAlreadyReviewed:
        db.rollback()
        return JSONResponse({"error": "Request has already been reviewed"}, status_code=409)

    audit(
        db,
        request,
        "company_request_approve",
        f"request={decision.request.id} company={decision.company.id}",
        user_id=admin.user_id,
    )
    db.commit()
    cache.delete(POPULAR_COMPANIES_KEY)
    _schedule_email(background_tasks, decision)
    return JSONResponse(_decision_payload(decision))


@router.post("/{request_id}/reject")
def admin_reject_request(
    request: Request,
    request_id: str,
    body: RejectRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(get_current_admin),
):
    try:
        decision = reject_request(db, request_id, admin.email, body.rejection_reason, body.admin_notes)
    except InvalidRejectionReason as exc:
        return JSONResponse({"error": "validation", "fields": {"rejection_reason": str(exc)}}, status_code=422)
    except RequestNotFound:
        return JSONResponse({"error": "Request not found"}, status_code=404)
    except RequestAlreadyReviewed:
        db.rollback()
        return JSONResponse({"error": "Request has already been reviewed"}, status_code=409)

    audit(db, request, "company_request_reject", f"request={decision.request.id}", user_id=admin.user_id)
    db.commit()
    _schedule_email(background_tasks, decision)
    return JSONResponse(_decision_payload(decision))
