"""Notification and email routes."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..audit.service import audit
from ..auth.service import SessionContext
from ..database.base import get_db
from ..dependencies import get_current_admin
from .email import EmailValidationError, dispatch_pending_emails, get_email_stats, send_email
from .schemas import SendEmailRequest
from .service import consume_notification, serialize_notification

# Public: the token in the link is the only credential
public_router = APIRouter(tags=["notifications"])

router = APIRouter(prefix="/email", tags=["email"])


@public_router.get("/notification/{token}")
def read_notification(token: str, db: Session = Depends(get_db)):
    notification, first_read = consume_notification(db, token)
    if notification is None:
        return JSONResponse({"error": "Notification not found or has expired"}, status_code=404)
    if first_read:
        db.commit()
    return JSONResponse({"notification": serialize_notification(notification)})


@router.post("/send")
def send(
    request: Request,
    body: SendEmailRequest,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(get_current_admin),
):
    try:
        result = send_email(
            body.recipient_email,
            body.email_type,
            body.company_name,
            body.notification_token,
            rejection_reason=body.rejection_reason,
            recipient_name=body.recipient_name,
        )
    except EmailValidationError as exc:
        return JSONResponse({"success": False, "error": str(exc)}, status_code=400)

    audit(db, request, "email_send", f"type={body.email_type} success={result.success}", user_id=admin.user_id)
    db.commit()
    return JSONResponse(result.to_dict(), status_code=200 if result.success else 502)


@router.post("/dispatch")
def dispatch(
    request: Request,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(get_current_admin),
):
    sent = dispatch_pending_emails(db)
    audit(db, request, "email_dispatch", f"sent={sent}", user_id=admin.user_id)
    db.commit()
    return JSONResponse({"ok": True, "sent": sent, "outbox": get_email_stats(db)})


@router.get("/stats")
def stats(
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(get_current_admin),
):
    return JSONResponse(get_email_stats(db))
