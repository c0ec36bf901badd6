"""Transactional email through the Brevo HTTP API, fed by a persisted outbox.

Decisions on company requests queue an EmailDelivery row in the same transaction
as the decision; rows are sent after commit and retried by later dispatches.
The Brevo API key may be stored encrypted with Fernet (AES-128-CBC) derived from SECRET_KEY.
"""

import base64
import hashlib
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from html import escape
from uuid import UUID

import httpx
from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..database.base import SessionLocal
from .models import DeliveryStatus, EmailDelivery, Notification, NotificationType

logger = logging.getLogger(__name__)

BREVO_URL = "https://api.brevo.com/v3/smtp/email"
SUPPORT_EMAIL = "support@truplace.com"


class EmailValidationError(ValueError):
    """The email payload is incomplete or names an unknown email type."""


@dataclass
class EmailResult:
    success: bool
    message_id: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        data: dict = {"success": self.success}
        if self.message_id:
            data["messageId"] = self.message_id
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class RenderedEmail:
    subject: str
    html: str
    text: str


# ── Credential encryption ─────────────────────────────────────────────


def _derive_fernet_key(secret: str) -> bytes:
    """Derive a Fernet key from the app SECRET_KEY using SHA-256."""
    digest = hashlib.sha256(secret.encode()).digest()
    return base64.urlsafe_b64encode(digest)


def encrypt_value(plaintext: str) -> str:
    f = Fernet(_derive_fernet_key(settings.secret_key))
    return f.encrypt(plaintext.encode()).decode()


def decrypt_value(ciphertext: str) -> str:
    f = Fernet(_derive_fernet_key(settings.secret_key))
    return f.decrypt(ciphertext.encode()).decode()


def _api_key() -> str:
    key = settings.brevo_api_key
    # Fernet tokens start with 'gAAAAA'
    if key.startswith("gAAAAA"):
        key = decrypt_value(key)
    return key


def is_configured() -> bool:
    return bool(settings.brevo_api_key and settings.brevo_sender_email and settings.brevo_sender_name)


# ── Templates ──────────────────────────────────────────────────────────


def notification_link(token: str) -> str:
    return f"{settings.app_url.rstrip('/')}/notification/{token}"


def request_company_link() -> str:
    return f"{settings.app_url.rstrip('/')}/request-company"


def _wrap_html(title: str, body: str, footer: str) -> str:
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
</head>
<body style="margin:0; padding:0; background-color:#f3f4f6; font-family:Arial,Helvetica,sans-serif;">
  <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="background-color:#f3f4f6;">
    <tr><td align="center" style="padding:40px 16px;">
      <table role="presentation" width="600" cellpadding="0" cellspacing="0"
             style="background-color:#ffffff; border-radius:8px; box-shadow:0 2px 4px rgba(0,0,0,0.1);">
        <tr><td style="padding:40px 40px 30px;">
{body}
        </td></tr>
        <tr><td style="padding:24px 40px; background-color:#f9fafb; border-top:1px solid #e5e7eb;">
          <p style="margin:0; color:#6b7280; font-size:12px; line-height:1.5;">{footer}</p>
        </td></tr>
      </table>
    </td></tr>
  </table>
</body>
</html>"""


def _button(href: str, label: str) -> str:
    return (
        f'          <p style="margin:0 0 28px; text-align:center;">'
        f'<a href="{escape(href)}" style="display:inline-block; padding:16px 32px; background-color:#2563eb; '
        f'color:#ffffff; text-decoration:none; border-radius:8px; font-weight:600;">{label}</a></p>'
    )


def render_approved_email(company_name: str, token: str) -> RenderedEmail:
    link = notification_link(token)
    company = escape(company_name)
    subject = f"Great News! {company_name} has been added to TruPlace"

    body = "\n".join(
        [
            '          <h1 style="margin:0 0 24px; font-size:28px; color:#1f2937;">Great News!</h1>',
            '          <p style="margin:0 0 20px; font-size:16px; color:#4b5563;">'
            f"Your request to add <strong>{company}</strong> to TruPlace has been approved!</p>",
            '          <p style="margin:0 0 28px; font-size:16px; color:#4b5563;">'
            f"You can now share your experience and help others learn about working at {company}.</p>",
            _button(link, "Write Your Review Now"),
        ]
    )
    footer = (
        f"This link will expire in {settings.notification_expiry_days} days. "
        f"If you have any questions, please contact us at {SUPPORT_EMAIL}"
    )
    text = (
        f"{subject}\n\n"
        f"Your request to add {company_name} to TruPlace has been approved!\n\n"
        f"You can now share your experience and help others learn about working at {company_name}.\n\n"
        f"Write Your Review Now: {link}\n\n"
        f"{footer}\n"
    )
    return RenderedEmail(subject=subject, html=_wrap_html(escape(subject), body, footer), text=text)


def render_rejected_email(company_name: str, rejection_reason: str) -> RenderedEmail:
    link = request_company_link()
    company = escape(company_name)
    subject = f"Update on Your Company Request - {company_name}"

    body = "\n".join(
        [
            '          <h1 style="margin:0 0 24px; font-size:28px; color:#1f2937;">Update on Your Company Request</h1>',
            '          <p style="margin:0 0 20px; font-size:16px; color:#4b5563;">'
            f"Thank you for your request to add <strong>{company}</strong> to TruPlace.</p>",
            '          <p style="margin:0 0 20px; font-size:16px; color:#4b5563;">'
            "After careful review, we're unable to approve this request at this time.</p>",
            '          <p style="margin:0 0 24px; padding:16px; background-color:#fef3c7; '
            f'border-left:4px solid #f59e0b; color:#92400e; font-size:14px;"><strong>Reason:</strong> '
            f"{escape(rejection_reason)}</p>",
            '          <p style="margin:0 0 28px; font-size:16px; color:#4b5563;">'
            "You're welcome to submit a request for a different company.</p>",
            _button(link, "Request Another Company"),
        ]
    )
    footer = (
        "If you believe this decision was made in error or have additional information to share, "
        f"please contact us at {SUPPORT_EMAIL}"
    )
    text = (
        f"{subject}\n\n"
        f"Thank you for your request to add {company_name} to TruPlace.\n\n"
        "After careful review, we're unable to approve this request at this time.\n\n"
        f"Reason: {rejection_reason}\n\n"
        "You're welcome to submit a request for a different company.\n\n"
        f"Request Another Company: {link}\n\n"
        f"{footer}\n"
    )
    return RenderedEmail(subject=subject, html=_wrap_html(escape(subject), body, footer), text=text)


def render_email(
    email_type: str,
    company_name: str,
    notification_token: str,
    rejection_reason: str | None = None,
) -> RenderedEmail:
    if not company_name or not notification_token:
        raise EmailValidationError("Missing required fields")
    if email_type == NotificationType.COMPANY_APPROVED:
        return render_approved_email(company_name, notification_token)
    if email_type == NotificationType.COMPANY_REJECTED:
        if not rejection_reason:
            raise EmailValidationError("Rejection reason is required for rejected emails")
        return render_rejected_email(company_name, rejection_reason)
    raise EmailValidationError("Invalid email type")


# ── Sending ────────────────────────────────────────────────────────────


def send_via_brevo(recipient_email: str, recipient_name: str | None, email: RenderedEmail) -> EmailResult:
    """POST one email to Brevo. Never raises; failures come back as an unsuccessful result."""
    if not is_configured():
        logger.debug("Brevo not configured, skipping email send")
        return EmailResult(success=False, error="Email service not configured")

    recipient = {"email": recipient_email}
    if recipient_name:
        recipient["name"] = recipient_name
    payload = {
        "sender": {"name": settings.brevo_sender_name, "email": settings.brevo_sender_email},
        "to": [recipient],
        "subject": email.subject,
        "htmlContent": email.html,
        "textContent": email.text,
    }

    try:
        api_key = _api_key()
    except InvalidToken:
        logger.error("BREVO_API_KEY could not be decrypted with the current SECRET_KEY")
        return EmailResult(success=False, error="Email credentials could not be decrypted")

    try:
        response = httpx.post(
            BREVO_URL,
            json=payload,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
                "api-key": api_key,
            },
            timeout=settings.email_timeout_seconds,
        )
    except httpx.HTTPError as exc:
        logger.warning("Brevo request failed: %s", exc)
        return EmailResult(success=False, error=str(exc) or type(exc).__name__)

    if response.is_error:
        try:
            message = response.json().get("message")
        except ValueError:
            message = None
        error = message or f"HTTP {response.status_code}"
        logger.warning("Brevo rejected email to %s: %s", recipient_email, error)
        return EmailResult(success=False, error=error)

    try:
        message_id = response.json().get("messageId")
    except ValueError:
        message_id = None
    return EmailResult(success=True, message_id=message_id)


def send_email(
    recipient_email: str,
    email_type: str,
    company_name: str,
    notification_token: str,
    rejection_reason: str | None = None,
    recipient_name: str | None = None,
) -> EmailResult:
    """Render and send one email. Raises EmailValidationError for an unusable payload."""
    if not recipient_email:
        raise EmailValidationError("Missing required fields")
    rendered = render_email(email_type, company_name, notification_token, rejection_reason)
    return send_via_brevo(recipient_email, recipient_name, rendered)


# ── Outbox ─────────────────────────────────────────────────────────────


def queue_email(
    db: Session,
    notification: Notification,
    recipient_email: str,
    company_name: str,
    rejection_reason: str | None = None,
    recipient_name: str | None = None,
) -> EmailDelivery:
    """Add a queued email for a notification. Caller owns the transaction."""
    delivery = EmailDelivery(
        notification_id=notification.id,
        recipient_email=recipient_email,
        recipient_name=recipient_name,
        email_type=notification.type,
        company_name=company_name,
        notification_token=notification.token,
        rejection_reason=rejection_reason,
        status=DeliveryStatus.QUEUED,
        attempts=0,
    )
    db.add(delivery)
    db.flush()
    return delivery


def _claim(db: Session, delivery: EmailDelivery) -> bool:
    """Take a queued row for one attempt by bumping ``attempts`` conditionally.

    The updated row stays locked until the caller's transaction ends, so a
    concurrent dispatcher holding the same row sees a stale attempt count and
    backs off instead of sending again.
    """
    claimed = (
        db.query(EmailDelivery)
        .filter(
            EmailDelivery.id == delivery.id,
            EmailDelivery.status == DeliveryStatus.QUEUED,
            EmailDelivery.attempts == (delivery.attempts or 0),
        )
        .update({EmailDelivery.attempts: EmailDelivery.attempts + 1}, synchronize_session=False)
    )
    db.refresh(delivery)
    return claimed == 1


def _recorded_result(delivery: EmailDelivery) -> EmailResult:
    return EmailResult(success=delivery.status == DeliveryStatus.SENT, message_id=delivery.message_id)


def deliver_email(db: Session, delivery: EmailDelivery) -> EmailResult:
    """Attempt one send for a queued delivery and record the outcome on the row."""
    if delivery.status != DeliveryStatus.QUEUED:
        return _recorded_result(delivery)

    if not is_configured():
        delivery.last_error = "Email service not configured"
        db.flush()
        return EmailResult(success=False, error=delivery.last_error)

    if not _claim(db, delivery):
        logger.info("Email %s was already taken by another dispatch", delivery.id)
        if delivery.status == DeliveryStatus.QUEUED:
            return EmailResult(success=False, error="Email is being sent by another dispatch")
        return _recorded_result(delivery)

    give_up = False
    try:
        result = send_email(
            delivery.recipient_email,
            delivery.email_type,
            delivery.company_name,
            delivery.notification_token,
            rejection_reason=delivery.rejection_reason,
            recipient_name=delivery.recipient_name,
        )
    except EmailValidationError as exc:
        result = EmailResult(success=False, error=str(exc))
        give_up = True  # retrying cannot fix an unusable payload

    if result.success:
        delivery.status = DeliveryStatus.SENT
        delivery.message_id = result.message_id
        delivery.sent_at = datetime.now(UTC)
        delivery.last_error = None
        logger.info("Sent %s email for %s", delivery.email_type, delivery.company_name)
    else:
        delivery.last_error = result.error
        if give_up or delivery.attempts >= settings.email_max_attempts:
            delivery.status = DeliveryStatus.FAILED
            logger.error(
                "Giving up on %s email for %s after %d attempts: %s",
                delivery.email_type,
                delivery.company_name,
                delivery.attempts,
                result.error,
            )
        else:
            logger.warning(
                "Email attempt %d for %s failed: %s", delivery.attempts, delivery.company_name, result.error
            )
    db.flush()
    return result


def dispatch_pending_emails(db: Session) -> int:
    """Send every queued email, oldest first. Returns the number sent."""
    if not is_configured():
        return 0

    pending = (
        db.query(EmailDelivery)
        .filter(EmailDelivery.status == DeliveryStatus.QUEUED)
        .order_by(EmailDelivery.created_at.asc())
        .all()
    )
    sent = 0
    for delivery in pending:
        if deliver_email(db, delivery).success:
            sent += 1
    return sent


def get_email_stats(db: Session) -> dict:
    counts = {s.value: 0 for s in DeliveryStatus}
    rows = db.query(EmailDelivery.status, func.count(EmailDelivery.id)).group_by(EmailDelivery.status).all()
    for status, count in rows:
        counts[str(status)] = count
    return counts


def deliver_queued_email(delivery_id: UUID) -> None:
    """Background task: send one outbox row in its own session after the decision committed."""
    db = SessionLocal()
    try:
        delivery = db.get(EmailDelivery, delivery_id)
        if delivery is not None:
            deliver_email(db, delivery)
            db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to record delivery outcome for email %s", delivery_id)
    finally:
        db.close()
