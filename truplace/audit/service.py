"""Audit log service."""

import contextlib
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from ..rate_limit import client_ip
from .models import AuditLog


def _session_user_id(request: Request) -> UUID | None:
    uid = request.session.get("user_id")
    if uid:
        with contextlib.suppress(ValueError, AttributeError):
            return UUID(uid)
    return None


def audit(db: Session, request: Request, action: str, detail: str = "", user_id: UUID | None = None) -> None:
    """Write an audit log entry; the caller commits."""
    db.add(
        AuditLog(
            user_id=user_id if user_id is not None else _session_user_id(request),
            action=action,
            detail=detail[:2000],
            ip_address=client_ip(request),
        )
    )


def get_recent_audit_logs(db: Session, action: str | None = None, limit: int = 100) -> list[AuditLog]:
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action)
    return query.order_by(AuditLog.created_at.desc()).limit(limit).all()
