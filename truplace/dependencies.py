"""Shared FastAPI dependencies."""

from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .auth.service import SessionContext, build_session_context, ensure_test_user, get_user_by_id
from .config import settings
from .database.base import get_db
from .integrations.cache import CacheService


class AuthRequired(Exception):
    """Raised when user is not authenticated. Handled by exception handler in main.py."""


class AdminRequired(Exception):
    """Raised when an authenticated user is not an admin."""


def get_cache(request: Request) -> CacheService:
    """Get the cache service from app state."""
    return request.app.state.cache


def get_session_context(request: Request, db: Session = Depends(get_db)) -> SessionContext | None:
    """Resolve the caller's identity once per request, or None for anonymous callers."""
    if settings.disable_auth_for_testing:
        return ensure_test_user(db)

    user_id_str = request.session.get("user_id")
    if not user_id_str:
        return None
    try:
        user_id = UUID(user_id_str)
    except (ValueError, AttributeError):
        request.session.clear()
        return None
    user = get_user_by_id(db, user_id)
    if not user or not user.is_active:
        request.session.clear()
        return None
    return build_session_context(db, user)


def get_current_user(ctx: SessionContext | None = Depends(get_session_context)) -> SessionContext:
    if ctx is None:
        raise AuthRequired()
    return ctx


def get_current_admin(ctx: SessionContext = Depends(get_current_user)) -> SessionContext:
    if not ctx.is_admin:
        raise AdminRequired()
    return ctx
