"""Authentication routes (JSON, session cookie)."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..audit.service import audit
from ..config import settings
from ..database.base import get_db
from ..dependencies import get_current_user
from ..rate_limit import limiter
from .schemas import LoginRequest, RegisterRequest, SessionResponse
from .service import RegistrationError, SessionContext, authenticate_user, build_session_context, register_user

router = APIRouter(prefix="/auth", tags=["auth"])


def _session_payload(ctx: SessionContext) -> dict:
    return SessionResponse(user_id=str(ctx.user_id), email=ctx.email, is_admin=ctx.is_admin).model_dump()


@router.post("/register")
@limiter.limit(settings.rate_limit_login)
def register(request: Request, body: RegisterRequest, db: Session = Depends(get_db)):
    try:
        user = register_user(db, body.email, body.password)
    except RegistrationError as exc:
        return JSONResponse({"error": "validation", "fields": {"email": str(exc)}}, status_code=422)

    request.session["user_id"] = str(user.id)
    audit(db, request, "register", f"email={user.email}", user_id=user.id)
    db.commit()
    return JSONResponse({"ok": True, "session": _session_payload(build_session_context(db, user))}, status_code=201)


@router.post("/login")
@limiter.limit(settings.rate_limit_login)
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate_user(db, body.email, body.password)
    if not user:
        audit(db, request, "login_failed", f"email={body.email}")
        db.commit()
        return JSONResponse({"error": "Invalid credentials"}, status_code=401)

    request.session["user_id"] = str(user.id)
    audit(db, request, "login", f"email={user.email}", user_id=user.id)
    db.commit()
    return JSONResponse({"ok": True, "session": _session_payload(build_session_context(db, user))})


@router.post("/logout")
def logout(request: Request, db: Session = Depends(get_db)):
    audit(db, request, "logout")
    db.commit()
    request.session.clear()
    return JSONResponse({"ok": True})


@router.get("/me")
def me(ctx: SessionContext = Depends(get_current_user)):
    return JSONResponse(_session_payload(ctx))
