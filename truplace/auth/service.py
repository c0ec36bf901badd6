"""Authentication service: users, password hashing, work-email checks, admin membership."""

import logging
import uuid
from dataclasses import dataclass
from uuid import UUID

import bcrypt
from sqlalchemy.orm import Session

from ..config import settings
from .models import AdminUser, User

logger = logging.getLogger(__name__)

TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")
TEST_USER_EMAIL = "test@example.com"

PERSONAL_EMAIL_DOMAINS = frozenset(
    {
        "gmail.com",
        "yahoo.com",
        "outlook.com",
        "hotmail.com",
        "aol.com",
        "icloud.com",
        "live.com",
        "msn.com",
        "ymail.com",
        "protonmail.com",
        "mail.com",
        "zoho.com",
        "gmx.com",
    }
)


class RegistrationError(ValueError):
    """Raised when an email cannot be used to register."""


@dataclass(frozen=True)
class SessionContext:
    """Identity of the caller, resolved once per request."""

    user_id: UUID
    email: str
    is_admin: bool = False


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


def check_work_email(email: str, allow_personal: bool | None = None) -> str:
    """Return the normalized email, or raise RegistrationError.

    Only the provider is checked; the address format is validated by
    ``RegisterRequest.email``. Personal mailbox providers are refused unless
    allowed by configuration.
    """
    normalized = (email or "").strip().lower()
    if allow_personal is None:
        allow_personal = settings.allow_personal_emails
    if not allow_personal and normalized.rpartition("@")[2] in PERSONAL_EMAIL_DOMAINS:
        raise RegistrationError("Please use your work email address. Personal email providers are not allowed.")
    return normalized


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def get_user_by_id(db: Session, user_id: UUID) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def register_user(db: Session, email: str, password: str) -> User:
    normalized = check_work_email(email)
    if get_user_by_email(db, normalized):
        raise RegistrationError("An account with this email already exists")

    user = User(email=normalized, password_hash=hash_password(password))
    db.add(user)
    db.flush()
    return user


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    """Verify credentials and return user, or None if invalid."""
    user = get_user_by_email(db, email)
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        return None
    return user


def is_admin(db: Session, user_id: UUID) -> bool:
    return db.query(AdminUser.id).filter(AdminUser.user_id == user_id).first() is not None


def grant_admin(db: Session, user: User) -> AdminUser:
    existing = db.query(AdminUser).filter(AdminUser.user_id == user.id).first()
    if existing:
        return existing
    membership = AdminUser(user_id=user.id)
    db.add(membership)
    db.flush()
    return membership


def build_session_context(db: Session, user: User) -> SessionContext:
    return SessionContext(user_id=user.id, email=user.email, is_admin=is_admin(db, user.id))


def ensure_test_user(db: Session) -> SessionContext:
    """Fixed admin identity used when authentication is disabled for testing."""
    user = get_user_by_id(db, TEST_USER_ID)
    if not user:
        logger.warning("TESTING MODE: authentication is bypassed, creating %s", TEST_USER_EMAIL)
        user = User(id=TEST_USER_ID, email=TEST_USER_EMAIL, password_hash=hash_password(uuid.uuid4().hex))
        db.add(user)
        db.flush()
        db.commit()
    return SessionContext(user_id=user.id, email=user.email, is_admin=True)


def ensure_admin_user(db: Session) -> None:
    """Create admin user from env vars if it doesn't exist yet."""
    if not settings.admin_email or not settings.admin_password:
        return

    user = get_user_by_email(db, settings.admin_email)
    if not user:
        user = User(
            email=settings.admin_email.strip().lower(),
            password_hash=hash_password(settings.admin_password),
        )
        db.add(user)
        db.flush()
        logger.info("Created admin user %s", user.email)

    grant_admin(db, user)
