"""Shared test fixtures."""

import uuid

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from truplace.audit.models import AuditLog
from truplace.auth.models import AdminUser, User
from truplace.companies.models import Company
from truplace.company_requests.models import CompanyRequest, RequestStatus
from truplace.company_requests.service import hash_email
from truplace.database.base import Base
from truplace.integrations.cache import NullCacheService
from truplace.notifications.models import EmailDelivery, Notification
from truplace.reviews.models import DIMENSIONS, Recommendation, Review

# Models must be imported so Base.metadata.create_all() sees all tables.
_ALL_MODELS = [AuditLog, AdminUser, Company, CompanyRequest, EmailDelivery, Notification, Review]


@pytest.fixture
def db_session():
    """Create an in-memory SQLite database for testing.

    Note: SQLite doesn't support all PostgreSQL features (JSONB, UUID),
    but works for basic service logic testing.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestSession = sessionmaker(bind=engine)
    session = TestSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def test_user(db_session):
    """Create a regular (non-admin) user."""
    user = User(
        id=uuid.uuid4(),
        email="jane@acme-labs.com",
        password_hash="$2b$12$fakehash",
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def admin_user(db_session):
    """Create a user with an admin_users row."""
    user = User(
        id=uuid.uuid4(),
        email="admin@truplace.com",
        password_hash="$2b$12$fakehash",
    )
    db_session.add(user)
    db_session.flush()
    db_session.add(AdminUser(user_id=user.id))
    db_session.commit()
    return user


@pytest.fixture
def test_company(db_session):
    company = Company(
        id=uuid.uuid4(),
        name="Google",
        industry="Technology",
        size="1000+ employees",
    )
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture
def pending_request(db_session):
    """An Acme Corp request waiting for an admin decision."""
    req = CompanyRequest(
        id=uuid.uuid4(),
        requester_hash=hash_email("jane@acme-labs.com"),
        requester_email="jane@acme-labs.com",
        company_name="Acme Corp",
        company_website="https://acme.com",
        email_domains=["acme.com"],
        industry="Technology",
        company_size="51-200 employees",
        description="Industrial anvils and rockets.",
        justification="I work there.",
        status=RequestStatus.PENDING,
    )
    db_session.add(req)
    db_session.commit()
    return req


@pytest.fixture
def make_review(db_session):
    """Factory: insert a review with every dimension set to ``rating``."""

    def _make(company, rating=4, recommendation=Recommendation.HIGHLY_RECOMMEND, **overrides):
        fields = {d: rating for d in DIMENSIONS}
        fields.update(overrides)
        review = Review(
            company_id=company.id,
            overall_rating=rating,
            recommendation=recommendation,
            role="Engineer",
            pros=[],
            cons=[],
            **fields,
        )
        db_session.add(review)
        db_session.commit()
        return review

    return _make


@pytest.fixture
def null_cache():
    """No-op cache for testing."""
    return NullCacheService()
