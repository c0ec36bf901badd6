"""Tests for the company request workflow."""

import hashlib
import uuid
from datetime import timedelta

import pytest
from pydantic import ValidationError

from truplace.companies.models import SOURCE_USER_REQUEST, Company
from truplace.company_requests.models import CompanyRequest, RequestStatus
from truplace.company_requests.schemas import CompanyOverrides, CompanyRequestCreate
from truplace.company_requests.service import (
    InvalidRejectionReason,
    RequestAlreadyReviewed,
    RequestNotFound,
    approve_request,
    get_request,
    get_request_stats,
    hash_email,
    list_requests,
    reject_request,
    serialize_request,
    submit_request,
    validate_rejection_reason,
)
from truplace.notifications.models import DeliveryStatus, EmailDelivery, Notification, NotificationType

ADMIN = "admin@truplace.com"
REASON = "Company already exists in database"


def _payload(**overrides):
    data = {
        "company_name": "Acme Corp",
        "company_website": "https://acme.com",
        "email_domains": ["acme.com"],
        "industry": "Technology",
        "company_size": "51-200 employees",
    }
    data.update(overrides)
    return CompanyRequestCreate(**data)


class TestHashEmail:
    def test_sha256_of_lowercased_email(self):
        expected = hashlib.sha256(b"jane@acme.com").hexdigest()
        assert hash_email("Jane@ACME.com") == expected

    def test_hex_digest_length(self):
        assert len(hash_email("a@b.co")) == 64


class TestSubmissionSchema:
    def test_domains_lowercased_and_deduplicated(self):
        payload = _payload(email_domains=["Acme.com", "acme.com", " acme.co.uk "])
        assert payload.email_domains == ["acme.com", "acme.co.uk"]

    def test_name_trimmed(self):
        assert _payload(company_name="  Acme Corp  ").company_name == "Acme Corp"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("company_name", "A"),
            ("company_name", "x" * 101),
            ("company_website", "acme.com"),
            ("company_website", ""),
            ("email_domains", []),
            ("email_domains", ["not a domain"]),
            ("industry", "  "),
            ("company_size", "huge"),
            ("description", "x" * 501),
            ("justification", "x" * 301),
        ],
    )
    def test_invalid_fields_rejected(self, field, value):
        with pytest.raises(ValidationError) as exc_info:
            _payload(**{field: value})
        assert exc_info.value.errors()[0]["loc"] == (field,)

    def test_invalid_domain_message_names_domain(self):
        with pytest.raises(ValidationError, match="Invalid domain format: acme"):
            _payload(email_domains=["acme"])


class TestSubmitRequest:
    def test_stores_pending_request_with_requester_hash(self, db_session):
        req = submit_request(db_session, "jane@acme-labs.com", _payload())
        db_session.commit()

        stored = get_request(db_session, req.id)
        assert stored.status == RequestStatus.PENDING
        assert stored.requester_hash == hash_email("jane@acme-labs.com")
        assert stored.requester_email == "jane@acme-labs.com"
        assert stored.company_name == "Acme Corp"
        assert stored.email_domains == ["acme.com"]
        assert stored.reviewed_at is None

    def test_get_request_invalid_id(self, db_session):
        assert get_request(db_session, "not-a-uuid") is None
        assert get_request(db_session, uuid.uuid4()) is None


class TestApproveRequest:
    def test_creates_company_with_provenance(self, db_session, pending_request):
        decision = approve_request(db_session, pending_request.id, ADMIN, admin_notes="Looks legit")
        db_session.commit()

        company = db_session.query(Company).one()
        assert company.name == "Acme Corp"
        assert company.industry == "Technology"
        assert company.size == "51-200 employees"
        assert company.website == "https://acme.com"
        assert company.email_domains == ["acme.com"]
        assert company.source == SOURCE_USER_REQUEST
        assert company.request_id == pending_request.id
        assert decision.company.id == company.id

    def test_stamps_request(self, db_session, pending_request):
        approve_request(db_session, pending_request.id, ADMIN, admin_notes="Looks legit")
        db_session.commit()

        req = get_request(db_session, pending_request.id)
        assert req.status == RequestStatus.APPROVED
        assert req.reviewed_by == ADMIN
        assert req.reviewed_at is not None
        assert req.admin_notes == "Looks legit"
        assert req.rejection_reason is None

    def test_creates_notification_and_queued_email(self, db_session, pending_request):
        decision = approve_request(db_session, pending_request.id, ADMIN)
        db_session.commit()

        notification = db_session.query(Notification).one()
        assert notification.type == NotificationType.COMPANY_APPROVED
        assert notification.recipient_hash == pending_request.requester_hash
        assert notification.data == {
            "company_id": str(decision.company.id),
            "company_name": "Acme Corp",
            "request_id": str(pending_request.id),
        }
        assert notification.read is False

        delivery = db_session.query(EmailDelivery).one()
        assert delivery.status == DeliveryStatus.QUEUED
        assert delivery.recipient_email == "jane@acme-labs.com"
        assert delivery.notification_token == notification.token
        assert delivery.email_type == NotificationType.COMPANY_APPROVED

    def test_notification_expires_in_seven_days(self, db_session, pending_request):
        decision = approve_request(db_session, pending_request.id, ADMIN)
        notification = decision.notification
        assert notification.expires_at - notification.created_at == timedelta(days=7)

    def test_admin_overrides(self, db_session, pending_request):
        overrides = CompanyOverrides(name="ACME Corporation", email_domains=["ACME.io"], size="1000+ employees")
        decision = approve_request(db_session, pending_request.id, ADMIN, overrides=overrides)
        db_session.commit()

        assert decision.company.name == "ACME Corporation"
        assert decision.company.email_domains == ["acme.io"]
        assert decision.company.size == "1000+ employees"
        assert decision.company.industry == "Technology"
        assert decision.notification.data["company_name"] == "ACME Corporation"

    def test_second_approval_fails_and_creates_nothing(self, db_session, pending_request):
        approve_request(db_session, pending_request.id, ADMIN)
        db_session.commit()

        with pytest.raises(RequestAlreadyReviewed):
            approve_request(db_session, pending_request.id, "other@truplace.com")
        db_session.rollback()

        assert db_session.query(Company).count() == 1
        assert db_session.query(Notification).count() == 1
        assert db_session.query(EmailDelivery).count() == 1
        assert get_request(db_session, pending_request.id).reviewed_by == ADMIN

    def test_missing_request(self, db_session):
        with pytest.raises(RequestNotFound):
            approve_request(db_session, uuid.uuid4(), ADMIN)
        with pytest.raises(RequestNotFound):
            approve_request(db_session, "garbage", ADMIN)


class TestRejectRequest:
    def test_rejects_with_reason(self, db_session, pending_request):
        decision = reject_request(db_session, pending_request.id, ADMIN, REASON, admin_notes="dup of Acme")
        db_session.commit()

        req = get_request(db_session, pending_request.id)
        assert req.status == RequestStatus.REJECTED
        assert req.rejection_reason == REASON
        assert req.admin_notes == "dup of Acme"
        assert req.reviewed_by == ADMIN
        assert decision.company is None
        assert db_session.query(Company).count() == 0

    def test_notification_carries_reason(self, db_session, pending_request):
        reject_request(db_session, pending_request.id, ADMIN, REASON)
        db_session.commit()

        notification = db_session.query(Notification).one()
        assert notification.type == NotificationType.COMPANY_REJECTED
        assert notification.data == {
            "company_name": "Acme Corp",
            "rejection_reason": REASON,
            "request_id": str(pending_request.id),
        }
        assert REASON in notification.message

        delivery = db_session.query(EmailDelivery).one()
        assert delivery.rejection_reason == REASON
        assert delivery.email_type == NotificationType.COMPANY_REJECTED

    def test_reason_trimmed(self, db_session, pending_request):
        reject_request(db_session, pending_request.id, ADMIN, f"   {REASON}  \n")
        assert get_request(db_session, pending_request.id).rejection_reason == REASON

    @pytest.mark.parametrize("reason", ["", "   ", "Too short", "x" * 19, "x" * 1001])
    def test_bad_reason_blocks_without_mutation(self, db_session, pending_request, reason):
        with pytest.raises(InvalidRejectionReason):
            reject_request(db_session, pending_request.id, ADMIN, reason)

        req = get_request(db_session, pending_request.id)
        assert req.status == RequestStatus.PENDING
        assert req.reviewed_at is None
        assert db_session.query(Notification).count() == 0
        assert db_session.query(EmailDelivery).count() == 0

    def test_reject_after_approve_fails(self, db_session, pending_request):
        approve_request(db_session, pending_request.id, ADMIN)
        db_session.commit()

        with pytest.raises(RequestAlreadyReviewed):
            reject_request(db_session, pending_request.id, ADMIN, REASON)
        assert get_request(db_session, pending_request.id).status == RequestStatus.APPROVED

    def test_boundary_lengths_accepted(self):
        assert validate_rejection_reason("x" * 20) == "x" * 20
        assert validate_rejection_reason("x" * 1000) == "x" * 1000


class TestListingAndStats:
    def _seed(self, db_session):
        for i, (status, industry) in enumerate(
            [
                (RequestStatus.PENDING, "Technology"),
                (RequestStatus.PENDING, "Finance"),
                (RequestStatus.APPROVED, "Technology"),
                (RequestStatus.REJECTED, "Retail"),
            ]
        ):
            db_session.add(
                CompanyRequest(
                    requester_hash=hash_email(f"user{i}@corp.com"),
                    requester_email=f"user{i}@corp.com",
                    company_name=f"Company {i}",
                    company_website=f"https://company{i}.com",
                    email_domains=[f"company{i}.com"],
                    industry=industry,
                    company_size="1-50 employees",
                    status=status,
                )
            )
        db_session.commit()

    def test_filters(self, db_session):
        self._seed(db_session)
        assert len(list_requests(db_session)) == 4
        assert len(list_requests(db_session, status=RequestStatus.PENDING)) == 2
        assert len(list_requests(db_session, industry="Technology")) == 2
        assert len(list_requests(db_session, status=RequestStatus.PENDING, industry="Finance")) == 1

    def test_limit_and_offset(self, db_session):
        self._seed(db_session)
        assert len(list_requests(db_session, limit=3)) == 3
        assert len(list_requests(db_session, limit=3, offset=2)) == 2

    def test_stats(self, db_session):
        self._seed(db_session)
        assert get_request_stats(db_session) == {"total": 4, "pending": 2, "approved": 1, "rejected": 1}

    def test_stats_empty(self, db_session):
        assert get_request_stats(db_session) == {"total": 0, "pending": 0, "approved": 0, "rejected": 0}

    def test_serialize_hides_requester_on_request(self, db_session, pending_request):
        data = serialize_request(pending_request, include_requester=False)
        assert "requester_email" not in data
        assert data["status"] == "pending"
        assert data["email_domains"] == ["acme.com"]
