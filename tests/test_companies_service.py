"""Tests for company service: search, stats, popular list, admin edits."""

import uuid
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from truplace.companies.models import Company
from truplace.companies.schemas import CompanySort, CompanyUpdateRequest
from truplace.companies.service import (
    FALLBACK_POPULAR_COMPANIES,
    create_company,
    get_company,
    get_company_stats,
    get_popular_companies,
    list_company_stats,
    parse_uuid,
    search_companies,
    update_company,
)
from truplace.integrations.cache import POPULAR_COMPANIES_KEY
from truplace.reviews.models import Recommendation


def _company(db_session, name, industry="Technology", size="1-50 employees"):
    return create_company(db_session, name, industry, size)


class TestParseUuid:
    def test_valid(self):
        uid = uuid.uuid4()
        assert parse_uuid(str(uid)) == uid
        assert parse_uuid(uid) == uid

    def test_invalid(self):
        assert parse_uuid("nope") is None
        assert parse_uuid("") is None
        assert parse_uuid(None) is None


class TestSearchCompanies:
    def test_case_insensitive_substring_sorted(self, db_session):
        for name in ("Initech", "Globex", "Global Dynamics"):
            _company(db_session, name)
        db_session.commit()
        assert [c.name for c in search_companies(db_session, "GLOB")] == ["Global Dynamics", "Globex"]

    def test_blank_lists_first_by_name(self, db_session):
        for name in ("Zeta", "Alpha", "Mu"):
            _company(db_session, name)
        db_session.commit()
        assert [c.name for c in search_companies(db_session, "  ", limit=2)] == ["Alpha", "Mu"]


class TestCompanyStats:
    def test_company_without_reviews_reports_zeros(self, db_session, test_company):
        stats = get_company_stats(db_session, str(test_company.id))
        assert stats["review_count"] == 0
        assert stats["overall_rating"] == 0.0
        assert stats["recommendation_rate"] == 0
        assert set(stats["dimensions"].values()) == {0.0}

    def test_aggregates(self, db_session, test_company, make_review):
        make_review(test_company, rating=5, recommendation=Recommendation.HIGHLY_RECOMMEND)
        make_review(test_company, rating=4, recommendation=Recommendation.MAYBE)
        make_review(test_company, rating=3, recommendation=Recommendation.NOT_RECOMMENDED, culture=1)

        stats = get_company_stats(db_session, str(test_company.id))
        assert stats["review_count"] == 3
        assert stats["overall_rating"] == 4.0
        assert stats["recommendation_rate"] == 33
        assert stats["dimensions"]["compensation"] == 4.0
        assert stats["dimensions"]["culture"] == pytest.approx(3.3)

    def test_unknown_company(self, db_session):
        assert get_company_stats(db_session, str(uuid.uuid4())) is None
        assert get_company_stats(db_session, "bad-id") is None

    def test_list_sorting_and_filters(self, db_session, make_review):
        busy = _company(db_session, "Busy Co", industry="Retail")
        quiet = _company(db_session, "Quiet Co", size="1000+ employees")
        db_session.commit()
        make_review(busy, rating=2)
        make_review(busy, rating=2)
        make_review(quiet, rating=5)

        assert [s["name"] for s in list_company_stats(db_session)] == ["Busy Co", "Quiet Co"]
        assert [s["name"] for s in list_company_stats(db_session, sort=CompanySort.RATING)] == ["Quiet Co", "Busy Co"]
        assert [s["name"] for s in list_company_stats(db_session, industry="Retail")] == ["Busy Co"]
        assert [s["name"] for s in list_company_stats(db_session, size="1000+ employees")] == ["Quiet Co"]
        assert [s["name"] for s in list_company_stats(db_session, search="quiet")] == ["Quiet Co"]
        assert len(list_company_stats(db_session, industry="all")) == 2


class TestPopularCompanies:
    def test_computed_and_cached(self, db_session, test_company, make_review):
        make_review(test_company, rating=4)
        cache = MagicMock()
        cache.get_json.return_value = None

        popular = get_popular_companies(db_session, cache, limit=6)
        assert popular == [{"id": str(test_company.id), "name": "Google", "rating": 4.0, "reviews": 1}]
        cache.set_json.assert_called_once()
        assert cache.set_json.call_args.args[0] == POPULAR_COMPANIES_KEY

    def test_served_from_cache(self, db_session):
        cache = MagicMock()
        cache.get_json.return_value = [{"id": "x", "name": "Cached", "rating": 3.0, "reviews": 9}]
        assert get_popular_companies(db_session, cache)[0]["name"] == "Cached"

    def test_cached_list_serves_larger_limit(self, db_session, make_review):
        store = {}
        cache = MagicMock()
        cache.get_json.side_effect = store.get
        cache.set_json.side_effect = lambda key, value, ttl: store.__setitem__(key, value)

        companies = [_company(db_session, f"Company {i}") for i in range(6)]
        for i, company in enumerate(companies):
            for _ in range(i + 1):
                make_review(company, rating=4)

        small = get_popular_companies(db_session, cache, limit=2)
        big = get_popular_companies(db_session, cache, limit=6)

        assert [c["name"] for c in small] == ["Company 5", "Company 4"]
        assert len(big) == 6
        assert big[:2] == small
        assert cache.set_json.call_count == 1

    def test_database_failure_falls_back(self, null_cache):
        db = MagicMock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("db down"))
        assert get_popular_companies(db, null_cache, limit=3) == FALLBACK_POPULAR_COMPANIES[:3]


class TestUpdateCompany:
    def test_updates_fields(self, db_session, test_company):
        company = update_company(
            db_session, str(test_company.id), name="Alphabet", industry="Technology", size="1000+ employees"
        )
        db_session.commit()
        assert get_company(db_session, test_company.id).name == "Alphabet"
        assert company.logo_url is None

    def test_unknown_company(self, db_session):
        assert update_company(db_session, str(uuid.uuid4()), name="X", industry="Y", size="1-50 employees") is None

    def test_schema_requires_name_and_known_size(self):
        with pytest.raises(ValueError):
            CompanyUpdateRequest(name="   ", industry="Technology", size="1-50 employees")
        with pytest.raises(ValueError):
            CompanyUpdateRequest(name="Acme", industry="Technology", size="enormous")
        assert CompanyUpdateRequest(name="Acme", industry="Tech", size="1-50 employees", logo_url=" ").logo_url is None


class TestCreateCompany:
    def test_defaults(self, db_session):
        company = create_company(db_session, "  Acme  ", "Technology", "1-50 employees")
        db_session.commit()
        stored = db_session.query(Company).one()
        assert stored.name == "Acme"
        assert stored.email_domains == []
        assert stored.source is None
        assert company.request_id is None
