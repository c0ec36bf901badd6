"""Tests for company request duplicate detection."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from truplace.companies.models import Company
from truplace.company_requests.duplicates import (
    DuplicateMatch,
    detect_duplicates,
    find_candidates,
    levenshtein_distance,
    similarity,
    strip_website,
    summarize_duplicates,
)


def _add(db_session, *names):
    for name in names:
        db_session.add(Company(name=name, industry="Technology", size="1-50 employees"))
    db_session.commit()


class TestLevenshtein:
    def test_identical(self):
        assert levenshtein_distance("acme", "acme") == 0

    def test_single_deletion(self):
        assert levenshtein_distance("google", "gogle") == 1

    def test_against_empty(self):
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("abc", "") == 3

    def test_classic_example(self):
        assert levenshtein_distance("kitten", "sitting") == 3


class TestSimilarity:
    def test_identity(self):
        assert similarity("Acme Corp", "Acme Corp") == 1.0

    def test_case_insensitive(self):
        assert similarity("ACME", "acme") == 1.0

    def test_both_empty(self):
        assert similarity("", "") == 1.0

    def test_typo_score(self):
        assert similarity("Gogle", "Google") == pytest.approx(5 / 6)

    @pytest.mark.parametrize(
        "a,b",
        [("Google", "Gogle"), ("Acme", "Acme Corporation"), ("", "x"), ("Initech", "Initrode")],
    )
    def test_symmetric_and_bounded(self, a, b):
        score = similarity(a, b)
        assert score == similarity(b, a)
        assert 0.0 <= score <= 1.0

    def test_completely_different(self):
        assert similarity("abc", "xyz") == 0.0


class TestStripWebsite:
    def test_strips_scheme_and_www(self):
        assert strip_website("https://www.acme.com") == "acme.com"

    def test_http_without_www(self):
        assert strip_website("http://acme.io/about") == "acme.io/about"

    def test_blank(self):
        assert strip_website("") == ""
        assert strip_website(None) == ""


class TestFindCandidates:
    def test_substring_match(self, db_session):
        _add(db_session, "Acme Corporation", "Umbrella")
        names = [c.name for c in find_candidates(db_session, "acme")]
        assert names == ["Acme Corporation"]

    def test_empty_website_matches_nothing_extra(self, db_session):
        _add(db_session, "Umbrella")
        assert find_candidates(db_session, "Acme Corp", "") == []

    def test_website_label_reaches_renamed_company(self, db_session):
        _add(db_session, "Stripe")
        names = [c.name for c in find_candidates(db_session, "Payments by Stripe", "https://www.stripe.com")]
        assert names == ["Stripe"]

    def test_wildcards_are_literal(self, db_session):
        _add(db_session, "Umbrella")
        assert find_candidates(db_session, "%%%") == []


class TestDetectDuplicates:
    def test_typo_found_by_name_prefix(self, db_session):
        _add(db_session, "Google")
        matches = detect_duplicates(db_session, "Gogle", "https://google.com")
        assert len(matches) == 1
        assert matches[0].name == "Google"
        assert matches[0].similarity == pytest.approx(0.833)

    def test_short_names_skipped(self, db_session):
        _add(db_session, "AB", "ABC")
        assert detect_duplicates(db_session, "AB") == []
        assert detect_duplicates(db_session, "  a ") == []

    def test_below_threshold_excluded(self, db_session):
        _add(db_session, "Acme Corporation")
        assert detect_duplicates(db_session, "Acme Corp") == []

    def test_sorted_by_similarity(self, db_session):
        _add(db_session, "Acme Corps", "Acme Corp")
        matches = detect_duplicates(db_session, "Acme Corp")
        assert [m.name for m in matches] == ["Acme Corp", "Acme Corps"]
        assert matches[0].similarity == 1.0
        assert matches[1].similarity == 0.9

    def test_custom_threshold(self, db_session):
        _add(db_session, "Acme Corps")
        assert detect_duplicates(db_session, "Acme Corp", threshold=0.95) == []

    def test_query_failure_degrades_to_empty(self, db_session):
        with patch(
            "truplace.company_requests.duplicates.find_candidates",
            side_effect=SQLAlchemyError("connection lost"),
        ):
            assert detect_duplicates(db_session, "Acme Corp") == []


class TestSummarizeDuplicates:
    def test_top_three_and_remainder(self):
        matches = [DuplicateMatch(id=str(i), name=f"Co {i}", industry="", similarity=0.9) for i in range(5)]
        summary = summarize_duplicates(matches)
        assert [m["id"] for m in summary["top"]] == ["0", "1", "2"]
        assert summary["remaining"] == 2
        assert summary["total"] == 5

    def test_fewer_than_three(self):
        summary = summarize_duplicates([DuplicateMatch(id="1", name="Acme", industry="Tech", similarity=1.0)])
        assert summary["remaining"] == 0
        assert summary["top"][0] == {"id": "1", "name": "Acme", "industry": "Tech", "similarity": 1.0}
