"""Duplicate detection for company requests.

Candidates come from one pattern query on company names; each is scored by
normalized Levenshtein similarity against the proposed name.
"""

import logging
import re
from dataclasses import asdict, dataclass

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..companies.models import Company
from ..config import settings

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 3
PREFIX_LENGTH = 2
SUMMARY_SIZE = 3

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_WWW_RE = re.compile(r"^www\.", re.IGNORECASE)


@dataclass
class DuplicateMatch:
    id: str
    name: str
    industry: str
    similarity: float

    def to_dict(self) -> dict:
        return asdict(self)


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character insertions, deletions and substitutions."""
    rows, cols = len(a) + 1, len(b) + 1
    matrix = [[0] * cols for _ in range(rows)]
    for i in range(rows):
        matrix[i][0] = i
    for j in range(cols):
        matrix[0][j] = j

    for i in range(1, rows):
        for j in range(1, cols):
            if a[i - 1] == b[j - 1]:
                matrix[i][j] = matrix[i - 1][j - 1]
            else:
                matrix[i][j] = 1 + min(
                    matrix[i - 1][j - 1],  # substitution
                    matrix[i][j - 1],  # insertion
                    matrix[i - 1][j],  # deletion
                )
    return matrix[-1][-1]


def similarity(a: str, b: str) -> float:
    """(max_len - distance) / max_len, case-insensitive; 1.0 for two empty strings."""
    a, b = a.lower(), b.lower()
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - levenshtein_distance(a, b)) / longest


def strip_website(website: str) -> str:
    """Drop the scheme and a leading www. from a website."""
    stripped = _SCHEME_RE.sub("", (website or "").strip())
    return _WWW_RE.sub("", stripped)


def find_candidates(db: Session, company_name: str, company_website: str = "") -> list[Company]:
    """Companies whose name contains the proposed name or the bare website.

    Names sharing the proposed name's first two characters, and names containing
    the website's domain label ("acme" for acme.co), are candidates too, so that
    typos past the first characters still reach scoring.
    """
    name = company_name.strip().lower()
    lowered = func.lower(Company.name)
    conditions = [
        lowered.contains(name, autoescape=True),
        lowered.startswith(name[:PREFIX_LENGTH], autoescape=True),
    ]
    site = strip_website(company_website).lower().split("/", 1)[0]
    if site:
        conditions.append(lowered.contains(site, autoescape=True))
        label = site.split(".", 1)[0]
        if len(label) >= MIN_NAME_LENGTH and label != site:
            conditions.append(lowered.contains(label, autoescape=True))
    return db.query(Company).filter(or_(*conditions)).all()


def detect_duplicates(
    db: Session,
    company_name: str,
    company_website: str = "",
    threshold: float | None = None,
) -> list[DuplicateMatch]:
    """Existing companies similar to the proposed one, most similar first.

    Names of two characters or fewer are not checked. Query failures degrade
    to an empty result.
    """
    name = (company_name or "").strip()
    if len(name) < MIN_NAME_LENGTH:
        return []
    if threshold is None:
        threshold = settings.duplicate_similarity_threshold

    try:
        candidates = find_candidates(db, name, company_website)
    except SQLAlchemyError:
        logger.warning("Duplicate detection query failed for %r", name, exc_info=True)
        return []

    matches = []
    for company in candidates:
        score = similarity(name, company.name)
        if score > threshold:
            matches.append(
                DuplicateMatch(
                    id=str(company.id),
                    name=company.name,
                    industry=company.industry or "",
                    similarity=round(score, 3),
                )
            )
    matches.sort(key=lambda m: m.similarity, reverse=True)
    return matches


def summarize_duplicates(matches: list[DuplicateMatch], size: int = SUMMARY_SIZE) -> dict:
    return {
        "top": [m.to_dict() for m in matches[:size]],
        "remaining": max(len(matches) - size, 0),
        "total": len(matches),
    }
