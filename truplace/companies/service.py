"""Company service: lookup, search, aggregated stats, popular list, admin edits."""

import logging
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..integrations.cache import POPULAR_COMPANIES_KEY, CacheService
from ..reviews.models import DIMENSIONS, Recommendation, Review
from .models import Company
from .schemas import CompanySort

logger = logging.getLogger(__name__)

# Largest list the popular endpoint serves; the cache always holds this many
MAX_POPULAR_COMPANIES = 20

# Shown when the popular list cannot be computed
FALLBACK_POPULAR_COMPANIES = [
    {"id": "1", "name": "Google", "rating": 4.3, "reviews": 1247},
    {"id": "2", "name": "Apple", "rating": 4.1, "reviews": 892},
    {"id": "3", "name": "Microsoft", "rating": 4.2, "reviews": 756},
    {"id": "4", "name": "Amazon", "rating": 3.6, "reviews": 2156},
    {"id": "5", "name": "Meta", "rating": 3.9, "reviews": 642},
    {"id": "6", "name": "Netflix", "rating": 4.0, "reviews": 423},
]


def parse_uuid(value: str | UUID | None) -> UUID | None:
    """Convert string to UUID, returning None on failure."""
    if isinstance(value, UUID):
        return value
    if not value:
        return None
    try:
        return UUID(value)
    except (ValueError, AttributeError):
        return None


def get_company(db: Session, company_id: str | UUID) -> Company | None:
    uid = parse_uuid(company_id)
    if uid is None:
        return None
    return db.query(Company).filter(Company.id == uid).first()


def create_company(
    db: Session,
    name: str,
    industry: str,
    size: str,
    *,
    website: str | None = None,
    email_domains: list[str] | None = None,
    logo_url: str | None = None,
    source: str | None = None,
    request_id: UUID | None = None,
) -> Company:
    company = Company(
        name=name.strip(),
        industry=industry,
        size=size,
        website=website,
        email_domains=list(email_domains or []),
        logo_url=logo_url,
        source=source,
        request_id=request_id,
    )
    db.add(company)
    db.flush()
    return company


def update_company(
    db: Session,
    company_id: str,
    *,
    name: str,
    industry: str,
    size: str,
    logo_url: str | None = None,
) -> Company | None:
    company = get_company(db, company_id)
    if not company:
        return None
    company.name = name
    company.industry = industry
    company.size = size
    company.logo_url = logo_url
    db.flush()
    return company


def search_companies(db: Session, query: str, limit: int = 10) -> list[Company]:
    """Case-insensitive substring search by name; blank query lists the first companies by name."""
    q = db.query(Company)
    term = (query or "").strip().lower()
    if term:
        q = q.filter(func.lower(Company.name).contains(term, autoescape=True))
    return q.order_by(Company.name.asc()).limit(limit).all()


# ── Aggregated stats ───────────────────────────────────────────────────


def _stats_query(db: Session):
    highly = func.sum(case((Review.recommendation == Recommendation.HIGHLY_RECOMMEND, 1), else_=0))
    return (
        db.query(
            Company,
            func.count(Review.id),
            func.avg(Review.overall_rating),
            highly,
            *[func.avg(getattr(Review, d)) for d in DIMENSIONS],
        )
        .outerjoin(Review, Review.company_id == Company.id)
        .group_by(Company.id)
    )


def _row_to_stats(row) -> dict:
    company, count, avg_rating, highly, *dims = row
    count = int(count or 0)
    return {
        "id": str(company.id),
        "name": company.name,
        "industry": company.industry or "",
        "size": company.size or "",
        "logo_url": company.logo_url,
        "overall_rating": round(float(avg_rating), 1) if avg_rating is not None else 0.0,
        "review_count": count,
        "recommendation_rate": round(int(highly or 0) * 100 / count) if count else 0,
        "dimensions": {d: round(float(v), 1) if v is not None else 0.0 for d, v in zip(DIMENSIONS, dims, strict=True)},
        "created_at": company.created_at.isoformat() if company.created_at else None,
        "updated_at": company.updated_at.isoformat() if company.updated_at else None,
    }


def list_company_stats(
    db: Session,
    search: str | None = None,
    industry: str | None = None,
    size: str | None = None,
    sort: CompanySort = CompanySort.REVIEWS,
) -> list[dict]:
    """Companies with their review aggregates, filtered and sorted."""
    q = _stats_query(db)
    if search and search.strip():
        q = q.filter(func.lower(Company.name).contains(search.strip().lower(), autoescape=True))
    if industry and industry != "all":
        q = q.filter(Company.industry == industry)
    if size and size != "all":
        q = q.filter(Company.size == size)

    stats = [_row_to_stats(row) for row in q.all()]

    if sort == CompanySort.NAME:
        stats.sort(key=lambda s: s["name"].lower())
    elif sort == CompanySort.RATING:
        stats.sort(key=lambda s: (-s["overall_rating"], s["name"].lower()))
    elif sort == CompanySort.RECENT:
        stats.sort(key=lambda s: s["updated_at"] or "", reverse=True)
    else:
        stats.sort(key=lambda s: (-s["review_count"], s["name"].lower()))
    return stats


def get_company_stats(db: Session, company_id: str) -> dict | None:
    uid = parse_uuid(company_id)
    if uid is None:
        return None
    row = _stats_query(db).filter(Company.id == uid).first()
    return _row_to_stats(row) if row else None


def get_popular_companies(db: Session, cache: CacheService, limit: int = 6) -> list[dict]:
    """Top companies by review count; falls back to a fixed list on any database failure.

    The cached entry holds the full top list so that any limit is served from it.
    """
    cached = cache.get_json(POPULAR_COMPANIES_KEY)
    if isinstance(cached, list):
        return cached[:limit]

    try:
        stats = list_company_stats(db)
    except SQLAlchemyError:
        logger.warning("Popular companies query failed, serving fallback list", exc_info=True)
        return FALLBACK_POPULAR_COMPANIES[:limit]

    popular = [
        {"id": s["id"], "name": s["name"], "rating": s["overall_rating"], "reviews": s["review_count"]}
        for s in stats[: max(limit, MAX_POPULAR_COMPANIES)]
    ]
    cache.set_json(POPULAR_COMPANIES_KEY, popular, settings.popular_companies_ttl)
    return popular[:limit]
