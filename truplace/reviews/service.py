"""Review service: composing a review from dimension ratings, persisting, listing."""

import math
from uuid import UUID

from sqlalchemy.orm import Session

from ..companies.service import get_company, parse_uuid
from .models import DIMENSIONS, Recommendation, Review
from .schemas import ReviewCreateRequest, ReviewSort

MAX_HIGHLIGHTS = 3
DEFAULT_PAGE_SIZE = 10


class CompanyNotFound(LookupError):
    """Raised when a review targets a company that does not exist."""


def compose_review(payload: ReviewCreateRequest) -> dict:
    """Derive the stored review fields from per-dimension ratings.

    Overall rating is the mean of the nine ratings rounded half up.
    Pros collect feedback on ratings >= 4, cons on ratings <= 2, three each at most.
    """
    ratings = [payload.ratings[d] for d in DIMENSIONS]
    mean = sum(r.rating for r in ratings) / len(ratings)

    pros = [r.feedback.strip() for r in ratings if r.feedback.strip() and r.rating >= 4][:MAX_HIGHLIGHTS]
    cons = [r.feedback.strip() for r in ratings if r.feedback.strip() and r.rating <= 2][:MAX_HIGHLIGHTS]

    return {
        "overall_rating": math.floor(mean + 0.5),
        "recommendation": payload.recommendation,
        "role": payload.role,
        "pros": pros,
        "cons": cons,
        "advice": payload.advice.strip() or None,
        **{d: payload.ratings[d].rating for d in DIMENSIONS},
    }


def submit_review(db: Session, user_id: UUID, payload: ReviewCreateRequest) -> Review:
    company = get_company(db, payload.company_id)
    if not company:
        raise CompanyNotFound(payload.company_id)

    review = Review(company_id=company.id, user_id=user_id, **compose_review(payload))
    db.add(review)
    db.flush()
    return review


def get_reviews_by_company(
    db: Session,
    company_id: str,
    min_rating: int | None = None,
    recommendation: Recommendation | None = None,
    sort_by: ReviewSort = ReviewSort.RECENT,
    limit: int | None = None,
    offset: int | None = None,
) -> list[Review]:
    uid = parse_uuid(company_id)
    if uid is None:
        return []

    q = db.query(Review).filter(Review.company_id == uid)
    if min_rating:
        q = q.filter(Review.overall_rating >= min_rating)
    if recommendation:
        q = q.filter(Review.recommendation == recommendation)

    if sort_by == ReviewSort.RATING_HIGH:
        q = q.order_by(Review.overall_rating.desc(), Review.created_at.desc())
    elif sort_by == ReviewSort.RATING_LOW:
        q = q.order_by(Review.overall_rating.asc(), Review.created_at.desc())
    elif sort_by == ReviewSort.HELPFUL:
        q = q.order_by(Review.helpful_count.desc(), Review.created_at.desc())
    else:
        q = q.order_by(Review.created_at.desc())

    if offset:
        q = q.offset(offset).limit(limit or DEFAULT_PAGE_SIZE)
    elif limit:
        q = q.limit(limit)
    return q.all()


def serialize_review(review: Review) -> dict:
    """Public representation; the author's identity is never exposed."""
    return {
        "id": str(review.id),
        "company_id": str(review.company_id),
        "overall_rating": review.overall_rating,
        "recommendation": str(review.recommendation),
        "role": review.role or "",
        "pros": review.pros or [],
        "cons": review.cons or [],
        "advice": review.advice,
        "dimensions": review.dimensions,
        "helpful_count": review.helpful_count or 0,
        "created_at": review.created_at.isoformat() if review.created_at else None,
    }
