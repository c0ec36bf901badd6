"""Review JSON routes."""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..audit.service import audit
from ..auth.service import SessionContext
from ..config import settings
from ..database.base import get_db
from ..dependencies import get_cache, get_current_user
from ..integrations.cache import POPULAR_COMPANIES_KEY, CacheService
from ..rate_limit import limiter
from .models import Recommendation
from .schemas import ReviewCreateRequest, ReviewSort
from .service import CompanyNotFound, get_reviews_by_company, serialize_review, submit_review

router = APIRouter(tags=["reviews"])


@router.get("/companies/{company_id}/reviews")
def list_reviews(
    company_id: str,
    rating: int | None = Query(None, ge=1, le=5),
    recommendation: Recommendation | None = None,
    sort_by: ReviewSort = ReviewSort.RECENT,
    limit: int | None = Query(None, ge=1, le=100),
    offset: int | None = Query(None, ge=0),
    db: Session = Depends(get_db),
):
    reviews = get_reviews_by_company(
        db,
        company_id,
        min_rating=rating,
        recommendation=recommendation,
        sort_by=sort_by,
        limit=limit,
        offset=offset,
    )
    return JSONResponse({"reviews": [serialize_review(r) for r in reviews]})


@router.post("/reviews")
@limiter.limit(settings.rate_limit_submit)
def create_review(
    request: Request,
    body: ReviewCreateRequest,
    db: Session = Depends(get_db),
    user: SessionContext = Depends(get_current_user),
    cache: CacheService = Depends(get_cache),
):
    try:
        review = submit_review(db, user.user_id, body)
    except CompanyNotFound:
        return JSONResponse({"error": "Company not found"}, status_code=404)

    audit(db, request, "review_submit", f"company={review.company_id}", user_id=user.user_id)
    db.commit()
    cache.delete(POPULAR_COMPANIES_KEY)
    return JSONResponse({"ok": True, "review": serialize_review(review)}, status_code=201)
