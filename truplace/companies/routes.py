"""Company JSON routes: browsing, search, popular list, admin edits."""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..audit.service import audit
from ..auth.service import SessionContext
from ..database.base import get_db
from ..dependencies import get_cache, get_current_admin
from ..integrations.cache import POPULAR_COMPANIES_KEY, CacheService
from .models import COMPANY_SIZES, INDUSTRIES
from .schemas import CompanySort, CompanyUpdateRequest
from .service import (
    MAX_POPULAR_COMPANIES,
    get_company_stats,
    get_popular_companies,
    list_company_stats,
    search_companies,
    update_company,
)

router = APIRouter(prefix="/companies", tags=["companies"])


@router.get("")
def list_companies(
    search: str | None = Query(None, max_length=100),
    industry: str | None = None,
    size: str | None = None,
    sort: CompanySort = CompanySort.REVIEWS,
    db: Session = Depends(get_db),
):
    companies = list_company_stats(db, search=search, industry=industry, size=size, sort=sort)
    return JSONResponse({"companies": companies, "count": len(companies)})


@router.get("/options")
def company_options():
    return JSONResponse({"industries": list(INDUSTRIES), "sizes": list(COMPANY_SIZES)})


@router.get("/search")
def search(
    q: str = Query("", max_length=100),
    db: Session = Depends(get_db),
):
    return JSONResponse(
        {
            "companies": [
                {"id": str(c.id), "name": c.name, "industry": c.industry, "size": c.size}
                for c in search_companies(db, q)
            ]
        }
    )


@router.get("/popular")
def popular(
    limit: int = Query(6, ge=1, le=MAX_POPULAR_COMPANIES),
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache),
):
    return JSONResponse({"companies": get_popular_companies(db, cache, limit)})


@router.get("/{company_id}")
def company_detail(company_id: str, db: Session = Depends(get_db)):
    stats = get_company_stats(db, company_id)
    if not stats:
        return JSONResponse({"error": "Company not found"}, status_code=404)
    return JSONResponse(stats)


@router.put("/{company_id}")
def edit_company(
    request: Request,
    company_id: str,
    body: CompanyUpdateRequest,
    db: Session = Depends(get_db),
    admin: SessionContext = Depends(get_current_admin),
    cache: CacheService = Depends(get_cache),
):
    company = update_company(
        db, company_id, name=body.name, industry=body.industry, size=body.size, logo_url=body.logo_url
    )
    if not company:
        return JSONResponse({"error": "Company not found"}, status_code=404)
    audit(db, request, "company_update", f"id={company_id}, name={company.name}", user_id=admin.user_id)
    db.commit()
    cache.delete(POPULAR_COMPANIES_KEY)
    return JSONResponse({"ok": True, "company": get_company_stats(db, company_id)})
