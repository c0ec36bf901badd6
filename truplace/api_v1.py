"""API v1 router: all JSON endpoints under /api/v1 prefix."""

from fastapi import APIRouter

from .auth.routes import router as auth_router
from .companies.routes import router as companies_router
from .company_requests.routes import router as company_requests_router
from .notifications.routes import router as email_router
from .reviews.routes import router as reviews_router

api_v1_router = APIRouter(prefix="/api/v1", tags=["api-v1"])

api_v1_router.include_router(auth_router)
api_v1_router.include_router(companies_router)
api_v1_router.include_router(reviews_router)
api_v1_router.include_router(company_requests_router)
api_v1_router.include_router(email_router)
