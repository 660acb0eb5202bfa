"""API Routes."""

from fastapi import APIRouter

from .audit import router as audit_router
from .auth import router as auth_router
from .comments import router as comments_router
from .contacts import router as contacts_router
from .costs import router as costs_router
from .documents import router as documents_router
from .events import router as events_router
from .health import router as health_router
from .notifications import router as notifications_router
from .partners import router as partners_router
from .phases import router as phases_router
from .portfolio import router as portfolio_router
from .projects import router as projects_router
from .reports import router as reports_router
from .search import router as search_router
from .vendors import router as vendors_router

# Create main API router
api_router = APIRouter()

api_router.include_router(health_router, tags=["Health"])
api_router.include_router(auth_router)
api_router.include_router(projects_router)
api_router.include_router(partners_router)
api_router.include_router(audit_router)
api_router.include_router(costs_router)
api_router.include_router(contacts_router)
api_router.include_router(events_router)
api_router.include_router(documents_router)
api_router.include_router(notifications_router)
api_router.include_router(portfolio_router)
api_router.include_router(search_router)
api_router.include_router(reports_router)
api_router.include_router(vendors_router)
api_router.include_router(comments_router)
api_router.include_router(phases_router)
