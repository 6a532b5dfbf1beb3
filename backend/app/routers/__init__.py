"""API Routers for Buildstate."""

from app.routers.auth import router as auth_router
from app.routers.users import router as users_router
from app.routers.properties import router as properties_router
from app.routers.units import router as units_router
from app.routers.jobs import router as jobs_router
from app.routers.inspections import router as inspections_router
from app.routers.service_requests import router as service_requests_router
from app.routers.recommendations import router as recommendations_router
from app.routers.plans import router as plans_router
from app.routers.billing import router as billing_router
from app.routers.subscriptions import router as subscriptions_router
from app.routers.notifications import router as notifications_router
from app.routers.dashboard import router as dashboard_router
from app.routers.reports import router as reports_router
from app.routers.blog import router as blog_router
from app.routers.invites import router as invites_router
from app.routers.search import router as search_router

__all__ = [
    "auth_router",
    "users_router",
    "properties_router",
    "units_router",
    "jobs_router",
    "inspections_router",
    "service_requests_router",
    "recommendations_router",
    "plans_router",
    "billing_router",
    "subscriptions_router",
    "notifications_router",
    "dashboard_router",
    "reports_router",
    "blog_router",
    "invites_router",
    "search_router",
]
