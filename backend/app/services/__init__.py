"""Services for the Buildstate API."""

from app.services.storage import StorageService, get_storage_service
from app.services.audit import AuditService
from app.services.notifications import NotificationService
from app.services.billing import BillingService
from app.services.blog_automation import BlogAutomationService

__all__ = [
    "StorageService",
    "get_storage_service",
    "AuditService",
    "NotificationService",
    "BillingService",
    "BlogAutomationService",
]
