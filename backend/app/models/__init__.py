"""SQLAlchemy models for Buildstate."""

from app.models.user import User
from app.models.org import Organization
from app.models.property import Property, PropertyOwner, PropertyImage, Unit, UnitTenant
from app.models.jobs import Job
from app.models.job_comment import JobComment
from app.models.inspection import Inspection
from app.models.service_request import ServiceRequest
from app.models.recommendation import Recommendation
from app.models.maintenance import MaintenancePlan
from app.models.subscription import Subscription
from app.models.notification import Notification
from app.models.blog import BlogPost
from app.models.audit import AuditLog
from app.models.invite import Invite

__all__ = [
    "User",
    "Organization",
    "Property",
    "PropertyOwner",
    "PropertyImage",
    "Unit",
    "UnitTenant",
    "Job",
    "JobComment",
    "Inspection",
    "ServiceRequest",
    "Recommendation",
    "MaintenancePlan",
    "Subscription",
    "Notification",
    "BlogPost",
    "AuditLog",
    "Invite",
]
