"""Enumeration types for the Buildstate domain model."""

from enum import Enum


class UserRole(str, Enum):
    """Role of a user account."""
    PROPERTY_MANAGER = "PROPERTY_MANAGER"
    OWNER = "OWNER"
    TECHNICIAN = "TECHNICIAN"
    TENANT = "TENANT"
    ADMIN = "ADMIN"  # platform staff (blog administration)


class SubscriptionStatus(str, Enum):
    """Billing state of a user account."""
    TRIAL = "TRIAL"
    ACTIVE = "ACTIVE"
    PAST_DUE = "PAST_DUE"
    CANCELLED = "CANCELLED"
    SUSPENDED = "SUSPENDED"


class SubscriptionPlan(str, Enum):
    """Paid plan tiers."""
    FREE_TRIAL = "FREE_TRIAL"
    STARTER = "STARTER"
    PROFESSIONAL = "PROFESSIONAL"
    ENTERPRISE = "ENTERPRISE"


class PropertyStatus(str, Enum):
    """Operational status of a property."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    UNDER_MAINTENANCE = "UNDER_MAINTENANCE"


class UnitStatus(str, Enum):
    """Status of a unit."""
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    MAINTENANCE = "MAINTENANCE"
    VACANT = "VACANT"


class JobStatus(str, Enum):
    """Lifecycle of a maintenance job."""
    OPEN = "OPEN"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Priority(str, Enum):
    """Priority shared by jobs, service requests and recommendations."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class InspectionType(str, Enum):
    """Type of inspection."""
    ROUTINE = "ROUTINE"
    MOVE_IN = "MOVE_IN"
    MOVE_OUT = "MOVE_OUT"
    EMERGENCY = "EMERGENCY"
    COMPLIANCE = "COMPLIANCE"


class InspectionStatus(str, Enum):
    """Status of an inspection."""
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ServiceRequestStatus(str, Enum):
    """Status of a tenant/owner service request."""
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    CONVERTED_TO_JOB = "CONVERTED_TO_JOB"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"


class ServiceRequestCategory(str, Enum):
    """Trade category of a service request."""
    PLUMBING = "PLUMBING"
    ELECTRICAL = "ELECTRICAL"
    HVAC = "HVAC"
    APPLIANCE = "APPLIANCE"
    STRUCTURAL = "STRUCTURAL"
    PEST_CONTROL = "PEST_CONTROL"
    LANDSCAPING = "LANDSCAPING"
    GENERAL = "GENERAL"
    OTHER = "OTHER"


class RecommendationStatus(str, Enum):
    """Status of an inspection recommendation."""
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    IMPLEMENTED = "IMPLEMENTED"


class MaintenanceFrequency(str, Enum):
    """Recurrence of a maintenance plan."""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    SEMIANNUALLY = "SEMIANNUALLY"
    ANNUALLY = "ANNUALLY"


class NotificationType(str, Enum):
    """Kind of in-app notification."""
    INSPECTION_SCHEDULED = "INSPECTION_SCHEDULED"
    INSPECTION_REMINDER = "INSPECTION_REMINDER"
    INSPECTION_COMPLETED = "INSPECTION_COMPLETED"
    JOB_ASSIGNED = "JOB_ASSIGNED"
    JOB_COMPLETED = "JOB_COMPLETED"
    SERVICE_REQUEST_UPDATE = "SERVICE_REQUEST_UPDATE"
    RECOMMENDATION_UPDATE = "RECOMMENDATION_UPDATE"
    SUBSCRIPTION_EXPIRING = "SUBSCRIPTION_EXPIRING"
    PAYMENT_DUE = "PAYMENT_DUE"
    SYSTEM = "SYSTEM"


class BlogPostStatus(str, Enum):
    """Publication state of a blog post."""
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class InviteStatus(str, Enum):
    """State of an emailed invitation."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    EXPIRED = "EXPIRED"


class AuditAction(str, Enum):
    """Actions tracked in audit log."""
    USER_REGISTERED = "user_registered"
    PROPERTY_CREATED = "property_created"
    PROPERTY_DELETED = "property_deleted"
    OWNER_ASSIGNED = "owner_assigned"
    TENANT_ASSIGNED = "tenant_assigned"
    TENANT_REMOVED = "tenant_removed"
    JOB_CREATED = "job_created"
    JOB_STATUS_CHANGED = "job_status_changed"
    SERVICE_REQUEST_CONVERTED = "service_request_converted"
    RECOMMENDATION_DECIDED = "recommendation_decided"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    BLOG_POST_GENERATED = "blog_post_generated"
    INVITE_CREATED = "invite_created"
    INVITE_ACCEPTED = "invite_accepted"
