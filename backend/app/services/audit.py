"""Audit logging service."""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit import AuditLog
from app.models.enums import AuditAction


class AuditService:
    """Service for creating audit log entries.

    Entries are flushed, not committed: they land in the caller's
    transaction and disappear with it on rollback.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        action: AuditAction,
        resource_type: str,
        resource_id: UUID,
        org_id: Optional[UUID] = None,
        user_id: Optional[UUID] = None,
        details: Optional[dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> AuditLog:
        """Create an audit log entry."""
        entry = AuditLog(
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            org_id=org_id,
            user_id=user_id,
            details=details or {},
            ip_address=ip_address,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def log_job_status_changed(
        self,
        job_id: UUID,
        user_id: Optional[UUID],
        old_status: str,
        new_status: str,
    ) -> AuditLog:
        return await self.log(
            action=AuditAction.JOB_STATUS_CHANGED,
            resource_type="job",
            resource_id=job_id,
            user_id=user_id,
            details={"from": old_status, "to": new_status},
        )

    async def log_service_request_converted(
        self,
        service_request_id: UUID,
        job_id: UUID,
        user_id: UUID,
    ) -> AuditLog:
        return await self.log(
            action=AuditAction.SERVICE_REQUEST_CONVERTED,
            resource_type="service_request",
            resource_id=service_request_id,
            user_id=user_id,
            details={"job_id": str(job_id)},
        )

    async def log_subscription_updated(
        self,
        user_id: UUID,
        event_type: str,
        status: str,
        plan: Optional[str] = None,
    ) -> AuditLog:
        """Record a subscription change driven by a Stripe event or confirmation."""
        return await self.log(
            action=AuditAction.SUBSCRIPTION_UPDATED,
            resource_type="user",
            resource_id=user_id,
            user_id=user_id,
            details={"event": event_type, "status": status, "plan": plan},
        )
