"""Notification dispatch: database row, Socket.IO push, optional email."""

import logging
from typing import Optional
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.models.enums import NotificationType
from app.models.inspection import Inspection
from app.models.jobs import Job
from app.models.notification import Notification
from app.models.property import Property
from app.models.recommendation import Recommendation
from app.models.service_request import ServiceRequest
from app.models.user import User
from app.schemas.notification import NotificationResponse
from app.services.email import EmailService, render_notification_email
from app.services.realtime import emit_to_user

logger = logging.getLogger(__name__)

settings = get_settings()

# session.info key holding deliveries that wait for the transaction to commit
PENDING_DELIVERIES = "pending_notification_deliveries"


@event.listens_for(Session, "after_rollback")
def _drop_pending_deliveries(session: Session) -> None:
    session.info.pop(PENDING_DELIVERIES, None)


async def deliver_pending_notifications(db: AsyncSession) -> None:
    """Push and email the notifications queued on a committed session."""
    pending = db.info.pop(PENDING_DELIVERIES, [])
    for service, notification, send_email, action_path, context in pending:
        await emit_to_user(
            notification.user_id,
            "notification",
            jsonable_encoder(NotificationResponse.model_validate(notification)),
        )
        if send_email:
            await service._email(notification.user_id, notification, action_path, context)


async def commit_and_notify(db: AsyncSession) -> None:
    await db.commit()
    await deliver_pending_notifications(db)


class NotificationService:
    """Creates notifications and fans them out to live sockets and email.

    The notification row is flushed into the caller's transaction. The socket
    push and email are queued on the session and go out from
    `commit_and_notify`; a rollback discards them.
    """

    def __init__(self, db: AsyncSession, email: Optional[EmailService] = None):
        self.db = db
        self.email = email or EmailService()

    async def notify(
        self,
        user_id: UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[UUID] = None,
        send_email: bool = False,
        action_path: Optional[str] = None,
        **email_context,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        self.db.add(notification)
        await self.db.flush()

        self.db.info.setdefault(PENDING_DELIVERIES, []).append(
            (self, notification, send_email, action_path, email_context)
        )
        return notification

    async def _email(
        self,
        user_id: UUID,
        notification: Notification,
        action_path: Optional[str],
        context: dict,
    ) -> None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if not user or not user.email:
            return
        action_url = f"{settings.frontend_url}{action_path}" if action_path else None
        try:
            subject, html = render_notification_email(
                notification.notification_type,
                recipient_name=user.first_name or user.email,
                title=notification.title,
                message=notification.message,
                action_url=action_url,
                **context,
            )
        except Exception:
            logger.exception("Failed to render email for notification %s", notification.id)
            return
        await self.email.send(user.email, subject, html)

    async def job_assigned(self, job: Job, technician_id: UUID, property_name: Optional[str] = None) -> Notification:
        return await self.notify(
            technician_id,
            NotificationType.JOB_ASSIGNED,
            title=f"New Job Assigned: {job.title}",
            message=f"You have been assigned to \"{job.title}\"" + (f" at {property_name}" if property_name else ""),
            entity_type="job",
            entity_id=job.id,
            send_email=True,
            action_path=f"/jobs/{job.id}",
            property_name=property_name,
            priority=job.priority.value if job.priority else None,
            scheduled_date=job.scheduled_date.strftime("%d %b %Y") if job.scheduled_date else None,
        )

    async def job_completed(self, job: Job, prop: Property) -> Notification:
        return await self.notify(
            prop.manager_id,
            NotificationType.JOB_COMPLETED,
            title=f"Job Completed: {job.title}",
            message=f"\"{job.title}\" at {prop.name} has been marked as completed.",
            entity_type="job",
            entity_id=job.id,
            send_email=True,
            action_path=f"/jobs/{job.id}",
        )

    async def inspection_scheduled(
        self,
        inspection: Inspection,
        user_id: UUID,
        property_name: Optional[str] = None,
    ) -> Notification:
        return await self.notify(
            user_id,
            NotificationType.INSPECTION_SCHEDULED,
            title=f"Inspection Scheduled: {inspection.title}",
            message="An inspection has been scheduled" + (f" at {property_name}" if property_name else "") + ".",
            entity_type="inspection",
            entity_id=inspection.id,
            send_email=True,
            action_path=f"/inspections/{inspection.id}",
            scheduled_date=inspection.scheduled_date.strftime("%d %b %Y") if inspection.scheduled_date else None,
        )

    async def inspection_completed(self, inspection: Inspection, prop: Property) -> Notification:
        return await self.notify(
            prop.manager_id,
            NotificationType.INSPECTION_COMPLETED,
            title=f"Inspection Completed: {inspection.title}",
            message=f"The inspection \"{inspection.title}\" at {prop.name} has been completed.",
            entity_type="inspection",
            entity_id=inspection.id,
            send_email=True,
            action_path=f"/inspections/{inspection.id}",
        )

    async def service_request_submitted(self, request: ServiceRequest, prop: Property) -> Notification:
        return await self.notify(
            prop.manager_id,
            NotificationType.SERVICE_REQUEST_UPDATE,
            title=f"New Service Request: {request.title}",
            message=f"A new service request was submitted for {prop.name}.",
            entity_type="service_request",
            entity_id=request.id,
            action_path=f"/service-requests/{request.id}",
        )

    async def service_request_status_changed(self, request: ServiceRequest) -> Notification:
        return await self.notify(
            request.requested_by_id,
            NotificationType.SERVICE_REQUEST_UPDATE,
            title=f"Service Request Updated: {request.title}",
            message=f"Your service request is now {request.status.value.replace('_', ' ').lower()}.",
            entity_type="service_request",
            entity_id=request.id,
            action_path=f"/service-requests/{request.id}",
        )

    async def recommendation_decided(self, recommendation: Recommendation) -> Notification:
        decision = recommendation.status.value.lower()
        message = f"Your recommendation \"{recommendation.title}\" was {decision}."
        if recommendation.rejection_reason:
            message += f" Reason: {recommendation.rejection_reason}"
        return await self.notify(
            recommendation.created_by_id,
            NotificationType.RECOMMENDATION_UPDATE,
            title=f"Recommendation {decision.capitalize()}: {recommendation.title}",
            message=message,
            entity_type="recommendation",
            entity_id=recommendation.id,
        )
