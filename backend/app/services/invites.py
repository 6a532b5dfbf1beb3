"""Email invitations for owners, technicians and tenants.

A manager creates an invite; the invitee opens the signup link, and
registering with the token applies the invite: the new account takes the
invited role, joins the manager's organization and is attached to the
invited property (owners) or unit (tenants).
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.core.config import get_settings
from app.core.errors import ApiError, bad_request
from app.models.enums import AuditAction, InviteStatus, UnitStatus, UserRole
from app.models.invite import Invite
from app.models.property import Property, PropertyOwner, Unit, UnitTenant
from app.models.user import User
from app.schemas.auth import UserSummary
from app.schemas.invite import InviteCreate, InviteDetails, InviteResponse
from app.services.audit import AuditService
from app.services.email import EmailService, render_invite_email

logger = logging.getLogger(__name__)

settings = get_settings()


def signup_url(token: str) -> str:
    return f"{settings.frontend_url}/signup?invite={token}"


def _display_name(user: User) -> str:
    name = " ".join(part for part in (user.first_name, user.last_name) if part)
    return name or user.email


class InviteService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, manager: User, data: InviteCreate) -> Invite:
        """Validate and store a new invite. Does not commit."""
        email = str(data.email).lower()
        now = datetime.utcnow()

        existing_user = await self.db.execute(select(User.id).where(User.email == email))
        if existing_user.first():
            raise bad_request("User with this email already exists")

        pending = await self.db.execute(
            select(Invite).where(Invite.email == email, Invite.status == InviteStatus.PENDING)
        )
        for invite in pending.scalars().all():
            if invite.expires_at > now:
                raise bad_request("A pending invite already exists for this email")
            invite.status = InviteStatus.EXPIRED

        if data.property_id:
            prop = await self.db.get(Property, data.property_id)
            if prop is None or prop.manager_id != manager.id:
                raise ApiError(status.HTTP_404_NOT_FOUND, "Property not found or you do not have permission")

        if data.unit_id:
            result = await self.db.execute(
                select(Unit, Property.manager_id)
                .join(Property, Property.id == Unit.property_id)
                .where(Unit.id == data.unit_id)
            )
            row = result.first()
            if row is None or row.manager_id != manager.id:
                raise ApiError(status.HTTP_404_NOT_FOUND, "Unit not found or you do not have permission")
            if data.property_id and row.Unit.property_id != data.property_id:
                raise bad_request("Unit does not belong to the specified property")

        invite = Invite(
            email=email,
            role=data.role,
            token=secrets.token_hex(32),
            status=InviteStatus.PENDING,
            expires_at=now + timedelta(days=settings.invite_expiry_days),
            invited_by_id=manager.id,
            property_id=data.property_id,
            unit_id=data.unit_id,
        )
        self.db.add(invite)
        await self.db.flush()

        await AuditService(self.db).log(
            action=AuditAction.INVITE_CREATED,
            resource_type="invite",
            resource_id=invite.id,
            org_id=manager.org_id,
            user_id=manager.id,
            details={"email": email, "role": data.role.value},
        )
        return invite

    async def list_sent(self, manager_id: UUID, invite_id: Optional[UUID] = None) -> list[InviteResponse]:
        """Invites sent by a manager, newest first, with property and unit names."""
        invited = aliased(User)
        query = (
            select(Invite, Property.name, Unit.unit_number, invited)
            .outerjoin(Property, Property.id == Invite.property_id)
            .outerjoin(Unit, Unit.id == Invite.unit_id)
            .outerjoin(invited, invited.id == Invite.invited_user_id)
            .where(Invite.invited_by_id == manager_id)
            .order_by(Invite.created_at.desc())
        )
        if invite_id is not None:
            query = query.where(Invite.id == invite_id)

        result = await self.db.execute(query)
        views = []
        for invite, property_name, unit_number, user in result.all():
            view = InviteResponse.model_validate(invite)
            view.property_name = property_name
            view.unit_number = unit_number
            view.invited_user = UserSummary.model_validate(user) if user else None
            views.append(view)
        return views

    async def get_pending(self, token: str) -> Invite:
        """Look up a usable invite by token."""
        result = await self.db.execute(select(Invite).where(Invite.token == token))
        invite = result.scalar_one_or_none()
        if invite is None:
            raise ApiError(status.HTTP_404_NOT_FOUND, "Invite not found")
        if invite.is_expired:
            raise bad_request("This invite has expired")
        if invite.status != InviteStatus.PENDING:
            raise bad_request("This invite has already been used")
        return invite

    async def details(self, token: str) -> InviteDetails:
        invite = await self.get_pending(token)
        inviter = await self.db.get(User, invite.invited_by_id)
        prop = await self.db.get(Property, invite.property_id) if invite.property_id else None
        unit = await self.db.get(Unit, invite.unit_id) if invite.unit_id else None
        return InviteDetails(
            email=invite.email,
            role=invite.role,
            invited_by=UserSummary.model_validate(inviter),
            property_id=invite.property_id,
            property_name=prop.name if prop else None,
            unit_id=invite.unit_id,
            unit_number=unit.unit_number if unit else None,
        )

    async def accept(self, token: str, user: User) -> Invite:
        """Apply an invite to a newly registered user. Does not commit."""
        invite = await self.get_pending(token)
        if invite.email != user.email.lower():
            raise bad_request("This invite was issued for a different email address")

        inviter = await self.db.get(User, invite.invited_by_id)
        user.role = invite.role
        user.org_id = inviter.org_id if inviter else None
        await self.db.flush()

        if invite.role == UserRole.OWNER and invite.property_id:
            self.db.add(PropertyOwner(property_id=invite.property_id, owner_id=user.id))
        if invite.role == UserRole.TENANT and invite.unit_id:
            unit = await self.db.get(Unit, invite.unit_id)
            if unit is not None:
                self.db.add(UnitTenant(unit_id=unit.id, tenant_id=user.id, lease_start=datetime.utcnow()))
                unit.status = UnitStatus.OCCUPIED

        invite.status = InviteStatus.ACCEPTED
        invite.invited_user_id = user.id
        await self.db.flush()

        await AuditService(self.db).log(
            action=AuditAction.INVITE_ACCEPTED,
            resource_type="invite",
            resource_id=invite.id,
            org_id=user.org_id,
            user_id=user.id,
            details={"role": invite.role.value},
        )
        logger.info("Invite %s accepted by user %s", invite.id, user.id)
        return invite

    async def send_email(self, invite: Invite, inviter: User, email: EmailService) -> bool:
        """Email the signup link. Failures are logged, never raised."""
        prop = await self.db.get(Property, invite.property_id) if invite.property_id else None
        unit = await self.db.get(Unit, invite.unit_id) if invite.unit_id else None
        subject, html = render_invite_email(
            signup_url(invite.token),
            _display_name(inviter),
            invite.role.value,
            property_name=prop.name if prop else None,
            unit_number=unit.unit_number if unit else None,
        )
        sent = await email.send(invite.email, subject, html)
        if not sent:
            logger.warning("Invite email to %s was not sent", invite.email)
        return sent
