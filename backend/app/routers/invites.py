"""Invites router."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import require_manager
from app.models.invite import Invite
from app.models.user import User
from app.schemas.base import MessageResponse
from app.schemas.invite import InviteCreate, InviteCreated, InviteDetails, InviteResponse
from app.services.email import EmailService, get_email_service
from app.services.invites import InviteService, signup_url

router = APIRouter(prefix="/invites", tags=["invites"])


@router.post("", response_model=InviteCreated, status_code=status.HTTP_201_CREATED)
async def create_invite(
    data: InviteCreate,
    db: AsyncSession = Depends(get_db),
    email: EmailService = Depends(get_email_service),
    current_user: User = Depends(require_manager),
):
    """Invite an owner, technician or tenant; the signup link is also emailed."""
    service = InviteService(db)
    invite = await service.create(current_user, data)
    await db.commit()

    await service.send_email(invite, current_user, email)

    view = (await service.list_sent(current_user.id, invite.id))[0]
    return InviteCreated(**view.model_dump(), signup_url=signup_url(invite.token))


@router.get("", response_model=List[InviteResponse])
async def list_invites(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    return await InviteService(db).list_sent(current_user.id)


@router.get("/{token}", response_model=InviteDetails)
async def get_invite(token: str, db: AsyncSession = Depends(get_db)):
    """Public: details of a pending invite for the signup page."""
    return await InviteService(db).details(token)


@router.delete("/{invite_id}", response_model=MessageResponse)
async def delete_invite(
    invite_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    invite = await db.get(Invite, invite_id)
    if not invite:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invite not found")
    if invite.invited_by_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to delete this invite",
        )

    await db.delete(invite)
    await db.commit()
    return MessageResponse(message="Invite deleted successfully")
