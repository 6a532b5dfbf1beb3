"""Auth router - local registration for Firebase-authenticated identities."""

from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db
from app.core.security import AuthenticatedUser, get_current_user, load_user, verify_firebase_token
from app.models.enums import AuditAction, SubscriptionPlan, SubscriptionStatus, UserRole
from app.models.org import Organization
from app.models.user import User
from app.schemas.auth import CurrentUserResponse, ProfileUpdate, RegisterRequest
from app.services.audit import AuditService
from app.services.invites import InviteService

router = APIRouter(prefix="/auth", tags=["auth"])

settings = get_settings()


@router.post("/register", response_model=CurrentUserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    principal: AuthenticatedUser = Depends(verify_firebase_token),
):
    """Create the local account for the verified Firebase user.

    Property managers get their own organization and a free trial. With an
    invite token the role comes from the invite and the user joins the
    inviting manager's organization instead.
    """
    invites = InviteService(db)
    role = data.role
    if data.invite_token:
        role = (await invites.get_pending(data.invite_token)).role

    if await load_user(db, principal.uid):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already registered")

    email = (principal.email or (str(data.email) if data.email else "")).lower()
    if not email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="An email address is required")

    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already in use")

    user = User(
        firebase_uid=principal.uid,
        email=email,
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        role=role,
        subscription_status=SubscriptionStatus.TRIAL,
        subscription_plan=SubscriptionPlan.FREE_TRIAL,
        trial_end_date=datetime.utcnow() + timedelta(days=settings.trial_days),
    )

    if role == UserRole.PROPERTY_MANAGER:
        org = Organization(
            name=data.company_name or f"{data.first_name} {data.last_name}'s Organization",
            email=email,
            phone=data.phone,
        )
        db.add(org)
        await db.flush()
        user.org_id = org.id

    db.add(user)
    await db.flush()
    if data.invite_token:
        await invites.accept(data.invite_token, user)

    await AuditService(db).log(
        action=AuditAction.USER_REGISTERED,
        resource_type="user",
        resource_id=user.id,
        org_id=user.org_id,
        user_id=user.id,
        details={"role": user.role.value},
        ip_address=request.client.host if request.client else None,
    )

    await db.commit()
    await db.refresh(user)
    return CurrentUserResponse.model_validate(user)


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current authenticated user info."""
    return CurrentUserResponse.model_validate(current_user)


@router.patch("/me", response_model=CurrentUserResponse)
async def update_profile(
    data: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)

    await db.commit()
    await db.refresh(current_user)
    return CurrentUserResponse.model_validate(current_user)
