"""Recommendations router."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access import (
    can_view_property,
    get_property_or_404,
    is_property_owner,
    managed_property_ids,
    owned_property_ids,
)
from app.core.database import get_db
from app.core.security import get_current_user, require_role
from app.models.enums import AuditAction, RecommendationStatus, UserRole
from app.models.inspection import Inspection
from app.models.property import Property
from app.models.recommendation import Recommendation
from app.models.user import User
from app.schemas.recommendation import RecommendationCreate, RecommendationReject, RecommendationResponse
from app.services.audit import AuditService
from app.services.notifications import NotificationService, commit_and_notify

router = APIRouter(prefix="/recommendations", tags=["recommendations"])

DECIDABLE_STATUSES = (RecommendationStatus.SUBMITTED, RecommendationStatus.DRAFT)


def recommendation_scope(user: User):
    if user.role == UserRole.PROPERTY_MANAGER:
        return Recommendation.property_id.in_(managed_property_ids(user.id))
    if user.role == UserRole.OWNER:
        return Recommendation.property_id.in_(owned_property_ids(user.id))
    if user.role == UserRole.TECHNICIAN:
        return Recommendation.created_by_id == user.id
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


async def _load(db: AsyncSession, recommendation_id: UUID) -> Recommendation:
    recommendation = await db.get(Recommendation, recommendation_id)
    if not recommendation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recommendation not found")
    return recommendation


async def _can_decide(db: AsyncSession, prop: Property, user: User) -> bool:
    if user.role == UserRole.PROPERTY_MANAGER:
        return prop.manager_id == user.id
    if user.role == UserRole.OWNER:
        return await is_property_owner(db, prop.id, user.id)
    return False


async def _decidable(db: AsyncSession, recommendation_id: UUID, user: User) -> Recommendation:
    recommendation = await _load(db, recommendation_id)
    prop = await get_property_or_404(db, recommendation.property_id)
    if not await _can_decide(db, prop, user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    if recommendation.status not in DECIDABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Recommendation has already been {recommendation.status.value.lower()}",
        )
    return recommendation


@router.get("", response_model=List[RecommendationResponse])
async def list_recommendations(
    status_filter: Optional[RecommendationStatus] = Query(None, alias="status"),
    property_id: Optional[UUID] = None,
    inspection_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = select(Recommendation).where(recommendation_scope(current_user))
    if status_filter:
        query = query.where(Recommendation.status == status_filter)
    if property_id:
        query = query.where(Recommendation.property_id == property_id)
    if inspection_id:
        query = query.where(Recommendation.inspection_id == inspection_id)

    result = await db.execute(query.order_by(Recommendation.created_at.desc()))
    return [RecommendationResponse.model_validate(r) for r in result.scalars().all()]


@router.post("", response_model=RecommendationResponse, status_code=status.HTTP_201_CREATED)
async def create_recommendation(
    data: RecommendationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.PROPERTY_MANAGER, UserRole.TECHNICIAN)),
):
    prop = await get_property_or_404(db, data.property_id)

    inspection = None
    if data.inspection_id:
        inspection = await db.get(Inspection, data.inspection_id)
        if not inspection:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inspection not found")
        if inspection.property_id != prop.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Inspection does not belong to the specified property",
            )

    has_access = await can_view_property(db, prop, current_user)
    if not has_access and inspection is not None and current_user.role == UserRole.TECHNICIAN:
        has_access = inspection.assigned_to_id == current_user.id
    if not has_access:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not have access to this property")

    recommendation = Recommendation(
        **data.model_dump(),
        created_by_id=current_user.id,
        status=RecommendationStatus.SUBMITTED,
    )
    db.add(recommendation)
    await db.commit()
    await db.refresh(recommendation)
    return RecommendationResponse.model_validate(recommendation)


@router.get("/{recommendation_id}", response_model=RecommendationResponse)
async def get_recommendation(
    recommendation_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    recommendation = await _load(db, recommendation_id)
    visible = await db.execute(
        select(Recommendation.id).where(
            Recommendation.id == recommendation_id,
            recommendation_scope(current_user),
        )
    )
    if visible.first() is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return RecommendationResponse.model_validate(recommendation)


@router.post("/{recommendation_id}/approve", response_model=RecommendationResponse)
async def approve_recommendation(
    recommendation_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    recommendation = await _decidable(db, recommendation_id, current_user)

    recommendation.status = RecommendationStatus.APPROVED
    recommendation.approved_by_id = current_user.id
    recommendation.approved_at = datetime.utcnow()
    recommendation.rejection_reason = None
    await db.flush()

    await AuditService(db).log(
        action=AuditAction.RECOMMENDATION_DECIDED,
        resource_type="recommendation",
        resource_id=recommendation.id,
        user_id=current_user.id,
        details={"decision": "APPROVED"},
    )
    if recommendation.created_by_id != current_user.id:
        await NotificationService(db).recommendation_decided(recommendation)

    await commit_and_notify(db)
    await db.refresh(recommendation)
    return RecommendationResponse.model_validate(recommendation)


@router.post("/{recommendation_id}/reject", response_model=RecommendationResponse)
async def reject_recommendation(
    recommendation_id: UUID,
    data: RecommendationReject,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    recommendation = await _decidable(db, recommendation_id, current_user)

    recommendation.status = RecommendationStatus.REJECTED
    recommendation.approved_by_id = None
    recommendation.approved_at = None
    recommendation.rejection_reason = data.rejection_reason
    await db.flush()

    await AuditService(db).log(
        action=AuditAction.RECOMMENDATION_DECIDED,
        resource_type="recommendation",
        resource_id=recommendation.id,
        user_id=current_user.id,
        details={"decision": "REJECTED", "reason": data.rejection_reason},
    )
    if recommendation.created_by_id != current_user.id:
        await NotificationService(db).recommendation_decided(recommendation)

    await commit_and_notify(db)
    await db.refresh(recommendation)
    return RecommendationResponse.model_validate(recommendation)
