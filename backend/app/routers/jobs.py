"""Jobs router."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access import (
    check_job_update,
    get_managed_property,
    get_property_or_404,
    get_technician,
    get_unit_in_property,
    managed_property_ids,
    owned_property_ids,
)
from app.core.cache import CacheService, get_cache
from app.core.database import get_db
from app.core.security import get_current_user, require_active_manager, require_manager
from app.models.enums import JobStatus, UserRole
from app.models.job_comment import JobComment
from app.models.jobs import Job
from app.models.user import User
from app.schemas.auth import UserSummary
from app.schemas.base import MessageResponse
from app.schemas.job import JobCommentCreate, JobCommentResponse, JobCreate, JobResponse, JobUpdate
from app.services.audit import AuditService
from app.services.notifications import NotificationService, commit_and_notify

router = APIRouter(prefix="/jobs", tags=["jobs"])


def job_scope(user: User):
    """Filter condition for the jobs a user may see."""
    if user.role == UserRole.TECHNICIAN:
        return Job.assigned_to_id == user.id
    if user.role == UserRole.PROPERTY_MANAGER:
        return Job.property_id.in_(managed_property_ids(user.id))
    if user.role == UserRole.OWNER:
        return Job.property_id.in_(owned_property_ids(user.id))
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


async def get_visible_job(db: AsyncSession, job_id: UUID, user: User) -> Job:
    result = await db.execute(select(Job).where(Job.id == job_id))
    job = result.scalar_one_or_none()
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    visible = await db.execute(select(Job.id).where(Job.id == job_id, job_scope(user)))
    if visible.first() is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return job


@router.get("", response_model=List[JobResponse])
async def list_jobs(
    status_filter: Optional[JobStatus] = Query(None, alias="status"),
    property_id: Optional[UUID] = None,
    assigned_to_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List jobs visible to the caller."""
    query = select(Job).where(job_scope(current_user))

    if status_filter:
        query = query.where(Job.status == status_filter)
    if property_id:
        query = query.where(Job.property_id == property_id)
    if assigned_to_id and current_user.role in (UserRole.PROPERTY_MANAGER, UserRole.OWNER):
        query = query.where(Job.assigned_to_id == assigned_to_id)

    result = await db.execute(query.order_by(Job.created_at.desc()))
    return [JobResponse.model_validate(j) for j in result.scalars().all()]


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def create_job(
    data: JobCreate,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_active_manager),
):
    prop = await get_managed_property(db, data.property_id, current_user)
    if data.unit_id:
        await get_unit_in_property(db, data.unit_id, prop.id)
    if data.assigned_to_id:
        await get_technician(db, data.assigned_to_id)

    job = Job(
        **data.model_dump(),
        status=JobStatus.ASSIGNED if data.assigned_to_id else JobStatus.OPEN,
        created_by_id=current_user.id,
    )
    db.add(job)
    await db.flush()

    if job.assigned_to_id:
        await NotificationService(db).job_assigned(job, job.assigned_to_id, prop.name)

    await commit_and_notify(db)
    await db.refresh(job)

    await cache.invalidate_property_activity(prop.id)
    return JobResponse.model_validate(job)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return JobResponse.model_validate(await get_visible_job(db, job_id, current_user))


@router.patch("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: UUID,
    data: JobUpdate,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(get_current_user),
):
    """Update a job.

    Technicians may only touch jobs assigned to them, and only status,
    notes, actual_cost and evidence. Managers may change anything on jobs
    of their properties.
    """
    result = await db.execute(select(Job).where(Job.id == job_id))
    job = result.scalar_one_or_none()
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    prop = await get_property_or_404(db, job.property_id)

    update_data = data.model_dump(exclude_unset=True)
    check_job_update(job, prop, current_user, update_data.keys())

    new_assignee = update_data.get("assigned_to_id")
    reassigned = new_assignee is not None and new_assignee != job.assigned_to_id
    if reassigned:
        await get_technician(db, new_assignee)

    old_status = job.status
    for field, value in update_data.items():
        setattr(job, field, value)

    if reassigned and job.status == JobStatus.OPEN and "status" not in update_data:
        job.status = JobStatus.ASSIGNED
    if job.status == JobStatus.COMPLETED and job.completed_date is None:
        job.completed_date = datetime.utcnow()
    await db.flush()

    if job.status != old_status:
        await AuditService(db).log_job_status_changed(
            job.id, current_user.id, old_status.value, job.status.value
        )

    notifications = NotificationService(db)
    if reassigned:
        await notifications.job_assigned(job, new_assignee, prop.name)
    if job.status == JobStatus.COMPLETED and old_status != JobStatus.COMPLETED:
        await notifications.job_completed(job, prop)

    await commit_and_notify(db)
    await db.refresh(job)

    await cache.invalidate_property_activity(prop.id)
    return JobResponse.model_validate(job)


@router.delete("/{job_id}", response_model=MessageResponse)
async def delete_job(
    job_id: UUID,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_manager),
):
    result = await db.execute(select(Job).where(Job.id == job_id))
    job = result.scalar_one_or_none()
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    await get_managed_property(db, job.property_id, current_user)

    property_id = job.property_id
    await db.delete(job)
    await db.commit()

    await cache.invalidate_property_activity(property_id)
    return MessageResponse(message="Job deleted successfully")


@router.get("/{job_id}/comments", response_model=List[JobCommentResponse])
async def list_job_comments(
    job_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Comment thread of a job, oldest first."""
    await get_visible_job(db, job_id, current_user)
    result = await db.execute(
        select(JobComment, User)
        .join(User, User.id == JobComment.user_id)
        .where(JobComment.job_id == job_id)
        .order_by(JobComment.created_at)
    )
    comments = []
    for comment, author in result.all():
        view = JobCommentResponse.model_validate(comment)
        view.author = UserSummary.model_validate(author)
        comments.append(view)
    return comments


@router.post("/{job_id}/comments", response_model=JobCommentResponse, status_code=status.HTTP_201_CREATED)
async def add_job_comment(
    job_id: UUID,
    data: JobCommentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await get_visible_job(db, job_id, current_user)
    comment = JobComment(job_id=job_id, user_id=current_user.id, content=data.content)
    db.add(comment)
    await db.commit()
    await db.refresh(comment)

    view = JobCommentResponse.model_validate(comment)
    view.author = UserSummary.model_validate(current_user)
    return view
