"""Properties router: properties, owners and images."""

from typing import Iterable, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access import get_managed_property, get_viewable_property
from app.core.cache import (
    PROPERTIES_PATH,
    CacheService,
    collect_property_cache_user_ids,
    get_cache,
    response_cache_key,
)
from app.core.database import get_db
from app.core.security import get_current_user, require_active_manager, require_manager
from app.models.enums import AuditAction, UnitStatus, UserRole
from app.models.property import Property, PropertyImage, PropertyOwner, Unit
from app.models.user import User
from app.schemas.base import MessageResponse
from app.schemas.property import (
    ImageConfirm,
    ImageResponse,
    ImageUploadRequest,
    ImageUploadResponse,
    OwnerAssign,
    OwnerResponse,
    PropertyCreate,
    PropertyResponse,
    PropertyUpdate,
)
from app.services.audit import AuditService
from app.services.storage import StorageService, get_storage_service

router = APIRouter(prefix="/properties", tags=["properties"])


async def unit_counts(db: AsyncSession, property_ids: Iterable[UUID]) -> dict[UUID, tuple[int, int]]:
    """(unit_count, occupied_units) per property."""
    property_ids = list(property_ids)
    if not property_ids:
        return {}
    result = await db.execute(
        select(
            Unit.property_id,
            func.count(Unit.id),
            func.sum(case((Unit.status == UnitStatus.OCCUPIED, 1), else_=0)),
        )
        .where(Unit.property_id.in_(property_ids))
        .group_by(Unit.property_id)
    )
    return {row[0]: (row[1] or 0, int(row[2] or 0)) for row in result.all()}


def to_response(prop: Property, counts: dict[UUID, tuple[int, int]]) -> PropertyResponse:
    response = PropertyResponse.model_validate(prop)
    response.unit_count, response.occupied_units = counts.get(prop.id, (0, 0))
    return response


async def owner_ids(db: AsyncSession, property_id: UUID) -> list[UUID]:
    result = await db.execute(
        select(PropertyOwner.owner_id).where(PropertyOwner.property_id == property_id)
    )
    return list(result.scalars().all())


async def invalidate_property(
    db: AsyncSession,
    cache: CacheService,
    prop: Property,
    current_user: User,
    extra_user_ids: Iterable[UUID] = (),
) -> None:
    """Drop cached property views of everyone who can see this property."""
    user_ids = collect_property_cache_user_ids(
        current_user.id,
        prop.manager_id,
        [*await owner_ids(db, prop.id), *extra_user_ids],
    )
    await cache.invalidate_property_caches(user_ids)
    await cache.invalidate_property_activity(prop.id)


# =============================================================================
# Properties
# =============================================================================

@router.get("", response_model=List[PropertyResponse])
async def list_properties(
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(get_current_user),
):
    """List properties the caller manages (PM) or owns (OWNER)."""
    if current_user.role == UserRole.PROPERTY_MANAGER:
        condition = Property.manager_id == current_user.id
    elif current_user.role == UserRole.OWNER:
        condition = Property.id.in_(
            select(PropertyOwner.property_id).where(PropertyOwner.owner_id == current_user.id)
        )
    else:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    cache_key = response_cache_key(PROPERTIES_PATH, current_user.id)
    cached = await cache.get_json(cache_key)
    if cached is not None:
        return cached

    result = await db.execute(select(Property).where(condition).order_by(Property.name))
    properties = result.scalars().all()
    counts = await unit_counts(db, (p.id for p in properties))

    response = [to_response(p, counts) for p in properties]
    await cache.set_json(cache_key, response)
    return response


@router.post("", response_model=PropertyResponse, status_code=status.HTTP_201_CREATED)
async def create_property(
    request: Request,
    data: PropertyCreate,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_active_manager),
):
    """Create a property managed by the caller."""
    prop = Property(
        org_id=current_user.org_id,
        manager_id=current_user.id,
        **data.model_dump(),
    )
    db.add(prop)
    await db.flush()

    await AuditService(db).log(
        action=AuditAction.PROPERTY_CREATED,
        resource_type="property",
        resource_id=prop.id,
        org_id=current_user.org_id,
        user_id=current_user.id,
        details={"name": prop.name},
        ip_address=request.client.host if request.client else None,
    )
    await db.commit()
    await db.refresh(prop)

    await invalidate_property(db, cache, prop, current_user)
    return to_response(prop, {})


@router.get("/{property_id}", response_model=PropertyResponse)
async def get_property(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    prop = await get_viewable_property(db, property_id, current_user)
    return to_response(prop, await unit_counts(db, [prop.id]))


@router.patch("/{property_id}", response_model=PropertyResponse)
async def update_property(
    property_id: UUID,
    data: PropertyUpdate,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_manager),
):
    prop = await get_managed_property(db, property_id, current_user)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(prop, field, value)

    await db.commit()
    await db.refresh(prop)

    await invalidate_property(db, cache, prop, current_user)
    return to_response(prop, await unit_counts(db, [prop.id]))


@router.delete("/{property_id}", response_model=MessageResponse)
async def delete_property(
    request: Request,
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_manager),
):
    """Delete a property with its units, tenancies, owners and images."""
    prop = await get_managed_property(db, property_id, current_user)
    affected_owner_ids = await owner_ids(db, prop.id)

    await AuditService(db).log(
        action=AuditAction.PROPERTY_DELETED,
        resource_type="property",
        resource_id=prop.id,
        org_id=prop.org_id,
        user_id=current_user.id,
        details={"name": prop.name},
        ip_address=request.client.host if request.client else None,
    )
    await db.delete(prop)
    await db.commit()

    await cache.invalidate_property_caches(
        collect_property_cache_user_ids(current_user.id, prop.manager_id, affected_owner_ids)
    )
    await cache.invalidate_property_activity(property_id)
    return MessageResponse(message="Property deleted successfully")


# =============================================================================
# Owners
# =============================================================================

@router.get("/{property_id}/owners", response_model=List[OwnerResponse])
async def list_owners(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await get_viewable_property(db, property_id, current_user)
    result = await db.execute(
        select(PropertyOwner)
        .where(PropertyOwner.property_id == property_id)
        .order_by(PropertyOwner.created_at)
    )
    return [OwnerResponse.model_validate(o) for o in result.scalars().all()]


@router.post("/{property_id}/owners", response_model=OwnerResponse, status_code=status.HTTP_201_CREATED)
async def assign_owner(
    property_id: UUID,
    data: OwnerAssign,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_manager),
):
    prop = await get_managed_property(db, property_id, current_user)

    owner = await db.get(User, data.owner_id)
    if not owner:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Owner not found")
    if owner.role != UserRole.OWNER:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is not an owner")

    existing = await db.execute(
        select(PropertyOwner.id).where(
            PropertyOwner.property_id == property_id,
            PropertyOwner.owner_id == owner.id,
        )
    )
    if existing.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Owner already assigned to this property")

    link = PropertyOwner(
        property_id=property_id,
        owner_id=owner.id,
        ownership_percentage=data.ownership_percentage,
    )
    db.add(link)
    await db.flush()
    await AuditService(db).log(
        action=AuditAction.OWNER_ASSIGNED,
        resource_type="property",
        resource_id=property_id,
        org_id=prop.org_id,
        user_id=current_user.id,
        details={"owner_id": str(owner.id)},
    )
    await db.commit()
    await db.refresh(link)

    await invalidate_property(db, cache, prop, current_user)
    return OwnerResponse.model_validate(link)


@router.delete("/{property_id}/owners/{owner_id}", response_model=MessageResponse)
async def remove_owner(
    property_id: UUID,
    owner_id: UUID,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_manager),
):
    prop = await get_managed_property(db, property_id, current_user)
    result = await db.execute(
        select(PropertyOwner).where(
            PropertyOwner.property_id == property_id,
            PropertyOwner.owner_id == owner_id,
        )
    )
    link = result.scalar_one_or_none()
    if not link:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Owner not assigned to this property")

    await db.delete(link)
    await db.commit()

    await invalidate_property(db, cache, prop, current_user, extra_user_ids=[owner_id])
    return MessageResponse(message="Owner removed")


# =============================================================================
# Images
# =============================================================================

@router.post("/{property_id}/images/upload-url", response_model=ImageUploadResponse)
async def create_image_upload_url(
    property_id: UUID,
    data: ImageUploadRequest,
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
    current_user: User = Depends(require_manager),
):
    """Presigned URL for uploading a property image straight to storage."""
    await get_managed_property(db, property_id, current_user)
    try:
        upload_url, object_path, expires_at = await storage.create_image_upload(
            property_id, data.mime_type, data.file_size_bytes
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ImageUploadResponse(upload_url=upload_url, object_path=object_path, expires_at=expires_at)


@router.post("/{property_id}/images", response_model=ImageResponse, status_code=status.HTTP_201_CREATED)
async def confirm_image(
    property_id: UUID,
    data: ImageConfirm,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    storage: StorageService = Depends(get_storage_service),
    current_user: User = Depends(require_manager),
):
    """Attach an uploaded object to the property."""
    prop = await get_managed_property(db, property_id, current_user)

    if not storage.belongs_to_property(data.object_path, property_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Object path does not belong to this property")
    if not await storage.verify_upload(data.object_path):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Upload not found in storage")

    count_result = await db.execute(
        select(func.count(PropertyImage.id)).where(PropertyImage.property_id == property_id)
    )
    image_count = count_result.scalar_one()

    is_primary = data.is_primary or image_count == 0
    if is_primary:
        existing = await db.execute(
            select(PropertyImage).where(
                PropertyImage.property_id == property_id,
                PropertyImage.is_primary.is_(True),
            )
        )
        for other in existing.scalars().all():
            other.is_primary = False

    image = PropertyImage(
        property_id=property_id,
        uploaded_by_id=current_user.id,
        object_path=data.object_path,
        mime_type=data.mime_type,
        caption=data.caption,
        is_primary=is_primary,
        display_order=image_count,
    )
    db.add(image)
    await db.commit()
    await db.refresh(image)

    await invalidate_property(db, cache, prop, current_user)
    response = ImageResponse.model_validate(image)
    response.url = await storage.get_download_url(image.object_path)
    return response


@router.get("/{property_id}/images", response_model=List[ImageResponse])
async def list_images(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
    current_user: User = Depends(get_current_user),
):
    await get_viewable_property(db, property_id, current_user)
    result = await db.execute(
        select(PropertyImage)
        .where(PropertyImage.property_id == property_id)
        .order_by(PropertyImage.display_order, PropertyImage.created_at)
    )
    images = []
    for image in result.scalars().all():
        response = ImageResponse.model_validate(image)
        response.url = await storage.get_download_url(image.object_path)
        images.append(response)
    return images


@router.delete("/{property_id}/images/{image_id}", response_model=MessageResponse)
async def delete_image(
    property_id: UUID,
    image_id: UUID,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    storage: StorageService = Depends(get_storage_service),
    current_user: User = Depends(require_manager),
):
    prop = await get_managed_property(db, property_id, current_user)
    image = await db.get(PropertyImage, image_id)
    if not image or image.property_id != property_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")

    object_path = image.object_path
    await db.delete(image)
    await db.commit()
    await storage.delete(object_path)

    await invalidate_property(db, cache, prop, current_user)
    return MessageResponse(message="Image deleted")
