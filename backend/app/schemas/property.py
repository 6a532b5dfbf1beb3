"""Property, owner, image, unit and tenancy schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, model_validator

from app.schemas.base import BaseSchema, IDMixin, TimestampMixin, reject_null
from app.models.enums import PropertyStatus, UnitStatus


def apply_legacy_aliases(data):
    """Accept field names sent by older clients.

    postcode -> zip_code, type -> property_type, cover_image or the first
    of images -> image_url. Canonical names win when both are present.
    """
    if not isinstance(data, dict):
        return data
    data = dict(data)
    if "postcode" in data:
        postcode = data.pop("postcode")
        data.setdefault("zip_code", postcode)
    if "type" in data:
        legacy_type = data.pop("type")
        data.setdefault("property_type", legacy_type)
    cover = data.pop("cover_image", None) or data.pop("coverImage", None)
    images = data.pop("images", None)
    if "image_url" not in data:
        if cover:
            data["image_url"] = cover
        elif isinstance(images, list) and images:
            first = images[0]
            data["image_url"] = first.get("url") if isinstance(first, dict) else first
    return data


class PropertyCreate(BaseSchema):
    """Create a new property."""

    name: str = Field(..., min_length=2, max_length=255)
    address: str = Field(..., min_length=3, max_length=255)
    city: str = Field(..., min_length=2, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    country: str = "Australia"
    property_type: Optional[str] = Field(None, max_length=50)
    status: PropertyStatus = PropertyStatus.ACTIVE
    year_built: Optional[int] = Field(None, ge=1800, le=2100)
    total_units: int = Field(0, ge=0)
    total_area: Optional[float] = Field(None, gt=0)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=1024)

    @model_validator(mode="before")
    @classmethod
    def legacy_aliases(cls, data):
        return apply_legacy_aliases(data)


class PropertyUpdate(BaseSchema):
    """Update property."""

    name: Optional[str] = Field(None, min_length=2, max_length=255)
    address: Optional[str] = Field(None, min_length=3, max_length=255)
    city: Optional[str] = Field(None, min_length=2, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = None
    property_type: Optional[str] = Field(None, max_length=50)
    status: Optional[PropertyStatus] = None
    year_built: Optional[int] = Field(None, ge=1800, le=2100)
    total_units: Optional[int] = Field(None, ge=0)
    total_area: Optional[float] = Field(None, gt=0)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=1024)

    check_not_null = reject_null("name", "address", "city", "country", "status", "total_units")

    @model_validator(mode="before")
    @classmethod
    def legacy_aliases(cls, data):
        return apply_legacy_aliases(data)


class PropertyResponse(BaseSchema, IDMixin, TimestampMixin):
    """Property response."""

    org_id: Optional[UUID] = None
    manager_id: UUID
    name: str
    address: str
    city: str
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: str
    property_type: Optional[str] = None
    status: PropertyStatus
    year_built: Optional[int] = None
    total_units: int = 0
    total_area: Optional[float] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    unit_count: int = 0
    occupied_units: int = 0


class OwnerAssign(BaseSchema):
    owner_id: UUID
    ownership_percentage: float = Field(100.0, gt=0, le=100)


class OwnerResponse(BaseSchema, IDMixin):
    property_id: UUID
    owner_id: UUID
    ownership_percentage: float
    created_at: datetime


class ImageUploadRequest(BaseSchema):
    file_name: str = Field(..., min_length=1, max_length=255)
    mime_type: str
    file_size_bytes: int = Field(..., gt=0)


class ImageUploadResponse(BaseSchema):
    upload_url: str
    object_path: str
    expires_at: datetime


class ImageConfirm(BaseSchema):
    object_path: str = Field(..., min_length=1, max_length=1024)
    mime_type: str
    caption: Optional[str] = Field(None, max_length=255)
    is_primary: bool = False


class ImageResponse(BaseSchema, IDMixin):
    property_id: UUID
    object_path: str
    mime_type: str
    caption: Optional[str] = None
    is_primary: bool
    display_order: int
    created_at: datetime
    url: Optional[str] = None


class UnitCreate(BaseSchema):
    """Create a new unit."""

    unit_number: str = Field(..., min_length=1, max_length=50)
    status: UnitStatus = UnitStatus.AVAILABLE
    floor: Optional[int] = None
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[float] = Field(None, ge=0)
    area: Optional[float] = Field(None, gt=0)
    rent_amount: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None


class UnitUpdate(BaseSchema):
    """Update unit."""

    unit_number: Optional[str] = Field(None, min_length=1, max_length=50)
    status: Optional[UnitStatus] = None
    floor: Optional[int] = None
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[float] = Field(None, ge=0)
    area: Optional[float] = Field(None, gt=0)
    rent_amount: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None

    check_not_null = reject_null("unit_number", "status")


class UnitResponse(BaseSchema, IDMixin, TimestampMixin):
    """Unit response."""

    property_id: UUID
    unit_number: str
    status: UnitStatus
    floor: Optional[int] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    area: Optional[float] = None
    rent_amount: Optional[float] = None
    description: Optional[str] = None


class TenantAssign(BaseSchema):
    tenant_id: UUID
    lease_start: datetime
    lease_end: Optional[datetime] = None
    rent_amount: Optional[float] = Field(None, ge=0)
    deposit_amount: Optional[float] = Field(None, ge=0)

    @model_validator(mode="after")
    def lease_dates_ordered(self):
        if self.lease_end and self.lease_end <= self.lease_start:
            raise ValueError("lease_end must be after lease_start")
        return self


class TenancyResponse(BaseSchema, IDMixin, TimestampMixin):
    unit_id: UUID
    tenant_id: UUID
    lease_start: datetime
    lease_end: Optional[datetime] = None
    rent_amount: Optional[float] = None
    deposit_amount: Optional[float] = None
    is_active: bool
