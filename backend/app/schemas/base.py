"""Base schema utilities."""

from datetime import datetime
from typing import Generic, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

T = TypeVar("T")


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


def reject_null(*fields: str):
    """Validator for PATCH fields that may be omitted but never set to null."""

    def check(cls, value, info: ValidationInfo):
        if value is None:
            raise ValueError(f"{info.field_name} must not be null")
        return value

    return field_validator(*fields)(check)


class TimestampMixin(BaseModel):
    """Mixin for created_at/updated_at timestamps."""

    created_at: datetime
    updated_at: Optional[datetime] = None


class IDMixin(BaseModel):
    """Mixin for UUID id field."""

    id: UUID


class Page(BaseModel, Generic[T]):
    """Offset-paginated list envelope."""

    items: list[T]
    total: int
    page: int
    has_more: bool


class MessageResponse(BaseModel):
    success: bool = True
    message: str
