"""Global search schemas."""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel


class SearchResult(BaseModel):
    id: UUID
    type: Literal["property", "job", "inspection", "service_request"]
    title: str
    description: Optional[str] = None
    subtitle: str
    status: str
    priority: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    link: str


class SearchResponse(BaseModel):
    success: bool = True
    results: list[SearchResult]
    total: int
