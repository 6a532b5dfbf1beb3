"""AuditLog model: append-only record of state-changing actions."""

import uuid
from datetime import datetime
from typing import Optional, Any

from sqlalchemy import String, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, JSONType
from app.models.enums import AuditAction


class AuditLog(Base):
    __tablename__ = "audit_log"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Actor; both survive deletion of the user or organization as NULL
    org_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="SET NULL"), index=True
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), index=True
    )

    action: Mapped[AuditAction] = mapped_column(SQLEnum(AuditAction), nullable=False, index=True)

    # Target, e.g. ("job", job.id); not a foreign key so entries outlive it
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False)
    resource_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)

    # Free-form context such as {"from": "ASSIGNED", "to": "COMPLETED"}
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
