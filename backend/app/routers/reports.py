"""Reports router - downloadable property reports."""

import io
from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access import get_viewable_property
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.enums import JobStatus
from app.models.inspection import Inspection
from app.models.jobs import Job
from app.models.property import Unit
from app.models.user import User
from app.services.pdf_generator import get_pdf_generator

router = APIRouter(prefix="/reports", tags=["reports"])

OPEN_JOB_STATUSES = (JobStatus.OPEN, JobStatus.ASSIGNED, JobStatus.IN_PROGRESS)
RECENT_INSPECTIONS = 10


def _row(obj: Any, fields: tuple[str, ...]) -> dict[str, Any]:
    return {field: getattr(obj, field) for field in fields}


@router.get("/properties/{property_id}/pdf")
async def property_report_pdf(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Property details, units, open jobs and recent inspections as a PDF."""
    prop = await get_viewable_property(db, property_id, current_user)

    units = await db.execute(
        select(Unit).where(Unit.property_id == prop.id).order_by(Unit.unit_number)
    )
    jobs = await db.execute(
        select(Job)
        .where(Job.property_id == prop.id, Job.status.in_(OPEN_JOB_STATUSES))
        .order_by(Job.created_at.desc())
    )
    inspections = await db.execute(
        select(Inspection)
        .where(Inspection.property_id == prop.id)
        .order_by(Inspection.scheduled_date.desc())
        .limit(RECENT_INSPECTIONS)
    )

    pdf = get_pdf_generator().generate_property_report(
        prop=_row(prop, (
            "name", "address", "city", "state", "zip_code", "property_type",
            "status", "year_built", "total_area", "description",
        )),
        units=[
            _row(u, ("unit_number", "status", "bedrooms", "bathrooms", "rent_amount"))
            for u in units.scalars().all()
        ],
        jobs=[
            _row(j, ("title", "status", "priority", "scheduled_date"))
            for j in jobs.scalars().all()
        ],
        inspections=[
            _row(i, ("title", "inspection_type", "status", "scheduled_date"))
            for i in inspections.scalars().all()
        ],
    )

    filename = f"property_{prop.id}_{datetime.utcnow():%Y%m%d}.pdf"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return StreamingResponse(io.BytesIO(pdf), media_type="application/pdf", headers=headers)
