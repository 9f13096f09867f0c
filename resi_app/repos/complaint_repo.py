import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from resi_app.core.query_engine import EntityDescriptor
from resi_app.models.enums import ComplaintStatus
from resi_app.models.models import Complaint, ComplaintComment

from .base_repo import BaseRepo

COMPLAINT_DESCRIPTOR = EntityDescriptor(
    name="complaint",
    model=Complaint,
    search_columns=("title", "description"),
    filter_aliases={"feedback.rating": "feedback_rating"},
    load_options=(
        selectinload(Complaint.tenant),
        selectinload(Complaint.property_ref),
        selectinload(Complaint.unit),
        selectinload(Complaint.resident),
        selectinload(Complaint.resolved_by),
        selectinload(Complaint.comments).selectinload(ComplaintComment.author),
    ),
)


class ComplaintRepo(BaseRepo):
    descriptor = COMPLAINT_DESCRIPTOR

    async def add_comment(self, complaint: Complaint, comment: ComplaintComment):
        comment.complaint_id = complaint.id
        self.db.add(comment)
        return await self.save(complaint)

    async def stats(self, tenant_id: Optional[uuid.UUID]) -> dict:
        where = self.active_in_tenant(tenant_id)
        resolved = Complaint.status == ComplaintStatus.RESOLVED

        rows = await self.db.execute(
            select(Complaint.created_at, Complaint.resolved_at).where(
                *where, resolved, Complaint.resolved_at.is_not(None)
            )
        )
        durations = [
            (resolved_at - created_at).total_seconds() * 1000
            for created_at, resolved_at in rows.all()
        ]
        average_rating = await self.scalar(
            select(func.avg(Complaint.feedback_rating)).where(*where)
        )
        return {
            "totalComplaints": await self.count(*where),
            "resolvedComplaints": await self.count(*where, resolved),
            "averageResolutionTime": sum(durations) / len(durations) if durations else 0,
            "averageRating": float(average_rating),
            "categoryDistribution": await self.distribution(Complaint.category, *where),
            "priorityDistribution": await self.distribution(Complaint.priority, *where),
            "statusDistribution": await self.distribution(Complaint.status, *where),
        }
