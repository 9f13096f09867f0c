import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from resi_app.core.date_helper import utcnow
from resi_app.core.query_engine import EntityDescriptor
from resi_app.models.enums import MaintenanceStatus
from resi_app.models.models import Maintenance

from .base_repo import BaseRepo

MAINTENANCE_DESCRIPTOR = EntityDescriptor(
    name="maintenance",
    model=Maintenance,
    search_columns=("title", "description", "notes"),
    filter_aliases={
        "schedule.startDate": "start_date",
        "schedule.endDate": "end_date",
        "schedule.isRecurring": "is_recurring",
        "cost.currency": "cost_currency",
    },
    load_options=(
        selectinload(Maintenance.tenant),
        selectinload(Maintenance.property_ref),
        selectinload(Maintenance.unit),
        selectinload(Maintenance.assigned_to),
        selectinload(Maintenance.completed_by),
    ),
)


class MaintenanceRepo(BaseRepo):
    descriptor = MAINTENANCE_DESCRIPTOR

    async def stats(self, tenant_id: Optional[uuid.UUID]) -> dict:
        where = self.active_in_tenant(tenant_id)
        total_cost = await self.scalar(select(func.sum(Maintenance.actual_cost)).where(*where))
        average_cost = await self.scalar(
            select(func.avg(Maintenance.actual_cost)).where(*where)
        )
        overdue = [
            Maintenance.status != MaintenanceStatus.COMPLETED,
            Maintenance.end_date < utcnow(),
        ]
        return {
            "totalMaintenance": await self.count(*where),
            "completedMaintenance": await self.count(
                *where, Maintenance.status == MaintenanceStatus.COMPLETED
            ),
            "totalCost": float(total_cost),
            "averageCost": float(average_cost),
            "overdueMaintenance": await self.count(*where, *overdue),
            "typeDistribution": await self.distribution(Maintenance.type, *where),
            "priorityDistribution": await self.distribution(Maintenance.priority, *where),
            "statusDistribution": await self.distribution(Maintenance.status, *where),
            "categoryDistribution": await self.distribution(Maintenance.category, *where),
        }
