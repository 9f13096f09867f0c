import logging
import uuid

from resi_app.core.date_helper import iso, utcnow
from resi_app.core.errors import NotFoundError, ValidationError
from resi_app.core.request_body import parse_model
from resi_app.core.responses import Outcome
from resi_app.core.uploads import AttachmentProcessor
from resi_app.email_notify.notifications import Notification
from resi_app.models.enums import MaintenanceStatus
from resi_app.models.models import Maintenance
from resi_app.repos.maintenance_repo import MaintenanceRepo
from resi_app.repos.property_repo import PropertyRepo
from resi_app.repos.unit_repo import UnitRepo
from resi_app.repos.user_repo import UserRepo
from resi_app.schemas.schema import (
    MaintenanceCreate,
    MaintenanceOut,
    MaintenanceStatusUpdate,
)

from .base_service import ResourceService

logger = logging.getLogger(__name__)


class MaintenanceService(ResourceService):
    repo_class = MaintenanceRepo
    out_schema = MaintenanceOut
    label = "tugas pemeliharaan"

    async def _validate(self, payload: MaintenanceCreate):
        prop = await PropertyRepo(self.db).get_by_id(payload.property)
        if not prop:
            raise NotFoundError("Properti tidak ditemukan.")
        self.check_tenant(prop.tenant_id, "Anda tidak memiliki akses ke data properti ini.")

        if payload.unit is not None:
            unit = await UnitRepo(self.db).get_by_id(payload.unit)
            if not unit or unit.property_id != prop.id:
                raise ValidationError.single("unit", "Unit tidak ditemukan di properti ini.")

        if payload.assigned_to is not None:
            assignee = await UserRepo(self.db).get_by_id(payload.assigned_to)
            if not assignee or assignee.tenant_id != self.tenant_id:
                raise ValidationError.single("assignedTo", "Petugas tidak ditemukan.")

    async def create(self, data: dict, files, attachments: AttachmentProcessor) -> Outcome:
        payload = parse_model(MaintenanceCreate, data)
        await self._validate(payload)

        task = Maintenance(
            tenant_id=self.tenant_id,
            property_id=payload.property,
            unit_id=payload.unit,
            title=payload.title,
            description=payload.description,
            type=payload.type,
            priority=payload.priority,
            category=payload.category,
            status=payload.status,
            start_date=payload.schedule.start_date,
            end_date=payload.schedule.end_date,
            is_recurring=payload.schedule.is_recurring,
            recurrence=payload.schedule.recurrence,
            estimated_cost=payload.cost.estimated,
            actual_cost=payload.cost.actual,
            cost_currency=payload.cost.currency,
            assigned_to_id=payload.assigned_to,
            notes=payload.notes,
        )
        task.attachments = await attachments.save(
            files.get("attachments", []), "attachments", max_count=5, allow_pdf=True
        )
        task = await self.repo.create(task)

        notices = []
        if task.assigned_to:
            notices.append(
                Notification(
                    task.assigned_to.email,
                    "maintenance_assigned",
                    {
                        "title": task.title,
                        "property_name": task.property_ref.name,
                        "type": task.type.value,
                        "priority": task.priority.value,
                        "start_date": iso(task.start_date),
                        "end_date": iso(task.end_date),
                    },
                )
            )
        return await self.created(task, notices)

    async def update_status(
        self, task_id: uuid.UUID, data: MaintenanceStatusUpdate
    ) -> Outcome:
        task = await self.get_owned(
            task_id, "Anda tidak memiliki akses untuk mengupdate tugas pemeliharaan ini."
        )
        task.status = data.status
        if data.status == MaintenanceStatus.COMPLETED:
            task.completed_at = utcnow()
            task.completed_by_id = self.current_user.id
        if data.actual_cost is not None:
            task.actual_cost = data.actual_cost
        if data.notes is not None:
            task.notes = data.notes
        task = await self.repo.save(task)

        notices = []
        if task.assigned_to and task.assigned_to.id != self.current_user.id:
            notices.append(
                Notification(
                    task.assigned_to.email,
                    "maintenance_status",
                    {"title": task.title, "status": task.status.value},
                )
            )
        return await self.changed(task, notices)
