import logging
import uuid

from resi_app.core.date_helper import utcnow
from resi_app.core.errors import AuthorizationError, NotFoundError, ValidationError
from resi_app.core.request_body import parse_model
from resi_app.core.responses import Outcome
from resi_app.core.uploads import AttachmentProcessor
from resi_app.email_notify.notifications import Notification, notify_many
from resi_app.models.enums import ComplaintStatus, UserRole
from resi_app.models.models import Complaint, ComplaintComment
from resi_app.repos.complaint_repo import ComplaintRepo
from resi_app.repos.unit_repo import UnitRepo
from resi_app.repos.user_repo import UserRepo
from resi_app.schemas.schema import (
    CommentCreate,
    ComplaintCreate,
    ComplaintOut,
    ComplaintStatusUpdate,
    FeedbackCreate,
)

from .base_service import ResourceService

logger = logging.getLogger(__name__)

STAFF_ROLES = (UserRole.ADMIN, UserRole.MANAGER, UserRole.STAFF)


class ComplaintService(ResourceService):
    repo_class = ComplaintRepo
    out_schema = ComplaintOut
    label = "keluhan"

    async def _staff_emails(self, tenant_id) -> list:
        return await UserRepo(self.db).emails_by_roles(tenant_id, STAFF_ROLES)

    async def create(self, data: dict, files, attachments: AttachmentProcessor) -> Outcome:
        payload = parse_model(ComplaintCreate, data)

        unit = await UnitRepo(self.db).get_by_id(payload.unit)
        if not unit:
            raise NotFoundError("Unit tidak ditemukan.")
        self.check_tenant(unit.tenant_id, "Anda tidak memiliki akses ke data unit ini.")
        if unit.property_id != payload.property:
            raise ValidationError.single("unit", "Unit tidak berada di properti ini.")

        complaint = Complaint(
            tenant_id=self.tenant_id,
            resident_id=self.current_user.id,
            property_id=unit.property_id,
            unit_id=unit.id,
            title=payload.title,
            description=payload.description,
            category=payload.category,
            priority=payload.priority,
        )
        complaint.attachments = await attachments.save(
            files.get("attachments", []), "attachments", max_count=5, allow_pdf=True
        )
        complaint = await self.repo.create(complaint)

        context = {
            "title": complaint.title,
            "category": complaint.category.value,
            "priority": complaint.priority.value,
            "resident": self.current_user.name or self.current_user.email,
            "unit_number": unit.unit_number,
        }
        notices = notify_many(
            await self._staff_emails(complaint.tenant_id), "complaint_created", context
        )
        return await self.created(complaint, notices)

    async def update_status(
        self, complaint_id: uuid.UUID, data: ComplaintStatusUpdate
    ) -> Outcome:
        complaint = await self.get_owned(
            complaint_id, "Anda tidak memiliki akses untuk mengupdate keluhan ini."
        )
        complaint.status = data.status
        if data.status == ComplaintStatus.RESOLVED:
            complaint.resolved_by_id = self.current_user.id
            complaint.resolved_at = utcnow()
            complaint.resolution_notes = data.notes
        complaint = await self.repo.save(complaint)

        notice = Notification(
            complaint.resident.email,
            "complaint_status",
            {
                "title": complaint.title,
                "status": complaint.status.value,
                "notes": data.notes,
            },
        )
        return await self.changed(complaint, [notice])

    async def add_comment(
        self,
        complaint_id: uuid.UUID,
        data: dict,
        files,
        attachments: AttachmentProcessor,
    ) -> Outcome:
        complaint = await self.get_owned(
            complaint_id, "Anda tidak memiliki akses untuk mengomentari keluhan ini."
        )
        payload = parse_model(CommentCreate, data)

        comment = ComplaintComment(author_id=self.current_user.id, content=payload.content)
        comment.attachments = await attachments.save(
            files.get("attachments", []), "attachments", max_count=3, allow_pdf=True
        )
        complaint = await self.repo.add_comment(complaint, comment)

        if self.current_user.id == complaint.resident_id:
            if complaint.resolved_by:
                recipients = [complaint.resolved_by.email]
            else:
                recipients = await self._staff_emails(complaint.tenant_id)
        else:
            recipients = [complaint.resident.email]
        context = {
            "title": complaint.title,
            "author": self.current_user.name or self.current_user.email,
            "content": payload.content,
        }
        notices = notify_many(recipients, "complaint_comment", context)
        return await self.changed(complaint, notices)

    async def submit_feedback(self, complaint_id: uuid.UUID, data: FeedbackCreate) -> Outcome:
        complaint = await self.get_owned(complaint_id)
        if complaint.resident_id != self.current_user.id:
            raise AuthorizationError(
                "Anda tidak memiliki akses untuk memberikan feedback pada keluhan ini."
            )
        if complaint.status != ComplaintStatus.RESOLVED:
            raise ValidationError.single(
                "status",
                "Feedback hanya dapat diberikan untuk keluhan yang sudah diselesaikan.",
            )
        if complaint.has_feedback:
            raise ValidationError.single(
                "feedback", "Anda sudah memberikan feedback untuk keluhan ini."
            )

        complaint.feedback_rating = data.rating
        complaint.feedback_comment = data.comment
        complaint.feedback_at = utcnow()
        complaint = await self.repo.save(complaint)

        context = {
            "title": complaint.title,
            "rating": data.rating,
            "comment": data.comment,
        }
        notices = notify_many(
            await self._staff_emails(complaint.tenant_id), "complaint_feedback", context
        )
        return await self.changed(complaint, notices)
