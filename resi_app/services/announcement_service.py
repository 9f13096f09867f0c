import logging
import uuid

from resi_app.core.errors import NotFoundError
from resi_app.core.request_body import parse_model
from resi_app.core.responses import Outcome, envelope, message_envelope
from resi_app.core.security import tenant_id_of
from resi_app.core.uploads import AttachmentProcessor
from resi_app.email_notify.notifications import notify_many
from resi_app.models.enums import TargetAudience, UserRole
from resi_app.models.models import Announcement
from resi_app.repos.announcement_repo import AnnouncementRepo
from resi_app.repos.property_repo import PropertyRepo
from resi_app.repos.user_repo import UserRepo
from resi_app.schemas.schema import AnnouncementCreate, AnnouncementOut

from .base_service import ResourceService

logger = logging.getLogger(__name__)

AUDIENCE_ROLES = {
    TargetAudience.ALL: (UserRole.RESIDENT, UserRole.STAFF),
    TargetAudience.RESIDENTS: (UserRole.RESIDENT,),
    TargetAudience.STAFF: (UserRole.STAFF,),
    TargetAudience.MANAGEMENT: (UserRole.ADMIN, UserRole.MANAGER),
}


def _apply(announcement: Announcement, payload: AnnouncementCreate):
    announcement.property_id = payload.property
    announcement.title = payload.title
    announcement.content = payload.content
    announcement.type = payload.type
    announcement.priority = payload.priority
    announcement.target_audience = payload.target_audience
    announcement.status = payload.status
    announcement.start_date = payload.schedule.start_date
    announcement.end_date = payload.schedule.end_date
    announcement.is_recurring = payload.schedule.is_recurring
    announcement.recurrence = payload.schedule.recurrence


class AnnouncementService(ResourceService):
    repo_class = AnnouncementRepo
    out_schema = AnnouncementOut
    label = "pengumuman"

    async def _check_property(self, property_id: uuid.UUID):
        prop = await PropertyRepo(self.db).get_by_id(property_id)
        if not prop:
            raise NotFoundError("Properti tidak ditemukan.")
        self.check_tenant(prop.tenant_id, "Anda tidak memiliki akses ke data properti ini.")
        return prop

    async def _attachments(self, files, attachments: AttachmentProcessor) -> list:
        uploads = files.get("attachments", [])
        return await attachments.save(
            uploads,
            "attachments",
            max_count=5,
            allow_pdf=True,
            captions={f.filename: f.filename for f in uploads},
        )

    async def _audience_notices(
        self, announcement: Announcement, updated: bool = False, template: str = "announcement_published"
    ) -> list:
        roles = AUDIENCE_ROLES[announcement.target_audience]
        emails = await UserRepo(self.db).emails_by_roles(announcement.tenant_id, roles)
        context = {
            "title": announcement.title,
            "content": announcement.content,
            "type": announcement.type.value,
            "priority": announcement.priority.value,
            "property_name": announcement.property_ref.name,
            "updated": updated,
        }
        return notify_many(emails, template, context)

    async def detail(self, announcement_id: uuid.UUID) -> Outcome:
        async def loader():
            announcement = await self.get_owned(announcement_id)
            if await self.repo.add_view(announcement.id, self.current_user.id):
                announcement = await self.repo.get_by_id(announcement.id)
                # view counts appear in listings and stats
                await self.cache.invalidate()
            return envelope(self.serialize(announcement))

        body = await self.cache.fetch(self.cache.detail_key(announcement_id), loader)
        self.check_tenant(tenant_id_of(body["data"]))
        return Outcome(body)

    async def create(self, data: dict, files, attachments: AttachmentProcessor) -> Outcome:
        payload = parse_model(AnnouncementCreate, data)
        await self._check_property(payload.property)

        announcement = Announcement(tenant_id=self.tenant_id, author_id=self.current_user.id)
        _apply(announcement, payload)
        announcement.attachments = await self._attachments(files, attachments)
        announcement = await self.repo.create(announcement)

        notices = await self._audience_notices(announcement, updated=False)
        return await self.created(announcement, notices)

    async def update(
        self,
        announcement_id: uuid.UUID,
        data: dict,
        files,
        attachments: AttachmentProcessor,
    ) -> Outcome:
        announcement = await self.get_owned(
            announcement_id, "Anda tidak memiliki akses untuk mengupdate pengumuman ini."
        )
        payload = parse_model(AnnouncementCreate, data)
        await self._check_property(payload.property)

        _apply(announcement, payload)
        new_attachments = await self._attachments(files, attachments)
        if new_attachments:
            announcement.attachments = list(announcement.attachments or []) + new_attachments
        announcement = await self.repo.save(announcement)

        notices = await self._audience_notices(announcement, updated=True)
        return await self.changed(announcement, notices)

    async def delete(self, announcement_id: uuid.UUID) -> Outcome:
        announcement = await self.get_owned(
            announcement_id, "Anda tidak memiliki akses untuk menghapus pengumuman ini."
        )
        await self.repo.soft_delete(announcement)
        notices = await self._audience_notices(announcement, template="announcement_deleted")
        await self.cache.invalidate(announcement_id)
        logger.info("Announcement soft-deleted: %s", announcement_id)
        return Outcome(message_envelope("Pengumuman berhasil dihapus."), notifications=notices)
