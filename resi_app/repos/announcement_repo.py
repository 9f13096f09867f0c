import uuid
from typing import Optional

from sqlalchemy import distinct, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload

from resi_app.core.query_engine import EntityDescriptor
from resi_app.models.models import Announcement, AnnouncementView

from .base_repo import BaseRepo

ANNOUNCEMENT_DESCRIPTOR = EntityDescriptor(
    name="announcement",
    model=Announcement,
    search_columns=("title", "content"),
    filter_aliases={
        "schedule.isRecurring": "is_recurring",
        "schedule.recurrence": "recurrence",
    },
    load_options=(
        selectinload(Announcement.tenant),
        selectinload(Announcement.property_ref),
        selectinload(Announcement.author),
        selectinload(Announcement.views).selectinload(AnnouncementView.user),
    ),
)


class AnnouncementRepo(BaseRepo):
    descriptor = ANNOUNCEMENT_DESCRIPTOR

    async def has_viewed(self, announcement_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            select(AnnouncementView.id).where(
                AnnouncementView.announcement_id == announcement_id,
                AnnouncementView.user_id == user_id,
            )
        )
        return result.first() is not None

    async def add_view(self, announcement_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """Record a view once per user; returns False when already recorded."""
        if await self.has_viewed(announcement_id, user_id):
            return False
        self.db.add(AnnouncementView(announcement_id=announcement_id, user_id=user_id))
        try:
            await self.db.commit()
        except IntegrityError:
            # concurrent first view by the same user
            await self.db.rollback()
            return False
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return True

    async def stats(self, tenant_id: Optional[uuid.UUID]) -> dict:
        where = self.active_in_tenant(tenant_id)
        views = (
            select(AnnouncementView)
            .join(Announcement, AnnouncementView.announcement_id == Announcement.id)
            .where(*where)
            .subquery()
        )
        total_views = await self.scalar(select(func.count()).select_from(views))
        unique_viewers = await self.scalar(
            select(func.count(distinct(views.c.user_id)))
        )
        return {
            "totalAnnouncements": await self.count(*where),
            "totalViews": total_views,
            "uniqueViewers": unique_viewers,
            "typeDistribution": await self.distribution(Announcement.type, *where),
            "priorityDistribution": await self.distribution(
                Announcement.priority, *where
            ),
            "statusDistribution": await self.distribution(Announcement.status, *where),
        }
