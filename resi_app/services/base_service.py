import logging
import uuid
from typing import Optional, Type

from pydantic import BaseModel

from resi_app.core.cache import Cache
from resi_app.core.cache_aside import CacheAside
from resi_app.core.errors import NotFoundError
from resi_app.core.query_engine import ListParams, project
from resi_app.core.responses import Outcome, envelope, list_envelope, message_envelope
from resi_app.core.security import CheckRolePermission, tenant_id_of
from resi_app.models.models import User
from resi_app.repos.base_repo import BaseRepo

logger = logging.getLogger(__name__)


class ResourceService:
    """List, detail, stats and soft delete for one entity type.

    Subclasses add the entity's own create and update rules.
    """

    repo_class: Type[BaseRepo]
    out_schema: Type[BaseModel]
    label: str

    def __init__(self, db, cache: Cache, current_user: Optional[User] = None):
        self.db = db
        self.repo = self.repo_class(db)
        self.cache = CacheAside(cache, self.repo.descriptor.name)
        self.current_user = current_user
        self.permission = CheckRolePermission()

    @property
    def tenant_id(self) -> Optional[uuid.UUID]:
        return self.current_user.tenant_id if self.current_user else None

    @property
    def scope(self):
        return self.tenant_id if self.repo.descriptor.tenant_scoped else "all"

    @property
    def not_found_message(self) -> str:
        return f"{self.label.capitalize()} tidak ditemukan."

    @property
    def forbidden_message(self) -> str:
        return f"Anda tidak memiliki akses ke data {self.label} ini."

    def serialize(self, entity) -> dict:
        return self.out_schema.model_validate(entity).model_dump(mode="json", by_alias=True)

    def check_tenant(self, tenant_id, message: Optional[str] = None):
        if not self.repo.descriptor.tenant_scoped:
            return
        self.permission.ensure_same_tenant(
            tenant_id, self.current_user, message or self.forbidden_message
        )

    async def get_owned(self, entity_id: uuid.UUID, message: Optional[str] = None):
        entity = await self.repo.get_by_id(entity_id)
        if not entity:
            raise NotFoundError(self.not_found_message)
        self.check_tenant(getattr(entity, "tenant_id", None), message)
        return entity

    async def list(self, params: ListParams) -> Outcome:
        key = self.cache.list_key(self.scope, params)

        async def loader():
            items, pagination = await self.repo.list(params, self.tenant_id)
            data = [project(self.serialize(item), params.fields) for item in items]
            return list_envelope(data, pagination)

        return Outcome(await self.cache.fetch(key, loader))

    async def detail(self, entity_id: uuid.UUID) -> Outcome:
        async def loader():
            entity = await self.get_owned(entity_id)
            return envelope(self.serialize(entity))

        body = await self.cache.fetch(self.cache.detail_key(entity_id), loader)
        # cached bodies are served only to callers of the owning tenant
        self.check_tenant(tenant_id_of(body["data"]))
        return Outcome(body)

    async def collect_stats(self) -> dict:
        return await self.repo.stats(self.tenant_id)

    async def stats(self) -> Outcome:
        async def loader():
            return envelope(await self.collect_stats())

        return Outcome(await self.cache.fetch_stats(self.scope, loader))

    async def delete(self, entity_id: uuid.UUID) -> Outcome:
        entity = await self.get_owned(entity_id)
        await self.repo.soft_delete(entity)
        await self.cache.invalidate(entity_id)
        logger.info("%s soft-deleted: %s", self.repo.descriptor.name, entity_id)
        return Outcome(message_envelope(f"{self.label.capitalize()} berhasil dihapus."))

    async def created(self, entity, notifications=None) -> Outcome:
        await self.cache.invalidate()
        logger.info("New %s created: %s", self.repo.descriptor.name, entity.id)
        return Outcome(
            envelope(self.serialize(entity)),
            status_code=201,
            notifications=notifications or [],
        )

    async def changed(self, entity, notifications=None) -> Outcome:
        await self.cache.invalidate(entity.id)
        logger.info("%s updated: %s", self.repo.descriptor.name, entity.id)
        return Outcome(envelope(self.serialize(entity)), notifications=notifications or [])
