import uuid
from typing import Any, Dict, Iterable, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from resi_app.core.query_engine import EntityDescriptor, ListParams, run_filtered_query


def _key(value: Any) -> str:
    return getattr(value, "value", value)


class BaseRepo:
    """Data access shared by every entity.

    Subclasses set ``descriptor``; reads always apply its eager-load options
    so nested relations can be serialized without lazy loading.
    """

    descriptor: EntityDescriptor

    def __init__(self, db):
        self.db = db

    @property
    def model(self):
        return self.descriptor.model

    async def get_by_id(self, entity_id: uuid.UUID, active_only: bool = True):
        stmt = (
            select(self.model)
            .options(*self.descriptor.load_options)
            .where(self.model.id == entity_id)
            .execution_options(populate_existing=True)
        )
        if active_only:
            stmt = stmt.where(self.model.is_active.is_(True))
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def create(self, entity):
        self.db.add(entity)
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return await self.get_by_id(entity.id, active_only=False)

    async def save(self, entity):
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return await self.get_by_id(entity.id, active_only=False)

    async def soft_delete(self, entity):
        entity.is_active = False
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return entity

    async def list(
        self,
        params: ListParams,
        tenant_id: Optional[uuid.UUID] = None,
        extra_clauses: Iterable[Any] = (),
    ) -> Tuple[list, dict]:
        return await run_filtered_query(
            self.db, self.descriptor, params, tenant_id, extra_clauses
        )

    async def scalar(self, stmt, default=0):
        value = (await self.db.execute(stmt)).scalar()
        return default if value is None else value

    async def count(self, *where) -> int:
        return await self.scalar(select(func.count()).select_from(self.model).where(*where))

    async def distribution(self, column, *where) -> Dict[str, int]:
        result = await self.db.execute(
            select(column, func.count()).where(*where).group_by(column)
        )
        return {str(_key(value)): count for value, count in result.all() if value is not None}

    def active_in_tenant(self, tenant_id: Optional[uuid.UUID]) -> list:
        return [self.model.tenant_id == tenant_id, self.model.is_active.is_(True)]
