import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from resi_app.core.query_engine import EntityDescriptor
from resi_app.models.enums import UnitStatus
from resi_app.models.models import Unit

from .base_repo import BaseRepo

UNIT_DESCRIPTOR = EntityDescriptor(
    name="unit",
    model=Unit,
    search_columns=("unit_number",),
    filter_aliases={"number": "unit_number"},
    load_options=(
        selectinload(Unit.tenant),
        selectinload(Unit.property_ref),
        selectinload(Unit.current_tenant),
    ),
)


class UnitRepo(BaseRepo):
    descriptor = UNIT_DESCRIPTOR

    async def number_taken(
        self,
        property_id: uuid.UUID,
        unit_number: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> bool:
        stmt = select(Unit.id).where(
            Unit.property_id == property_id, Unit.unit_number == unit_number
        )
        if exclude_id is not None:
            stmt = stmt.where(Unit.id != exclude_id)
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def stats(self, property_id: uuid.UUID) -> dict:
        where = [Unit.property_id == property_id, Unit.is_active.is_(True)]
        average_price = await self.scalar(select(func.avg(Unit.price)).where(*where))
        return {
            "totalUnits": await self.count(*where),
            "availableUnits": await self.count(*where, Unit.status == UnitStatus.AVAILABLE),
            "occupiedUnits": await self.count(*where, Unit.status == UnitStatus.OCCUPIED),
            "maintenanceUnits": await self.count(
                *where, Unit.status == UnitStatus.MAINTENANCE
            ),
            "averagePrice": float(average_price),
            "unitTypeDistribution": await self.distribution(Unit.type, *where),
        }
