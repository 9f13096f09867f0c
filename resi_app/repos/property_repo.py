import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from resi_app.core.query_engine import EntityDescriptor
from resi_app.models.models import Property

from .base_repo import BaseRepo

PROPERTY_DESCRIPTOR = EntityDescriptor(
    name="property",
    model=Property,
    search_columns=("name", "description", "street", "city"),
    filter_aliases={
        "address.street": "street",
        "address.city": "city",
        "address.state": "state",
        "address.postalCode": "postal_code",
        "contactInfo.email": "contact_email",
        "contactInfo.phone": "contact_phone",
    },
    load_options=(selectinload(Property.tenant), selectinload(Property.owner)),
)


class PropertyRepo(BaseRepo):
    descriptor = PROPERTY_DESCRIPTOR

    async def stats(self, tenant_id: Optional[uuid.UUID]) -> dict:
        where = self.active_in_tenant(tenant_id)
        total_units = await self.scalar(
            select(func.sum(Property.total_units)).where(*where)
        )
        average_price = await self.scalar(select(func.avg(Property.price)).where(*where))
        return {
            "totalProperties": await self.count(*where),
            "totalUnits": int(total_units),
            "averagePrice": float(average_price),
            "propertyTypeDistribution": await self.distribution(
                Property.property_type, *where
            ),
            "cityDistribution": await self.distribution(Property.city, *where),
        }
