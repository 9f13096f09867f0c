from typing import Optional

from sqlalchemy import select

from resi_app.core.query_engine import EntityDescriptor
from resi_app.models.enums import SubscriptionStatus
from resi_app.models.models import Tenant

from .base_repo import BaseRepo

TENANT_DESCRIPTOR = EntityDescriptor(
    name="tenant",
    model=Tenant,
    search_columns=("name", "code", "contact_email"),
    filter_aliases={
        "subscription.plan": "subscription_plan",
        "subscription.status": "subscription_status",
        "contactInfo.email": "contact_email",
    },
    tenant_scoped=False,
)


class TenantRepo(BaseRepo):
    descriptor = TENANT_DESCRIPTOR

    async def get_by_code(self, code: str) -> Optional[Tenant]:
        result = await self.db.execute(select(Tenant).where(Tenant.code == code.upper()))
        return result.scalars().first()

    async def stats(self) -> dict:
        active = Tenant.is_active.is_(True)
        return {
            "totalTenants": await self.count(active),
            "activeTenants": await self.count(
                active, Tenant.subscription_status == SubscriptionStatus.ACTIVE
            ),
            "planDistribution": await self.distribution(Tenant.subscription_plan, active),
            "statusDistribution": await self.distribution(
                Tenant.subscription_status, active
            ),
        }
