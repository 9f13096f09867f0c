import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from resi_app.core.query_engine import EntityDescriptor
from resi_app.models.enums import PaymentStatus
from resi_app.models.models import Payment

from .base_repo import BaseRepo

PAYMENT_DESCRIPTOR = EntityDescriptor(
    name="payment",
    model=Payment,
    search_columns=("description",),
    load_options=(
        selectinload(Payment.tenant),
        selectinload(Payment.unit),
        selectinload(Payment.resident),
    ),
)


class PaymentRepo(BaseRepo):
    descriptor = PAYMENT_DESCRIPTOR

    async def _amount(self, *where) -> float:
        return float(await self.scalar(select(func.sum(Payment.amount)).where(*where)))

    async def stats(self, tenant_id: Optional[uuid.UUID]) -> dict:
        where = self.active_in_tenant(tenant_id)
        completed = Payment.status == PaymentStatus.COMPLETED
        overdue = Payment.status == PaymentStatus.OVERDUE
        return {
            "totalPayments": await self.count(*where),
            "totalAmount": await self._amount(*where),
            "completedPayments": await self.count(*where, completed),
            "totalCompletedAmount": await self._amount(*where, completed),
            "overduePayments": await self.count(*where, overdue),
            "totalOverdueAmount": await self._amount(*where, overdue),
            "typeDistribution": await self.distribution(Payment.type, *where),
            "statusDistribution": await self.distribution(Payment.status, *where),
            "paymentMethodDistribution": await self.distribution(
                Payment.payment_method, *where
            ),
        }
