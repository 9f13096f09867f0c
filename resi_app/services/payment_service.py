import logging
import uuid

from resi_app.core.date_helper import iso, utcnow
from resi_app.core.errors import NotFoundError, ValidationError
from resi_app.core.request_body import parse_model
from resi_app.core.responses import Outcome
from resi_app.core.uploads import AttachmentProcessor
from resi_app.email_notify.notifications import Notification
from resi_app.models.enums import PaymentStatus
from resi_app.models.models import Payment
from resi_app.repos.payment_repo import PaymentRepo
from resi_app.repos.unit_repo import UnitRepo
from resi_app.repos.user_repo import UserRepo
from resi_app.schemas.schema import PaymentCreate, PaymentOut, PaymentStatusUpdate

from .base_service import ResourceService

logger = logging.getLogger(__name__)


def _context(payment: Payment) -> dict:
    return {
        "type": payment.type.value,
        "amount": payment.amount,
        "currency": payment.currency.value,
        "payment_method": payment.payment_method.value,
        "status": payment.status.value,
        "due_date": iso(payment.due_date),
    }


class PaymentService(ResourceService):
    repo_class = PaymentRepo
    out_schema = PaymentOut
    label = "pembayaran"

    async def create(self, data: dict, files, attachments: AttachmentProcessor) -> Outcome:
        payload = parse_model(PaymentCreate, data)

        unit = await UnitRepo(self.db).get_by_id(payload.unit)
        if not unit:
            raise NotFoundError("Unit tidak ditemukan.")
        self.check_tenant(unit.tenant_id, "Anda tidak memiliki akses ke data unit ini.")
        resident = await UserRepo(self.db).get_by_id(payload.resident)
        if not resident or resident.tenant_id != self.tenant_id:
            raise ValidationError.single("resident", "Penghuni tidak ditemukan.")

        payment = Payment(
            tenant_id=self.tenant_id,
            unit_id=unit.id,
            resident_id=resident.id,
            type=payload.type,
            amount=payload.amount,
            currency=payload.currency,
            due_date=payload.due_date,
            status=payload.status,
            payment_method=payload.payment_method,
            payment_details=payload.payment_details.model_dump(
                mode="json", exclude_none=True, by_alias=True
            ),
            description=payload.description,
        )
        if payload.status == PaymentStatus.COMPLETED:
            payment.paid_at = utcnow()
        payment.attachments = await attachments.save(
            files.get("attachments", []), "attachments", max_count=5, allow_pdf=True
        )
        payment = await self.repo.create(payment)

        notice = Notification(resident.email, "payment_created", _context(payment))
        return await self.created(payment, [notice])

    async def update_status(self, payment_id: uuid.UUID, data: PaymentStatusUpdate) -> Outcome:
        payment = await self.get_owned(
            payment_id, "Anda tidak memiliki akses untuk mengupdate pembayaran ini."
        )
        payment.status = data.status
        if data.status == PaymentStatus.COMPLETED and payment.paid_at is None:
            payment.paid_at = utcnow()
        payment = await self.repo.save(payment)

        notice = Notification(payment.resident.email, "payment_status", _context(payment))
        return await self.changed(payment, [notice])
