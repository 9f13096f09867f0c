import logging
import uuid

from resi_app.core.date_helper import iso
from resi_app.core.errors import ValidationError
from resi_app.core.request_body import parse_model
from resi_app.core.responses import Outcome, message_envelope
from resi_app.core.uploads import AttachmentProcessor
from resi_app.email_notify.notifications import Notification
from resi_app.models.models import Tenant
from resi_app.repos.tenant_repo import TenantRepo
from resi_app.schemas.schema import SubscriptionIn, TenantCreate, TenantOut

from .base_service import ResourceService

logger = logging.getLogger(__name__)


def _apply(tenant: Tenant, payload: TenantCreate):
    tenant.name = payload.name
    tenant.code = payload.code
    tenant.contact_email = payload.contact_info.email
    tenant.contact_phone = payload.contact_info.phone
    tenant.contact_address = payload.contact_info.address
    _apply_subscription(tenant, payload.subscription)


def _apply_subscription(tenant: Tenant, subscription: SubscriptionIn):
    tenant.subscription_plan = subscription.plan
    tenant.subscription_status = subscription.status
    tenant.subscription_start_date = subscription.start_date
    tenant.subscription_end_date = subscription.end_date


def _context(tenant: Tenant) -> dict:
    return {
        "name": tenant.name,
        "code": tenant.code,
        "email": tenant.contact_email,
        "plan": tenant.subscription_plan.value,
        "status": tenant.subscription_status.value,
        "start_date": iso(tenant.subscription_start_date),
        "end_date": iso(tenant.subscription_end_date),
    }


class TenantService(ResourceService):
    repo_class = TenantRepo
    out_schema = TenantOut
    label = "tenant"

    async def collect_stats(self) -> dict:
        return await self.repo.stats()

    async def _logo(self, files, data: dict, attachments: AttachmentProcessor):
        stored = await attachments.save(files.get("logo", []), "logo", max_count=1)
        if not stored:
            return None
        return {"url": stored[0]["url"], "caption": data.get("logoCaption") or ""}

    async def _ensure_code_free(self, code: str, tenant_id: uuid.UUID | None = None):
        existing = await self.repo.get_by_code(code)
        if existing and existing.id != tenant_id:
            raise ValidationError.single("code", "Kode tenant sudah digunakan.")

    async def create(self, data: dict, files, attachments: AttachmentProcessor) -> Outcome:
        payload = parse_model(TenantCreate, data)
        await self._ensure_code_free(payload.code)

        tenant = Tenant()
        _apply(tenant, payload)
        tenant.logo = await self._logo(files, data, attachments)
        tenant = await self.repo.create(tenant)

        notice = Notification(tenant.contact_email, "tenant_welcome", _context(tenant))
        return await self.created(tenant, [notice])

    async def update(
        self, tenant_id: uuid.UUID, data: dict, files, attachments: AttachmentProcessor
    ) -> Outcome:
        tenant = await self.get_owned(tenant_id)
        payload = parse_model(TenantCreate, data)
        await self._ensure_code_free(payload.code, tenant.id)

        _apply(tenant, payload)
        logo = await self._logo(files, data, attachments)
        if logo:
            tenant.logo = logo
        tenant = await self.repo.save(tenant)

        notice = Notification(tenant.contact_email, "tenant_updated", _context(tenant))
        return await self.changed(tenant, [notice])

    async def update_subscription(self, tenant_id: uuid.UUID, data: dict) -> Outcome:
        tenant = await self.get_owned(tenant_id)
        subscription = parse_model(SubscriptionIn, data)

        _apply_subscription(tenant, subscription)
        tenant = await self.repo.save(tenant)

        notice = Notification(
            tenant.contact_email, "subscription_updated", _context(tenant)
        )
        return await self.changed(tenant, [notice])

    async def delete(self, tenant_id: uuid.UUID) -> Outcome:
        tenant = await self.get_owned(tenant_id)
        await self.repo.soft_delete(tenant)
        await self.cache.invalidate(tenant_id)
        logger.info("Tenant deactivated: %s", tenant_id)
        return Outcome(
            message_envelope("Tenant berhasil dihapus."),
            notifications=[
                Notification(
                    tenant.contact_email, "tenant_deactivated", _context(tenant)
                )
            ],
        )
