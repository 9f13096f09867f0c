import logging
import uuid

from resi_app.core.errors import NotFoundError, ValidationError
from resi_app.core.request_body import parse_model
from resi_app.core.responses import Outcome, envelope
from resi_app.core.uploads import AttachmentProcessor
from resi_app.models.models import Property, Unit
from resi_app.repos.property_repo import PropertyRepo
from resi_app.repos.unit_repo import UnitRepo
from resi_app.repos.user_repo import UserRepo
from resi_app.schemas.schema import UnitCreate, UnitOut, UnitStatusUpdate

from .base_service import ResourceService

logger = logging.getLogger(__name__)


class UnitService(ResourceService):
    repo_class = UnitRepo
    out_schema = UnitOut
    label = "unit"

    async def _property(self, property_id: uuid.UUID) -> Property:
        prop = await PropertyRepo(self.db).get_by_id(property_id)
        if not prop:
            raise NotFoundError("Properti tidak ditemukan.")
        self.check_tenant(prop.tenant_id, "Anda tidak memiliki akses ke data properti ini.")
        return prop

    async def _validate(self, payload: UnitCreate, unit_id: uuid.UUID | None = None):
        prop = await self._property(payload.property)
        if await self.repo.number_taken(prop.id, payload.unit_number, exclude_id=unit_id):
            raise ValidationError.single(
                "unitNumber", "Nomor unit sudah digunakan di properti ini."
            )
        if payload.current_tenant is not None:
            resident = await UserRepo(self.db).get_by_id(payload.current_tenant)
            if not resident or resident.tenant_id != prop.tenant_id:
                raise ValidationError.single("currentTenant", "Penghuni tidak ditemukan.")
        return prop

    def _apply(self, unit: Unit, payload: UnitCreate, prop: Property):
        unit.tenant_id = prop.tenant_id
        unit.property_id = prop.id
        unit.unit_number = payload.unit_number
        unit.floor = payload.floor
        unit.type = payload.type
        unit.size = payload.size
        unit.price = payload.price
        unit.status = payload.status
        unit.amenities = [a.value for a in payload.amenities]
        unit.current_tenant_id = payload.current_tenant

    async def create(self, data: dict, files, attachments: AttachmentProcessor) -> Outcome:
        payload = parse_model(UnitCreate, data)
        prop = await self._validate(payload)

        unit = Unit()
        self._apply(unit, payload, prop)
        unit.images = await attachments.save(files.get("images", []), "images", max_count=5)
        unit = await self.repo.create(unit)
        return await self.created(unit)

    async def update(self, unit_id: uuid.UUID, data: dict) -> Outcome:
        unit = await self.get_owned(
            unit_id, "Anda tidak memiliki akses untuk mengupdate unit ini."
        )
        payload = parse_model(UnitCreate, data)
        prop = await self._validate(payload, unit.id)

        self._apply(unit, payload, prop)
        unit = await self.repo.save(unit)
        return await self.changed(unit)

    async def update_status(self, unit_id: uuid.UUID, data: UnitStatusUpdate) -> Outcome:
        unit = await self.get_owned(
            unit_id, "Anda tidak memiliki akses untuk mengupdate status unit ini."
        )
        unit.status = data.status
        unit = await self.repo.save(unit)
        return await self.changed(unit)

    async def property_stats(self, property_id: uuid.UUID) -> Outcome:
        prop = await self._property(property_id)

        async def loader():
            return envelope(await self.repo.stats(prop.id))

        return Outcome(await self.cache.fetch_stats(f"{self.scope}:{prop.id}", loader))
