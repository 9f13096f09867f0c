import logging
import uuid
from typing import Mapping

from sqlalchemy import false, or_

from resi_app.core.errors import ValidationError
from resi_app.core.query_engine import (
    ListParams,
    contains_clause,
    json_member_clause,
)
from resi_app.core.request_body import parse_model
from resi_app.core.responses import Outcome, list_envelope, message_envelope
from resi_app.core.settings import settings
from resi_app.core.uploads import AttachmentProcessor
from resi_app.email_notify.notifications import Notification
from resi_app.models.models import Property
from resi_app.repos.property_repo import PropertyRepo
from resi_app.repos.user_repo import UserRepo
from resi_app.schemas.schema import PropertyCreate, PropertyOut

from .base_service import ResourceService

logger = logging.getLogger(__name__)

SEARCH_KEYS = (
    "keyword",
    "minPrice",
    "maxPrice",
    "propertyType",
    "location",
    "amenities",
    "sortBy",
    "sortOrder",
    "page",
    "limit",
)


def _apply(prop: Property, payload: PropertyCreate):
    prop.name = payload.name
    prop.description = payload.description
    prop.street = payload.address.street
    prop.city = payload.address.city
    prop.state = payload.address.state
    prop.postal_code = payload.address.postal_code
    coordinates = payload.address.coordinates
    prop.latitude = coordinates.lat if coordinates else None
    prop.longitude = coordinates.lng if coordinates else None
    prop.total_units = payload.total_units
    prop.price = payload.price
    prop.property_type = payload.property_type
    prop.amenities = [a.value for a in payload.amenities]
    contact = payload.contact_info
    prop.contact_phone = contact.phone if contact else None
    prop.contact_email = contact.email if contact else None
    prop.contact_website = contact.website if contact else None
    prop.owner_id = payload.owner


def _context(prop: Property, action: str) -> dict:
    return {
        "action": action,
        "name": prop.name,
        "street": prop.street,
        "city": prop.city,
        "property_type": prop.property_type.value,
        "total_units": prop.total_units,
    }


def _price_clause(column, raw, op):
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return false()
    return column >= value if op == "min" else column <= value


class PropertyService(ResourceService):
    repo_class = PropertyRepo
    out_schema = PropertyOut
    label = "properti"

    def _admin_notice(self, prop: Property, action: str) -> list:
        if not settings.ADMIN_EMAIL:
            return []
        return [Notification(settings.ADMIN_EMAIL, "property_changed", _context(prop, action))]

    async def _check_owner(self, owner_id: uuid.UUID | None):
        if owner_id is None:
            return
        owner = await UserRepo(self.db).get_by_id(owner_id)
        if not owner or owner.tenant_id != self.tenant_id:
            raise ValidationError.single("owner", "Pemilik properti tidak ditemukan.")

    async def _images(self, files, data: dict, attachments: AttachmentProcessor) -> list:
        captions = data.get("imageCaptions")
        return await attachments.save(
            files.get("images", []),
            "images",
            max_count=5,
            captions=captions if isinstance(captions, dict) else None,
        )

    async def create(self, data: dict, files, attachments: AttachmentProcessor) -> Outcome:
        payload = parse_model(PropertyCreate, data)
        await self._check_owner(payload.owner)

        prop = Property(tenant_id=self.tenant_id)
        _apply(prop, payload)
        prop.images = await self._images(files, data, attachments)
        prop = await self.repo.create(prop)
        return await self.created(prop, self._admin_notice(prop, "created"))

    async def update(
        self, property_id: uuid.UUID, data: dict, files, attachments: AttachmentProcessor
    ) -> Outcome:
        prop = await self.get_owned(
            property_id, "Anda tidak memiliki akses untuk mengupdate properti ini."
        )
        payload = parse_model(PropertyCreate, data)
        await self._check_owner(payload.owner)

        _apply(prop, payload)
        new_images = await self._images(files, data, attachments)
        if new_images:
            prop.images = list(prop.images or []) + new_images
        prop = await self.repo.save(prop)
        return await self.changed(prop, self._admin_notice(prop, "updated"))

    async def delete(self, property_id: uuid.UUID) -> Outcome:
        prop = await self.get_owned(
            property_id, "Anda tidak memiliki akses untuk menghapus properti ini."
        )
        await self.repo.soft_delete(prop)
        await self.cache.invalidate(property_id)
        logger.info("Property soft-deleted: %s", property_id)
        return Outcome(
            message_envelope("Properti berhasil dihapus."),
            notifications=self._admin_notice(prop, "deleted"),
        )

    async def search(self, query: Mapping[str, str]) -> Outcome:
        raw = {k: query[k] for k in SEARCH_KEYS if query.get(k) not in (None, "")}
        key = self.cache.list_key(self.scope, {"search": raw})

        sort_by = raw.get("sortBy", "createdAt")
        descending = raw.get("sortOrder", "desc").lower() == "desc"
        filters = {"propertyType": raw["propertyType"]} if "propertyType" in raw else {}
        params = ListParams.from_query(
            {
                "page": raw.get("page"),
                "limit": raw.get("limit"),
                "sort": f"-{sort_by}" if descending else sort_by,
                **filters,
            }
        )

        clauses = []
        if "keyword" in raw:
            clauses.append(
                or_(
                    contains_clause(Property.name, raw["keyword"]),
                    contains_clause(Property.description, raw["keyword"]),
                    contains_clause(Property.street, raw["keyword"]),
                )
            )
        if "minPrice" in raw:
            clauses.append(_price_clause(Property.price, raw["minPrice"], "min"))
        if "maxPrice" in raw:
            clauses.append(_price_clause(Property.price, raw["maxPrice"], "max"))
        if "location" in raw:
            clauses.append(contains_clause(Property.city, raw["location"]))
        for amenity in (a.strip() for a in raw.get("amenities", "").split(",")):
            if amenity:
                clauses.append(json_member_clause(Property.amenities, amenity))

        async def loader():
            items, pagination = await self.repo.list(params, self.tenant_id, clauses)
            return list_envelope([self.serialize(item) for item in items], pagination)

        return Outcome(await self.cache.fetch(key, loader))
