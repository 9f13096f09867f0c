import uuid

from fastapi import APIRouter, Depends, Request
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from resi_app.core.cache import get_cache
from resi_app.core.get_db import get_db_async
from resi_app.core.query_engine import ListParams
from resi_app.core.request_body import read_payload
from resi_app.core.responses import deliver
from resi_app.core.safe_handler import safe_handler
from resi_app.core.security import get_current_user, require_roles
from resi_app.core.throttling import api_rate_limit
from resi_app.core.uploads import get_attachments
from resi_app.email_notify.notifications import get_dispatcher
from resi_app.models.enums import UserRole
from resi_app.models.models import User
from resi_app.schemas.schema import UnitStatusUpdate
from resi_app.services.unit_service import UnitService

router = APIRouter(tags=["Unit Management"])

admin_only = require_roles(UserRole.ADMIN)
management = require_roles(UserRole.ADMIN, UserRole.MANAGER)


@cbv(router)
class UnitRoutes:
    @router.get("/", dependencies=[api_rate_limit])
    @safe_handler
    async def list_units(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        service = UnitService(db, get_cache(request), current_user)
        outcome = await service.list(ListParams.from_query(request.query_params))
        return await deliver(outcome, get_dispatcher(request))

    @router.get("/stats/{property_id}", dependencies=[api_rate_limit])
    @safe_handler
    async def property_stats(
        self,
        request: Request,
        property_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(management),
    ):
        service = UnitService(db, get_cache(request), current_user)
        outcome = await service.property_stats(property_id)
        return await deliver(outcome, get_dispatcher(request))

    @router.get("/{unit_id}", dependencies=[api_rate_limit])
    @safe_handler
    async def detail(
        self,
        request: Request,
        unit_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        outcome = await UnitService(db, get_cache(request), current_user).detail(unit_id)
        return await deliver(outcome, get_dispatcher(request))

    @router.post("/", dependencies=[api_rate_limit])
    @safe_handler
    async def create(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(management),
    ):
        data, files = await read_payload(request)
        service = UnitService(db, get_cache(request), current_user)
        outcome = await service.create(data, files, get_attachments(request))
        return await deliver(outcome, get_dispatcher(request))

    @router.put("/{unit_id}", dependencies=[api_rate_limit])
    @safe_handler
    async def update(
        self,
        request: Request,
        unit_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(management),
    ):
        data, _ = await read_payload(request)
        service = UnitService(db, get_cache(request), current_user)
        outcome = await service.update(unit_id, data)
        return await deliver(outcome, get_dispatcher(request))

    @router.patch("/{unit_id}/status", dependencies=[api_rate_limit])
    @safe_handler
    async def update_status(
        self,
        request: Request,
        unit_id: uuid.UUID,
        data: UnitStatusUpdate,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(management),
    ):
        service = UnitService(db, get_cache(request), current_user)
        outcome = await service.update_status(unit_id, data)
        return await deliver(outcome, get_dispatcher(request))

    @router.delete("/{unit_id}", dependencies=[api_rate_limit])
    @safe_handler
    async def delete(
        self,
        request: Request,
        unit_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(admin_only),
    ):
        outcome = await UnitService(db, get_cache(request), current_user).delete(unit_id)
        return await deliver(outcome, get_dispatcher(request))
