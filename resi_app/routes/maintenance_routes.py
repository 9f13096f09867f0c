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
from resi_app.schemas.schema import MaintenanceStatusUpdate
from resi_app.services.maintenance_service import MaintenanceService

router = APIRouter(tags=["Maintenance"])

management = require_roles(UserRole.ADMIN, UserRole.MANAGER)
handlers = require_roles(UserRole.ADMIN, UserRole.MANAGER, UserRole.STAFF)


@cbv(router)
class MaintenanceRoutes:
    @router.get("/", dependencies=[api_rate_limit])
    @safe_handler
    async def list_tasks(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        service = MaintenanceService(db, get_cache(request), current_user)
        outcome = await service.list(ListParams.from_query(request.query_params))
        return await deliver(outcome, get_dispatcher(request))

    @router.get("/stats", dependencies=[api_rate_limit])
    @safe_handler
    async def stats(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(management),
    ):
        outcome = await MaintenanceService(db, get_cache(request), current_user).stats()
        return await deliver(outcome, get_dispatcher(request))

    @router.get("/{task_id}", dependencies=[api_rate_limit])
    @safe_handler
    async def detail(
        self,
        request: Request,
        task_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        service = MaintenanceService(db, get_cache(request), current_user)
        outcome = await service.detail(task_id)
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
        service = MaintenanceService(db, get_cache(request), current_user)
        outcome = await service.create(data, files, get_attachments(request))
        return await deliver(outcome, get_dispatcher(request))

    @router.patch("/{task_id}/status", dependencies=[api_rate_limit])
    @safe_handler
    async def update_status(
        self,
        request: Request,
        task_id: uuid.UUID,
        data: MaintenanceStatusUpdate,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(handlers),
    ):
        service = MaintenanceService(db, get_cache(request), current_user)
        outcome = await service.update_status(task_id, data)
        return await deliver(outcome, get_dispatcher(request))
