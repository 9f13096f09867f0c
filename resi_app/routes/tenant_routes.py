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
from resi_app.core.security import require_roles
from resi_app.core.throttling import api_rate_limit
from resi_app.core.uploads import get_attachments
from resi_app.email_notify.notifications import get_dispatcher
from resi_app.models.enums import UserRole
from resi_app.models.models import User
from resi_app.services.tenant_service import TenantService

router = APIRouter(tags=["Tenant Management"])

admin_only = require_roles(UserRole.ADMIN)


@cbv(router)
class TenantRoutes:
    @router.get("/", dependencies=[api_rate_limit])
    @safe_handler
    async def list_tenants(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(admin_only),
    ):
        service = TenantService(db, get_cache(request), current_user)
        outcome = await service.list(ListParams.from_query(request.query_params))
        return await deliver(outcome, get_dispatcher(request))

    @router.get("/stats", dependencies=[api_rate_limit])
    @safe_handler
    async def stats(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(admin_only),
    ):
        outcome = await TenantService(db, get_cache(request), current_user).stats()
        return await deliver(outcome, get_dispatcher(request))

    @router.get("/{tenant_id}", dependencies=[api_rate_limit])
    @safe_handler
    async def detail(
        self,
        request: Request,
        tenant_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(admin_only),
    ):
        service = TenantService(db, get_cache(request), current_user)
        outcome = await service.detail(tenant_id)
        return await deliver(outcome, get_dispatcher(request))

    @router.post("/", dependencies=[api_rate_limit])
    @safe_handler
    async def create(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(admin_only),
    ):
        data, files = await read_payload(request)
        service = TenantService(db, get_cache(request), current_user)
        outcome = await service.create(data, files, get_attachments(request))
        return await deliver(outcome, get_dispatcher(request))

    @router.put("/{tenant_id}", dependencies=[api_rate_limit])
    @safe_handler
    async def update(
        self,
        request: Request,
        tenant_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(admin_only),
    ):
        data, files = await read_payload(request)
        service = TenantService(db, get_cache(request), current_user)
        outcome = await service.update(tenant_id, data, files, get_attachments(request))
        return await deliver(outcome, get_dispatcher(request))

    @router.patch("/{tenant_id}/subscription", dependencies=[api_rate_limit])
    @safe_handler
    async def update_subscription(
        self,
        request: Request,
        tenant_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(admin_only),
    ):
        data, _ = await read_payload(request)
        service = TenantService(db, get_cache(request), current_user)
        outcome = await service.update_subscription(tenant_id, data)
        return await deliver(outcome, get_dispatcher(request))

    @router.delete("/{tenant_id}", dependencies=[api_rate_limit])
    @safe_handler
    async def delete(
        self,
        request: Request,
        tenant_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(admin_only),
    ):
        outcome = await TenantService(db, get_cache(request), current_user).delete(tenant_id)
        return await deliver(outcome, get_dispatcher(request))
