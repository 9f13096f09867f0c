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
from resi_app.core.throttling import api_rate_limit, auth_rate_limit
from resi_app.core.uploads import get_attachments
from resi_app.email_notify.notifications import get_dispatcher
from resi_app.models.enums import UserRole
from resi_app.models.models import User
from resi_app.schemas.schema import PasswordResetRequest
from resi_app.services.user_service import UserService

router = APIRouter(tags=["User Management"])

management = require_roles(UserRole.ADMIN, UserRole.MANAGER)


@cbv(router)
class UserRoutes:
    @router.get("/", dependencies=[api_rate_limit])
    @safe_handler
    async def list_users(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(management),
    ):
        service = UserService(db, get_cache(request), current_user)
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
        outcome = await UserService(db, get_cache(request), current_user).stats()
        return await deliver(outcome, get_dispatcher(request))

    @router.post("/reset-password", dependencies=[auth_rate_limit])
    @safe_handler
    async def request_password_reset(
        self,
        request: Request,
        data: PasswordResetRequest,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        service = UserService(db, get_cache(request), current_user)
        outcome = await service.request_password_reset(data.email)
        return await deliver(outcome, get_dispatcher(request))

    @router.get("/{user_id}", dependencies=[api_rate_limit])
    @safe_handler
    async def detail(
        self,
        request: Request,
        user_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(management),
    ):
        outcome = await UserService(db, get_cache(request), current_user).detail(user_id)
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
        service = UserService(db, get_cache(request), current_user)
        outcome = await service.create(data, files, get_attachments(request))
        return await deliver(outcome, get_dispatcher(request))

    @router.put("/{user_id}", dependencies=[api_rate_limit])
    @safe_handler
    async def update(
        self,
        request: Request,
        user_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(management),
    ):
        data, files = await read_payload(request)
        service = UserService(db, get_cache(request), current_user)
        outcome = await service.update(user_id, data, files, get_attachments(request))
        return await deliver(outcome, get_dispatcher(request))

    @router.patch("/{user_id}/preferences", dependencies=[api_rate_limit])
    @safe_handler
    async def update_preferences(
        self,
        request: Request,
        user_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        data, _ = await read_payload(request)
        service = UserService(db, get_cache(request), current_user)
        outcome = await service.update_preferences(user_id, data)
        return await deliver(outcome, get_dispatcher(request))

    @router.delete("/{user_id}", dependencies=[api_rate_limit])
    @safe_handler
    async def delete(
        self,
        request: Request,
        user_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(management),
    ):
        outcome = await UserService(db, get_cache(request), current_user).delete(user_id)
        return await deliver(outcome, get_dispatcher(request))
