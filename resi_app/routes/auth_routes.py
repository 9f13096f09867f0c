from fastapi import APIRouter, Depends, Request
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from resi_app.core.cache import get_cache
from resi_app.core.get_db import get_db_async
from resi_app.core.responses import deliver
from resi_app.core.safe_handler import safe_handler
from resi_app.core.security import get_current_user
from resi_app.core.throttling import api_rate_limit, auth_rate_limit
from resi_app.email_notify.notifications import get_dispatcher
from resi_app.models.models import User
from resi_app.schemas.schema import (
    ForgotPasswordInput,
    LoginInput,
    RegisterInput,
    ResetPasswordInput,
)
from resi_app.services.auth_service import AuthService

router = APIRouter(tags=["Authentication"])


@cbv(router)
class AuthRoutes:
    @router.post("/register", dependencies=[auth_rate_limit])
    @safe_handler
    async def register(
        self,
        request: Request,
        data: RegisterInput,
        db: AsyncSession = Depends(get_db_async),
    ):
        outcome = await AuthService(db, get_cache(request)).register(data)
        return await deliver(outcome, get_dispatcher(request))

    @router.post("/login", dependencies=[auth_rate_limit])
    @safe_handler
    async def login(
        self,
        request: Request,
        data: LoginInput,
        db: AsyncSession = Depends(get_db_async),
    ):
        outcome = await AuthService(db, get_cache(request)).login(data)
        return await deliver(outcome, get_dispatcher(request))

    @router.get("/profile", dependencies=[api_rate_limit])
    @safe_handler
    async def profile(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        outcome = await AuthService(db, get_cache(request)).profile(current_user)
        return await deliver(outcome, get_dispatcher(request))

    @router.post("/forgot-password", dependencies=[auth_rate_limit])
    @safe_handler
    async def forgot_password(
        self,
        request: Request,
        data: ForgotPasswordInput,
        db: AsyncSession = Depends(get_db_async),
    ):
        outcome = await AuthService(db, get_cache(request)).forgot_password(data)
        return await deliver(outcome, get_dispatcher(request))

    @router.post("/reset-password/{token}", dependencies=[auth_rate_limit])
    @safe_handler
    async def reset_password(
        self,
        request: Request,
        token: str,
        data: ResetPasswordInput,
        db: AsyncSession = Depends(get_db_async),
    ):
        outcome = await AuthService(db, get_cache(request)).reset_password(token, data)
        return await deliver(outcome, get_dispatcher(request))

    @router.get("/verify-email/{token}", dependencies=[auth_rate_limit])
    @safe_handler
    async def verify_email(
        self,
        request: Request,
        token: str,
        db: AsyncSession = Depends(get_db_async),
    ):
        outcome = await AuthService(db, get_cache(request)).verify_email(token)
        return await deliver(outcome, get_dispatcher(request))
