import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from resi_app.models.enums import UserRole
from resi_app.models.models import User

from .errors import AuthenticationError, AuthorizationError
from .get_db import get_db_async
from .settings import settings

logger = logging.getLogger(__name__)

TOKEN_MISSING = "Akses ditolak. Token tidak ditemukan."
TOKEN_INVALID = "Akses ditolak. Token tidak valid."


def issue_access_token(user: User) -> str:
    expires = datetime.now(timezone.utc) + timedelta(days=settings.ACCESS_EXPIRE_DAYS)
    return jwt.encode(
        {"sub": str(user.id), "type": "access", "exp": expires},
        settings.JWT_SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )


def decode_access_token(token: str) -> uuid.UUID:
    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(TOKEN_INVALID)
    except jwt.InvalidTokenError:
        raise AuthenticationError(TOKEN_INVALID)

    user_id = payload.get("sub")
    try:
        return uuid.UUID(str(user_id))
    except ValueError:
        raise AuthenticationError(TOKEN_INVALID)


def bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError(TOKEN_MISSING)
    return token.strip()


async def get_current_user(
    request: Request, db: AsyncSession = Depends(get_db_async)
) -> User:
    user_id = decode_access_token(bearer_token(request))

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalars().first()

    if not user or not user.is_active:
        raise AuthenticationError(TOKEN_INVALID)

    request.state.user = user
    return user


def require_roles(*roles: UserRole):
    allowed = set(roles)

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise AuthorizationError(
                f"User dengan role {current_user.role.value} tidak memiliki akses "
                "ke resource ini."
            )
        return current_user

    return checker


class CheckRolePermission:
    """Checks applied inside handlers, after the entity is loaded."""

    @staticmethod
    def ensure_same_tenant(
        entity_tenant_id: Any,
        current_user: User,
        message: str = "Anda tidak memiliki akses ke data ini.",
    ):
        if entity_tenant_id is None or str(entity_tenant_id) != str(
            current_user.tenant_id
        ):
            raise AuthorizationError(message)


def tenant_id_of(data: dict) -> Any:
    tenant = data.get("tenant") or {}
    return tenant.get("id")
