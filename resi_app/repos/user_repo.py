import uuid
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from resi_app.core.query_engine import EntityDescriptor
from resi_app.models.enums import UserRole
from resi_app.models.models import User
from resi_app.models.utils import hash_token

from .base_repo import BaseRepo

USER_DESCRIPTOR = EntityDescriptor(
    name="user",
    model=User,
    search_columns=("name", "email", "phone"),
    hidden_columns=("hashed_password", "verification_token_hash", "reset_token_hash"),
    load_options=(selectinload(User.tenant),),
)


class UserRepo(BaseRepo):
    descriptor = USER_DESCRIPTOR

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User)
            .options(selectinload(User.tenant))
            .where(User.email == email.strip().lower())
        )
        return result.scalars().first()

    async def get_by_verification_token(self, token: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.verification_token_hash == hash_token(token))
        )
        return result.scalars().first()

    async def get_by_reset_token(self, token: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.reset_token_hash == hash_token(token))
        )
        return result.scalars().first()

    async def emails_by_roles(
        self, tenant_id: Optional[uuid.UUID], roles: Iterable[UserRole]
    ) -> List[str]:
        result = await self.db.execute(
            select(User.email).where(
                User.tenant_id == tenant_id,
                User.role.in_(list(roles)),
                User.is_active.is_(True),
            )
        )
        return list(result.scalars().all())

    async def stats(self, tenant_id: Optional[uuid.UUID]) -> dict:
        where = self.active_in_tenant(tenant_id)
        return {
            "totalUsers": await self.count(*where),
            "verifiedUsers": await self.count(*where, User.is_verified.is_(True)),
            "roleDistribution": await self.distribution(User.role, *where),
        }
