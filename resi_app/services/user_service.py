import logging
import uuid
from typing import Dict, List

from starlette.datastructures import UploadFile

from resi_app.core.errors import AuthorizationError, NotFoundError, ValidationError
from resi_app.core.request_body import parse_model
from resi_app.core.responses import Outcome, envelope, message_envelope
from resi_app.core.settings import settings
from resi_app.core.tokens import RESET_TTL, VERIFY_TTL, UserTokens
from resi_app.core.uploads import AttachmentProcessor
from resi_app.email_notify.notifications import Notification
from resi_app.models.enums import UserRole
from resi_app.models.models import User
from resi_app.models.utils import merge_preferences
from resi_app.repos.user_repo import UserRepo
from resi_app.schemas.schema import PreferencesUpdate, UserCreate, UserOut, UserUpdate

from .base_service import ResourceService

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL = "User dengan email ini sudah terdaftar."


class UserService(ResourceService):
    repo_class = UserRepo
    out_schema = UserOut
    label = "pengguna"

    def _guard_role(self, role: UserRole):
        if role == UserRole.ADMIN and self.current_user.role != UserRole.ADMIN:
            raise AuthorizationError(
                f"User dengan role {self.current_user.role.value} tidak dapat "
                "memberikan role admin."
            )

    async def _avatar(
        self,
        files: Dict[str, List[UploadFile]],
        data: dict,
        attachments: AttachmentProcessor,
    ):
        stored = await attachments.save(files.get("avatar", []), "avatar", max_count=1)
        if not stored:
            return None
        return {"url": stored[0]["url"], "caption": data.get("avatarCaption") or ""}

    def verification_notice(self, user: User) -> Notification:
        token = UserTokens.verify_token(user.email)
        user.set_verification_token(token, VERIFY_TTL)
        return Notification(
            user.email,
            "user_verification",
            {
                "name": user.name,
                "email": user.email,
                "verify_url": f"{settings.FRONTEND_URL}/verify-email/{token}",
            },
        )

    async def create(self, data: dict, files, attachments: AttachmentProcessor) -> Outcome:
        payload = parse_model(UserCreate, data)
        self._guard_role(payload.role)
        if await self.repo.get_by_email(payload.email):
            raise ValidationError.single("email", DUPLICATE_EMAIL)

        user = User(
            tenant_id=self.tenant_id,
            name=payload.name,
            email=payload.email,
            role=payload.role,
            phone=payload.phone,
            avatar=await self._avatar(files, data, attachments),
        )
        user.set_password(payload.password)
        notice = self.verification_notice(user)
        user = await self.repo.create(user)
        return await self.created(user, [notice])

    async def update(
        self, user_id: uuid.UUID, data: dict, files, attachments: AttachmentProcessor
    ) -> Outcome:
        user = await self.get_owned(
            user_id, "Anda tidak memiliki akses untuk mengupdate pengguna ini."
        )
        payload = parse_model(UserUpdate, data)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)

        if "role" in changes:
            self._guard_role(changes["role"])
        if "email" in changes and changes["email"] != user.email:
            if await self.repo.get_by_email(changes["email"]):
                raise ValidationError.single("email", DUPLICATE_EMAIL)

        avatar = await self._avatar(files, data, attachments)
        if avatar:
            changes["avatar"] = avatar
        for field, value in changes.items():
            setattr(user, field, value)

        user = await self.repo.save(user)
        notice = Notification(
            user.email,
            "user_updated",
            {"name": user.name, "email": user.email, "role": user.role.value},
        )
        return await self.changed(user, [notice])

    async def delete(self, user_id: uuid.UUID) -> Outcome:
        user = await self.get_owned(
            user_id, "Anda tidak memiliki akses untuk menghapus pengguna ini."
        )
        await self.repo.soft_delete(user)
        await self.cache.invalidate(user_id)
        logger.info("User deactivated: %s", user_id)
        return Outcome(
            message_envelope("Pengguna berhasil dihapus."),
            notifications=[
                Notification(
                    user.email, "user_deactivated", {"name": user.name, "email": user.email}
                )
            ],
        )

    async def update_preferences(self, user_id: uuid.UUID, data: dict) -> Outcome:
        user = await self.repo.get_by_id(user_id)
        if not user:
            raise NotFoundError(self.not_found_message)
        if user.id != self.current_user.id:
            raise AuthorizationError(
                "Anda tidak memiliki akses untuk mengupdate preferensi pengguna ini."
            )

        payload = parse_model(PreferencesUpdate, data)
        user.preferences = merge_preferences(
            user.preferences, payload.model_dump(mode="json", exclude_none=True)
        )
        user = await self.repo.save(user)
        await self.cache.invalidate(user.id)
        logger.info("User preferences updated: %s", user.id)
        return Outcome(envelope(self.serialize(user)))

    async def request_password_reset(self, email: str) -> Outcome:
        user = await self.repo.get_by_email(email)
        if not user or not user.is_active:
            raise NotFoundError(self.not_found_message)

        token = UserTokens.reset_token(user.email)
        user.set_reset_token(token, RESET_TTL)
        await self.repo.save(user)
        logger.info("Password reset requested for user %s", user.id)
        return Outcome(
            message_envelope("Email reset password telah dikirim."),
            notifications=[
                Notification(
                    user.email,
                    "password_reset",
                    {"reset_url": f"{settings.FRONTEND_URL}/reset-password/{token}"},
                )
            ],
        )
