import logging

from resi_app.core.cache import Cache
from resi_app.core.date_helper import utcnow
from resi_app.core.errors import AuthenticationError, ValidationError
from resi_app.core.responses import Outcome, envelope, message_envelope
from resi_app.core.security import issue_access_token
from resi_app.core.tokens import UserTokens
from resi_app.models.enums import UserRole
from resi_app.models.models import User
from resi_app.repos.tenant_repo import TenantRepo
from resi_app.schemas.schema import (
    ForgotPasswordInput,
    LoginInput,
    RegisterInput,
    ResetPasswordInput,
)

from .user_service import DUPLICATE_EMAIL, UserService

logger = logging.getLogger(__name__)

BAD_CREDENTIALS = "Email atau password salah."


class AuthService:
    def __init__(self, db, cache: Cache):
        self.users = UserService(db, cache)
        self.repo = self.users.repo
        self.tenant_repo = TenantRepo(db)

    def _with_token(self, user: User) -> dict:
        data = self.users.serialize(user)
        data["token"] = issue_access_token(user)
        return data

    async def register(self, data: RegisterInput) -> Outcome:
        if await self.repo.get_by_email(data.email):
            raise ValidationError.single("email", DUPLICATE_EMAIL)

        tenant_id = None
        if data.tenant_code:
            tenant = await self.tenant_repo.get_by_code(data.tenant_code)
            if not tenant or not tenant.is_active:
                raise ValidationError.single("tenantCode", "Kode tenant tidak valid.")
            tenant_id = tenant.id

        user = User(
            tenant_id=tenant_id,
            name=data.name,
            email=data.email,
            role=UserRole.RESIDENT,
        )
        user.set_password(data.password)
        notice = self.users.verification_notice(user)
        user = await self.repo.create(user)
        await self.users.cache.invalidate()

        logger.info("User registered: %s", user.id)
        return Outcome(envelope(self._with_token(user)), status_code=201, notifications=[notice])

    async def login(self, data: LoginInput) -> Outcome:
        user = await self.repo.get_by_email(data.email)
        if not user or not user.is_active or not user.check_password(data.password):
            logger.warning("Failed login attempt for %s", data.email)
            raise AuthenticationError(BAD_CREDENTIALS)

        user.last_login = utcnow()
        user = await self.repo.save(user)
        await self.users.cache.invalidate(user.id)
        return Outcome(envelope(self._with_token(user)))

    async def profile(self, current_user: User) -> Outcome:
        user = await self.repo.get_by_id(current_user.id)
        return Outcome(envelope(self.users.serialize(user)))

    async def forgot_password(self, data: ForgotPasswordInput) -> Outcome:
        return await self.users.request_password_reset(data.email)

    async def reset_password(self, token: str, data: ResetPasswordInput) -> Outcome:
        user = await self.repo.get_by_reset_token(token)
        valid = (
            user is not None
            and user.reset_expires is not None
            and user.reset_expires > utcnow()
            and UserTokens.load_reset_token(token) == user.email
        )
        if not valid:
            raise ValidationError.single(
                "token", "Token reset password tidak valid atau sudah kadaluarsa."
            )

        user.set_password(data.password)
        user.clear_reset_token()
        await self.repo.save(user)
        logger.info("Password reset completed for user %s", user.id)
        return Outcome(message_envelope("Password berhasil direset."))

    async def verify_email(self, token: str) -> Outcome:
        user = await self.repo.get_by_verification_token(token)
        valid = (
            user is not None
            and user.verification_expires is not None
            and user.verification_expires > utcnow()
            and UserTokens.load_verify_token(token) == user.email
        )
        if not valid:
            raise ValidationError.single(
                "token", "Token verifikasi tidak valid atau sudah kadaluarsa."
            )

        user.mark_verified()
        await self.repo.save(user)
        await self.users.cache.invalidate(user.id)
        logger.info("Email verified for user %s", user.id)
        return Outcome(message_envelope("Email berhasil diverifikasi."))
