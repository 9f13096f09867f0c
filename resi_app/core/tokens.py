from datetime import timedelta
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from .settings import settings

reset_serializer = URLSafeTimedSerializer(settings.RESET_SECRET_KEY)
verify_serializer = URLSafeTimedSerializer(settings.VERIFY_EMAIL_SECRET_KEY)

RESET_TTL = timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
VERIFY_TTL = timedelta(hours=settings.VERIFY_TOKEN_EXPIRE_HOURS)


class UserTokens:
    """Signed single-use tokens for email verification and password reset.

    Only ``hash_token(token)`` is persisted on the user, so a token found in
    the database cannot be replayed.
    """

    @staticmethod
    def verify_token(email: str) -> str:
        return verify_serializer.dumps(email, salt=settings.VERIFY_EMAIL_SALT)

    @staticmethod
    def reset_token(email: str) -> str:
        return reset_serializer.dumps(email, salt=settings.RESET_PASSWORD_SALT)

    @staticmethod
    def load_verify_token(token: str) -> Optional[str]:
        try:
            return verify_serializer.loads(
                token,
                salt=settings.VERIFY_EMAIL_SALT,
                max_age=int(VERIFY_TTL.total_seconds()),
            )
        except (SignatureExpired, BadSignature):
            return None

    @staticmethod
    def load_reset_token(token: str) -> Optional[str]:
        try:
            return reset_serializer.loads(
                token,
                salt=settings.RESET_PASSWORD_SALT,
                max_age=int(RESET_TTL.total_seconds()),
            )
        except (SignatureExpired, BadSignature):
            return None

