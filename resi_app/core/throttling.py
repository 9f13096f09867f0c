import logging

from fastapi import Depends, HTTPException, Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from redis.asyncio import from_url

from .settings import settings

logger = logging.getLogger(__name__)


class RateLimitManager:
    def __init__(self):
        self.redis = None

    async def connect(self):
        if not settings.RATE_LIMIT_REDIS_URL:
            logger.info("Rate limiting disabled: RATE_LIMIT_REDIS_URL not set.")
            return
        self.redis = from_url(
            settings.RATE_LIMIT_REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
        await FastAPILimiter.init(
            self.redis,
            identifier=self.user_or_ip,
            http_callback=self.limit_exceeded_callback,
        )
        logger.info("Rate limiter initialized.")

    async def close(self):
        if self.redis is not None:
            await FastAPILimiter.close()
            self.redis = None

    @staticmethod
    async def limit_exceeded_callback(request: Request, response: Response, pexpire: int):
        raise HTTPException(
            status_code=429,
            detail="Terlalu banyak permintaan. Silakan coba lagi nanti.",
            headers={"Retry-After": str(max(1, pexpire // 1000))},
        )

    @staticmethod
    async def user_or_ip(request: Request) -> str:
        user = getattr(request.state, "user", None)
        user_id = getattr(user, "id", None)
        if user_id is not None:
            return f"user:{user_id}:{request.scope['path']}"
        host = request.client.host if request.client else "anonymous"
        return f"ip:{host}:{request.scope['path']}"


def limiter(times: int, seconds: int):
    checker = RateLimiter(times=times, seconds=seconds)

    async def dependency(request: Request, response: Response):
        if FastAPILimiter.redis is None:
            return
        await checker(request, response)

    return dependency


rate_limiter_manager = RateLimitManager()
api_rate_limit = Depends(
    limiter(settings.API_RATE_LIMIT_TIMES, settings.API_RATE_LIMIT_SECONDS)
)
auth_rate_limit = Depends(
    limiter(settings.AUTH_RATE_LIMIT_TIMES, settings.AUTH_RATE_LIMIT_SECONDS)
)
