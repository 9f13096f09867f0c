import logging
from functools import wraps

from fastapi import HTTPException, Request

from .errors import UnexpectedError
from .friendly_msg import get_friendly_message
from .settings import settings

logger = logging.getLogger(__name__)


def _find_request(args, kwargs) -> Request | None:
    for arg in list(args) + list(kwargs.values()):
        if isinstance(arg, Request):
            return arg
    owner = args[0] if args else None
    request = getattr(owner, "request", None)
    return request if isinstance(request, Request) else None


def safe_handler(func):
    @wraps(func)
    async def wrapper(*args, **kwargs):
        request = _find_request(args, kwargs)

        try:
            return await func(*args, **kwargs)
        except HTTPException as e:
            if request:
                client_ip = request.client.host if request.client else "unknown"
                logger.warning(
                    f"[HTTPException] {e.status_code} - {request.method} "
                    f"{request.url.path} from {client_ip}: {e.detail}"
                )
            raise
        except Exception as e:
            if request:
                client_ip = request.client.host if request.client else "unknown"
                logger.error(
                    f"[Unhandled Error] in {func.__name__} | {request.method} "
                    f"{request.url.path} | Client: {client_ip} | Error: {e}",
                    exc_info=True,
                )
            else:
                logger.error(
                    f"[Unhandled Error] in {func.__name__}: {e}", exc_info=True
                )
            detail = str(e) if settings.is_development else get_friendly_message(e)
            raise UnexpectedError(error=detail) from e

    return wrapper
