import logging

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from .exception_handler import server_error_body

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception(
                "Unhandled server error: %s | %s %s | ip=%s",
                e,
                request.method,
                request.url.path,
                request.client.host if request.client else "unknown",
            )
            return JSONResponse(server_error_body(e), status_code=500)
