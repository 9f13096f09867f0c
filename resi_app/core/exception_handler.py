from typing import Iterable, List

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import UnexpectedError, ValidationError
from .settings import settings

_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def format_validation_errors(raw_errors: Iterable[dict]) -> List[dict]:
    errors = []
    for err in raw_errors:
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        ctx = err.get("ctx") or {}
        message = str(ctx["error"]) if "error" in ctx else str(err.get("msg"))
        errors.append({"field": ".".join(loc), "message": message})
    return errors


class ValidationErrorHandler:
    async def __call__(self, request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Validasi gagal.",
                "errors": format_validation_errors(exc.errors()),
            },
        )


class HTTPErrorHandler:
    async def __call__(self, request: Request, exc: StarletteHTTPException):
        content = {"success": False, "message": exc.detail}
        if isinstance(exc, ValidationError):
            content["errors"] = exc.errors
        if isinstance(exc, UnexpectedError) and exc.error:
            content["error"] = exc.error
        if exc.status_code == 404 and exc.detail == "Not Found":
            content = {
                "success": False,
                "error": "Not Found",
                "message": "The requested resource was not found",
            }
        return JSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=getattr(exc, "headers", None),
        )


def server_error_body(exc: Exception) -> dict:
    body = {"success": False, "message": "Terjadi kesalahan pada server."}
    if settings.is_development:
        body["error"] = str(exc)
    return body
