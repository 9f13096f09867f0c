import logging
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from resi_app.core.cache import Cache
from resi_app.core.catch_error_middleware import ErrorHandlerMiddleware
from resi_app.core.exception_handler import HTTPErrorHandler, ValidationErrorHandler
from resi_app.core.get_db import build_engine, build_session_factory
from resi_app.core.lifespan import lifespan
from resi_app.core.logger import RequestLoggerMiddleware, setup_logging
from resi_app.core.settings import settings
from resi_app.core.uploads import AttachmentProcessor
from resi_app.email_notify.notifications import NotificationDispatcher
from resi_app.routes.announcement_routes import router as announcement_router
from resi_app.routes.auth_routes import router as auth_router
from resi_app.routes.complaint_routes import router as complaint_router
from resi_app.routes.maintenance_routes import router as maintenance_router
from resi_app.routes.payment_routes import router as payment_router
from resi_app.routes.property_routes import router as property_router
from resi_app.routes.tenant_routes import router as tenant_router
from resi_app.routes.unit_routes import router as unit_router
from resi_app.routes.user_routes import router as user_router

logger = logging.getLogger(__name__)


def create_app(
    session_factory=None,
    cache: Cache | None = None,
    dispatcher: NotificationDispatcher | None = None,
    attachments: AttachmentProcessor | None = None,
) -> FastAPI:
    setup_logging()

    app = FastAPI(lifespan=lifespan, title=settings.PROJECT_NAME, version="1.0.0")

    engine = None
    if session_factory is None:
        engine = build_engine()
        session_factory = build_session_factory(engine)
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.cache = cache or Cache()
    app.state.dispatcher = dispatcher or NotificationDispatcher()
    app.state.attachments = attachments or AttachmentProcessor()

    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(tenant_router, prefix="/api/tenants")
    app.include_router(property_router, prefix="/api/properties")
    app.include_router(unit_router, prefix="/api/units")
    app.include_router(user_router, prefix="/api/users")
    app.include_router(announcement_router, prefix="/api/announcements")
    app.include_router(complaint_router, prefix="/api/complaints")
    app.include_router(payment_router, prefix="/api/payments")
    app.include_router(maintenance_router, prefix="/api/maintenance")

    upload_dir = Path(app.state.attachments.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")

    @app.get("/health", tags=["System"])
    async def health_check():
        return {"status": "ok", "environment": settings.ENVIRONMENT}

    app.add_exception_handler(RequestValidationError, ValidationErrorHandler())
    app.add_exception_handler(StarletteHTTPException, HTTPErrorHandler())

    app.add_middleware(RequestLoggerMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger.info("Application configured for %s", settings.ENVIRONMENT)
    return app


def main():
    uvicorn.run(
        "resi_app.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.is_development,
    )


if __name__ == "__main__":
    main()
