import uuid

from fastapi import APIRouter, Depends, Request
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from resi_app.core.cache import get_cache
from resi_app.core.get_db import get_db_async
from resi_app.core.query_engine import ListParams
from resi_app.core.request_body import read_payload
from resi_app.core.responses import deliver
from resi_app.core.safe_handler import safe_handler
from resi_app.core.security import get_current_user, require_roles
from resi_app.core.throttling import api_rate_limit
from resi_app.core.uploads import get_attachments
from resi_app.email_notify.notifications import get_dispatcher
from resi_app.models.enums import UserRole
from resi_app.models.models import User
from resi_app.schemas.schema import ComplaintStatusUpdate, FeedbackCreate
from resi_app.services.complaint_service import ComplaintService

router = APIRouter(tags=["Complaints"])

management = require_roles(UserRole.ADMIN, UserRole.MANAGER)
handlers = require_roles(UserRole.ADMIN, UserRole.MANAGER, UserRole.STAFF)
residents = require_roles(UserRole.RESIDENT)


@cbv(router)
class ComplaintRoutes:
    @router.get("/", dependencies=[api_rate_limit])
    @safe_handler
    async def list_complaints(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        service = ComplaintService(db, get_cache(request), current_user)
        outcome = await service.list(ListParams.from_query(request.query_params))
        return await deliver(outcome, get_dispatcher(request))

    @router.get("/stats", dependencies=[api_rate_limit])
    @safe_handler
    async def stats(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(management),
    ):
        outcome = await ComplaintService(db, get_cache(request), current_user).stats()
        return await deliver(outcome, get_dispatcher(request))

    @router.get("/{complaint_id}", dependencies=[api_rate_limit])
    @safe_handler
    async def detail(
        self,
        request: Request,
        complaint_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        service = ComplaintService(db, get_cache(request), current_user)
        outcome = await service.detail(complaint_id)
        return await deliver(outcome, get_dispatcher(request))

    @router.post("/", dependencies=[api_rate_limit])
    @safe_handler
    async def create(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(residents),
    ):
        data, files = await read_payload(request)
        service = ComplaintService(db, get_cache(request), current_user)
        outcome = await service.create(data, files, get_attachments(request))
        return await deliver(outcome, get_dispatcher(request))

    @router.patch("/{complaint_id}/status", dependencies=[api_rate_limit])
    @safe_handler
    async def update_status(
        self,
        request: Request,
        complaint_id: uuid.UUID,
        data: ComplaintStatusUpdate,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(handlers),
    ):
        service = ComplaintService(db, get_cache(request), current_user)
        outcome = await service.update_status(complaint_id, data)
        return await deliver(outcome, get_dispatcher(request))

    @router.post("/{complaint_id}/comments", dependencies=[api_rate_limit])
    @safe_handler
    async def add_comment(
        self,
        request: Request,
        complaint_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        data, files = await read_payload(request)
        service = ComplaintService(db, get_cache(request), current_user)
        outcome = await service.add_comment(
            complaint_id, data, files, get_attachments(request)
        )
        return await deliver(outcome, get_dispatcher(request))

    @router.post("/{complaint_id}/feedback", dependencies=[api_rate_limit])
    @safe_handler
    async def submit_feedback(
        self,
        request: Request,
        complaint_id: uuid.UUID,
        data: FeedbackCreate,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(residents),
    ):
        service = ComplaintService(db, get_cache(request), current_user)
        outcome = await service.submit_feedback(complaint_id, data)
        return await deliver(outcome, get_dispatcher(request))
