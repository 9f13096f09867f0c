from dataclasses import dataclass, field
from typing import List

from fastapi.responses import JSONResponse

from resi_app.email_notify.notifications import Notification, NotificationDispatcher


@dataclass
class Outcome:
    body: dict
    status_code: int = 200
    notifications: List[Notification] = field(default_factory=list)


def envelope(data) -> dict:
    return {"success": True, "data": data}


def list_envelope(items: list, pagination: dict) -> dict:
    return {
        "success": True,
        "count": len(items),
        "pagination": pagination,
        "data": items,
    }


def message_envelope(message: str) -> dict:
    return {"success": True, "message": message}


async def deliver(outcome: Outcome, dispatcher: NotificationDispatcher) -> JSONResponse:
    if outcome.notifications:
        await dispatcher.dispatch(outcome.notifications)
    return JSONResponse(outcome.body, status_code=outcome.status_code)
