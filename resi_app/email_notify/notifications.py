import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from fastapi import Request

from .email_service import Mailer
from .templates import render

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    recipient: Optional[str]
    template: str
    context: dict = field(default_factory=dict)


def notify_many(recipients: Iterable[Optional[str]], template: str, context: dict) -> list:
    seen = set()
    notifications = []
    for email in recipients:
        if email and email not in seen:
            seen.add(email)
            notifications.append(Notification(email, template, context))
    return notifications


class NotificationDispatcher:
    """Delivers notifications after the write is committed.

    Delivery is best-effort: a failed send is logged and the remaining
    notifications are still attempted.
    """

    def __init__(self, mailer: Mailer | None = None):
        self.mailer = mailer or Mailer()

    async def dispatch(self, notifications: Iterable[Notification]):
        for notification in notifications:
            if not notification.recipient:
                continue
            try:
                subject, html = render(notification.template, notification.context)
                await self.mailer.send(notification.recipient, subject, html)
            except Exception as e:
                logger.error(
                    "Failed to send %s notification to %s: %s",
                    notification.template,
                    notification.recipient,
                    e,
                )


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher
