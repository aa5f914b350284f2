"""
Transient user notifications.

Failures on the client never put it into an error state; they are reported
as short-lived notices to whatever listeners are attached (a UI toast, a
test recorder) and logged.
"""
import logging
from typing import Callable, List, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Notification(BaseModel):
    level: str  # "success" or "error"
    title: str
    description: Optional[str] = None


Listener = Callable[[Notification], None]


class Notifier:
    """Fan out notifications to subscribed listeners."""

    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def notify(self, notification: Notification) -> None:
        log = logger.warning if notification.level == "error" else logger.info
        if notification.description:
            log(f"{notification.title}: {notification.description}")
        else:
            log(notification.title)
        for listener in list(self._listeners):
            listener(notification)

    def success(self, title: str, description: Optional[str] = None) -> None:
        self.notify(Notification(level="success", title=title, description=description))

    def error(self, title: str, description: Optional[str] = None) -> None:
        self.notify(Notification(level="error", title=title, description=description))
