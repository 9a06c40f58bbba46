# src/taskbell/notifications.py

"""
Desktop notifications.

DesktopNotifier sends system notifications through plyer (Windows, macOS,
Linux via the platform backend). Desktop platforms have no runtime permission
prompt, so the permission state is driven by settings: request_permission()
grants when notifications are enabled and denies otherwise.

deliver_notification() is the single delivery point used by the app. It never
raises: a missing permission or a backend error only means the notification
is not shown.
"""

from __future__ import annotations

import logging

from plyer import notification

from .core.ports import Notifier

logger = logging.getLogger(__name__)

PERMISSION_DEFAULT = "default"
PERMISSION_GRANTED = "granted"
PERMISSION_DENIED = "denied"


class DesktopNotifier:
    def __init__(self, *, enabled: bool = True, app_name: str = "taskbell", timeout: int = 10) -> None:
        self._enabled = enabled
        self._app_name = app_name
        self._timeout = max(1, int(timeout))
        self._permission = PERMISSION_DEFAULT

    @property
    def permission(self) -> str:
        return self._permission

    def request_permission(self) -> str:
        if self._permission == PERMISSION_DEFAULT:
            self._permission = PERMISSION_GRANTED if self._enabled else PERMISSION_DENIED
            logger.info("Notification permission: %s", self._permission)
        return self._permission

    def notify(self, title: str, body: str) -> None:
        notification.notify(
            title=title,
            message=body,
            app_name=self._app_name,
            timeout=self._timeout,
        )


def deliver_notification(notifier: Notifier, title: str, body: str) -> bool:
    """Show a notification if permitted. Returns True if it was handed to the backend."""
    try:
        if notifier.permission != PERMISSION_GRANTED:
            logger.debug("Notification suppressed (permission=%s): %s", notifier.permission, title)
            return False
        notifier.notify(title, body)
    except Exception:
        logger.exception("Notification delivery failed: %s", title)
        return False
    logger.info("Notification sent: %s", title)
    return True
