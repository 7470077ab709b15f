"""Collects user-facing notifications raised while serving a request."""

import logging

from backend.app.schemas.notifications import Notification

logger = logging.getLogger("migrations.notify")


class Notifier:
    def __init__(self) -> None:
        self._pending: list[Notification] = []

    def notify(self, title: str, description: str, destructive: bool = False) -> Notification:
        notification = Notification(
            title=title,
            description=description,
            variant="destructive" if destructive else "default",
        )
        logger.debug("Notify: %s - %s", title, description)
        self._pending.append(notification)
        return notification

    @property
    def pending(self) -> list[Notification]:
        return list(self._pending)

    def drain(self) -> list[Notification]:
        """Return and forget everything raised since the last drain."""
        drained, self._pending = self._pending, []
        return drained
