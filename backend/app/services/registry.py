"""Live dashboard controllers, one per user, kept for the lifetime of the process."""

import logging
from typing import Callable

from sqlalchemy.orm import Session as DBSession

from backend.app.database import SessionLocal
from backend.app.models.user import User
from backend.app.services.dashboard import DashboardController
from backend.app.services.migration_manager import MigrationManager

logger = logging.getLogger("migrations.registry")

_controllers: dict[str, DashboardController] = {}
# Outlives controllers, like browser-local storage outlives a page
_preferences: dict[str, dict[str, str]] = {}


def get_controller(
    user: User, session_factory: Callable[[], DBSession] = SessionLocal
) -> DashboardController:
    controller = _controllers.get(user.id)
    if controller is None:
        manager = MigrationManager(user=user, session_factory=session_factory)
        controller = DashboardController(manager, preferences=_preferences.setdefault(user.id, {}))
        _controllers[user.id] = controller
        logger.info("Created dashboard controller for user=%s", user.id)
    controller.migration_manager.user = user
    return controller


def drop_controller(user_id: str) -> bool:
    controller = _controllers.pop(user_id, None)
    if controller is None:
        return False
    controller.unmount()
    logger.info("Dropped dashboard controller for user=%s", user_id)
    return True


def clear() -> None:
    for user_id in list(_controllers):
        drop_controller(user_id)
    _preferences.clear()
