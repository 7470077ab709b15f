from fastapi import Depends

from backend.app.database import SessionLocal
from backend.app.dependencies.auth import get_current_user
from backend.app.models.user import User
from backend.app.schemas.auth import ProfileResponse
from backend.app.services import registry
from backend.app.services.dashboard import AuthState, DashboardController
from backend.app.services.migration_manager import MigrationManager


def get_session_factory():
    return SessionLocal


def get_auth_state(current_user: User = Depends(get_current_user)) -> AuthState:
    return AuthState(
        user=current_user,
        profile=ProfileResponse(id=current_user.id, email=current_user.email, full_name=current_user.full_name),
        loading=False,
    )


def get_dashboard_controller(
    auth: AuthState = Depends(get_auth_state),
    session_factory=Depends(get_session_factory),
) -> DashboardController:
    """The user's controller, mounted. The first mount runs empty-migration cleanup."""
    controller = registry.get_controller(auth.user, session_factory)
    controller.mount(auth)
    return controller


def get_migration_manager(
    current_user: User = Depends(get_current_user),
    session_factory=Depends(get_session_factory),
) -> MigrationManager:
    return registry.get_controller(current_user, session_factory).migration_manager
