from fastapi import APIRouter, Depends, HTTPException, status

from backend.app.dependencies.auth import get_current_user
from backend.app.dependencies.dashboard import get_migration_manager, get_session_factory
from backend.app.models.user import User
from backend.app.schemas.migrations import (
    ActionResponse,
    CleanupResponse,
    DeploymentLogCreate,
    DeploymentLogResponse,
    FailedFileMigrationCreate,
    FileStatusUpdate,
    MigrationCreate,
    MigrationDetail,
    MigrationIdResponse,
    MigrationRename,
    MigrationStats,
    MigrationSummary,
)
from backend.app.services import registry
from backend.app.services.migration_manager import MigrationManager

router = APIRouter()


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


@router.get("/migrations", response_model=list[MigrationSummary])
def list_migrations(manager: MigrationManager = Depends(get_migration_manager)):
    return manager.get_user_migrations()


@router.post("/migrations", response_model=MigrationIdResponse)
def start_migration(
    body: MigrationCreate,
    manager: MigrationManager = Depends(get_migration_manager),
):
    migration_id = manager.start_new_migration(body.project_name)
    return MigrationIdResponse(migration_id=migration_id, notifications=manager.notifier.drain())


@router.post("/migrations/current", response_model=MigrationIdResponse)
def current_migration(manager: MigrationManager = Depends(get_migration_manager)):
    migration_id = manager.get_or_create_migration_id()
    return MigrationIdResponse(migration_id=migration_id, notifications=manager.notifier.drain())


@router.post("/migrations/failed", response_model=MigrationIdResponse)
def failed_file_migration(
    body: FailedFileMigrationCreate,
    manager: MigrationManager = Depends(get_migration_manager),
):
    migration_id = manager.create_failed_file_migration(body.file_name)
    return MigrationIdResponse(migration_id=migration_id, notifications=manager.notifier.drain())


@router.post("/migrations/cleanup", response_model=CleanupResponse)
def cleanup_migrations(manager: MigrationManager = Depends(get_migration_manager)):
    return CleanupResponse(deleted=manager.cleanup_empty_migrations())


@router.get("/migrations/{migration_id}", response_model=MigrationDetail)
def get_migration(migration_id: str, manager: MigrationManager = Depends(get_migration_manager)):
    detail = manager.get_migration_details(migration_id)
    if detail is None:
        raise _not_found("Migration")
    return detail


@router.get("/migrations/{migration_id}/stats", response_model=MigrationStats)
def get_migration_stats(migration_id: str, manager: MigrationManager = Depends(get_migration_manager)):
    stats = manager.get_migration_stats(migration_id)
    if stats is None:
        raise _not_found("Migration")
    return stats


@router.patch("/migrations/{migration_id}", response_model=ActionResponse)
def rename_migration(
    migration_id: str,
    body: MigrationRename,
    manager: MigrationManager = Depends(get_migration_manager),
):
    if not manager.update_migration_name(migration_id, body.project_name):
        raise _not_found("Migration")
    return ActionResponse(ok=True, notifications=manager.notifier.drain())


@router.delete("/migrations/{migration_id}", response_model=ActionResponse)
def delete_migration(migration_id: str, manager: MigrationManager = Depends(get_migration_manager)):
    if manager.get_migration_details(migration_id) is None:
        raise _not_found("Migration")
    ok = manager.delete_migration(migration_id)
    return ActionResponse(ok=ok, notifications=manager.notifier.drain())


@router.patch("/files/{file_id}/status", response_model=ActionResponse)
def update_file_status(
    file_id: str,
    body: FileStatusUpdate,
    current_user: User = Depends(get_current_user),
    session_factory=Depends(get_session_factory),
):
    controller = registry.get_controller(current_user, session_factory)
    manager = controller.migration_manager
    changes = body.model_dump(exclude_none=True)
    status_value = changes.pop("status")
    if not manager.update_file_status(file_id, status_value, **changes):
        raise _not_found("File")

    if controller.get_file(file_id) is not None:
        controller.apply_file_update(file_id, conversion_status=status_value, **changes)
    return ActionResponse(ok=True, notifications=manager.notifier.drain())


@router.post("/files/{file_id}/deploy", response_model=ActionResponse)
def deploy_file(
    file_id: str,
    current_user: User = Depends(get_current_user),
    session_factory=Depends(get_session_factory),
):
    controller = registry.get_controller(current_user, session_factory)
    if not controller.migration_manager.mark_file_as_deployed(file_id):
        raise _not_found("File")

    if controller.get_file(file_id) is not None:
        controller.apply_file_update(file_id, conversion_status="deployed")
    return ActionResponse(ok=True, notifications=controller.notifier.drain())


@router.post("/deployment-logs", response_model=DeploymentLogResponse, status_code=status.HTTP_201_CREATED)
def create_deployment_log(
    body: DeploymentLogCreate,
    manager: MigrationManager = Depends(get_migration_manager),
):
    log = manager.save_deployment_log(
        body.status,
        body.lines_of_sql,
        body.file_count,
        error_message=body.error_message,
        migration_id=body.migration_id,
    )
    if log is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to save deployment log",
        )
    return log
