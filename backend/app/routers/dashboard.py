import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from backend.app.dependencies.auth import get_current_user
from backend.app.dependencies.dashboard import get_auth_state, get_dashboard_controller
from backend.app.models.user import User
from backend.app.schemas.dashboard import (
    ConvertSelectedRequest,
    DashboardState,
    ManualEditRequest,
    ReconvertRequest,
    TabRequest,
    WizardAction,
)
from backend.app.schemas.migrations import FileType, UploadedFile
from backend.app.services import registry
from backend.app.services.dashboard import AuthState, DashboardController
from backend.app.services.file_service import build_uploaded_file

logger = logging.getLogger("migrations.api")

router = APIRouter(prefix="/dashboard")


def _require_file(controller: DashboardController, file_id: str) -> None:
    if controller.get_file(file_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")


@router.get("", response_model=DashboardState)
def get_dashboard(
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    return controller.state(auth)


@router.delete("")
def close_dashboard(current_user: User = Depends(get_current_user)):
    return {"ok": registry.drop_controller(current_user.id)}


@router.post("/upload", response_model=DashboardState)
def upload(
    files: list[UploadedFile],
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    controller.handle_code_upload(files)
    return controller.state(auth)


@router.post("/upload-files", response_model=DashboardState)
def upload_files(
    files: list[UploadFile] = File(...),
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    uploaded = []
    for upload_file in files:
        filename = upload_file.filename or "unknown"
        try:
            uploaded.append(build_uploaded_file(filename, upload_file.file.read()))
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{filename}: {e}")

    logger.info("Multipart upload of %d files", len(uploaded))
    controller.handle_code_upload(uploaded)
    return controller.state(auth)


@router.post("/tab", response_model=DashboardState)
def set_tab(
    body: TabRequest,
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    controller.set_active_tab(body.tab)
    return controller.state(auth)


@router.post("/select/{file_id}", response_model=DashboardState)
def select_file(
    file_id: str,
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    _require_file(controller, file_id)
    controller.select_file(file_id)
    return controller.state(auth)


@router.post("/edit", response_model=DashboardState)
def manual_edit(
    body: ManualEditRequest,
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    if controller.handle_manual_edit(body.content) is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No file selected")
    return controller.state(auth)


@router.post("/issues/{issue_id}/dismiss", response_model=DashboardState)
def dismiss_issue(
    issue_id: str,
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    controller.handle_dismiss_issue(issue_id)
    return controller.state(auth)


@router.post("/convert/{file_id}", response_model=DashboardState)
async def convert_file(
    file_id: str,
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    _require_file(controller, file_id)
    await controller.handle_convert_file(file_id)
    return controller.state(auth)


@router.post("/convert-all", response_model=DashboardState)
async def convert_all(
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    await controller.handle_convert_all()
    return controller.state(auth)


@router.post("/convert-type/{file_type}", response_model=DashboardState)
async def convert_all_by_type(
    file_type: FileType,
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    await controller.handle_convert_all_by_type(file_type)
    return controller.state(auth)


@router.post("/convert-selected", response_model=DashboardState)
async def convert_selected(
    body: ConvertSelectedRequest,
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    await controller.handle_convert_selected(body.file_ids)
    return controller.state(auth)


@router.post("/fix/{file_id}", response_model=DashboardState)
async def fix_file(
    file_id: str,
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    _require_file(controller, file_id)
    await controller.handle_fix_file(file_id)
    return controller.state(auth)


@router.post("/reconvert/{file_id}", response_model=DashboardState)
async def reconvert_file(
    file_id: str,
    body: ReconvertRequest,
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    _require_file(controller, file_id)
    handler = controller.reconvert_handler
    if handler is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Dashboard is not mounted")
    await handler(file_id, body.custom_prompt)
    return controller.state(auth)


@router.post("/report", response_model=DashboardState)
async def generate_report(
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    await controller.handle_generate_report()
    return controller.state(auth)


@router.post("/report/close", response_model=DashboardState)
def close_report(
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    controller.close_report()
    return controller.state(auth)


@router.post("/reset", response_model=DashboardState)
def reset_migration(
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    controller.handle_reset_migration()
    return controller.state(auth)


@router.post("/wizard/{action}", response_model=DashboardState)
def wizard(
    action: WizardAction,
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    if action == "open":
        controller.open_wizard()
    elif action == "close":
        controller.close_wizard()
    else:
        controller.next_wizard_step()
    return controller.state(auth)


@router.post("/help/{action}", response_model=DashboardState)
def help_panel(
    action: str,
    controller: DashboardController = Depends(get_dashboard_controller),
    auth: AuthState = Depends(get_auth_state),
):
    if action == "open":
        controller.show_help_panel()
    elif action == "close":
        controller.close_help()
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown action: {action}")
    return controller.state(auth)
