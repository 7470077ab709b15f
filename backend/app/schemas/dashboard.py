from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from backend.app.schemas.migrations import ConversionStatus, FileItem, FileUploadOutcome
from backend.app.schemas.notifications import Notification

DashboardTab = Literal["upload", "conversion", "pending"]
DashboardView = Literal["loading", "none", "report", "upload", "conversion", "pending"]
WizardAction = Literal["open", "close", "next"]


class ConversionResult(BaseModel):
    file_id: str
    file_name: str
    status: ConversionStatus
    converted_content: str | None = None
    error_message: str | None = None
    issues: list[dict[str, Any]] = Field(default_factory=list)


class ConversionReport(BaseModel):
    timestamp: datetime
    files_processed: int
    success_count: int
    failed_count: int
    summary: str
    results: list[ConversionResult] = Field(default_factory=list)


class TabRequest(BaseModel):
    tab: DashboardTab


class ManualEditRequest(BaseModel):
    content: str


class ReconvertRequest(BaseModel):
    custom_prompt: str = ""


class ConvertSelectedRequest(BaseModel):
    file_ids: list[str]


class DashboardState(BaseModel):
    view: DashboardView
    active_tab: DashboardTab
    files: list[FileItem]
    selected_file: FileItem | None = None
    report: ConversionReport | None = None
    show_report: bool = False
    show_help: bool = False
    show_wizard: bool = False
    wizard_step: int = 0
    selected_ai_model: str
    is_converting: bool = False
    converting_file_ids: list[str] = Field(default_factory=list)
    unreviewed_count: int = 0
    current_migration_id: str | None = None
    upload_outcomes: list[FileUploadOutcome] = Field(default_factory=list)
    notifications: list[Notification] = Field(default_factory=list)
