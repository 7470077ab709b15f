from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from backend.app.schemas.notifications import Notification

FileType = Literal["table", "procedure", "trigger", "other"]
ConversionStatus = Literal["pending", "success", "failed", "deployed"]
DeploymentStatus = Literal["Success", "Failed"]
UploadOutcomeStatus = Literal["inserted", "duplicate", "failed"]


class UploadedFile(BaseModel):
    """A source artifact as handed over by the uploader."""

    id: str | None = None
    name: str
    type: FileType = "other"
    content: str = ""


class FileItem(BaseModel):
    id: str
    name: str
    path: str
    type: FileType
    content: str
    conversion_status: ConversionStatus = "pending"
    converted_content: str | None = None
    error_message: str | None = None
    data_type_mapping: list[Any] | None = None
    issues: list[dict[str, Any]] | None = None
    performance_metrics: dict[str, Any] | None = None


class MigrationFileDetail(FileItem):
    deployment_timestamp: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class FileUploadOutcome(BaseModel):
    name: str
    status: UploadOutcomeStatus
    file_id: str | None = None
    error: str | None = None


class UploadResult(BaseModel):
    migration_id: str | None = None
    files: list[FileItem] = Field(default_factory=list)
    outcomes: list[FileUploadOutcome] = Field(default_factory=list)

    def count(self, status: UploadOutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def persisted_files(self) -> list[FileItem]:
        """Files backed by a row: freshly inserted ones and pre-existing duplicates.

        Each row appears once, even when the batch named it twice.
        """
        backed = {o.file_id for o in self.outcomes if o.status != "failed"}
        seen: set[str] = set()
        persisted = []
        for f in self.files:
            if f.id in backed and f.id not in seen:
                seen.add(f.id)
                persisted.append(f)
        return persisted


class MigrationStats(BaseModel):
    total: int = 0
    success: int = 0
    failed: int = 0
    pending: int = 0
    deployed: int = 0


class MigrationSummary(BaseModel):
    id: str
    project_name: str
    created_at: datetime
    updated_at: datetime
    stats: MigrationStats


class MigrationDetail(BaseModel):
    id: str
    user_id: str
    project_name: str
    created_at: datetime
    updated_at: datetime
    files: list[MigrationFileDetail]


class MigrationCreate(BaseModel):
    project_name: str | None = None


class MigrationRename(BaseModel):
    project_name: str = Field(min_length=1, max_length=500)


class FailedFileMigrationCreate(BaseModel):
    file_name: str


class FileStatusUpdate(BaseModel):
    status: ConversionStatus
    converted_content: str | None = None
    error_message: str | None = None
    data_type_mapping: list[Any] | None = None
    performance_metrics: dict[str, Any] | None = None
    issues: list[dict[str, Any]] | None = None


class DeploymentLogCreate(BaseModel):
    status: DeploymentStatus
    lines_of_sql: int = Field(ge=0)
    file_count: int = Field(ge=0)
    error_message: str | None = None
    migration_id: str | None = None


class DeploymentLogResponse(BaseModel):
    id: str
    user_id: str
    migration_id: str | None
    status: DeploymentStatus
    lines_of_sql: int
    file_count: int
    error_message: str | None
    created_at: datetime


class ActionResponse(BaseModel):
    ok: bool
    notifications: list[Notification] = Field(default_factory=list)


class MigrationIdResponse(BaseModel):
    migration_id: str | None
    notifications: list[Notification] = Field(default_factory=list)


class CleanupResponse(BaseModel):
    deleted: int