"""Sole owner of migration, migration-file and deployment-log persistence.

Every public method wraps its database work, logs failures and hands back a
sentinel (None, False, 0 or an empty result) instead of raising. User-facing
messages go through the attached Notifier.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Sequence

from sqlalchemy import delete, exists, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from backend.app.config import settings
from backend.app.database import SessionLocal
from backend.app.models.deployment_log import DeploymentLog
from backend.app.models.migration import Migration
from backend.app.models.migration_file import MigrationFile
from backend.app.models.user import User
from backend.app.schemas.migrations import (
    ConversionStatus,
    DeploymentLogResponse,
    DeploymentStatus,
    FileItem,
    FileUploadOutcome,
    MigrationDetail,
    MigrationFileDetail,
    MigrationStats,
    MigrationSummary,
    UploadedFile,
    UploadResult,
)
from backend.app.services.notifications import Notifier

logger = logging.getLogger("migrations.manager")

_STATUSES = ("success", "failed", "pending", "deployed")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def to_file_item(record: MigrationFile) -> FileItem:
    return FileItem(
        id=record.id,
        name=record.file_name,
        path=record.file_path,
        type=record.file_type,
        content=record.original_content,
        conversion_status=record.conversion_status,
        converted_content=record.converted_content,
        error_message=record.error_message,
        data_type_mapping=record.data_type_mapping,
        issues=record.issues,
        performance_metrics=record.performance_metrics,
    )


def _to_file_detail(record: MigrationFile) -> MigrationFileDetail:
    return MigrationFileDetail(
        **to_file_item(record).model_dump(),
        deployment_timestamp=record.deployment_timestamp,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _stats_from_counts(counts: dict[str, int]) -> MigrationStats:
    return MigrationStats(
        total=sum(counts.values()),
        **{status: counts.get(status, 0) for status in _STATUSES},
    )


class MigrationManager:
    """Persistence API used by the dashboard controller.

    Holds the in-memory ``current_migration_id`` pointer, so one instance is
    meant to live as long as the user's dashboard does. Database sessions are
    opened per operation from ``session_factory``.
    """

    def __init__(
        self,
        user: User | None,
        session_factory: Callable[[], DBSession] = SessionLocal,
        notifier: Notifier | None = None,
        reuse_window: timedelta | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.user = user
        self.notifier = notifier or Notifier()
        self.reuse_window = (
            reuse_window if reuse_window is not None
            else timedelta(hours=settings.MIGRATION_REUSE_WINDOW_HOURS)
        )
        self.current_migration_id: str | None = None
        self.is_creating_migration = False
        self._session_factory = session_factory
        self._clock = clock or _utcnow

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _require_auth(self, description: str) -> bool:
        if self.user is not None:
            return True
        logger.warning("Rejected unauthenticated call: %s", description)
        self.notifier.notify("Authentication Required", description, destructive=True)
        return False

    def _owned_migration_ids(self):
        return select(Migration.id).where(Migration.user_id == self.user.id)

    def _default_project_name(self) -> str:
        return f"Migration_{self._clock().astimezone().strftime('%H%M%S')}"

    def _create_migration(self, project_name: str) -> str | None:
        self.is_creating_migration = True
        try:
            with self._session_factory() as db:
                now = self._clock()
                migration = Migration(
                    id=str(uuid.uuid4()),
                    user_id=self.user.id,
                    project_name=project_name,
                    created_at=now,
                    updated_at=now,
                )
                db.add(migration)
                db.commit()
                logger.info("Created migration %s (%s) for user=%s", migration.id, project_name, self.user.id)
                return migration.id
        except SQLAlchemyError:
            logger.exception("Error creating migration %r", project_name)
            return None
        finally:
            self.is_creating_migration = False

    def _update_file(self, file_id: str, values: dict[str, Any], action: str) -> bool:
        if self.user is None:
            logger.warning("Cannot %s for file=%s without a user", action, file_id)
            return False
        try:
            with self._session_factory() as db:
                result = db.execute(
                    update(MigrationFile)
                    .where(
                        MigrationFile.id == file_id,
                        MigrationFile.migration_id.in_(self._owned_migration_ids()),
                    )
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                db.commit()
        except SQLAlchemyError:
            logger.exception("Error trying to %s for file=%s", action, file_id)
            return False

        if result.rowcount == 0:
            logger.warning("Cannot %s: file=%s not found", action, file_id)
            return False
        return True

    # ------------------------------------------------------------------
    # sessions
    # ------------------------------------------------------------------

    def start_new_migration(self, project_name: str | None = None) -> str | None:
        if not self._require_auth("Please sign in to start a migration"):
            return None

        name = project_name or self._default_project_name()
        migration_id = self._create_migration(name)
        if migration_id is None:
            self.notifier.notify("Migration Error", "Failed to start new migration", destructive=True)
            return None

        self.current_migration_id = migration_id
        self.notifier.notify("Migration Started", f'New migration project "{name}" created successfully')
        return migration_id

    def get_or_create_migration_id(self) -> str | None:
        """Return the current migration, reusing a recent one or creating it on demand.

        The most recent migration inside the reuse window is picked up when it
        already has files; an empty one is deleted and replaced.
        """
        if self.current_migration_id:
            return self.current_migration_id
        if self.user is None:
            return self.start_new_migration()

        cutoff = self._clock() - self.reuse_window
        file_count = (
            select(func.count(MigrationFile.id))
            .where(MigrationFile.migration_id == Migration.id)
            .correlate(Migration)
            .scalar_subquery()
        )
        try:
            with self._session_factory() as db:
                recent = db.execute(
                    select(Migration.id, file_count.label("file_count"))
                    .where(Migration.user_id == self.user.id, Migration.created_at >= cutoff)
                    .order_by(Migration.created_at.desc())
                    .limit(1)
                ).first()

                if recent is not None and recent.file_count > 0:
                    logger.info("Reusing migration %s (%d files)", recent.id, recent.file_count)
                    self.current_migration_id = recent.id
                    return recent.id

                if recent is not None:
                    logger.info("Discarding empty migration %s", recent.id)
                    db.execute(delete(Migration).where(Migration.id == recent.id))
                    db.commit()
        except SQLAlchemyError:
            logger.exception("Error looking up recent migration for user=%s", self.user.id)

        return self.start_new_migration()

    def create_failed_file_migration(self, file_name: str) -> str | None:
        """Open a separate migration for a file that failed elsewhere. Leaves the current pointer alone."""
        if not self._require_auth("Please sign in to create migration"):
            return None

        migration_id = self._create_migration(f"Failed: {file_name}")
        if migration_id is None:
            self.notifier.notify(
                "Migration Error", "Failed to create migration for failed file", destructive=True
            )
            return None

        self.notifier.notify(
            "Failed File Migration Created", f"Created separate migration for failed file: {file_name}"
        )
        return migration_id

    # ------------------------------------------------------------------
    # files
    # ------------------------------------------------------------------

    def handle_code_upload(
        self, uploaded_files: Sequence[UploadedFile], new_migration: bool = False
    ) -> UploadResult:
        """Persist uploaded artifacts as pending files of the current migration.

        Files whose name (case-insensitive) already exists in the migration,
        including earlier files of the same batch, are skipped and the stored
        row is reported instead. Each insert commits on its own, so one failure
        does not abort the rest of the batch.
        """
        if not self._require_auth("Please sign in to upload files"):
            return UploadResult()

        migration_id = self.start_new_migration() if new_migration else self.get_or_create_migration_id()
        if not migration_id:
            self.notifier.notify("Upload Failed", "No migration ID available", destructive=True)
            return UploadResult()

        items = [
            FileItem(
                id=f.id or str(uuid.uuid4()),
                name=f.name,
                path=f.name,
                type=f.type,
                content=f.content,
                conversion_status="pending",
                data_type_mapping=[],
                issues=[],
            )
            for f in uploaded_files
        ]
        if not items:
            return UploadResult(migration_id=migration_id)

        outcomes: list[FileUploadOutcome] = []
        try:
            with self._session_factory() as db:
                existing = {
                    record.file_name.lower(): record
                    for record in db.scalars(
                        select(MigrationFile).where(MigrationFile.migration_id == migration_id)
                    )
                }

                for index, item in enumerate(items):
                    key = item.name.lower()
                    if key in existing:
                        logger.info("Skipping duplicate file: %s", item.name)
                        items[index] = to_file_item(existing[key])
                        outcomes.append(FileUploadOutcome(
                            name=item.name, status="duplicate", file_id=existing[key].id,
                        ))
                        continue

                    now = self._clock()
                    record = MigrationFile(
                        id=str(uuid.uuid4()),
                        migration_id=migration_id,
                        file_name=item.name,
                        file_path=item.path,
                        file_type=item.type,
                        original_content=item.content,
                        conversion_status="pending",
                        created_at=now,
                        updated_at=now,
                    )
                    try:
                        db.add(record)
                        db.commit()
                    except SQLAlchemyError as e:
                        db.rollback()
                        logger.error("Error saving file %s: %s", item.name, e)
                        outcomes.append(FileUploadOutcome(
                            name=item.name, status="failed", file_id=item.id, error=str(e),
                        ))
                        continue

                    existing[key] = record
                    items[index] = item.model_copy(update={"id": record.id})
                    outcomes.append(FileUploadOutcome(name=item.name, status="inserted", file_id=record.id))
        except SQLAlchemyError as e:
            logger.exception("Error saving files to migration %s", migration_id)
            # outcomes are recorded in batch order, one per processed item
            outcomes.extend(
                FileUploadOutcome(name=uploaded.name, status="failed", file_id=item.id, error=str(e))
                for uploaded, item in zip(uploaded_files[len(outcomes):], items[len(outcomes):])
            )

        result = UploadResult(migration_id=migration_id, files=items, outcomes=outcomes)
        self._notify_upload(result)
        return result

    def _notify_upload(self, result: UploadResult) -> None:
        inserted = result.count("inserted")
        duplicates = result.count("duplicate")
        failed = result.count("failed")

        if failed and not inserted and not duplicates:
            self.notifier.notify(
                "Upload Failed", f"Failed to save {_plural(failed, 'file')}", destructive=True
            )
            return

        description = f"Uploaded {_plural(inserted, 'file')} to migration"
        if duplicates:
            description += f", skipped {duplicates} duplicate{'' if duplicates == 1 else 's'}"
        if failed:
            description += f", {failed} failed"
        self.notifier.notify("Files Uploaded", description)

    def update_file_status(
        self,
        file_id: str,
        status: ConversionStatus,
        converted_content: str | None = None,
        error_message: str | None = None,
        data_type_mapping: list[Any] | None = None,
        performance_metrics: dict[str, Any] | None = None,
        issues: list[dict[str, Any]] | None = None,
    ) -> bool:
        """Write status plus whichever optional fields were given; None leaves the stored value."""
        values: dict[str, Any] = {"conversion_status": status, "updated_at": self._clock()}
        optional = {
            "converted_content": converted_content,
            "error_message": error_message,
            "data_type_mapping": data_type_mapping,
            "performance_metrics": performance_metrics,
            "issues": issues,
        }
        values.update({k: v for k, v in optional.items() if v is not None})
        return self._update_file(file_id, values, "update file status")

    def mark_file_as_deployed(self, file_id: str) -> bool:
        now = self._clock()
        return self._update_file(
            file_id,
            {"conversion_status": "deployed", "deployment_timestamp": now, "updated_at": now},
            "mark file as deployed",
        )

    def get_unreviewed_files(self) -> list[FileItem]:
        """Converted files of this user that have not been deployed yet."""
        if self.user is None:
            return []
        try:
            with self._session_factory() as db:
                records = db.scalars(
                    select(MigrationFile)
                    .where(
                        MigrationFile.migration_id.in_(self._owned_migration_ids()),
                        MigrationFile.conversion_status == "success",
                    )
                    .order_by(MigrationFile.updated_at.desc())
                ).all()
                return [to_file_item(r) for r in records]
        except SQLAlchemyError:
            logger.exception("Error fetching unreviewed files for user=%s", self.user.id)
            return []

    # ------------------------------------------------------------------
    # housekeeping
    # ------------------------------------------------------------------

    def cleanup_empty_migrations(self) -> int:
        """Delete this user's file-less migrations older than the reuse window. Best effort."""
        if self.user is None:
            return 0

        cutoff = self._clock() - self.reuse_window
        try:
            with self._session_factory() as db:
                stale_ids = db.scalars(
                    select(Migration.id).where(
                        Migration.user_id == self.user.id,
                        Migration.created_at < cutoff,
                        ~exists().where(MigrationFile.migration_id == Migration.id),
                    )
                ).all()
                if not stale_ids:
                    return 0

                db.execute(
                    delete(Migration)
                    .where(Migration.id.in_(stale_ids))
                    .execution_options(synchronize_session=False)
                )
                db.commit()
        except SQLAlchemyError:
            logger.exception("Error cleaning up empty migrations for user=%s", self.user.id)
            return 0

        if self.current_migration_id in stale_ids:
            self.current_migration_id = None
        logger.info("Cleaned up %d empty migrations", len(stale_ids))
        return len(stale_ids)

    def save_deployment_log(
        self,
        status: DeploymentStatus,
        lines_of_sql: int,
        file_count: int,
        error_message: str | None = None,
        migration_id: str | None = None,
    ) -> DeploymentLogResponse | None:
        if not self._require_auth("Please sign in to record deployments"):
            return None

        try:
            with self._session_factory() as db:
                target_id = migration_id or self.current_migration_id
                if target_id is not None and db.scalar(
                    select(Migration.id).where(Migration.id == target_id, Migration.user_id == self.user.id)
                ) is None:
                    logger.warning("Cannot save deployment log: migration %s not found", target_id)
                    return None

                log = DeploymentLog(
                    id=str(uuid.uuid4()),
                    user_id=self.user.id,
                    migration_id=target_id,
                    status=status,
                    lines_of_sql=lines_of_sql,
                    file_count=file_count,
                    error_message=error_message or None,
                    created_at=self._clock(),
                )
                db.add(log)
                db.commit()
                return DeploymentLogResponse(
                    id=log.id,
                    user_id=log.user_id,
                    migration_id=log.migration_id,
                    status=log.status,
                    lines_of_sql=log.lines_of_sql,
                    file_count=log.file_count,
                    error_message=log.error_message,
                    created_at=log.created_at,
                )
        except SQLAlchemyError:
            logger.exception("Error saving deployment log")
            return None

    # ------------------------------------------------------------------
    # accessors
    # ------------------------------------------------------------------

    def delete_migration(self, migration_id: str) -> bool:
        """Delete a migration's files, then the migration itself."""
        if not self._require_auth("Please sign in to delete migrations"):
            return False

        try:
            with self._session_factory() as db:
                owned = db.scalar(
                    select(Migration.id).where(Migration.id == migration_id, Migration.user_id == self.user.id)
                )
                if owned is None:
                    logger.warning("Cannot delete migration %s: not found", migration_id)
                    return False
                db.execute(delete(MigrationFile).where(MigrationFile.migration_id == migration_id))
                db.commit()
        except SQLAlchemyError:
            logger.exception("Error deleting files of migration %s", migration_id)
            return False

        try:
            with self._session_factory() as db:
                db.execute(delete(Migration).where(Migration.id == migration_id))
                db.commit()
        except SQLAlchemyError:
            logger.exception("Error deleting migration %s", migration_id)
            return False

        if self.current_migration_id == migration_id:
            self.current_migration_id = None

        self.notifier.notify("Migration Deleted", "Migration and all associated files have been deleted")
        return True

    def get_user_migrations(self) -> list[MigrationSummary]:
        if self.user is None:
            return []

        try:
            with self._session_factory() as db:
                migrations = db.scalars(
                    select(Migration)
                    .where(Migration.user_id == self.user.id)
                    .order_by(Migration.created_at.desc())
                ).all()
                counts: dict[str, dict[str, int]] = {}
                rows = db.execute(
                    select(MigrationFile.migration_id, MigrationFile.conversion_status, func.count())
                    .where(MigrationFile.migration_id.in_([m.id for m in migrations]))
                    .group_by(MigrationFile.migration_id, MigrationFile.conversion_status)
                ).all()
                for migration_id, status, count in rows:
                    counts.setdefault(migration_id, {})[status] = count

                return [
                    MigrationSummary(
                        id=m.id,
                        project_name=m.project_name,
                        created_at=m.created_at,
                        updated_at=m.updated_at,
                        stats=_stats_from_counts(counts.get(m.id, {})),
                    )
                    for m in migrations
                ]
        except SQLAlchemyError:
            logger.exception("Error fetching migrations for user=%s", self.user.id)
            return []

    def get_migration_details(self, migration_id: str) -> MigrationDetail | None:
        if self.user is None:
            return None

        try:
            with self._session_factory() as db:
                migration = db.scalar(
                    select(Migration).where(Migration.id == migration_id, Migration.user_id == self.user.id)
                )
                if migration is None:
                    return None
                files = db.scalars(
                    select(MigrationFile)
                    .where(MigrationFile.migration_id == migration_id)
                    .order_by(MigrationFile.created_at.asc(), MigrationFile.file_name.asc())
                ).all()
                return MigrationDetail(
                    id=migration.id,
                    user_id=migration.user_id,
                    project_name=migration.project_name,
                    created_at=migration.created_at,
                    updated_at=migration.updated_at,
                    files=[_to_file_detail(f) for f in files],
                )
        except SQLAlchemyError:
            logger.exception("Error fetching migration details for %s", migration_id)
            return None

    def get_migration_stats(self, migration_id: str) -> MigrationStats | None:
        if self.user is None:
            return None

        try:
            with self._session_factory() as db:
                owned = db.scalar(
                    select(Migration.id).where(Migration.id == migration_id, Migration.user_id == self.user.id)
                )
                if owned is None:
                    return None
                rows = db.execute(
                    select(MigrationFile.conversion_status, func.count())
                    .where(MigrationFile.migration_id == migration_id)
                    .group_by(MigrationFile.conversion_status)
                ).all()
        except SQLAlchemyError:
            logger.exception("Error fetching migration stats for %s", migration_id)
            return None

        return _stats_from_counts({status: count for status, count in rows})

    def update_migration_name(self, migration_id: str, new_name: str) -> bool:
        if not self._require_auth("Please sign in to rename migrations"):
            return False

        try:
            with self._session_factory() as db:
                result = db.execute(
                    update(Migration)
                    .where(Migration.id == migration_id, Migration.user_id == self.user.id)
                    .values(project_name=new_name, updated_at=self._clock())
                    .execution_options(synchronize_session=False)
                )
                db.commit()
        except SQLAlchemyError:
            logger.exception("Error updating migration name for %s", migration_id)
            return False

        if result.rowcount == 0:
            return False

        self.notifier.notify("Migration Updated", f'Migration name updated to "{new_name}"')
        return True
