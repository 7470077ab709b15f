"""Server-side state of one user's migration dashboard.

Owns the tab state, the uploaded files and their conversion state, and wires
user actions to the migration manager and the conversion engine.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, MutableMapping, Sequence

from backend.app.config import settings
from backend.app.conversion import BaseConversionLogic, MockConversionLogic
from backend.app.models.user import User
from backend.app.schemas.auth import ProfileResponse
from backend.app.schemas.dashboard import (
    ConversionReport,
    ConversionResult,
    DashboardState,
    DashboardTab,
    DashboardView,
)
from backend.app.schemas.migrations import FileItem, FileType, FileUploadOutcome, UploadedFile, UploadResult
from backend.app.services.migration_manager import MigrationManager

logger = logging.getLogger("migrations.dashboard")

TABS: tuple[str, ...] = ("upload", "conversion", "pending")
WIZARD_SEEN_KEY = "wizardSeen"
WIZARD_LAST_STEP = 3

Navigate = Callable[[str, dict[str, Any] | None], None]
ReconvertHandler = Callable[[str, str], Awaitable[bool]]


@dataclass
class AuthState:
    user: User | None = None
    profile: ProfileResponse | None = None
    loading: bool = False


def _no_navigation(path: str, state: dict[str, Any] | None = None) -> None:
    logger.debug("Navigation to %s ignored (no navigator)", path)


class DashboardController:
    def __init__(
        self,
        migration_manager: MigrationManager,
        conversion_factory: Callable[["DashboardController"], BaseConversionLogic] = MockConversionLogic,
        unreviewed_files: Callable[[], Sequence[Any]] | None = None,
        preferences: MutableMapping[str, str] | None = None,
        navigate: Navigate | None = None,
        initial_tab: DashboardTab = "upload",
        selected_ai_model: str | None = None,
    ) -> None:
        self.migration_manager = migration_manager
        self.notifier = migration_manager.notifier
        self.preferences = preferences if preferences is not None else {}
        self._unreviewed_files = unreviewed_files or migration_manager.get_unreviewed_files
        self._navigate = navigate or _no_navigation

        self.active_tab: DashboardTab = initial_tab if initial_tab in TABS else "upload"
        self.files: list[FileItem] = []
        self.selected_file: FileItem | None = None
        self.conversion_results: list[ConversionResult] = []
        self.report: ConversionReport | None = None
        self.show_report = False
        self.show_help = False
        self.custom_prompt = ""
        self.show_wizard = False
        self.wizard_step = 0
        self.selected_ai_model = selected_ai_model or settings.DEFAULT_AI_MODEL
        self.last_upload_outcomes: list[FileUploadOutcome] = []
        self.mounted = False

        self._reconvert_handler: ReconvertHandler | None = None
        self._reconvert_running = False

        self.conversion = conversion_factory(self)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def mount(self, auth: AuthState) -> ReconvertHandler | None:
        """Settle the view against the auth state and hand out the reconvert callback."""
        if auth.loading:
            return None
        if auth.user is None:
            logger.info("No authenticated user, redirecting to /auth")
            self._navigate("/auth", None)
            return None

        self.migration_manager.user = auth.user
        if not self.preferences.get(WIZARD_SEEN_KEY):
            self.show_wizard = True
            self.preferences[WIZARD_SEEN_KEY] = "1"

        if not self.mounted:
            self.migration_manager.cleanup_empty_migrations()
            self.mounted = True

        if self._reconvert_handler is None:
            self._reconvert_handler = self._make_reconvert_handler()
        return self._reconvert_handler

    def unmount(self) -> None:
        self._reconvert_handler = None
        self.mounted = False

    @property
    def reconvert_handler(self) -> ReconvertHandler | None:
        return self._reconvert_handler

    def view(self, auth: AuthState) -> DashboardView:
        if auth.loading:
            return "loading"
        if auth.user is None or auth.profile is None:
            return "none"
        if self.show_report and self.report is not None:
            return "report"
        return self.active_tab

    def state(self, auth: AuthState) -> DashboardState:
        return DashboardState(
            view=self.view(auth),
            active_tab=self.active_tab,
            files=self.files,
            selected_file=self.selected_file,
            report=self.report,
            show_report=self.show_report,
            show_help=self.show_help,
            show_wizard=self.show_wizard,
            wizard_step=self.wizard_step,
            selected_ai_model=self.selected_ai_model,
            is_converting=self.conversion.is_converting,
            converting_file_ids=sorted(self.conversion.converting_file_ids),
            unreviewed_count=self.unreviewed_count,
            current_migration_id=self.migration_manager.current_migration_id,
            upload_outcomes=self.last_upload_outcomes,
            notifications=self.notifier.drain(),
        )

    @property
    def unreviewed_count(self) -> int:
        return len(self._unreviewed_files())

    # ------------------------------------------------------------------
    # files
    # ------------------------------------------------------------------

    def get_file(self, file_id: str) -> FileItem | None:
        return next((f for f in self.files if f.id == file_id), None)

    def _auto_select(self) -> None:
        if self.files and self.selected_file is None:
            self.selected_file = next((f for f in self.files if f.converted_content), self.files[0])

    def apply_file_update(self, file_id: str, **changes: Any) -> FileItem:
        """Update one file in the list and, when selected, its mirror in the same step."""
        for index, file in enumerate(self.files):
            if file.id == file_id:
                updated = file.model_copy(update=changes)
                self.files[index] = updated
                if self.selected_file is not None and self.selected_file.id == file_id:
                    self.selected_file = updated
                self._auto_select()
                return updated
        raise KeyError(file_id)

    def record_result(self, result: ConversionResult) -> None:
        self.conversion_results = [r for r in self.conversion_results if r.file_id != result.file_id]
        self.conversion_results.append(result)

    def handle_code_upload(self, uploaded_files: Sequence[UploadedFile]) -> UploadResult:
        try:
            result = self.migration_manager.handle_code_upload(uploaded_files)
        except Exception:
            logger.exception("Error in upload")
            self.notifier.notify("Upload Error", "Failed to upload files. Please try again.", destructive=True)
            return UploadResult()

        self.files = result.persisted_files
        self.last_upload_outcomes = result.outcomes
        if self.selected_file is not None and self.get_file(self.selected_file.id) is None:
            self.selected_file = None
        self.active_tab = "conversion"
        self._auto_select()
        return result

    def select_file(self, file_id: str) -> FileItem | None:
        file = self.get_file(file_id)
        if file is not None:
            self.selected_file = file
        return file

    def set_active_tab(self, tab: str) -> None:
        if tab not in TABS:
            raise ValueError(f"Unknown tab: {tab}")
        self.active_tab = tab

    def handle_manual_edit(self, new_content: str) -> FileItem | None:
        if self.selected_file is None:
            return None
        if self.get_file(self.selected_file.id) is None:
            self.selected_file = self.selected_file.model_copy(update={"converted_content": new_content})
            return self.selected_file
        return self.apply_file_update(self.selected_file.id, converted_content=new_content)

    def handle_dismiss_issue(self, issue_id: str) -> FileItem | None:
        if self.selected_file is None or self.get_file(self.selected_file.id) is None:
            return None
        remaining = [i for i in (self.selected_file.issues or []) if i.get("id") != issue_id]
        return self.apply_file_update(self.selected_file.id, issues=remaining)

    # ------------------------------------------------------------------
    # conversion
    # ------------------------------------------------------------------

    async def handle_convert_file(self, file_id: str) -> None:
        await self.conversion.convert_file(file_id)

    async def handle_convert_all_by_type(self, file_type: FileType) -> None:
        await self.conversion.convert_all_by_type(file_type)

    async def handle_convert_all(self) -> None:
        await self.conversion.convert_all()

    async def handle_convert_selected(self, file_ids: Sequence[str]) -> None:
        await self.conversion.convert_selected(file_ids)

    async def handle_fix_file(self, file_id: str) -> bool:
        if self.get_file(file_id) is None:
            return False
        try:
            await self.conversion.convert_file(file_id)
        except Exception:
            logger.exception("Error fixing file=%s", file_id)
            self.notifier.notify("Fix Failed", "Failed to fix the file. Please try again.", destructive=True)
            return False

        self.notifier.notify("File Fix Attempted", "The file has been sent for reconversion to fix issues.")
        return True

    def _make_reconvert_handler(self) -> ReconvertHandler:
        async def handle_file_reconvert(file_id: str, custom_prompt: str) -> bool:
            if self._reconvert_handler is not handle_file_reconvert:
                logger.warning("Stale reconvert handler called for file=%s", file_id)
                return False
            return await self._reconvert_once(file_id, custom_prompt)

        return handle_file_reconvert

    async def _reconvert_once(self, file_id: str, custom_prompt: str) -> bool:
        """Run one conversion with ``custom_prompt`` in effect, then clear it. Overlapping calls are refused."""
        if self._reconvert_running:
            self.notifier.notify(
                "Reconvert Busy", "Another reconversion is still running. Please wait.", destructive=True
            )
            return False

        self._reconvert_running = True
        self.custom_prompt = custom_prompt
        try:
            await self.conversion.convert_file(file_id)
        except Exception:
            logger.exception("Error reconverting file=%s", file_id)
            self.notifier.notify("Reconvert Failed", "Failed to reconvert the file. Please try again.", destructive=True)
            return False
        finally:
            self.custom_prompt = ""
            self._reconvert_running = False
        return True

    async def handle_generate_report(self) -> ConversionReport | None:
        logger.debug(
            "Generating report: %d files, %d successful",
            len(self.files), sum(1 for f in self.files if f.conversion_status == "success"),
        )
        try:
            report = await self.conversion.generate_report()
        except Exception:
            logger.exception("Error generating report")
            self.notifier.notify(
                "Report Generation Failed", "Failed to generate the conversion report", destructive=True
            )
            return None

        if report is None:
            self.notifier.notify(
                "Report Generation Failed",
                "No report was generated. Please ensure you have converted files.",
                destructive=True,
            )
            return None

        self.report = report
        self.show_report = True
        self.notifier.notify("Report Generated", "Migration report has been generated successfully")
        return report

    def close_report(self) -> None:
        self.show_report = False

    # ------------------------------------------------------------------
    # reset, overlays, navigation
    # ------------------------------------------------------------------

    def handle_reset_migration(self) -> bool:
        self.files = []
        self.conversion_results = []
        self.selected_file = None
        self.report = None
        self.last_upload_outcomes = []
        self.active_tab = "upload"
        try:
            result = self.migration_manager.handle_code_upload([], new_migration=True)
        except Exception:
            logger.exception("Error resetting migration")
            result = UploadResult()

        if result.migration_id is None:
            self.notifier.notify("Reset Error", "Failed to reset migration. Please try again.", destructive=True)
            return False

        self.notifier.notify(
            "Migration Reset", "The current migration has been reset. You can start a new conversion."
        )
        return True

    def open_wizard(self) -> None:
        self.show_wizard = True

    def close_wizard(self) -> None:
        self.show_wizard = False

    def next_wizard_step(self) -> int:
        self.wizard_step = min(self.wizard_step + 1, WIZARD_LAST_STEP)
        return self.wizard_step

    def show_help_panel(self) -> None:
        self.show_help = True

    def close_help(self) -> None:
        self.show_help = False

    def go_to_history(self) -> None:
        self._navigate("/history", {"returnTab": self.active_tab})

    def go_home(self) -> None:
        self._navigate("/", None)
