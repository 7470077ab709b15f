from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterable

from backend.app.schemas.dashboard import ConversionReport
from backend.app.schemas.migrations import FileType

if TYPE_CHECKING:
    from backend.app.services.dashboard import DashboardController


class BaseConversionLogic(ABC):
    """Abstract conversion engine bound to one dashboard controller.

    Implementations read ``controller.files``, ``controller.custom_prompt`` and
    ``controller.selected_ai_model``, push results back with
    ``controller.apply_file_update`` and persist them through the controller's
    migration manager.
    """

    def __init__(self, controller: DashboardController) -> None:
        self.controller = controller
        self.converting_file_ids: set[str] = set()

    @property
    def is_converting(self) -> bool:
        return bool(self.converting_file_ids)

    @abstractmethod
    async def convert_file(self, file_id: str) -> None:
        """Convert a single file and record the outcome."""

    @abstractmethod
    async def generate_report(self) -> ConversionReport | None:
        """Build a report over the converted files, or None when there is nothing to report."""

    async def convert_selected(self, file_ids: Iterable[str]) -> None:
        for file_id in list(file_ids):
            await self.convert_file(file_id)

    async def convert_all_by_type(self, file_type: FileType) -> None:
        await self.convert_selected(
            f.id for f in self.controller.files
            if f.type == file_type and f.conversion_status in ("pending", "failed")
        )

    async def convert_all(self) -> None:
        await self.convert_selected(
            f.id for f in self.controller.files if f.conversion_status in ("pending", "failed")
        )
