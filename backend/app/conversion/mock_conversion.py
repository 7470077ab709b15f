import logging
import re
import time
from datetime import datetime, timezone

from .base import BaseConversionLogic
from backend.app.schemas.dashboard import ConversionReport, ConversionResult

logger = logging.getLogger("migrations.conversion")


class MockConversionLogic(BaseConversionLogic):
    """
    Offline conversion engine used when no AI engine is wired in.
    Rewrites a handful of Sybase type names to their Oracle counterparts.
    Replace with a real engine for production.
    """

    TYPE_MAP = {
        "DATETIME": "TIMESTAMP",
        "SMALLDATETIME": "DATE",
        "VARCHAR": "VARCHAR2",
        "NVARCHAR": "NVARCHAR2",
        "TINYINT": "NUMBER(3)",
        "SMALLINT": "NUMBER(5)",
        "INT": "NUMBER(10)",
        "BIT": "NUMBER(1)",
        "MONEY": "NUMBER(19,4)",
        "TEXT": "CLOB",
        "IMAGE": "BLOB",
    }

    _TYPE_PATTERN = re.compile(r"\b(" + "|".join(TYPE_MAP) + r")\b", re.IGNORECASE)

    def _convert(self, content: str) -> tuple[str, list[dict]]:
        found: dict[str, str] = {}

        def _swap(match: re.Match) -> str:
            source = match.group(1).upper()
            found[source] = self.TYPE_MAP[source]
            return self.TYPE_MAP[source]

        converted = self._TYPE_PATTERN.sub(_swap, content)
        mapping = [
            {"sourceType": source, "targetType": target, "description": "[MOCK] keyword substitution"}
            for source, target in found.items()
        ]
        return converted, mapping

    async def convert_file(self, file_id: str) -> None:
        controller = self.controller
        file = controller.get_file(file_id)
        if file is None:
            logger.warning("Cannot convert unknown file=%s", file_id)
            return

        self.converting_file_ids.add(file_id)
        started = time.perf_counter()
        try:
            if not file.content.strip():
                fields = {
                    "conversion_status": "failed",
                    "error_message": "Source file is empty",
                }
            else:
                converted, mapping = self._convert(file.content)
                header = f"-- Converted with {controller.selected_ai_model}"
                if controller.custom_prompt:
                    header += f" (prompt: {controller.custom_prompt})"
                fields = {
                    "conversion_status": "success",
                    "converted_content": f"{header}\n{converted}",
                    "data_type_mapping": mapping,
                    "issues": [],
                    "performance_metrics": {
                        "conversionTimeMs": round((time.perf_counter() - started) * 1000, 3),
                        "linesOfCode": len(file.content.splitlines()),
                    },
                }

            saved = controller.migration_manager.update_file_status(
                file_id,
                fields["conversion_status"],
                converted_content=fields.get("converted_content"),
                error_message=fields.get("error_message"),
                data_type_mapping=fields.get("data_type_mapping"),
                performance_metrics=fields.get("performance_metrics"),
                issues=fields.get("issues"),
            )
            if not saved:
                logger.warning("[MOCK] Result for file=%s was not saved, leaving dashboard state unchanged", file.name)
                return

            updated = controller.apply_file_update(file_id, **fields)
            controller.record_result(ConversionResult(
                file_id=updated.id,
                file_name=updated.name,
                status=updated.conversion_status,
                converted_content=updated.converted_content,
                error_message=updated.error_message,
                issues=updated.issues or [],
            ))
            logger.info("[MOCK] Converted file=%s status=%s", file.name, fields["conversion_status"])
        finally:
            self.converting_file_ids.discard(file_id)

    async def generate_report(self) -> ConversionReport | None:
        results = self.controller.conversion_results
        converted = [r for r in results if r.status == "success"]
        if not converted:
            return None

        failed = [r for r in results if r.status == "failed"]
        return ConversionReport(
            timestamp=datetime.now(timezone.utc),
            files_processed=len(results),
            success_count=len(converted),
            failed_count=len(failed),
            summary=(
                f"{len(converted)} of {len(results)} files converted successfully"
                + (f", {len(failed)} failed." if failed else ".")
            ),
            results=list(results),
        )
