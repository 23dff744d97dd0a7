"""CSV export sink: one row per weak account.

Only WEAK and WEAK_WITH_LINKED_DUPLICATE results are written. The password
column is empty unless the sink was created with expose_cleartext=True.
"""

from __future__ import annotations

import csv
import os
from typing import IO, Optional

from credaudit.models.account import ClassificationResult, ScanCounters
from credaudit.report.models import CSV_COLUMNS, FindingRecord
from credaudit.utils.logger import get_logger

logger = get_logger(__name__)


class CsvReportSink:
    """Writes FindingRecord rows to ``path`` (created or truncated).

    Raises:
        OSError: From the constructor if the file cannot be created.
    """

    def __init__(self, path: str, run_id: str, expose_cleartext: bool = False) -> None:
        self._path = os.path.expanduser(path)
        self._run_id = run_id
        self._expose_cleartext = expose_cleartext
        parent_dir = os.path.dirname(self._path)
        if parent_dir:
            os.makedirs(parent_dir, exist_ok=True)
        self._fh: Optional[IO[str]] = open(self._path, "w", newline="", encoding="utf-8")
        self._writer = csv.DictWriter(self._fh, fieldnames=list(CSV_COLUMNS))
        self._writer.writeheader()
        self.rows_written = 0

    @property
    def path(self) -> str:
        return self._path

    async def record(self, result: ClassificationResult) -> None:
        if not result.is_weak or self._fh is None:
            return
        try:
            finding = FindingRecord.from_result(
                result, self._run_id, expose_cleartext=self._expose_cleartext
            )
            self._writer.writerow(finding.as_row())
            self.rows_written += 1
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "csv_export_write_failed",
                path=self._path,
                identifier=result.identifier,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def summarize(self, counters: ScanCounters) -> None:
        logger.info("CSV export written", path=self._path, rows=self.rows_written)

    async def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
