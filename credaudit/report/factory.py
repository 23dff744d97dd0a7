"""Report sink factory: builds the sink stack for one audit run.

Selection:
  1. LogReportSink always (honours verbose / expose_cleartext)
  2. CsvReportSink when report.export_records and report.csv_path are set
  3. SQLiteReportSink when report.export_records and report.sqlite_path are set

Raises on construction failures (unwritable CSV path, incompatible SQLite
schema) so the run stops before scanning rather than losing findings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from credaudit.models.account import ClassificationResult, ScanCounters
from credaudit.report.csv_sink import CsvReportSink
from credaudit.report.log_sink import LogReportSink
from credaudit.report.protocol import ReportSink
from credaudit.utils.logger import get_logger

if TYPE_CHECKING:
    from credaudit.config import ReportConfig

logger = get_logger(__name__)


class CompositeReportSink:
    """Fans every event out to a list of sinks, in order."""

    def __init__(self, sinks: list[ReportSink]) -> None:
        self.sinks = list(sinks)

    async def record(self, result: ClassificationResult) -> None:
        for sink in self.sinks:
            await sink.record(result)

    async def summarize(self, counters: ScanCounters) -> None:
        for sink in self.sinks:
            await sink.summarize(counters)

    async def close(self) -> None:
        for sink in self.sinks:
            try:
                await sink.close()
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "report_sink_close_failed",
                    sink=type(sink).__name__,
                    error=str(exc),
                )


async def create_report_sink(report: "ReportConfig", run_id: str) -> CompositeReportSink:
    """Create and initialize the configured sinks.

    Args:
        report: ReportConfig section of the loaded Config.
        run_id: ULID of the audit run, stamped on exported records.

    Raises:
        OSError:      If the CSV export file cannot be created.
        RuntimeError: If the SQLite findings store has an incompatible schema.
    """
    options = report.options()
    sinks: list[ReportSink] = [LogReportSink(options)]

    if options.export_records and report.csv_path:
        sinks.append(CsvReportSink(report.csv_path, run_id, expose_cleartext=options.expose_cleartext))
        logger.info("report_sink_selected", sink="CsvReportSink", path=report.csv_path)

    if options.export_records and report.sqlite_path:
        from credaudit.report.sqlite_sink import SQLiteReportSink

        sqlite_sink = SQLiteReportSink(
            report.sqlite_path, run_id, expose_cleartext=options.expose_cleartext
        )
        try:
            await sqlite_sink.initialize()
        except Exception:
            # The caller never receives the composite; release what is open
            await CompositeReportSink(sinks).close()
            raise
        sinks.append(sqlite_sink)
        logger.info("report_sink_selected", sink="SQLiteReportSink", path=report.sqlite_path)

    if options.export_records and len(sinks) == 1:
        logger.warning("export_records is set but no csv_path or sqlite_path is configured")

    return CompositeReportSink(sinks)
