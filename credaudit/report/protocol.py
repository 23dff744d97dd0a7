"""ReportSink Protocol + NullReportSink.

Layout:
    models.py    : ReportOptions + FindingRecord
    protocol.py  : ReportSink Protocol + NullReportSink
    log_sink.py  : structlog sink (always on)
    csv_sink.py  : CSV export
    sqlite_sink.py: aiosqlite findings store
    factory.py   : CompositeReportSink + create_report_sink()
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from credaudit.models.account import ClassificationResult, ScanCounters
from credaudit.utils.logger import get_logger

logger = get_logger(__name__)


@runtime_checkable
class ReportSink(Protocol):
    """Consumer of classification events and the final counter summary.

    record() and summarize() must NEVER raise: a reporting failure is logged
    and the audit run carries on.
    """

    async def record(self, result: ClassificationResult) -> None:
        """Consume one classification result, in scan order."""
        ...

    async def summarize(self, counters: ScanCounters) -> None:
        """Consume the end-of-scan counters. Called once per run."""
        ...

    async def close(self) -> None:
        """Flush and release resources."""
        ...


class NullReportSink:
    """No-op ReportSink for tests and library callers that only want results."""

    async def record(self, result: ClassificationResult) -> None:
        logger.debug("NullReportSink.record", identifier=result.identifier)

    async def summarize(self, counters: ScanCounters) -> None:
        return None

    async def close(self) -> None:
        return None


assert isinstance(NullReportSink(), ReportSink), (
    "NullReportSink does not satisfy ReportSink protocol"
)
