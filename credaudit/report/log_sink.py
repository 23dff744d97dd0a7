"""Structured-log report sink.

Findings (weak, linked duplicate, malformed) are logged at WARNING on every
run. Compliant and null-credential accounts are logged at INFO only when
``verbose`` is set. The matched password is rendered only with
``expose_cleartext``.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog

from credaudit.models.account import Classification, ClassificationResult, ScanCounters
from credaudit.report.models import ReportOptions
from credaudit.utils.logger import get_logger


class LogReportSink:
    """ReportSink that writes one structlog event per reported account."""

    def __init__(
        self,
        options: ReportOptions,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
    ) -> None:
        self._options = options
        self._logger = logger or get_logger("credaudit.report")

    async def record(self, result: ClassificationResult) -> None:
        try:
            self._emit(result)
        except Exception as exc:  # noqa: BLE001
            self._logger.error(
                "log_sink_record_failed",
                identifier=result.identifier,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    def _emit(self, result: ClassificationResult) -> None:
        fields: dict[str, Any] = {
            "identifier": result.identifier,
            "classification": result.classification.value,
        }
        classification = result.classification

        if result.is_weak:
            fields["blank_password"] = result.is_blank_credential
            if self._options.expose_cleartext:
                fields["password"] = result.source
            if classification is Classification.WEAK_WITH_LINKED_DUPLICATE:
                fields["linked_identifier"] = result.linked_identifier
                self._logger.warning(
                    "Weak password shared with linked account", **fields
                )
            else:
                self._logger.warning("Weak password in use", **fields)
            return

        if classification is Classification.MALFORMED:
            self._logger.warning("Unreadable credential hash", error=result.error, **fields)
            return

        if self._options.verbose:
            if classification is Classification.NULL_CREDENTIAL:
                self._logger.info("No credential hash stored", **fields)
            else:
                self._logger.info("Account compliant", **fields)

    async def summarize(self, counters: ScanCounters) -> None:
        self._logger.info("Audit summary", **counters.to_dict())

    async def close(self) -> None:
        return None
