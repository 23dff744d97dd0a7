"""Report options and the structured finding record.

IMPORTANT: FindingRecord.password is populated ONLY when the caller enabled
expose_cleartext. The scanner always carries the cleartext; deciding whether
to render it belongs here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from credaudit.models.account import ClassificationResult


@dataclass
class ReportOptions:
    """Caller-supplied reporting flags.

    verbose:          emit per-record detail for every account, not just findings
    expose_cleartext: include the matched weak password in findings
    export_records:   write one structured record per weak account (CSV/SQLite)
    """

    verbose: bool = False
    expose_cleartext: bool = False
    export_records: bool = False


@dataclass
class FindingRecord:
    """One exported row: a weak account, optionally with its matched password."""

    run_id: str
    identifier: str
    classification: str
    blank_password: bool
    linked_identifier: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_result(
        cls,
        result: ClassificationResult,
        run_id: str,
        expose_cleartext: bool = False,
    ) -> "FindingRecord":
        return cls(
            run_id=run_id,
            identifier=result.identifier,
            classification=result.classification.value,
            blank_password=result.is_blank_credential,
            linked_identifier=result.linked_identifier,
            password=result.source if expose_cleartext else None,
        )

    def as_row(self) -> dict[str, object]:
        return {
            "run_id": self.run_id,
            "timestamp": self.timestamp.isoformat(),
            "identifier": self.identifier,
            "classification": self.classification,
            "blank_password": self.blank_password,
            "linked_identifier": self.linked_identifier or "",
            "password": self.password if self.password is not None else "",
        }


CSV_COLUMNS: tuple[str, ...] = (
    "run_id",
    "timestamp",
    "identifier",
    "classification",
    "blank_password",
    "linked_identifier",
    "password",
)
