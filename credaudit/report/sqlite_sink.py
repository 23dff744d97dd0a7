"""SQLiteReportSink: aiosqlite-based findings store.

Uses aiosqlite EXCLUSIVELY. The stdlib sqlite3 synchronous module is
PROHIBITED in credaudit/report/.

Features:
  - WAL mode: PRAGMA journal_mode=WAL
  - Schema version guard: PRAGMA user_version=1, RuntimeError on mismatch
  - Long-lived connection: opened in initialize(), closed in close()
  - Idempotent writes: INSERT OR IGNORE on (run_id, identifier)
  - One audit_runs row per run carrying the final ScanCounters
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Optional

import aiosqlite

from credaudit.models.account import ClassificationResult, ScanCounters
from credaudit.report.models import FindingRecord
from credaudit.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Schema DDL ───────────────────────────────────────────────────────────────

_CREATE_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS findings (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id              TEXT NOT NULL,
    timestamp           TEXT NOT NULL,
    identifier          TEXT NOT NULL,
    classification      TEXT NOT NULL CHECK(classification IN ('WEAK', 'WEAK_WITH_LINKED_DUPLICATE')),
    blank_password      INTEGER NOT NULL DEFAULT 0,
    linked_identifier   TEXT,
    password            TEXT,
    UNIQUE(run_id, identifier)
);

CREATE INDEX IF NOT EXISTS idx_findings_run
    ON findings(run_id);

CREATE TABLE IF NOT EXISTS audit_runs (
    run_id                          TEXT PRIMARY KEY,
    completed_at                    TEXT NOT NULL,
    accounts_scanned                INTEGER NOT NULL,
    compliant                       INTEGER NOT NULL,
    weak_found                      INTEGER NOT NULL,
    null_credentials                INTEGER NOT NULL,
    malformed_hashes                INTEGER NOT NULL,
    linked_duplicates               INTEGER NOT NULL,
    linked_lookup_failures          INTEGER NOT NULL,
    wordlist_entries_loaded         INTEGER NOT NULL,
    wordlist_duplicates_skipped     INTEGER NOT NULL,
    wordlist_empty_lines_skipped    INTEGER NOT NULL
);
"""

_SCHEMA_VERSION = 1

_RUN_COLUMNS: tuple[str, ...] = (
    "accounts_scanned",
    "compliant",
    "weak_found",
    "null_credentials",
    "malformed_hashes",
    "linked_duplicates",
    "linked_lookup_failures",
    "wordlist_entries_loaded",
    "wordlist_duplicates_skipped",
    "wordlist_empty_lines_skipped",
)


def _row_to_finding(row: aiosqlite.Row) -> FindingRecord:
    return FindingRecord(
        run_id=row["run_id"],
        identifier=row["identifier"],
        classification=row["classification"],
        blank_password=bool(row["blank_password"]),
        linked_identifier=row["linked_identifier"],
        password=row["password"],
        timestamp=datetime.fromisoformat(row["timestamp"]),
    )


class SQLiteReportSink:
    """Async SQLite findings store.

    Usage:
        sink = SQLiteReportSink("~/.credaudit/findings.db", run_id)
        await sink.initialize()   # raises RuntimeError on schema version mismatch
        await sink.record(result)
        await sink.summarize(counters)
        await sink.close()
    """

    def __init__(self, db_path: str, run_id: str, expose_cleartext: bool = False) -> None:
        self._db_path: str = os.path.expanduser(db_path)
        self._run_id = run_id
        self._expose_cleartext = expose_cleartext
        self._db: Optional[aiosqlite.Connection] = None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Open the connection, enable WAL mode, and create/verify the schema.

        Raises:
            RuntimeError: If PRAGMA user_version is neither 0 nor 1.
        """
        parent_dir = os.path.dirname(self._db_path)
        if parent_dir:
            os.makedirs(parent_dir, exist_ok=True)

        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.execute("PRAGMA journal_mode=WAL;")

        cursor = await self._db.execute("PRAGMA user_version;")
        row = await cursor.fetchone()
        current_version: int = row[0] if row else 0

        if current_version == 0:
            await self._db.executescript(_CREATE_SCHEMA_SQL)
            # executescript may not honour PRAGMA in all SQLite builds
            await self._db.execute(f"PRAGMA user_version = {_SCHEMA_VERSION};")
            await self._db.commit()
            logger.info(
                "findings_db_schema_created",
                db_path=self._db_path,
                schema_version=_SCHEMA_VERSION,
            )
        elif current_version == _SCHEMA_VERSION:
            logger.info(
                "findings_db_schema_ok",
                db_path=self._db_path,
                schema_version=current_version,
            )
        else:
            await self._db.close()
            self._db = None
            raise RuntimeError(
                f"Unsupported findings database schema version: {current_version}. "
                f"Delete {self._db_path} or point report.sqlite_path elsewhere."
            )

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None
            logger.debug("findings_db_closed", db_path=self._db_path)

    # ── ReportSink Protocol Methods ───────────────────────────────────────────

    async def record(self, result: ClassificationResult) -> None:
        """Persist a weak-account finding. Non-findings are ignored.

        Catches ALL exceptions. A write failure never stops the audit.
        """
        if not result.is_weak:
            return
        finding = FindingRecord.from_result(
            result, self._run_id, expose_cleartext=self._expose_cleartext
        )
        try:
            assert self._db is not None, "Database not initialized; call initialize() first"
            await self._db.execute(
                """INSERT OR IGNORE INTO findings
                   (run_id, timestamp, identifier, classification,
                    blank_password, linked_identifier, password)
                   VALUES (?,?,?,?,?,?,?)""",
                (
                    finding.run_id,
                    finding.timestamp.isoformat(),
                    finding.identifier,
                    finding.classification,
                    int(finding.blank_password),
                    finding.linked_identifier,
                    finding.password,
                ),
            )
            await self._db.commit()
        except Exception as exc:
            logger.error(
                "findings_write_failed",
                run_id=self._run_id,
                identifier=result.identifier,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def summarize(self, counters: ScanCounters) -> None:
        """Persist the run's counters as one audit_runs row."""
        values = counters.to_dict()
        placeholders = ",".join("?" for _ in range(len(_RUN_COLUMNS) + 2))
        try:
            assert self._db is not None, "Database not initialized; call initialize() first"
            await self._db.execute(
                f"INSERT OR REPLACE INTO audit_runs (run_id, completed_at, {', '.join(_RUN_COLUMNS)}) "
                f"VALUES ({placeholders})",
                (
                    self._run_id,
                    datetime.now(timezone.utc).isoformat(),
                    *(values[column] for column in _RUN_COLUMNS),
                ),
            )
            await self._db.commit()
        except Exception as exc:
            logger.error(
                "findings_summary_write_failed",
                run_id=self._run_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    # ── Queries ───────────────────────────────────────────────────────────────

    async def query_findings(self, run_id: Optional[str] = None) -> list[FindingRecord]:
        """Findings for ``run_id`` (default: this sink's run), by identifier."""
        assert self._db is not None, "Database not initialized"
        cursor = await self._db.execute(
            "SELECT * FROM findings WHERE run_id = ? ORDER BY identifier",
            (run_id or self._run_id,),
        )
        rows = await cursor.fetchall()
        return [_row_to_finding(row) for row in rows]

    async def get_run_counters(self, run_id: Optional[str] = None) -> Optional[ScanCounters]:
        assert self._db is not None, "Database not initialized"
        cursor = await self._db.execute(
            "SELECT * FROM audit_runs WHERE run_id = ?",
            (run_id or self._run_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return ScanCounters(**{column: row[column] for column in _RUN_COLUMNS})
