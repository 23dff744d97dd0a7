"""Audit run orchestration.

run_audit() is the single entry point that ties the engine to its
collaborators:

  1. build_index()      sentinel first, then every wordlist source
                        → NoWeakEntriesLoaded if no source contributed an entry
  2. create sinks       LogReportSink + configured exports
  3. scanner.scan()     directory.accounts(), linked lookup via the directory
                        → NoAccountsRetrieved on an empty stream
  4. report             every result in scan order, then the counters
  5. close sinks        always, including on failure

Every log line emitted during a run carries the run's ULID as ``run_id``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Optional

import httpx

from credaudit.config import Config
from credaudit.directory.protocol import AccountDirectory
from credaudit.errors import NoWeakEntriesLoaded
from credaudit.index.hash_index import HashIndex
from credaudit.index.hashing import HashFormat, get_hash_format
from credaudit.index.loader import WordlistLoader
from credaudit.models.account import ClassificationResult, LoadSummary, ScanCounters
from credaudit.report.factory import create_report_sink
from credaudit.report.protocol import ReportSink
from credaudit.scanner.engine import ComplianceScanner
from credaudit.utils.logger import PerformanceLogger, clear_run_id, get_logger, set_run_id
from credaudit.utils.ulid import generate_ulid

logger = get_logger(__name__)


@dataclass
class AuditSummary:
    """Everything a caller needs after a completed run."""

    run_id: str
    counters: ScanCounters
    load_summary: LoadSummary
    results: list[ClassificationResult] = field(default_factory=list, repr=False)

    @property
    def findings(self) -> list[ClassificationResult]:
        return [r for r in self.results if r.is_weak]


def build_index(
    sources: list[str],
    hash_format: HashFormat,
    http_client: Optional[httpx.Client] = None,
) -> tuple[HashIndex, LoadSummary]:
    """Build and seal a HashIndex from ``sources``.

    Raises:
        NoWeakEntriesLoaded: If the index ends up holding only the sentinel.
    """
    index = HashIndex.with_sentinel(hash_format.blank_hash)
    loader = WordlistLoader(hash_format.hash_fn, http_client=http_client)
    summary = loader.load_sources(sources, index)

    if index.wordlist_size == 0:
        raise NoWeakEntriesLoaded(list(sources), summary.failed_sources)

    index.seal()
    logger.info(
        "Hash index built",
        entries=index.size(),
        wordlist_entries=index.wordlist_size,
        duplicates_skipped=summary.duplicates_skipped,
        empty_lines_skipped=summary.empty_lines_skipped,
        failed_sources=summary.failed_sources,
    )
    return index, summary


async def run_audit(
    config: Config,
    directory: AccountDirectory,
    sink: Optional[ReportSink] = None,
    run_id: Optional[str] = None,
) -> AuditSummary:
    """Run one complete audit.

    Args:
        config:    Loaded Config.
        directory: Account source and linked-identity lookup.
        sink:      Report sink. Defaults to create_report_sink(config.report).
        run_id:    Run identifier. Defaults to a new ULID.

    Raises:
        NoWeakEntriesLoaded: No wordlist contributed an entry.
        NoAccountsRetrieved: The directory returned no accounts.
    """
    run_id = run_id or generate_ulid()
    set_run_id(run_id)
    hash_format = get_hash_format(config.hash_format)
    logger.info(
        "Audit run started",
        hash_format=hash_format.name,
        wordlists=config.wordlists,
        linked_check=config.linked.enabled,
    )

    try:
        with PerformanceLogger("Index build", logger):
            # Wordlist reads block (file / HTTP); keep them off the event loop
            index, load_summary = await asyncio.to_thread(
                build_index, config.wordlists, hash_format
            )

        if sink is None:
            sink = await create_report_sink(config.report, run_id)

        scanner = ComplianceScanner(
            hash_format=hash_format,
            linked_suffix=config.linked.suffix,
            lookup_timeout_s=config.linked.timeout_s,
            max_concurrency=config.scanner.max_concurrency,
        )
        linked_lookup = directory.get_account if config.linked.enabled else None

        with PerformanceLogger("Scan", logger):
            outcome = await scanner.scan(
                directory.accounts(),
                index,
                linked_lookup=linked_lookup,
                load_summary=load_summary,
            )

        for result in outcome.results:
            await sink.record(result)
        await sink.summarize(outcome.counters)

        return AuditSummary(
            run_id=run_id,
            counters=outcome.counters,
            load_summary=load_summary,
            results=outcome.results,
        )
    finally:
        if sink is not None:
            await sink.close()
        clear_run_id()
