"""Compliance scanner: classifies accounts against a built HashIndex.

Per record (order preserved relative to input):
  1. hash is None                 → NULL_CREDENTIAL
  2. hash not a well-formed digest → MALFORMED (counted, scan continues)
  3. hash not in index             → COMPLIANT
  4. hash in index with source S   → WEAK, refined to WEAK_WITH_LINKED_DUPLICATE
                                     when the linked identity is enabled and
                                     shares the same hash

INVARIANTS:
  - The index is only read. Counters are owned and mutated by scan() alone.
  - The linked check can add information but never removes it: lookup errors
    and timeouts leave the record WEAK.
  - Classification of one record is a pure function of (record, index,
    linked lookup result). Two scans over the same inputs are identical.
  - An empty account stream raises NoAccountsRetrieved.
"""

from __future__ import annotations

import asyncio
from typing import Iterable, NamedTuple, Optional

import re2  # google-re2. NEVER: import re

from credaudit.constants import (
    DEFAULT_LINKED_SUFFIX,
    DEFAULT_LINKED_TIMEOUT_S,
    DEFAULT_MAX_CONCURRENCY,
    MAX_CONCURRENCY_CAP,
)
from credaudit.errors import LinkedLookupFailed, MalformedHash, NoAccountsRetrieved
from credaudit.index.hash_index import HashIndex
from credaudit.index.hashing import HashFormat, normalize_hash
from credaudit.models.account import (
    AccountRecord,
    Classification,
    ClassificationResult,
    LoadSummary,
    ScanCounters,
    ScanOutcome,
)
from credaudit.scanner.linked import LinkedIdentityProbe, LinkedLookup
from credaudit.utils.logger import get_logger

logger = get_logger(__name__)

# Accepted digest shape when no HashFormat is configured.
_GENERIC_HEX_PATTERN = r"[0-9A-Fa-f]+"


class _Classified(NamedTuple):
    result: ClassificationResult
    lookup_failed: bool = False


class ComplianceScanner:
    """Single-pass account classifier.

    Args:
        hash_format:      Expected digest format. Records whose hash does not
                          match it are MALFORMED. None accepts any hex string.
        linked_suffix:    Suffix naming a primary account's linked identity.
        lookup_timeout_s: Timeout for one linked-identity lookup.
        max_concurrency:  Records classified concurrently per batch. Output
                          order is preserved regardless.
    """

    def __init__(
        self,
        hash_format: Optional[HashFormat] = None,
        linked_suffix: str = DEFAULT_LINKED_SUFFIX,
        lookup_timeout_s: float = DEFAULT_LINKED_TIMEOUT_S,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        if not 1 <= max_concurrency <= MAX_CONCURRENCY_CAP:
            raise ValueError(
                f"max_concurrency must be between 1 and {MAX_CONCURRENCY_CAP}, "
                f"got {max_concurrency}"
            )
        self.hash_format = hash_format
        self.linked_suffix = linked_suffix
        self.lookup_timeout_s = lookup_timeout_s
        self.max_concurrency = max_concurrency

    # ── Public API ────────────────────────────────────────────────────────────

    async def scan(
        self,
        accounts: Iterable[AccountRecord],
        index: HashIndex,
        linked_lookup: Optional[LinkedLookup] = None,
        load_summary: Optional[LoadSummary] = None,
    ) -> ScanOutcome:
        """Classify every account in ``accounts`` against ``index``.

        Args:
            accounts:      Account stream, consumed once, in order.
            index:         Built HashIndex (read only).
            linked_lookup: Optional directory capability for the linked check.
            load_summary:  Wordlist statistics to carry into the counters.

        Returns:
            ScanOutcome(results, counters), results in input order.

        Raises:
            NoAccountsRetrieved: If ``accounts`` yields nothing.
        """
        counters = ScanCounters()
        if load_summary is not None:
            counters.wordlist_entries_loaded = load_summary.entries_added
            counters.wordlist_duplicates_skipped = load_summary.duplicates_skipped
            counters.wordlist_empty_lines_skipped = load_summary.empty_lines_skipped

        probe: Optional[LinkedIdentityProbe] = None
        if linked_lookup is not None:
            probe = LinkedIdentityProbe(
                linked_lookup,
                suffix=self.linked_suffix,
                timeout_s=self.lookup_timeout_s,
            )

        results: list[ClassificationResult] = []
        batch: list[AccountRecord] = []
        for record in accounts:
            batch.append(record)
            if len(batch) >= self.max_concurrency:
                await self._run_batch(batch, index, probe, results, counters)
                batch = []
        if batch:
            await self._run_batch(batch, index, probe, results, counters)

        if counters.accounts_scanned == 0:
            raise NoAccountsRetrieved()

        logger.info("Scan complete", **counters.to_dict())
        return ScanOutcome(results=results, counters=counters)

    async def classify(
        self,
        record: AccountRecord,
        index: HashIndex,
        linked_lookup: Optional[LinkedLookup] = None,
    ) -> ClassificationResult:
        """Classify a single record. Convenience wrapper; no counters."""
        probe = None
        if linked_lookup is not None:
            probe = LinkedIdentityProbe(
                linked_lookup,
                suffix=self.linked_suffix,
                timeout_s=self.lookup_timeout_s,
            )
        classified = await self._classify(record, index, probe)
        return classified.result

    # ── Internals ─────────────────────────────────────────────────────────────

    async def _run_batch(
        self,
        batch: list[AccountRecord],
        index: HashIndex,
        probe: Optional[LinkedIdentityProbe],
        results: list[ClassificationResult],
        counters: ScanCounters,
    ) -> None:
        if len(batch) == 1:
            classified = [await self._classify(batch[0], index, probe)]
        else:
            # gather() returns in argument order: indexed reassembly for free
            classified = await asyncio.gather(
                *(self._classify(record, index, probe) for record in batch)
            )
        for item in classified:
            _tally(counters, item)
            results.append(item.result)

    async def _classify(
        self,
        record: AccountRecord,
        index: HashIndex,
        probe: Optional[LinkedIdentityProbe],
    ) -> _Classified:
        # ── Step 1: no credential attribute at all ───────────────────────────
        if record.hash is None:
            return _Classified(ClassificationResult(
                identifier=record.identifier,
                classification=Classification.NULL_CREDENTIAL,
            ))

        # ── Step 2: digest shape ─────────────────────────────────────────────
        try:
            self._check_well_formed(record)
        except MalformedHash as exc:
            logger.warning(
                "Malformed credential hash; account skipped",
                identifier=record.identifier,
                hash_format=exc.hash_format,
            )
            return _Classified(ClassificationResult(
                identifier=record.identifier,
                classification=Classification.MALFORMED,
                error=str(exc),
            ))

        # ── Step 3: index lookup ─────────────────────────────────────────────
        source = index.lookup(record.hash)
        if source is None:
            return _Classified(ClassificationResult(
                identifier=record.identifier,
                classification=Classification.COMPLIANT,
            ))

        weak = ClassificationResult(
            identifier=record.identifier,
            classification=Classification.WEAK,
            source=source,
        )
        if probe is None:
            return _Classified(weak)

        # ── Step 4: linked identity (secondary, never fatal) ─────────────────
        try:
            linked = await probe.fetch(record.identifier)
        except LinkedLookupFailed as exc:
            logger.warning(
                "Linked identity lookup failed; treating as absent",
                identifier=record.identifier,
                linked_identifier=exc.identifier,
                reason=exc.reason,
            )
            return _Classified(weak, lookup_failed=True)

        if _shares_credential(record, linked):
            return _Classified(ClassificationResult(
                identifier=record.identifier,
                classification=Classification.WEAK_WITH_LINKED_DUPLICATE,
                source=source,
                linked_identifier=linked.identifier,  # type: ignore[union-attr]
            ))
        return _Classified(weak)

    def _check_well_formed(self, record: AccountRecord) -> None:
        value = record.hash or ""
        if self.hash_format is not None:
            if not self.hash_format.is_well_formed(value):
                raise MalformedHash(record.identifier, self.hash_format.name)
        elif re2.fullmatch(_GENERIC_HEX_PATTERN, value.strip()) is None:
            raise MalformedHash(record.identifier, "hex")


def _shares_credential(record: AccountRecord, linked: Optional[AccountRecord]) -> bool:
    """True when ``linked`` exists, is enabled and has the same canonical hash."""
    if linked is None or not linked.enabled or linked.hash is None:
        return False
    return normalize_hash(linked.hash) == normalize_hash(record.hash or "")


def _tally(counters: ScanCounters, item: _Classified) -> None:
    counters.accounts_scanned += 1
    if item.lookup_failed:
        counters.linked_lookup_failures += 1

    classification = item.result.classification
    if classification is Classification.COMPLIANT:
        counters.compliant += 1
    elif classification is Classification.NULL_CREDENTIAL:
        counters.null_credentials += 1
    elif classification is Classification.MALFORMED:
        counters.malformed_hashes += 1
    else:
        counters.weak_found += 1
        if classification is Classification.WEAK_WITH_LINKED_DUPLICATE:
            counters.linked_duplicates += 1
