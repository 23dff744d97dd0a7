"""Account, classification and counter models.

IMPORTANT: ClassificationResult.source holds the cleartext of a weak password.
It is excluded from repr() so it never lands in a log line by accident.
Only a report sink configured with expose_cleartext may render it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import NamedTuple, Optional


# ─── Accounts ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AccountRecord:
    """One account as supplied by the directory collaborator.

    Fields:
        identifier: Account name (e.g. ``CONTOSO\\carol``).
        hash:       Stored credential hash, or None when the account has no
                    credential-hash attribute at all. None is NOT the same as
                    the blank-password hash, which is a well-formed value.
        enabled:    Account state. Only consulted for linked identities; the
                    primary stream is already filtered to enabled accounts.
    """

    identifier: str
    hash: Optional[str] = None
    enabled: bool = True


@dataclass(frozen=True)
class HashEntry:
    """A single HashIndex entry: canonical hash -> cleartext that produced it."""

    hash: str
    source: str = field(repr=False)

    @property
    def is_sentinel(self) -> bool:
        return self.source == ""


# ─── Classification ───────────────────────────────────────────────────────────


class Classification(str, Enum):
    COMPLIANT = "COMPLIANT"
    WEAK = "WEAK"
    NULL_CREDENTIAL = "NULL_CREDENTIAL"
    WEAK_WITH_LINKED_DUPLICATE = "WEAK_WITH_LINKED_DUPLICATE"
    MALFORMED = "MALFORMED"


_WEAK_CLASSIFICATIONS = frozenset({
    Classification.WEAK,
    Classification.WEAK_WITH_LINKED_DUPLICATE,
})


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one AccountRecord.

    WEAK_WITH_LINKED_DUPLICATE is a refinement of WEAK: the account matched a
    weak entry AND its linked identity shares the same hash. ``is_weak`` is
    True for both.

    Fields:
        identifier:        Account identifier from the input record.
        classification:    One of Classification.
        source:            Matched cleartext for weak results ("" for the blank
                           credential). None otherwise. Hidden from repr().
        linked_identifier: Linked identity sharing the hash (refinement only).
        error:             Reason string for MALFORMED results.
    """

    identifier: str
    classification: Classification
    source: Optional[str] = field(default=None, repr=False)
    linked_identifier: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_weak(self) -> bool:
        return self.classification in _WEAK_CLASSIFICATIONS

    @property
    def linked_duplicate(self) -> bool:
        return self.classification is Classification.WEAK_WITH_LINKED_DUPLICATE

    @property
    def is_blank_credential(self) -> bool:
        """True when the account matched the blank-password sentinel."""
        return self.is_weak and self.source == ""


# ─── Counters ─────────────────────────────────────────────────────────────────


@dataclass
class LoadStats:
    """Per-source wordlist load statistics.

    non_utf8_lines counts lines decoded with a legacy single-byte codec.
    For a source that failed partway the counts cover the lines read before
    the failure; those entries are in the index.
    """

    source: str
    lines_seen: int = 0
    empty_lines_skipped: int = 0
    entries_added: int = 0
    duplicates_skipped: int = 0
    non_utf8_lines: int = 0


@dataclass
class LoadSummary:
    """Aggregate of every LoadStats from one index build."""

    stats: list[LoadStats] = field(default_factory=list)
    failed_sources: list[str] = field(default_factory=list)

    def add(self, stats: LoadStats) -> None:
        self.stats.append(stats)

    @property
    def sources(self) -> list[str]:
        names = [s.source for s in self.stats]
        return names + [f for f in self.failed_sources if f not in names]

    @property
    def lines_seen(self) -> int:
        return sum(s.lines_seen for s in self.stats)

    @property
    def empty_lines_skipped(self) -> int:
        return sum(s.empty_lines_skipped for s in self.stats)

    @property
    def entries_added(self) -> int:
        return sum(s.entries_added for s in self.stats)

    @property
    def duplicates_skipped(self) -> int:
        return sum(s.duplicates_skipped for s in self.stats)


@dataclass
class ScanCounters:
    """Running totals for one scan.

    Created at scan start, mutated only by ComplianceScanner, read once at the
    end for reporting. ``weak_found`` includes linked duplicates;
    ``linked_duplicates`` is the subset whose linked identity shares the hash.
    """

    accounts_scanned: int = 0
    compliant: int = 0
    weak_found: int = 0
    null_credentials: int = 0
    malformed_hashes: int = 0
    linked_duplicates: int = 0
    linked_lookup_failures: int = 0
    wordlist_entries_loaded: int = 0
    wordlist_duplicates_skipped: int = 0
    wordlist_empty_lines_skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class ScanOutcome(NamedTuple):
    """Return value of ComplianceScanner.scan(): unpacks as (results, counters)."""

    results: list[ClassificationResult]
    counters: ScanCounters
