"""Exception taxonomy for credaudit.

Recoverable errors (SourceUnavailable, MalformedHash, LinkedLookupFailed) are
raised close to where they occur and caught by the component that owns the
recovery. They never escape a scan. Fatal preconditions (NoWeakEntriesLoaded,
NoAccountsRetrieved) propagate to the caller, which must stop the run.
"""

from __future__ import annotations


class CredAuditError(Exception):
    """Base class for all credaudit errors."""


# ─── Recoverable ──────────────────────────────────────────────────────────────


class SourceUnavailable(CredAuditError):
    """A wordlist source is missing or unreadable. Loading continues."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Wordlist source unavailable: {source} ({reason})")
        self.source = source
        self.reason = reason


class MalformedHash(CredAuditError):
    """An account's stored hash does not parse as the configured format."""

    def __init__(self, identifier: str, hash_format: str) -> None:
        super().__init__(
            f"Hash for account {identifier!r} is not a valid {hash_format} hash"
        )
        self.identifier = identifier
        self.hash_format = hash_format


class LinkedLookupFailed(CredAuditError):
    """The linked-identity lookup timed out or raised. Never escalated."""

    def __init__(self, identifier: str, reason: str) -> None:
        super().__init__(f"Linked identity lookup failed for {identifier!r}: {reason}")
        self.identifier = identifier
        self.reason = reason


# ─── Fatal preconditions ──────────────────────────────────────────────────────


class NoWeakEntriesLoaded(CredAuditError):
    """Every wordlist source failed or was empty; the index holds only the sentinel."""

    def __init__(self, sources: list[str], failed: list[str]) -> None:
        super().__init__(
            "No weak password entries were loaded "
            f"(sources: {sources or ['<none>']}, unavailable: {failed or ['<none>']})"
        )
        self.sources = sources
        self.failed = failed


class NoAccountsRetrieved(CredAuditError):
    """The account stream was empty; there is nothing to audit."""

    def __init__(self) -> None:
        super().__init__("No accounts were retrieved from the directory")


# ─── Programming errors ───────────────────────────────────────────────────────


class DuplicateSentinel(CredAuditError):
    """insert_sentinel() was called on an index that already has a sentinel."""


class SentinelAfterEntries(CredAuditError):
    """insert_sentinel() was called on an index that already holds wordlist entries."""


class IndexSealed(CredAuditError):
    """An insert was attempted after the index was sealed for scanning."""
