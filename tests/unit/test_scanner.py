"""Tests for ComplianceScanner.

Tests:
  - classification of weak, compliant, null and malformed records
  - blank-password sentinel match with an otherwise empty index
  - linked identity refinement (enabled / disabled / absent / failing)
  - counters, order preservation and idempotence
  - NoAccountsRetrieved on an empty stream
"""

from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from credaudit.constants import BLANK_NT_HASH
from credaudit.errors import NoAccountsRetrieved
from credaudit.index.hash_index import HashIndex
from credaudit.index.hashing import get_hash_format, nt_hash
from credaudit.index.loader import WordlistLoader
from credaudit.models.account import AccountRecord, Classification, LoadSummary
from credaudit.scanner.engine import ComplianceScanner


@pytest.fixture
def nt_index() -> HashIndex:
    index = HashIndex.with_sentinel(BLANK_NT_HASH)
    WordlistLoader(nt_hash).load(["abc123", "Password1", "Summer2024"], index)
    index.seal()
    return index


@pytest.fixture
def scanner() -> ComplianceScanner:
    return ComplianceScanner(hash_format=get_hash_format("nt"))


def _directory(*records: AccountRecord):
    by_id = {r.identifier: r for r in records}

    async def lookup(identifier: str) -> Optional[AccountRecord]:
        return by_id.get(identifier)

    return lookup


# ─── Classification ───────────────────────────────────────────────────────────


class TestClassification:
    @pytest.mark.asyncio
    async def test_weak_password(self, scanner, nt_index):
        result = await scanner.classify(AccountRecord("alice", nt_hash("abc123")), nt_index)
        assert result.classification is Classification.WEAK
        assert result.source == "abc123"
        assert result.is_weak

    @pytest.mark.asyncio
    async def test_uppercase_stored_hash_matches(self, scanner, nt_index):
        result = await scanner.classify(
            AccountRecord("alice", nt_hash("abc123").upper()), nt_index
        )
        assert result.classification is Classification.WEAK

    @pytest.mark.asyncio
    async def test_null_credential(self, scanner, nt_index):
        result = await scanner.classify(AccountRecord("bob", None), nt_index)
        assert result.classification is Classification.NULL_CREDENTIAL
        assert result.source is None
        assert not result.is_weak

    @pytest.mark.asyncio
    async def test_compliant(self, scanner, nt_index):
        result = await scanner.classify(
            AccountRecord("dave", nt_hash("correct horse battery staple")), nt_index
        )
        assert result.classification is Classification.COMPLIANT
        assert result.source is None

    @pytest.mark.asyncio
    async def test_blank_password_with_sentinel_only(self, scanner):
        index = HashIndex.with_sentinel(BLANK_NT_HASH)
        result = await scanner.classify(AccountRecord("carol", nt_hash("")), index)
        assert result.classification is Classification.WEAK
        assert result.source == ""
        assert result.is_blank_credential

    @pytest.mark.asyncio
    async def test_malformed_hash(self, scanner, nt_index):
        result = await scanner.classify(AccountRecord("eve", "not-a-hash"), nt_index)
        assert result.classification is Classification.MALFORMED
        assert result.error is not None
        assert "eve" in result.error

    @pytest.mark.asyncio
    async def test_generic_hex_without_format(self, nt_index):
        scanner = ComplianceScanner()
        ok = await scanner.classify(AccountRecord("a", nt_hash("abc123")), nt_index)
        bad = await scanner.classify(AccountRecord("b", "xyz"), nt_index)
        assert ok.classification is Classification.WEAK
        assert bad.classification is Classification.MALFORMED

    def test_source_hidden_from_repr(self):
        from credaudit.models.account import ClassificationResult

        result = ClassificationResult("alice", Classification.WEAK, source="abc123")
        assert "abc123" not in repr(result)


# ─── Linked identity ──────────────────────────────────────────────────────────


class TestLinkedIdentity:
    @pytest.mark.asyncio
    async def test_enabled_linked_with_same_hash(self, scanner, nt_index):
        h = nt_hash("Summer2024")
        lookup = _directory(AccountRecord("carol-a", h.upper(), enabled=True))
        result = await scanner.classify(AccountRecord("carol", h), nt_index, lookup)
        assert result.classification is Classification.WEAK_WITH_LINKED_DUPLICATE
        assert result.linked_identifier == "carol-a"
        assert result.linked_duplicate
        assert result.is_weak

    @pytest.mark.asyncio
    async def test_disabled_linked_stays_weak(self, scanner, nt_index):
        h = nt_hash("Summer2024")
        lookup = _directory(AccountRecord("carol-a", h, enabled=False))
        result = await scanner.classify(AccountRecord("carol", h), nt_index, lookup)
        assert result.classification is Classification.WEAK
        assert result.linked_identifier is None

    @pytest.mark.asyncio
    async def test_absent_linked_stays_weak(self, scanner, nt_index):
        h = nt_hash("Summer2024")
        result = await scanner.classify(AccountRecord("carol", h), nt_index, _directory())
        assert result.classification is Classification.WEAK

    @pytest.mark.asyncio
    async def test_linked_with_different_hash_stays_weak(self, scanner, nt_index):
        lookup = _directory(AccountRecord("carol-a", nt_hash("different")))
        result = await scanner.classify(
            AccountRecord("carol", nt_hash("Summer2024")), nt_index, lookup
        )
        assert result.classification is Classification.WEAK

    @pytest.mark.asyncio
    async def test_compliant_account_never_probes(self, scanner, nt_index):
        calls = []

        async def lookup(identifier):
            calls.append(identifier)
            return None

        await scanner.classify(AccountRecord("dave", nt_hash("strong!")), nt_index, lookup)
        assert calls == []

    @pytest.mark.asyncio
    async def test_custom_suffix(self, nt_index):
        scanner = ComplianceScanner(hash_format=get_hash_format("nt"), linked_suffix=".adm")
        h = nt_hash("abc123")
        lookup = _directory(AccountRecord("alice.adm", h))
        result = await scanner.classify(AccountRecord("alice", h), nt_index, lookup)
        assert result.linked_identifier == "alice.adm"

    @pytest.mark.asyncio
    async def test_sync_lookup_supported(self, scanner, nt_index):
        h = nt_hash("abc123")
        records = {"alice-a": AccountRecord("alice-a", h)}
        result = await scanner.classify(AccountRecord("alice", h), nt_index, records.get)
        assert result.classification is Classification.WEAK_WITH_LINKED_DUPLICATE

    @pytest.mark.asyncio
    async def test_lookup_timeout_leaves_weak_and_counts_failure(self, nt_index):
        scanner = ComplianceScanner(hash_format=get_hash_format("nt"), lookup_timeout_s=0.05)

        async def slow(identifier):
            await asyncio.sleep(5)
            return None

        outcome = await scanner.scan(
            [AccountRecord("alice", nt_hash("abc123"))], nt_index, linked_lookup=slow
        )
        assert outcome.results[0].classification is Classification.WEAK
        assert outcome.counters.linked_lookup_failures == 1
        assert outcome.counters.weak_found == 1

    @pytest.mark.asyncio
    async def test_lookup_error_leaves_weak(self, scanner, nt_index):
        async def broken(identifier):
            raise ConnectionError("directory unreachable")

        outcome = await scanner.scan(
            [AccountRecord("alice", nt_hash("abc123"))], nt_index, linked_lookup=broken
        )
        assert outcome.results[0].classification is Classification.WEAK
        assert outcome.counters.linked_lookup_failures == 1


# ─── scan() ───────────────────────────────────────────────────────────────────


def _mixed_accounts() -> list[AccountRecord]:
    return [
        AccountRecord("alice", nt_hash("abc123")),
        AccountRecord("bob", None),
        AccountRecord("carol", nt_hash("")),
        AccountRecord("dave", nt_hash("long unguessable passphrase")),
        AccountRecord("eve", "zz"),
        AccountRecord("frank", nt_hash("Password1")),
    ]


class TestScan:
    @pytest.mark.asyncio
    async def test_counters(self, scanner, nt_index):
        outcome = await scanner.scan(_mixed_accounts(), nt_index)
        c = outcome.counters
        assert c.accounts_scanned == 6
        assert c.weak_found == 3
        assert c.null_credentials == 1
        assert c.compliant == 1
        assert c.malformed_hashes == 1
        assert c.linked_duplicates == 0

    @pytest.mark.asyncio
    async def test_counter_partition(self, scanner, nt_index):
        c = (await scanner.scan(_mixed_accounts(), nt_index)).counters
        assert c.accounts_scanned == (
            c.compliant + c.weak_found + c.null_credentials + c.malformed_hashes
        )

    @pytest.mark.asyncio
    async def test_results_preserve_input_order(self, scanner, nt_index):
        outcome = await scanner.scan(_mixed_accounts(), nt_index)
        assert [r.identifier for r in outcome.results] == [
            "alice", "bob", "carol", "dave", "eve", "frank",
        ]

    @pytest.mark.asyncio
    async def test_concurrent_scan_preserves_order(self, nt_index):
        scanner = ComplianceScanner(hash_format=get_hash_format("nt"), max_concurrency=4)
        h = nt_hash("abc123")
        accounts = [AccountRecord(f"user{i:02d}", h) for i in range(10)]

        async def jittery(identifier):
            # Later accounts answer first
            await asyncio.sleep(0.001 * (20 - int(identifier[4:6])))
            return None

        outcome = await scanner.scan(accounts, nt_index, linked_lookup=jittery)
        assert [r.identifier for r in outcome.results] == [a.identifier for a in accounts]

    @pytest.mark.asyncio
    async def test_scan_is_idempotent(self, scanner, nt_index):
        first = await scanner.scan(_mixed_accounts(), nt_index)
        second = await scanner.scan(_mixed_accounts(), nt_index)
        assert first.results == second.results
        assert first.counters == second.counters

    @pytest.mark.asyncio
    async def test_accepts_generator(self, scanner, nt_index):
        outcome = await scanner.scan((a for a in _mixed_accounts()), nt_index)
        assert outcome.counters.accounts_scanned == 6

    @pytest.mark.asyncio
    async def test_empty_stream_raises(self, scanner, nt_index):
        with pytest.raises(NoAccountsRetrieved):
            await scanner.scan([], nt_index)

    @pytest.mark.asyncio
    async def test_load_summary_carried_into_counters(self, scanner):
        index = HashIndex.with_sentinel(BLANK_NT_HASH)
        summary = LoadSummary()
        summary.add(WordlistLoader(nt_hash).load(["abc123", "", "abc123", "Password1"], index))

        outcome = await scanner.scan(
            [AccountRecord("alice", nt_hash("abc123"))], index, load_summary=summary
        )
        c = outcome.counters
        assert c.wordlist_entries_loaded == 2
        assert c.wordlist_duplicates_skipped == 1
        assert c.wordlist_empty_lines_skipped == 1

    @pytest.mark.asyncio
    async def test_linked_duplicates_subset_of_weak(self, scanner, nt_index):
        h = nt_hash("abc123")
        accounts = [AccountRecord("alice", h), AccountRecord("bob", nt_hash("Password1"))]
        lookup = _directory(AccountRecord("alice-a", h))
        c = (await scanner.scan(accounts, nt_index, linked_lookup=lookup)).counters
        assert c.weak_found == 2
        assert c.linked_duplicates == 1


class TestScannerConfig:
    @pytest.mark.parametrize("value", [0, -1, 257])
    def test_concurrency_out_of_range(self, value):
        with pytest.raises(ValueError):
            ComplianceScanner(max_concurrency=value)
