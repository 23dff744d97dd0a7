"""End-to-end tests for run_audit(): wordlist files + dump directory + sinks."""

from __future__ import annotations

import csv

import pytest

from credaudit.audit import build_index, run_audit
from credaudit.config import Config
from credaudit.constants import BLANK_NT_HASH
from credaudit.directory import DumpDirectory
from credaudit.errors import NoAccountsRetrieved, NoWeakEntriesLoaded
from credaudit.index.hashing import get_hash_format, nt_hash
from credaudit.models.account import Classification
from credaudit.report import NullReportSink
from credaudit.report.sqlite_sink import SQLiteReportSink
from credaudit.utils.logger import run_id_var

LM = "aad3b435b51404eeaad3b435b51404ee"


def _dump_line(user: str, password, enabled: bool = True) -> str:
    nt = nt_hash(password) if password is not None else ""
    status = "Enabled" if enabled else "Disabled"
    return f"CORP\\{user}:1000:{LM}:{nt}::: (status={status})"


@pytest.fixture
def wordlist(tmp_path) -> str:
    path = tmp_path / "weak.txt"
    path.write_text("abc123\n\nabc123\nPassword1\nSummer2024\n", encoding="utf-8")
    return str(path)


@pytest.fixture
def directory() -> DumpDirectory:
    return DumpDirectory.from_lines([
        _dump_line("alice", "abc123"),
        _dump_line("bob", None),
        _dump_line("carol", "Summer2024"),
        _dump_line("carol-a", "Summer2024"),
        _dump_line("dave", "Password1"),
        _dump_line("dave-a", "Password1", enabled=False),
        _dump_line("erin", "a much better passphrase"),
        _dump_line("frank", ""),
    ])


def _config(wordlists: list[str], **report) -> Config:
    config = Config.defaults()
    config.wordlists = wordlists
    for key, value in report.items():
        setattr(config.report, key, value)
    return config


# ─── build_index ──────────────────────────────────────────────────────────────


class TestBuildIndex:
    def test_counts_and_seal(self, wordlist):
        index, summary = build_index([wordlist], get_hash_format("nt"))
        assert index.sealed
        assert index.wordlist_size == 3
        assert index.lookup(BLANK_NT_HASH) == ""
        assert summary.duplicates_skipped == 1
        assert summary.empty_lines_skipped == 1

    def test_all_sources_missing_raises(self, tmp_path):
        with pytest.raises(NoWeakEntriesLoaded) as exc_info:
            build_index([str(tmp_path / "gone.txt")], get_hash_format("nt"))
        assert exc_info.value.failed == [str(tmp_path / "gone.txt")]

    def test_empty_wordlist_raises(self, tmp_path):
        empty = tmp_path / "empty.txt"
        empty.write_text("\n\n", encoding="utf-8")
        with pytest.raises(NoWeakEntriesLoaded):
            build_index([str(empty)], get_hash_format("nt"))


# ─── run_audit ────────────────────────────────────────────────────────────────


class TestRunAudit:
    @pytest.mark.asyncio
    async def test_classifies_directory(self, wordlist, directory):
        summary = await run_audit(_config([wordlist]), directory, sink=NullReportSink())

        by_id = {r.identifier: r.classification for r in summary.results}
        assert by_id == {
            "CORP\\alice": Classification.WEAK,
            "CORP\\bob": Classification.NULL_CREDENTIAL,
            "CORP\\carol": Classification.WEAK_WITH_LINKED_DUPLICATE,
            "CORP\\carol-a": Classification.WEAK,
            "CORP\\dave": Classification.WEAK,
            "CORP\\erin": Classification.COMPLIANT,
            "CORP\\frank": Classification.WEAK,
        }
        c = summary.counters
        assert c.accounts_scanned == 7
        assert c.weak_found == 5
        assert c.linked_duplicates == 1
        assert c.wordlist_entries_loaded == 3
        assert len(summary.findings) == 5

    @pytest.mark.asyncio
    async def test_linked_check_disabled(self, wordlist, directory):
        config = _config([wordlist])
        config.linked.enabled = False
        summary = await run_audit(config, directory, sink=NullReportSink())
        assert summary.counters.linked_duplicates == 0
        assert summary.counters.weak_found == 5

    @pytest.mark.asyncio
    async def test_concurrent_run_matches_sequential(self, wordlist, directory):
        sequential = await run_audit(_config([wordlist]), directory, sink=NullReportSink())
        config = _config([wordlist])
        config.scanner.max_concurrency = 8
        concurrent = await run_audit(config, directory, sink=NullReportSink())
        assert sequential.results == concurrent.results
        assert sequential.counters == concurrent.counters

    @pytest.mark.asyncio
    async def test_run_id_generated_and_cleared(self, wordlist, directory):
        summary = await run_audit(_config([wordlist]), directory, sink=NullReportSink())
        assert len(summary.run_id) == 26
        assert run_id_var.get() is None

    @pytest.mark.asyncio
    async def test_explicit_run_id(self, wordlist, directory):
        summary = await run_audit(
            _config([wordlist]), directory, sink=NullReportSink(), run_id="fixed-run"
        )
        assert summary.run_id == "fixed-run"

    @pytest.mark.asyncio
    async def test_no_weak_entries_aborts(self, tmp_path, directory):
        with pytest.raises(NoWeakEntriesLoaded):
            await run_audit(_config([str(tmp_path / "missing.txt")]), directory, sink=NullReportSink())

    @pytest.mark.asyncio
    async def test_no_enabled_accounts_aborts(self, wordlist):
        directory = DumpDirectory.from_lines([_dump_line("old", "abc123", enabled=False)])
        with pytest.raises(NoAccountsRetrieved):
            await run_audit(_config([wordlist]), directory, sink=NullReportSink())

    @pytest.mark.asyncio
    async def test_exports_written(self, tmp_path, wordlist, directory):
        csv_path = tmp_path / "out" / "findings.csv"
        db_path = tmp_path / "out" / "findings.db"
        config = _config(
            [wordlist],
            export_records=True,
            csv_path=str(csv_path),
            sqlite_path=str(db_path),
        )

        summary = await run_audit(config, directory)

        with open(csv_path, newline="", encoding="utf-8") as fh:
            rows = list(csv.DictReader(fh))
        assert len(rows) == 5
        assert {r["run_id"] for r in rows} == {summary.run_id}
        assert all(r["password"] == "" for r in rows)

        store = SQLiteReportSink(str(db_path), run_id=summary.run_id)
        await store.initialize()
        try:
            assert len(await store.query_findings()) == 5
            assert await store.get_run_counters() == summary.counters
        finally:
            await store.close()
