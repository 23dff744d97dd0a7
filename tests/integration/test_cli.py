"""Tests for the credaudit command line (credaudit.run.main)."""

from __future__ import annotations

import csv

import pytest

from credaudit.config import Config
from credaudit.index.hashing import nt_hash
from credaudit.run import apply_args, build_parser, main

LM = "aad3b435b51404eeaad3b435b51404ee"


@pytest.fixture(autouse=True)
def keep_session_logging(monkeypatch):
    # main() reconfigures structlog onto the current sys.stderr, which capsys
    # closes after the test; later tests would then log to a closed stream.
    monkeypatch.setattr("credaudit.run.configure_logging", lambda **kwargs: None)


@pytest.fixture
def files(tmp_path):
    wordlist = tmp_path / "weak.txt"
    wordlist.write_text("abc123\nPassword1\n", encoding="utf-8")
    dump = tmp_path / "ntds.dump"
    dump.write_text(
        "\n".join([
            f"CORP\\alice:1104:{LM}:{nt_hash('abc123')}::: (status=Enabled)",
            f"CORP\\bob:1105:{LM}:{nt_hash('not on any list')}::: (status=Enabled)",
            f"CORP\\carol:1106:{LM}:::: (status=Enabled)",
        ]) + "\n",
        encoding="utf-8",
    )
    return str(wordlist), str(dump)


class TestParser:
    def test_accounts_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_flags_override_config(self):
        args = build_parser().parse_args([
            "--accounts", "d",
            "--wordlist", "a.txt",
            "--wordlist", "b.txt",
            "--hash-format", "sha1",
            "--linked-suffix", ".adm",
            "--linked-timeout", "1.5",
            "--concurrency", "4",
            "--verbose",
            "--expose-cleartext",
            "--export-csv", "out.csv",
        ])
        config = apply_args(Config.defaults(), args)
        assert config.wordlists == ["a.txt", "b.txt"]
        assert config.hash_format == "sha1"
        assert config.linked.suffix == ".adm"
        assert config.linked.timeout_s == 1.5
        assert config.scanner.max_concurrency == 4
        assert config.report.verbose and config.report.expose_cleartext
        assert config.report.export_records
        assert config.report.csv_path == "out.csv"

    def test_sqlite_only_export_drops_default_csv(self):
        args = build_parser().parse_args(["--accounts", "d", "--export-sqlite", "f.db"])
        config = apply_args(Config.defaults(), args)
        assert config.report.sqlite_path == "f.db"
        assert config.report.csv_path is None

    def test_no_linked_check(self):
        args = build_parser().parse_args(["--accounts", "d", "--no-linked-check"])
        assert apply_args(Config.defaults(), args).linked.enabled is False


class TestMain:
    def test_successful_run_prints_summary(self, files, capsys):
        wordlist, dump = files
        assert main(["--accounts", dump, "--wordlist", wordlist]) == 0

        out = capsys.readouterr().out
        assert "accounts scanned        : 3" in out
        assert "weak passwords          : 1" in out
        assert "no credential hash      : 1" in out
        assert "abc123" not in out

    def test_csv_export(self, files, tmp_path):
        wordlist, dump = files
        csv_path = tmp_path / "findings.csv"
        assert main([
            "--accounts", dump,
            "--wordlist", wordlist,
            "--export-csv", str(csv_path),
            "--expose-cleartext",
        ]) == 0
        with open(csv_path, newline="", encoding="utf-8") as fh:
            rows = list(csv.DictReader(fh))
        assert [(r["identifier"], r["password"]) for r in rows] == [("CORP\\alice", "abc123")]

    def test_missing_wordlist_exits_1(self, files, tmp_path, capsys):
        _, dump = files
        code = main(["--accounts", dump, "--wordlist", str(tmp_path / "gone.txt")])
        assert code == 1
        assert "AUDIT ABORTED" in capsys.readouterr().err

    def test_missing_dump_exits_1(self, files, tmp_path, capsys):
        wordlist, _ = files
        assert main(["--accounts", str(tmp_path / "none.dump"), "--wordlist", wordlist]) == 1
        assert "could not read account dump" in capsys.readouterr().err

    def test_dump_without_accounts_exits_1(self, files, tmp_path, capsys):
        wordlist, _ = files
        empty = tmp_path / "empty.dump"
        empty.write_text("[*] nothing here\n", encoding="utf-8")
        assert main(["--accounts", str(empty), "--wordlist", wordlist]) == 1
        assert "no enabled user accounts" in capsys.readouterr().err

    def test_concurrency_out_of_range_exits_1(self, files):
        wordlist, dump = files
        assert main(["--accounts", dump, "--wordlist", wordlist, "--concurrency", "0"]) == 1

    @pytest.mark.parametrize("timeout", ["0", "-1"])
    def test_non_positive_linked_timeout_exits_1(self, files, capsys, timeout):
        wordlist, dump = files
        code = main(["--accounts", dump, "--wordlist", wordlist, "--linked-timeout", timeout])
        assert code == 1
        assert "--linked-timeout" in capsys.readouterr().err

    def test_bad_config_exits(self, files, tmp_path):
        wordlist, dump = files
        with pytest.raises(SystemExit):
            main(["--accounts", dump, "--wordlist", wordlist, "--config", str(tmp_path / "no.yaml")])
