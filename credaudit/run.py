"""Command-line entry point for credaudit.

Usage:
    python -m credaudit.run --accounts ntds.dump --wordlist weak.txt
    credaudit --accounts ntds.dump --export-csv findings.csv   # via pyproject.toml [project.scripts]

Flags override the matching config file values. Logs go to stderr (JSON by
default, ``JSON_LOGS=false`` for console output); the run summary goes to
stdout.

Exit codes:
    0  audit completed (findings or not)
    1  fatal precondition (no wordlist entries, no accounts) or config error
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Optional, Sequence

from credaudit.audit import AuditSummary, run_audit
from credaudit.config import Config, load_config
from credaudit.constants import MAX_CONCURRENCY_CAP
from credaudit.directory.dump import DumpDirectory
from credaudit.errors import NoAccountsRetrieved, NoWeakEntriesLoaded
from credaudit.index.hashing import HASH_FORMATS
from credaudit.utils.logger import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="credaudit",
        description="Audit account credential hashes against lists of known-weak passwords",
    )
    parser.add_argument(
        "--accounts",
        required=True,
        help="Credential dump file (DOMAIN\\user:rid:lmhash:nthash::: per line)",
    )
    parser.add_argument(
        "--wordlist",
        action="append",
        dest="wordlists",
        metavar="SOURCE",
        help="Weak password list (file path or http(s) URL); repeatable",
    )
    parser.add_argument("--config", help="Path to a credaudit config.yaml")
    parser.add_argument("--hash-format", choices=sorted(HASH_FORMATS))
    parser.add_argument("--linked-suffix", help="Suffix naming a user's linked account (default: -a)")
    parser.add_argument(
        "--no-linked-check",
        action="store_true",
        help="Skip the linked account same-password check",
    )
    parser.add_argument("--linked-timeout", type=float, metavar="SECONDS")
    parser.add_argument("--concurrency", type=int, help="Accounts classified concurrently")
    parser.add_argument("--verbose", action="store_true", help="Log every account, not only findings")
    parser.add_argument(
        "--expose-cleartext",
        action="store_true",
        help="Include matched weak passwords in logs and exports",
    )
    parser.add_argument("--export-csv", metavar="PATH", help="Write weak accounts to a CSV file")
    parser.add_argument("--export-sqlite", metavar="PATH", help="Write weak accounts to a SQLite database")
    return parser


def apply_args(config: Config, args: argparse.Namespace) -> Config:
    """Overlay CLI flags onto a loaded Config (in place) and return it."""
    if args.wordlists:
        config.wordlists = list(args.wordlists)
    if args.hash_format:
        config.hash_format = args.hash_format
    if args.linked_suffix:
        config.linked.suffix = args.linked_suffix
    if args.no_linked_check:
        config.linked.enabled = False
    if args.linked_timeout is not None:
        config.linked.timeout_s = args.linked_timeout
    if args.concurrency is not None:
        config.scanner.max_concurrency = args.concurrency
    if args.verbose:
        config.report.verbose = True
    if args.expose_cleartext:
        config.report.expose_cleartext = True
    if args.export_csv:
        config.report.export_records = True
        config.report.csv_path = args.export_csv
    if args.export_sqlite:
        config.report.export_records = True
        config.report.sqlite_path = args.export_sqlite
        if not args.export_csv:
            config.report.csv_path = None
    return config


def format_summary(summary: AuditSummary) -> str:
    c = summary.counters
    lines = [
        f"credaudit run {summary.run_id}",
        f"  wordlist entries loaded : {c.wordlist_entries_loaded}"
        f" ({c.wordlist_duplicates_skipped} duplicates, {c.wordlist_empty_lines_skipped} blank lines skipped)",
        f"  accounts scanned        : {c.accounts_scanned}",
        f"  compliant               : {c.compliant}",
        f"  weak passwords          : {c.weak_found}",
        f"  shared with linked acct : {c.linked_duplicates}",
        f"  no credential hash      : {c.null_credentials}",
        f"  unreadable hashes       : {c.malformed_hashes}",
    ]
    if c.linked_lookup_failures:
        lines.append(f"  linked lookups failed   : {c.linked_lookup_failures}")
    if summary.load_summary.failed_sources:
        lines.append(f"  wordlists not fully read: {', '.join(summary.load_summary.failed_sources)}")
    return "\n".join(lines)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    debug = os.getenv("DEBUG", "false").lower() == "true"
    log_level = os.getenv("LOG_LEVEL", "INFO" if not debug else "DEBUG")
    json_logs = os.getenv("JSON_LOGS", "true").lower() == "true"
    configure_logging(log_level=log_level, json_output=json_logs)

    config = apply_args(load_config(args.config), args)
    if not 1 <= config.scanner.max_concurrency <= MAX_CONCURRENCY_CAP:
        print(
            f"CONFIG ERROR: --concurrency must be between 1 and {MAX_CONCURRENCY_CAP}",
            file=sys.stderr,
        )
        return 1
    if config.linked.timeout_s <= 0:
        print(
            f"CONFIG ERROR: --linked-timeout must be a positive number of seconds, "
            f"got {config.linked.timeout_s}",
            file=sys.stderr,
        )
        return 1

    try:
        directory = DumpDirectory.from_file(args.accounts)
    except OSError as exc:
        print(f"AUDIT ABORTED: could not read account dump {args.accounts}: {exc}", file=sys.stderr)
        return 1

    try:
        summary = asyncio.run(run_audit(config, directory))
    except NoWeakEntriesLoaded as exc:
        print(
            f"AUDIT ABORTED: {exc}\n"
            "Provide at least one readable, non-empty wordlist (--wordlist or config 'wordlists').",
            file=sys.stderr,
        )
        return 1
    except NoAccountsRetrieved as exc:
        print(
            f"AUDIT ABORTED: {exc}\n"
            f"{args.accounts} contains no enabled user accounts.",
            file=sys.stderr,
        )
        return 1
    except (OSError, RuntimeError) as exc:
        print(f"AUDIT ABORTED: could not open report output: {exc}", file=sys.stderr)
        return 1

    print(format_summary(summary))
    return 0


if __name__ == "__main__":
    sys.exit(main())
