"""Config loading for credaudit.

Reads `.credaudit/config.yaml` (or `~/.credaudit/config.yaml`).
Raises SystemExit on parse errors, a missing `version` field or invalid values.
If no config file is found, returns default values (safe to run without config).

Config search order:
  1. `config_path` argument (explicit override, e.g. the CLI --config flag)
  2. CREDAUDIT_CONFIG environment variable (if set)
  3. `.credaudit/config.yaml` (working directory)
  4. `~/.credaudit/config.yaml` (home directory)

Environment variable overrides:
  CREDAUDIT_WORDLISTS: comma-separated wordlist sources; replaces `wordlists`
  CREDAUDIT_CONFIG: sets an explicit config file path to try first
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import NoReturn, Optional

import yaml

from credaudit.constants import (
    DEFAULT_CSV_PATH,
    DEFAULT_HASH_FORMAT,
    DEFAULT_LINKED_SUFFIX,
    DEFAULT_LINKED_TIMEOUT_S,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_WORDLIST,
    MAX_CONCURRENCY_CAP,
)
from credaudit.index.hashing import HASH_FORMATS
from credaudit.report.models import ReportOptions
from credaudit.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Version constants ────────────────────────────────────────────────────────

SUPPORTED_CONFIG_VERSION = 1

SUPPORTED_VERSIONS: frozenset[int] = frozenset({1})

DEFAULT_CONFIG_PATHS = [
    ".credaudit/config.yaml",
    os.path.expanduser("~/.credaudit/config.yaml"),
]


# ─── Dataclasses ─────────────────────────────────────────────────────────────


@dataclass
class LinkedConfig:
    """Linked identity (same-credential) check.

    suffix:    appended to a weak account's identifier to name its linked account
    timeout_s: bound on one directory lookup; expiry = linked account absent
    """

    enabled: bool = True
    suffix: str = DEFAULT_LINKED_SUFFIX
    timeout_s: float = DEFAULT_LINKED_TIMEOUT_S


@dataclass
class ScannerConfig:
    """Scanner subsystem configuration."""

    max_concurrency: int = DEFAULT_MAX_CONCURRENCY


@dataclass
class ReportConfig:
    """Reporting flags and export destinations."""

    verbose: bool = False
    expose_cleartext: bool = False
    export_records: bool = False
    csv_path: Optional[str] = DEFAULT_CSV_PATH
    sqlite_path: Optional[str] = None

    def options(self) -> ReportOptions:
        return ReportOptions(
            verbose=self.verbose,
            expose_cleartext=self.expose_cleartext,
            export_records=self.export_records,
        )


@dataclass
class Config:
    """Root configuration object populated from .credaudit/config.yaml.

    All fields have safe defaults. credaudit can run without any config file.
    """

    version: int = SUPPORTED_CONFIG_VERSION
    wordlists: list[str] = field(default_factory=lambda: [DEFAULT_WORDLIST])
    hash_format: str = DEFAULT_HASH_FORMAT
    linked: LinkedConfig = field(default_factory=LinkedConfig)
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    path: Optional[str] = None  # Path to the loaded config file

    @classmethod
    def defaults(cls) -> "Config":
        """Return a fully-default Config (no file required)."""
        return cls()

    @classmethod
    def from_dict(cls, raw: dict, path: Optional[str] = None) -> "Config":
        """Construct Config from a parsed YAML dict.

        Merges user-supplied values onto defaults; unknown keys are silently ignored.

        Raises:
            SystemExit(1): On an invalid value in any section.
        """
        # ── Wordlists ─────────────────────────────────────────────────────────
        wordlists = raw.get("wordlists", [DEFAULT_WORDLIST])
        if isinstance(wordlists, str):
            wordlists = [wordlists]
        if not isinstance(wordlists, list) or not all(isinstance(w, str) for w in wordlists):
            _config_error("wordlists must be a list of file paths or URLs.")

        # ── Hash format ───────────────────────────────────────────────────────
        hash_format = str(raw.get("hash_format", DEFAULT_HASH_FORMAT)).lower()
        if hash_format not in HASH_FORMATS:
            _config_error(
                f"Invalid hash_format: '{hash_format}'. "
                f"Supported values: {sorted(HASH_FORMATS)}."
            )

        # ── Linked ────────────────────────────────────────────────────────────
        linked_raw = raw.get("linked") or {}
        linked = LinkedConfig(
            enabled=bool(linked_raw.get("enabled", True)),
            suffix=str(linked_raw.get("suffix", DEFAULT_LINKED_SUFFIX)),
            timeout_s=linked_raw.get("timeout_s", DEFAULT_LINKED_TIMEOUT_S),
        )
        if linked.enabled and not linked.suffix:
            _config_error("linked.suffix must not be empty when linked.enabled is true.")
        if not isinstance(linked.timeout_s, (int, float)) or linked.timeout_s <= 0:
            _config_error(f"linked.timeout_s must be a positive number, got {linked.timeout_s!r}.")

        # ── Scanner ───────────────────────────────────────────────────────────
        scanner_raw = raw.get("scanner") or {}
        max_concurrency = scanner_raw.get("max_concurrency", DEFAULT_MAX_CONCURRENCY)
        if (
            not isinstance(max_concurrency, int)
            or isinstance(max_concurrency, bool)
            or not 1 <= max_concurrency <= MAX_CONCURRENCY_CAP
        ):
            _config_error(
                f"scanner.max_concurrency must be an integer between 1 and "
                f"{MAX_CONCURRENCY_CAP}, got {max_concurrency!r}."
            )
        scanner = ScannerConfig(max_concurrency=max_concurrency)

        # ── Report ────────────────────────────────────────────────────────────
        report_raw = raw.get("report") or {}
        report = ReportConfig(
            verbose=bool(report_raw.get("verbose", False)),
            expose_cleartext=bool(report_raw.get("expose_cleartext", False)),
            export_records=bool(report_raw.get("export_records", False)),
            csv_path=report_raw.get("csv_path", DEFAULT_CSV_PATH),
            sqlite_path=report_raw.get("sqlite_path"),
        )

        return cls(
            version=raw.get("version", SUPPORTED_CONFIG_VERSION),
            wordlists=list(wordlists),
            hash_format=hash_format,
            linked=linked,
            scanner=scanner,
            report=report,
            path=path,
        )


# ─── Config loading ───────────────────────────────────────────────────────────


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate credaudit configuration.

    If no file is found at any search path, returns default Config (not an error).
    If a file is found but invalid, writes the error to stderr and raises SystemExit(1).
    ``CREDAUDIT_WORDLISTS`` is applied afterwards either way.

    Raises:
        SystemExit(1): On YAML parse error, missing ``version`` field, unsupported
                       version, or an invalid section value.
    """
    search_paths: list[str] = []
    if config_path:
        search_paths.append(config_path)
    env_config = os.environ.get("CREDAUDIT_CONFIG")
    if env_config:
        search_paths.append(env_config)
    search_paths.extend(DEFAULT_CONFIG_PATHS)

    found_path: Optional[str] = None
    for candidate in search_paths:
        expanded = os.path.expanduser(candidate)
        if os.path.isfile(expanded):
            found_path = expanded
            break

    # ── No config file found ─────────────────────────────────────────────────
    if found_path is None:
        if config_path:
            _config_error(f"Config file not found: {config_path}")
        logger.info("No config file found, using defaults", searched=search_paths)
        config = Config.defaults()
        _apply_env_overrides(config)
        return config

    # ── Parse config file ─────────────────────────────────────────────────────
    logger.info("Loading config", path=found_path)

    try:
        with open(found_path) as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        _config_error(
            f"Failed to parse {found_path}: {exc}\n"
            "credaudit refuses to run with an invalid config. "
            "Check the YAML syntax and try again."
        )
    except OSError as exc:
        _config_error(f"Could not read {found_path}: {exc}")

    if not isinstance(raw, dict):
        if raw is None:
            _config_error(
                f"{found_path} is missing the required 'version' field.\n"
                "Add 'version: 1' to the top of your config file."
            )
        _config_error(
            f"{found_path} is not a valid YAML mapping.\n"
            "The config file must be a YAML dictionary at the top level."
        )

    # ── Version validation ────────────────────────────────────────────────────
    version = raw.get("version")
    if version is None:
        _config_error(
            f"{found_path} is missing the required 'version' field.\n"
            "Add 'version: 1' to the top of your config file."
        )
    if version not in SUPPORTED_VERSIONS:
        _config_error(
            f"Unsupported config version: {version}. "
            f"Supported versions: {sorted(SUPPORTED_VERSIONS)}."
        )

    config = Config.from_dict(raw, path=found_path)
    _apply_env_overrides(config)

    if config.report.expose_cleartext:
        logger.warning(
            "report.expose_cleartext is enabled: matched weak passwords will be "
            "written to logs and exports in cleartext"
        )

    logger.info(
        "Config loaded",
        path=found_path,
        version=config.version,
        hash_format=config.hash_format,
        wordlists=len(config.wordlists),
    )
    return config


def _apply_env_overrides(config: Config) -> None:
    """Apply environment variable overrides to a Config object in-place.

    Currently handles:
      CREDAUDIT_WORDLISTS: replaces config.wordlists (comma-separated)
    """
    env_wordlists = os.environ.get("CREDAUDIT_WORDLISTS")
    if env_wordlists:
        config.wordlists = [w.strip() for w in env_wordlists.split(",") if w.strip()]


def _config_error(message: str) -> NoReturn:
    print(f"CONFIG ERROR: {message}", file=sys.stderr)
    raise SystemExit(1)
