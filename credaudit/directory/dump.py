"""Account source backed by a credential dump file.

Parses the line format produced by common replication and registry dump
tools:

    [DOMAIN\\]user:rid:lmhash:nthash:::[ (status=Enabled|Disabled)]

Filtering happens here, before records reach the scanner:
  - machine accounts (trailing ``$``) and password-history rows are dropped
  - accounts() yields enabled accounts only
  - get_account() sees every user account, disabled ones included, so the
    linked-identity check can reject a disabled linked account itself

An empty NT field (or the ``NO PASSWORD`` placeholder) means the account has
no credential attribute: hash=None, not the blank-password hash.

IMPORT RULES:
  - ``import re2`` ONLY. ``import re`` is PROHIBITED.
"""

from __future__ import annotations

import codecs
from typing import Iterable, Iterator, Optional

import re2  # google-re2. NEVER: import re

from credaudit.index.loader import decode_line
from credaudit.models.account import AccountRecord
from credaudit.utils.logger import get_logger

logger = get_logger(__name__)

_DUMP_LINE = re2.compile(
    r"^(?P<user>[^:]+):(?P<rid>\d+):(?P<lm>[^:]*):(?P<nt>[^:]*):::"
    r"(?:\s*\(status=(?P<status>Enabled|Disabled)\))?\s*$"
)

_HISTORY_SUFFIX = re2.compile(r"_history\d+$")

_NO_PASSWORD_PREFIX = "NO PASSWORD"


def parse_dump_line(line: str) -> Optional[AccountRecord]:
    """Parse one dump line into an AccountRecord.

    Returns None for lines that are not account rows (banners, comments,
    machine accounts, password history). Never raises.
    """
    match = _DUMP_LINE.match(line.strip().lstrip("\ufeff"))
    if match is None:
        return None

    identifier = match.group("user")
    if identifier.endswith("$") or _HISTORY_SUFFIX.search(identifier):
        return None

    nt = match.group("nt").strip()
    hash_value: Optional[str] = nt
    if not nt or nt.upper().startswith(_NO_PASSWORD_PREFIX):
        hash_value = None

    status = match.group("status")
    return AccountRecord(
        identifier=identifier,
        hash=hash_value,
        enabled=status != "Disabled",
    )


def _decoded_lines(raw_lines: Iterable[bytes]) -> Iterator[str]:
    for number, raw in enumerate(raw_lines):
        if number == 0 and raw.startswith(codecs.BOM_UTF8):
            raw = raw[len(codecs.BOM_UTF8):]
        yield decode_line(raw)[0]


class DumpDirectory:
    """In-memory directory built from dump lines.

    Usage:
        directory = DumpDirectory.from_file("ntds.dump")
        outcome = await scanner.scan(directory.accounts(), index,
                                     linked_lookup=directory.get_account)
    """

    def __init__(self, records: Iterable[AccountRecord], skipped_lines: int = 0) -> None:
        self._records: list[AccountRecord] = []
        self._by_identifier: dict[str, AccountRecord] = {}
        for record in records:
            key = record.identifier.lower()
            if key in self._by_identifier:
                logger.warning("Duplicate account in dump; keeping first", identifier=record.identifier)
                continue
            self._records.append(record)
            self._by_identifier[key] = record
        self.skipped_lines = skipped_lines

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "DumpDirectory":
        records: list[AccountRecord] = []
        skipped = 0
        for line in lines:
            if not line.strip():
                continue
            record = parse_dump_line(line)
            if record is None:
                skipped += 1
                continue
            records.append(record)
        return cls(records, skipped_lines=skipped)

    @classmethod
    def from_file(cls, path: str) -> "DumpDirectory":
        """Load a dump file.

        Lines are decoded like wordlist lines (UTF-8, then cp1252, then latin-1)
        so account names are never altered by replacement characters.

        Raises:
            OSError: If the file cannot be opened.
        """
        with open(path, "rb") as fh:
            directory = cls.from_lines(_decoded_lines(fh))
        logger.info(
            "Account dump loaded",
            path=path,
            accounts=len(directory),
            enabled=sum(1 for r in directory._records if r.enabled),
            skipped_lines=directory.skipped_lines,
        )
        return directory

    def accounts(self) -> Iterator[AccountRecord]:
        """Enabled user accounts, in dump order."""
        return (r for r in self._records if r.enabled)

    async def get_account(self, identifier: str) -> Optional[AccountRecord]:
        """Case-insensitive single-account lookup (enabled or not)."""
        return self._by_identifier.get(identifier.lower())

    def __len__(self) -> int:
        return len(self._records)
