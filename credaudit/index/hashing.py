"""Credential hash functions and canonicalisation.

Provides:
  - ``normalize_hash()``: the single canonicalisation step (strip + lowercase)
    applied at both HashIndex insert and lookup.
  - ``HashFormat``: a named hash function plus the pattern its hex digests match.
  - ``get_hash_format()``: registry lookup by name ("nt", "sha1").

IMPORT RULES:
  - ``import re2`` ONLY. ``import re`` is PROHIBITED in this package.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Callable

import re2  # google-re2. NEVER: import re
from Crypto.Hash import MD4

HashFn = Callable[[str], str]


def normalize_hash(value: str) -> str:
    """Canonical form of a hex digest: surrounding whitespace removed, lowercase.

    Two encodings differing only in hex letter case are the same credential.
    """
    return value.strip().lower()


def nt_hash(cleartext: str) -> str:
    """NT hash of a password: MD4 over its UTF-16LE encoding, lowercase hex."""
    return MD4.new(cleartext.encode("utf-16le")).hexdigest().lower()


def sha1_hash(cleartext: str) -> str:
    """SHA-1 of the UTF-8 password, uppercase hex as published in breach corpora."""
    return hashlib.sha1(cleartext.encode("utf-8")).hexdigest().upper()


@dataclass(frozen=True)
class HashFormat:
    """A pluggable one-way hash function and its digest shape.

    INVARIANT: ``hash_fn`` produces digests in the same representation the
    directory stores. That compatibility is a precondition, not validated.
    """

    name: str
    hash_fn: HashFn
    pattern: str

    def is_well_formed(self, value: str) -> bool:
        """True when ``value`` is a digest of this format (any letter case)."""
        return re2.fullmatch(self.pattern, value.strip()) is not None

    @property
    def blank_hash(self) -> str:
        """Digest of the empty password, used as the HashIndex sentinel."""
        return normalize_hash(self.hash_fn(""))


HASH_FORMATS: dict[str, HashFormat] = {
    "nt": HashFormat(name="nt", hash_fn=nt_hash, pattern=r"[0-9A-Fa-f]{32}"),
    "sha1": HashFormat(name="sha1", hash_fn=sha1_hash, pattern=r"[0-9A-Fa-f]{40}"),
}


def get_hash_format(name: str) -> HashFormat:
    """Return the registered HashFormat for ``name``.

    Raises:
        KeyError: If no format is registered under that name.
    """
    try:
        return HASH_FORMATS[name.lower()]
    except KeyError:
        raise KeyError(
            f"Unknown hash format {name!r}. Supported: {sorted(HASH_FORMATS)}"
        ) from None
