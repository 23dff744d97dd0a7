"""HashIndex: deduplicated, case-insensitive map from hash to cleartext.

Lifecycle:
  1. insert_sentinel(blank_hash)   exactly once, before any wordlist
  2. try_insert(hash, source)      per wordlist line (WordlistLoader)
  3. seal()                        index becomes read-only
  4. lookup(hash)                  any number of times, from any task

Every key passes through normalize_hash() on the way in and on the way out.
The index never relies on a case-insensitive container.
"""

from __future__ import annotations

from typing import Iterator, Optional

from credaudit.errors import DuplicateSentinel, IndexSealed, SentinelAfterEntries
from credaudit.index.hashing import normalize_hash
from credaudit.models.account import HashEntry


class HashIndex:
    """Map of canonical hash -> HashEntry with first-writer-wins semantics.

    INVARIANTS:
      - Keys are unique. A second insert of the same canonical hash is a
        duplicate: rejected, never overwritten.
      - At most one sentinel. It is excluded from ``wordlist_size``.
      - Lookup results do not depend on insertion order.
    """

    def __init__(self) -> None:
        self._entries: dict[str, HashEntry] = {}
        self._sentinel_hash: Optional[str] = None
        self._sealed = False

    @classmethod
    def with_sentinel(cls, blank_hash: str) -> "HashIndex":
        """Return a new index that already holds the blank-credential sentinel."""
        index = cls()
        index.insert_sentinel(blank_hash)
        return index

    # ── Build phase ───────────────────────────────────────────────────────────

    def insert_sentinel(self, blank_hash: str) -> None:
        """Insert the blank-credential hash with an empty source.

        Raises:
            DuplicateSentinel:    If a sentinel is already present.
            SentinelAfterEntries: If wordlist entries were inserted first.
            IndexSealed:          If the index has been sealed.
        """
        if self._sentinel_hash is not None:
            raise DuplicateSentinel(
                f"Sentinel already present ({self._sentinel_hash})"
            )
        self._check_not_sealed()
        if self._entries:
            raise SentinelAfterEntries(
                f"Sentinel must be inserted before any wordlist entry "
                f"({len(self._entries)} already present)"
            )
        key = normalize_hash(blank_hash)
        self._entries[key] = HashEntry(hash=key, source="")
        self._sentinel_hash = key

    def try_insert(self, hash_value: str, source: str) -> bool:
        """Insert ``hash_value -> source`` if the canonical hash is absent.

        Returns:
            True if inserted, False if the hash was already present (duplicate).

        Raises:
            IndexSealed: If the index has been sealed.
        """
        self._check_not_sealed()
        key = normalize_hash(hash_value)
        if key in self._entries:
            return False
        self._entries[key] = HashEntry(hash=key, source=source)
        return True

    def seal(self) -> None:
        """Freeze the index. Further inserts raise IndexSealed."""
        self._sealed = True

    # ── Read phase ────────────────────────────────────────────────────────────

    def lookup(self, hash_value: str) -> Optional[str]:
        """Return the source cleartext for ``hash_value``, or None if absent."""
        entry = self._entries.get(normalize_hash(hash_value))
        return entry.source if entry is not None else None

    def get_entry(self, hash_value: str) -> Optional[HashEntry]:
        return self._entries.get(normalize_hash(hash_value))

    def size(self) -> int:
        """Distinct entries, sentinel included."""
        return len(self._entries)

    @property
    def wordlist_size(self) -> int:
        """Distinct entries loaded from wordlists (sentinel excluded)."""
        return len(self._entries) - (1 if self._sentinel_hash is not None else 0)

    @property
    def sentinel_hash(self) -> Optional[str]:
        return self._sentinel_hash

    @property
    def sealed(self) -> bool:
        return self._sealed

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, hash_value: object) -> bool:
        return isinstance(hash_value, str) and normalize_hash(hash_value) in self._entries

    def __iter__(self) -> Iterator[HashEntry]:
        return iter(self._entries.values())

    def _check_not_sealed(self) -> None:
        if self._sealed:
            raise IndexSealed("HashIndex is sealed; build phase is over")
