"""Shared constants for credaudit.

Defaults used across the index, scanner, directory adapter and CLI live here.
No magic values in other modules. Import from here.
"""

# ─── Credential hashes ────────────────────────────────────────────────────────

# NT hash (MD4 over UTF-16LE) of the empty string. The sentinel entry for
# accounts with an explicitly blank password.
BLANK_NT_HASH: str = "31d6cfe0d16ae931b73c59d7e0c089c0"

# LM hash of the empty string. Appears in dumps for every account without
# a stored LM hash; never used for matching.
BLANK_LM_HASH: str = "aad3b435b51404eeaad3b435b51404ee"

# Hash format used when none is configured.
DEFAULT_HASH_FORMAT: str = "nt"

# ─── Wordlists ────────────────────────────────────────────────────────────────

# Wordlist source loaded when no source is configured.
DEFAULT_WORDLIST: str = "weak-passwords.txt"

# Per-request timeout (seconds) when fetching a wordlist over HTTP(S).
WORDLIST_FETCH_TIMEOUT_S: float = 30.0

# ─── Linked identity check ────────────────────────────────────────────────────

# Naming convention for a user's paired elevated account: "carol" -> "carol-a".
DEFAULT_LINKED_SUFFIX: str = "-a"

# Upper bound (seconds) on a single linked-identity lookup. On expiry the
# linked identity is treated as absent.
DEFAULT_LINKED_TIMEOUT_S: float = 5.0

# ─── Scanner ──────────────────────────────────────────────────────────────────

# Records classified per asyncio.gather() batch. 1 = strictly sequential.
DEFAULT_MAX_CONCURRENCY: int = 1

# Hard ceiling for scanner.max_concurrency.
MAX_CONCURRENCY_CAP: int = 256

# ─── Reporting ────────────────────────────────────────────────────────────────

DEFAULT_CSV_PATH: str = "credaudit-findings.csv"
