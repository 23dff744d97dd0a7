"""ULID generation for audit run identifiers.

Every audit run is tagged with a 26-character ULID. The same value is bound
into the logging context, written to the SQLite findings store and stamped on
CSV exports, so log lines and exported records from one run correlate.

Uses the ``python-ulid`` library. Do NOT hand-roll ULID generation.
"""

from __future__ import annotations

from ulid import ULID


def generate_ulid() -> str:
    """Generate a new ULID as a 26-character uppercase string.

    Returns:
        str: Crockford Base32 ULID, e.g. ``"01KJ0JRVHYA7KX32VPN5ZSCTMV"``.
    """
    return str(ULID())
