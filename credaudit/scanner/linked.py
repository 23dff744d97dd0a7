"""Linked identity probe for the same-credential check.

A linked identity is a secondary, usually privileged, account paired with a
primary account by naming convention: ``carol`` -> ``carol-a``. When a primary
account is weak the scanner asks the directory for the linked account and
compares hashes.

The lookup is an injected capability ``identifier -> Optional[AccountRecord]``.
Coroutine functions are awaited directly; plain callables run in the default
executor. Both are bounded by ``asyncio.wait_for`` so one slow or missing
account cannot stall a scan.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Awaitable, Callable, Optional, Union

from credaudit.constants import DEFAULT_LINKED_SUFFIX, DEFAULT_LINKED_TIMEOUT_S
from credaudit.errors import LinkedLookupFailed
from credaudit.models.account import AccountRecord

LinkedLookup = Callable[
    [str],
    Union[Optional[AccountRecord], Awaitable[Optional[AccountRecord]]],
]


class LinkedIdentityProbe:
    """Resolve and fetch the linked identity for a primary account.

    Args:
        lookup:    Directory capability returning the AccountRecord for an
                   identifier, or None when no such account exists.
        suffix:    Naming-convention suffix appended to the primary identifier.
        timeout_s: Upper bound for one lookup.
    """

    def __init__(
        self,
        lookup: LinkedLookup,
        suffix: str = DEFAULT_LINKED_SUFFIX,
        timeout_s: float = DEFAULT_LINKED_TIMEOUT_S,
    ) -> None:
        self._lookup = lookup
        self.suffix = suffix
        self.timeout_s = timeout_s

    def linked_identifier(self, identifier: str) -> str:
        return f"{identifier}{self.suffix}"

    async def fetch(self, identifier: str) -> Optional[AccountRecord]:
        """Fetch the linked account for primary ``identifier``.

        Returns:
            The linked AccountRecord, or None when it does not exist.

        Raises:
            LinkedLookupFailed: On timeout or any error from the lookup.
        """
        linked_id = self.linked_identifier(identifier)
        try:
            return await asyncio.wait_for(self._call(linked_id), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            raise LinkedLookupFailed(
                linked_id, f"timed out after {self.timeout_s:.1f}s"
            ) from None
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise LinkedLookupFailed(linked_id, f"{type(exc).__name__}: {exc}") from exc

    async def _call(self, linked_id: str) -> Optional[AccountRecord]:
        if inspect.iscoroutinefunction(self._lookup):
            return await self._lookup(linked_id)
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, self._lookup, linked_id)
        if inspect.isawaitable(result):
            return await result
        return result
