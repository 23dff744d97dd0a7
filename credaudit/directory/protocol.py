"""AccountDirectory Protocol: what an audit run needs from a directory.

Implementations: DumpDirectory (dump files). A live directory client only has
to provide the same two methods.
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol, runtime_checkable

from credaudit.models.account import AccountRecord


@runtime_checkable
class AccountDirectory(Protocol):
    def accounts(self) -> Iterable[AccountRecord]:
        """Enabled user accounts, already filtered by type and state."""
        ...

    async def get_account(self, identifier: str) -> Optional[AccountRecord]:
        """Single-account lookup used by the linked identity check."""
        ...
