"""In-memory reward issuer — records mints instead of sending them anywhere.

Used for dry runs from the CLI (no chain credentials configured) and as
the substitutable stub in tests. Supports failure injection and an
on_mint hook that runs before the mint is recorded, which is how the
tests drive a re-entrant call back into the ledger.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from questledger.issuer.base import IssuanceError, MintRecord

logger = logging.getLogger(__name__)


class RecordingRewardIssuer:
    """Reward issuer that appends each mint to an in-memory list.

    Usage:
        issuer = RecordingRewardIssuer(address="0xIssuer")
        issuer.mint("alice", 50)
        issuer.mints[0].token_id   # 50

        issuer.fail_next("supply exhausted")
        issuer.mint("bob", 50)     # raises IssuanceError
    """

    def __init__(
        self,
        address: str = "recording-issuer",
        on_mint: Optional[Callable[[str, int], None]] = None,
    ) -> None:
        self.address = address
        self.on_mint = on_mint
        self._mints: List[MintRecord] = []
        self._pending_failure: Optional[str] = None

    @property
    def mints(self) -> List[MintRecord]:
        return list(self._mints)

    def fail_next(self, reason: str) -> None:
        """Make the next mint() raise IssuanceError(reason)."""
        self._pending_failure = reason

    def mint(self, recipient: str, token_id: int) -> MintRecord:
        if self.on_mint is not None:
            self.on_mint(recipient, token_id)
        if self._pending_failure is not None:
            reason, self._pending_failure = self._pending_failure, None
            raise IssuanceError(reason)

        record = MintRecord(
            recipient=recipient,
            token_id=token_id,
            timestamp_utc=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        )
        self._mints.append(record)
        logger.info("Recorded mint of token %s to %s", token_id, recipient)
        return record
