"""Claim ledger — records that a reward has been issued per (user, quest).

This ledger sits on the ordering-critical path of a claim. The service
flips the flag here *before* calling the external issuer, so any
re-entrant claim for the same pair made from inside the issuer sees the
pair as already claimed and is rejected.

The flag is one-way. revert() exists only so the service can undo its
own flip when the issuer fails within the same transaction; from the
outside the pair is never observed going claimed → unclaimed.
"""

from __future__ import annotations

from typing import List, Set

from questledger.errors import AlreadyClaimed
from questledger.models.quest import LedgerKey


class ClaimLedger:
    """Per (user, quest) claim flags. Unseen keys read as not claimed."""

    def __init__(self, claimed: Set[LedgerKey] | None = None) -> None:
        self._claimed: Set[LedgerKey] = set(claimed or ())

    def mark_claimed(self, user: str, quest_id: int) -> None:
        """Set claimed=True. Raises AlreadyClaimed if it was already set."""
        key = (user, quest_id)
        if key in self._claimed:
            raise AlreadyClaimed(
                f"Reward already claimed: user={user} quest={quest_id}"
            )
        self._claimed.add(key)

    def is_claimed(self, user: str, quest_id: int) -> bool:
        return (user, quest_id) in self._claimed

    def revert(self, user: str, quest_id: int) -> None:
        """Undo a mark_claimed() made by the current, failed transaction."""
        self._claimed.discard((user, quest_id))

    def entries(self) -> List[LedgerKey]:
        return sorted(self._claimed)

    @property
    def count(self) -> int:
        return len(self._claimed)
