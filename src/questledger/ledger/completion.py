"""Completion ledger — authority-certified quest completion per (user, quest).

Marking is idempotent: re-marking a completed pair is a no-op and the
caller is told so, which lets the service skip the duplicate completion
event. There is no un-marking outside of transaction rollback.
"""

from __future__ import annotations

from typing import List, Set

from questledger.models.quest import LedgerKey


class CompletionLedger:
    """Per (user, quest) completion flags. Unseen keys read as not completed.

    Usage:
        ledger = CompletionLedger()
        ledger.mark("alice", 1001)          # True, newly completed
        ledger.mark("alice", 1001)          # False, already completed
        ledger.is_completed("alice", 1001)  # True
    """

    def __init__(self, completed: Set[LedgerKey] | None = None) -> None:
        self._completed: Set[LedgerKey] = set(completed or ())

    def mark(self, user: str, quest_id: int) -> bool:
        """Set completed=True. Returns False if it was already set."""
        key = (user, quest_id)
        if key in self._completed:
            return False
        self._completed.add(key)
        return True

    def is_completed(self, user: str, quest_id: int) -> bool:
        return (user, quest_id) in self._completed

    def unmark(self, user: str, quest_id: int) -> None:
        """Undo a mark made by the current transaction."""
        self._completed.discard((user, quest_id))

    def entries(self) -> List[LedgerKey]:
        return sorted(self._completed)

    @property
    def count(self) -> int:
        return len(self._completed)
