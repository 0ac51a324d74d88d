"""Quest ledger models — quest definitions and per-user status.

QuestDefinition is immutable once registered. UserQuestStatus is a
read-only view assembled from the completion and claim ledgers; the
ledgers themselves own the underlying flags.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


# (user, quest_id), the key of both ledgers
LedgerKey = Tuple[str, int]


# Quests seeded at initialization: quest_id → reward token id
SEED_QUESTS: dict[int, int] = {
    1001: 50,
    1002: 101,
}


@dataclass(frozen=True)
class QuestDefinition:
    """A registered quest and the reward token it entitles a user to."""
    quest_id: int
    reward_token_id: int

    def to_dict(self) -> dict[str, int]:
        return {
            "quest_id": self.quest_id,
            "reward_token_id": self.reward_token_id,
        }


@dataclass(frozen=True)
class UserQuestStatus:
    """Completion and claim status for one (user, quest) pair.

    Invariant: claimed implies completed.
    """
    user: str
    quest_id: int
    completed: bool = False
    claimed: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "user": self.user,
            "quest_id": self.quest_id,
            "completed": self.completed,
            "claimed": self.claimed,
        }
