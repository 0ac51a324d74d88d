"""Core data models for the quest ledger."""

from questledger.models.quest import (
    LedgerKey,
    QuestDefinition,
    SEED_QUESTS,
    UserQuestStatus,
)

__all__ = [
    "LedgerKey",
    "QuestDefinition",
    "SEED_QUESTS",
    "UserQuestStatus",
]
