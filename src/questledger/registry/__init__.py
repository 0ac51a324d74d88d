"""Quest registry."""

from questledger.registry.quests import QuestRegistry

__all__ = ["QuestRegistry"]
