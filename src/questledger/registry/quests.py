"""Quest registry — which quests exist and which reward token each one pays.

The registry is seeded during initialization and is otherwise only
extended through authority-gated registration at the service layer.
Definitions are never modified or removed once registered.

Quest existence is explicit (presence in the registry). A lookup for an
unknown quest returns None rather than overloading a zero reward id.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from questledger.errors import AlreadyInitialized, InvalidQuest
from questledger.models.quest import QuestDefinition, SEED_QUESTS


def _is_identifier(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class QuestRegistry:
    """Immutable-after-registration mapping of quest id → reward token id.

    Usage:
        registry = QuestRegistry()
        registry.seed()
        registry.reward_for(1001)   # 50
        registry.reward_for(9999)   # None
    """

    def __init__(self, definitions: Iterable[QuestDefinition] = ()) -> None:
        self._quests: Dict[int, QuestDefinition] = {}
        for definition in definitions:
            self.register_quest(definition.quest_id, definition.reward_token_id)

    def seed(self, quests: Optional[Dict[int, int]] = None) -> List[QuestDefinition]:
        """Populate the fixed quest set. Only valid on an empty registry."""
        if self._quests:
            raise AlreadyInitialized("Quest registry already seeded")
        seeded = []
        for quest_id, reward in (quests or SEED_QUESTS).items():
            seeded.append(self.register_quest(quest_id, reward))
        return seeded

    def register_quest(self, quest_id: int, reward_token_id: int) -> QuestDefinition:
        """Add a quest definition.

        Raises InvalidQuest for non-integer ids, a non-positive reward
        token id, or a quest id that is already registered.
        """
        if not _is_identifier(quest_id):
            raise InvalidQuest(f"Quest id must be an integer: {quest_id!r}")
        if not _is_identifier(reward_token_id) or reward_token_id <= 0:
            raise InvalidQuest(
                f"Reward token id must be a positive integer: {reward_token_id!r}"
            )
        if quest_id in self._quests:
            raise InvalidQuest(f"Quest already registered: {quest_id}")
        definition = QuestDefinition(quest_id=quest_id, reward_token_id=reward_token_id)
        self._quests[quest_id] = definition
        return definition

    def reward_for(self, quest_id: int) -> Optional[int]:
        """Return the reward token id, or None if the quest does not exist."""
        definition = self._quests.get(quest_id) if _is_identifier(quest_id) else None
        return definition.reward_token_id if definition is not None else None

    def has_quest(self, quest_id: int) -> bool:
        return self.reward_for(quest_id) is not None

    def definitions(self) -> List[QuestDefinition]:
        """All definitions, ordered by quest id."""
        return [self._quests[q] for q in sorted(self._quests)]

    def remove(self, quest_id: int) -> None:
        """Drop a definition. Only for rolling back a failed mutation."""
        self._quests.pop(quest_id, None)

    def clear(self) -> None:
        """Drop all definitions. Only for rolling back a failed initialize()."""
        self._quests.clear()

    @property
    def count(self) -> int:
        return len(self._quests)
