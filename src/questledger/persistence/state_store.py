"""State store — JSON-based persistence for the ledger's runtime state.

Stores and recovers:
- Authority identity and bound issuer address
- Quest definitions
- Completed (user, quest) pairs
- Claimed (user, quest) pairs

This is a simple file-based store suitable for single-node deployment.
A database backend can replace it behind the same interface.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Optional

from questledger.models.quest import LedgerKey, QuestDefinition


class StateStore:
    """JSON file-based state persistence.

    Usage:
        store = StateStore(Path("data/state.json"))
        store.save(authority, issuer_address, definitions, completed, claimed)

        # On recovery:
        authority, issuer_address = store.load_setup()
        definitions = store.load_quests()
        completed = store.load_completed()
        claimed = store.load_claimed()
    """

    def __init__(self, storage_path: Path) -> None:
        self._path = storage_path
        self._state: dict[str, Any] = {}
        if storage_path.exists():
            self._load()

    def _load(self) -> None:
        with self._path.open("r", encoding="utf-8") as f:
            self._state = json.load(f)

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(self._state, f, indent=2, sort_keys=True, ensure_ascii=False)
        tmp.replace(self._path)

    def save(
        self,
        authority: Optional[str],
        issuer_address: Optional[str],
        definitions: Iterable[QuestDefinition],
        completed: Iterable[LedgerKey],
        claimed: Iterable[LedgerKey],
    ) -> None:
        """Serialize the full ledger state in one write."""
        self._state = {
            "authority": authority,
            "issuer_address": issuer_address,
            "quests": [d.to_dict() for d in definitions],
            "completed": [[user, quest_id] for user, quest_id in completed],
            "claimed": [[user, quest_id] for user, quest_id in claimed],
        }
        self._save()

    def load_setup(self) -> tuple[Optional[str], Optional[str]]:
        """Return (authority, issuer_address); both None if never initialized."""
        return self._state.get("authority"), self._state.get("issuer_address")

    def load_quests(self) -> list[QuestDefinition]:
        return [
            QuestDefinition(
                quest_id=int(data["quest_id"]),
                reward_token_id=int(data["reward_token_id"]),
            )
            for data in self._state.get("quests", [])
        ]

    def load_completed(self) -> set[LedgerKey]:
        return {(user, int(quest_id)) for user, quest_id in self._state.get("completed", [])}

    def load_claimed(self) -> set[LedgerKey]:
        return {(user, int(quest_id)) for user, quest_id in self._state.get("claimed", [])}

    def snapshot(self) -> dict[str, Any]:
        """Raw copy of the stored state, for invariant checks."""
        return json.loads(json.dumps(self._state))
