"""Ledger invariant checks against a state snapshot.

The snapshot layout is the StateStore layout (also produced by
QuestService.snapshot()). Each check appends a human-readable violation
message; an empty list means the snapshot is consistent.
"""

from __future__ import annotations

from typing import Any


def check_state(state: dict[str, Any]) -> list[str]:
    errors: list[str] = []

    authority = state.get("authority")
    issuer_address = state.get("issuer_address")
    quests = {q["quest_id"]: q["reward_token_id"] for q in state.get("quests", [])}
    completed = {(u, q) for u, q in state.get("completed", [])}
    claimed = {(u, q) for u, q in state.get("claimed", [])}

    # --- Setup invariants ---
    if authority is None:
        if issuer_address is not None:
            errors.append("issuer address bound without an authority")
        if quests or completed or claimed:
            errors.append("ledger state present before initialization")
    elif not issuer_address:
        errors.append("authority set without an issuer address")

    # --- Registry invariants ---
    for quest_id, reward in sorted(quests.items()):
        if not isinstance(reward, int) or reward <= 0:
            errors.append(f"quest {quest_id} has non-positive reward token id: {reward!r}")

    # --- Ledger invariants ---
    for user, quest_id in sorted(completed):
        if quest_id not in quests:
            errors.append(f"completion for unregistered quest: {user}/{quest_id}")
    for user, quest_id in sorted(claimed):
        if quest_id not in quests:
            errors.append(f"claim for unregistered quest: {user}/{quest_id}")
        if (user, quest_id) not in completed:
            errors.append(f"claimed without completion: {user}/{quest_id}")

    return errors
