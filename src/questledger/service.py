"""Quest service — unified facade for the reward ledger.

This is the primary interface for programmatic access to the ledger.
It composes all components:
- Access control (the single authority, set once)
- Quest registry (quest id → reward token id)
- Completion ledger (authority-certified completion per user and quest)
- Claim ledger (exactly-once reward issuance per user and quest)
- Reward issuer (external collaborator, bound at initialization)
- Persistence (event log, state store)

Every operation runs under one re-entrant lock, so operations are
applied strictly one at a time and no caller ever observes a partially
applied change. All operations produce typed results; precondition
failures are reported in the result, never half-applied.

Claim ordering (checks → effects → interaction):
1. Validate quest, completion and claim status.
2. Flip the claim flag and persist it.
3. Call the issuer. A re-entrant claim for the same pair made from
   inside the issuer sees the flag already set and is rejected.
4. If the issuer fails, undo step 2 as if the call never happened.
   A mint that was sent but not confirmed keeps the flag set.
5. Record the RewardClaimed event (marked unconfirmed where it applies).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from questledger.access.controller import (
    AccessController,
    require_address,
    require_identity,
)
from questledger.errors import (
    AlreadyInitialized,
    ErrorKind,
    InvalidQuest,
    IssuanceFailed,
    NotInitialized,
    QuestError,
    QuestNotCompleted,
)
from questledger.issuer.base import (
    IssuanceError,
    IssuanceUnconfirmed,
    MintRecord,
    RewardIssuer,
)
from questledger.ledger.claims import ClaimLedger
from questledger.ledger.completion import CompletionLedger
from questledger.models.quest import QuestDefinition, UserQuestStatus
from questledger.persistence.event_log import EventKind, EventLog, EventRecord
from questledger.persistence.state_store import StateStore
from questledger.registry.quests import QuestRegistry

logger = logging.getLogger(__name__)


def _normalize(identity: str) -> str:
    """Identities are stored stripped; reads look them up the same way."""
    return identity.strip() if isinstance(identity, str) else identity


IssuerFactory = Callable[[str], RewardIssuer]


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    error_kind: Optional[ErrorKind] = None


class QuestService:
    """Authority-gated reward ledger facade.

    Usage:
        service = QuestService(lambda address: RecordingRewardIssuer(address))
        service.initialize("authority", "0xIssuer")

        service.mark_complete("authority", "alice", 1001)
        result = service.claim("alice", 1001)
        result.data["reward_token_id"]   # 50

    Persistence (optional):
        service = QuestService(factory, event_log=log, state_store=store)
        # State is persisted on each mutation and loaded on construction.
    """

    def __init__(
        self,
        issuer_factory: IssuerFactory,
        event_log: Optional[EventLog] = None,
        state_store: Optional[StateStore] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._issuer_factory = issuer_factory
        self._event_log = event_log if event_log is not None else EventLog()
        self._state_store = state_store

        if state_store is not None:
            authority, issuer_address = state_store.load_setup()
            self._access = AccessController(authority)
            self._registry = QuestRegistry(state_store.load_quests())
            self._completions = CompletionLedger(state_store.load_completed())
            self._claims = ClaimLedger(state_store.load_claimed())
        else:
            issuer_address = None
            self._access = AccessController()
            self._registry = QuestRegistry()
            self._completions = CompletionLedger()
            self._claims = ClaimLedger()

        self._issuer_address: Optional[str] = issuer_address
        self._issuer: Optional[RewardIssuer] = (
            issuer_factory(issuer_address) if issuer_address else None
        )
        # Continue numbering from the persisted log to avoid ID collision on restart
        self._event_counter = self._event_log.count
        self._persistence_degraded = False

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def initialize(self, caller: str, issuer_address: str) -> ServiceResult:
        """One-time setup: caller becomes the authority, issuer is bound, quests seeded."""
        with self._lock:
            try:
                if self._access.is_initialized:
                    raise AlreadyInitialized(
                        f"Already initialized by {self._access.authority}"
                    )
                authority = require_identity(caller, "caller")
                address = require_address(issuer_address, "issuer address")
                issuer = self._issuer_factory(address)
                seeded = self._registry.seed()
            except QuestError as e:
                return self._reject("initialize", e)

            self._access.initialize_authority(authority)
            self._issuer = issuer
            self._issuer_address = address

            def _rollback() -> None:
                self._access.reset()
                self._registry.clear()
                self._issuer = None
                self._issuer_address = None

            err = self._record_event(
                EventKind.INITIALIZED,
                authority,
                {"authority": authority, "issuer_address": address},
            )
            if err:
                _rollback()
                return ServiceResult(success=False, errors=[err])

            logger.info("Initialized: authority=%s issuer=%s", authority, address)
            data: dict[str, Any] = {
                "authority": authority,
                "issuer_address": address,
                "quests": [d.to_dict() for d in seeded],
            }
            return self._committed(data)

    def register_quest(
        self, caller: str, quest_id: int, reward_token_id: int,
    ) -> ServiceResult:
        """Authority-only: add a quest to the registry."""
        with self._lock:
            try:
                self._require_initialized()
                self._access.require_authority(caller)
                definition = self._registry.register_quest(quest_id, reward_token_id)
            except QuestError as e:
                return self._reject("register_quest", e)

            err = self._record_event(
                EventKind.QUEST_REGISTERED, caller, definition.to_dict(),
            )
            if err:
                self._registry.remove(quest_id)
                return ServiceResult(success=False, errors=[err])

            logger.info("Registered quest %s → reward %s", quest_id, reward_token_id)
            return self._committed(definition.to_dict())

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def mark_complete(self, caller: str, user: str, quest_id: int) -> ServiceResult:
        """Authority-only: certify that user completed quest_id.

        Idempotent: re-marking a completed pair succeeds without a second
        QuestCompleted event.
        """
        with self._lock:
            try:
                self._require_initialized()
                self._access.require_authority(caller)
                user = require_identity(user, "user")
                if not self._registry.has_quest(quest_id):
                    raise InvalidQuest(f"Unknown quest: {quest_id}")
            except QuestError as e:
                return self._reject("mark_complete", e)

            data: dict[str, Any] = {"user": user, "quest_id": quest_id, "completed": True}
            if not self._completions.mark(user, quest_id):
                data["already_completed"] = True
                return ServiceResult(success=True, data=data)

            err = self._record_event(
                EventKind.QUEST_COMPLETED, caller, {"user": user, "quest_id": quest_id},
            )
            if err:
                self._completions.unmark(user, quest_id)
                return ServiceResult(success=False, errors=[err])

            logger.info("Quest %s completed by %s", quest_id, user)
            data["already_completed"] = False
            return self._committed(data)

    # ------------------------------------------------------------------
    # Claim
    # ------------------------------------------------------------------

    def claim(self, caller: str, quest_id: int) -> ServiceResult:
        """Issue the reward for quest_id to caller, exactly once."""
        with self._lock:
            try:
                self._require_initialized()
                user = require_identity(caller, "caller")
                reward = self._registry.reward_for(quest_id)
                if reward is None:
                    raise InvalidQuest(f"Unknown quest: {quest_id}")
                if not self._completions.is_completed(user, quest_id):
                    raise QuestNotCompleted(
                        f"Quest {quest_id} not completed by {user}"
                    )
                self._claims.mark_claimed(user, quest_id)
            except QuestError as e:
                return self._reject("claim", e)

            # Claim flag is durable before control leaves the trust boundary
            err = self._safe_persist(
                on_rollback=lambda: self._claims.revert(user, quest_id),
            )
            if err:
                return ServiceResult(success=False, errors=[err])

            minted = False
            unconfirmed: Optional[IssuanceUnconfirmed] = None
            try:
                receipt = self._issuer.mint(user, reward)
                minted = True
            except IssuanceUnconfirmed as e:
                # The mint may still land: the claim stands until reconciled
                minted = True
                receipt = None
                unconfirmed = e
            except IssuanceError as e:
                return self._reject(
                    "claim", IssuanceFailed(f"Reward issuance failed: {e}"),
                )
            finally:
                if not minted:
                    self._claims.revert(user, quest_id)
                    self._restore_persisted_state()

            data: dict[str, Any] = {
                "user": user,
                "quest_id": quest_id,
                "reward_token_id": reward,
            }
            payload: dict[str, Any] = {"user": user, "quest_id": quest_id, "token_id": reward}
            if isinstance(receipt, MintRecord) and receipt.tx_hash:
                data["tx_hash"] = receipt.tx_hash
            if unconfirmed is not None:
                data["tx_hash"] = payload["tx_hash"] = unconfirmed.tx_hash
                data["confirmed"] = payload["confirmed"] = False
                data["warning"] = f"Mint unconfirmed, reconcile against the chain: {unconfirmed}"

            # The mint is irreversible: from here on failures degrade, never roll back
            err = self._record_event(EventKind.REWARD_CLAIMED, user, payload)
            if err:
                self._persistence_degraded = True
                data.setdefault("warning", f"Reward minted but not recorded: {err}")
                logger.warning("RewardClaimed event lost for %s/%s: %s", user, quest_id, err)

            logger.info("Reward %s claimed by %s for quest %s", reward, user, quest_id)
            return self._committed(data)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._access.is_initialized

    @property
    def authority(self) -> Optional[str]:
        return self._access.authority

    @property
    def issuer_address(self) -> Optional[str]:
        return self._issuer_address

    def reward_for(self, quest_id: int) -> Optional[int]:
        """Reward token id for quest_id, or None if the quest does not exist."""
        with self._lock:
            return self._registry.reward_for(quest_id)

    def is_completed(self, user: str, quest_id: int) -> bool:
        with self._lock:
            return self._completions.is_completed(_normalize(user), quest_id)

    def is_claimed(self, user: str, quest_id: int) -> bool:
        with self._lock:
            return self._claims.is_claimed(_normalize(user), quest_id)

    def status(self, user: str, quest_id: int) -> UserQuestStatus:
        user = _normalize(user)
        with self._lock:
            return UserQuestStatus(
                user=user,
                quest_id=quest_id,
                completed=self._completions.is_completed(user, quest_id),
                claimed=self._claims.is_claimed(user, quest_id),
            )

    def quests(self) -> list[QuestDefinition]:
        with self._lock:
            return self._registry.definitions()

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        with self._lock:
            return self._event_log.events(kind)

    def unconfirmed_claims(self) -> list[EventRecord]:
        """RewardClaimed events whose mint was sent but never confirmed."""
        with self._lock:
            return [
                e for e in self._event_log.events(EventKind.REWARD_CLAIMED)
                if e.payload.get("confirmed") is False
            ]

    def snapshot(self) -> dict[str, Any]:
        """Full ledger state in the StateStore layout."""
        with self._lock:
            return {
                "authority": self._access.authority,
                "issuer_address": self._issuer_address,
                "quests": [d.to_dict() for d in self._registry.definitions()],
                "completed": [list(k) for k in self._completions.entries()],
                "claimed": [list(k) for k in self._claims.entries()],
            }

    def summary(self) -> dict[str, Any]:
        """Return system-wide status summary."""
        with self._lock:
            return {
                "version": "0.1.0",
                "initialized": self._access.is_initialized,
                "authority": self._access.authority,
                "issuer_address": self._issuer_address,
                "quests": {
                    str(d.quest_id): d.reward_token_id
                    for d in self._registry.definitions()
                },
                "completions": self._completions.count,
                "claims": self._claims.count,
                "events": self._event_log.count,
                "unconfirmed_claims": len(self.unconfirmed_claims()),
                "persistence_degraded": self._persistence_degraded,
            }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_initialized(self) -> None:
        if not self._access.is_initialized:
            raise NotInitialized("Ledger not initialized; call initialize() first")

    def _reject(self, operation: str, error: QuestError) -> ServiceResult:
        logger.warning("%s rejected (%s): %s", operation, error.kind.value, error)
        return ServiceResult(
            success=False, errors=[str(error)], error_kind=error.kind,
        )

    def _committed(self, data: dict[str, Any]) -> ServiceResult:
        """Persist after the audit event is recorded and build the success result."""
        warning = self._safe_persist_post_audit()
        if warning:
            data.setdefault("warning", warning)
        return ServiceResult(success=True, data=data)

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _record_event(
        self, kind: EventKind, actor_id: str, payload: dict[str, Any],
    ) -> Optional[str]:
        """Append an event to the log. Returns error string or None."""
        try:
            event = EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=kind,
                actor_id=actor_id,
                payload=payload,
            )
            self._event_log.append(event)
        except (ValueError, OSError) as e:
            return f"Event log failure: {e}"
        return None

    def _persist_state(self) -> None:
        """Persist current state to the state store (if wired).

        NOTE: This method can raise OSError. Mutators should use
        _safe_persist() or _safe_persist_post_audit() instead.
        """
        if self._state_store is None:
            return
        self._state_store.save(
            authority=self._access.authority,
            issuer_address=self._issuer_address,
            definitions=self._registry.definitions(),
            completed=self._completions.entries(),
            claimed=self._claims.entries(),
        )

    def _safe_persist(
        self,
        on_rollback: Optional[Callable[[], None]] = None,
    ) -> Optional[str]:
        """Persist state with fail-closed error handling.

        On failure, runs the rollback callback to undo in-memory
        mutations and returns an error string.
        """
        try:
            self._persist_state()
            return None
        except OSError as e:
            if on_rollback is not None:
                on_rollback()
            return f"Persistence failure: {e}"

    def _safe_persist_post_audit(self) -> Optional[str]:
        """Persist state after the change is already committed.

        MUST NOT rollback in-memory state. If the write fails the store
        is stale: sets the degraded flag and returns a warning.
        """
        try:
            self._persist_state()
            return None
        except OSError as e:
            self._persistence_degraded = True
            logger.warning("State store write failed: %s", e)
            return f"Persistence degraded: {e}; state committed in event log but StateStore is stale"

    def _restore_persisted_state(self) -> None:
        """Re-write the store after a failed mint so it drops the claim flag.

        If this write fails, the store keeps claimed=True for an unminted
        reward: it blocks a claim rather than allowing a second mint.
        """
        warning = self._safe_persist_post_audit()
        if warning:
            logger.warning("Claim rollback not persisted: %s", warning)
