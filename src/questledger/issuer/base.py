"""Reward issuer contract — the one external collaborator of the ledger.

The ledger never mints anything itself. It delegates the irreversible
side effect to a separately-governed issuance service and trusts only
this interface: mint one reward token id to one recipient. Failure is
signalled by raising; IssuanceError is the documented failure type.

Adding a new issuer = implement this Protocol. Zero changes to the
ledgers, the registry or the claim protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


class IssuanceError(Exception):
    """Raised by an issuer when a mint did not happen."""


class IssuanceUnconfirmed(IssuanceError):
    """Raised when a mint was sent but its outcome is unknown.

    The transaction may still land, so the claim must stand. `tx_hash`
    identifies it for reconciliation.
    """

    def __init__(self, message: str, tx_hash: Optional[str] = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash


@dataclass(frozen=True)
class MintRecord:
    """A record of one successful mint."""
    recipient: str
    token_id: int
    timestamp_utc: str
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None


@runtime_checkable
class RewardIssuer(Protocol):
    """Abstract contract for reward issuance backends.

    The issuer is an untrusted boundary: it may call back into the
    ledger while mint() is running. Implementations must either mint
    exactly once and return, raise IssuanceError without minting, or
    raise IssuanceUnconfirmed once a mint has left their hands.
    """

    def mint(self, recipient: str, token_id: int) -> Optional[MintRecord]:
        """Issue reward token `token_id` to `recipient`."""
        ...
