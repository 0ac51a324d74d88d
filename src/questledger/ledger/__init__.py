"""Ledgers — completion and claim flags keyed by (user, quest)."""

from questledger.ledger.claims import ClaimLedger
from questledger.ledger.completion import CompletionLedger

__all__ = ["ClaimLedger", "CompletionLedger"]
