"""Reward issuers — the external minting collaborator and its adapters."""

from questledger.issuer.base import (
    IssuanceError,
    IssuanceUnconfirmed,
    MintRecord,
    RewardIssuer,
)
from questledger.issuer.chain import Web3RewardIssuer
from questledger.issuer.recording import RecordingRewardIssuer

__all__ = [
    "IssuanceError",
    "IssuanceUnconfirmed",
    "MintRecord",
    "RecordingRewardIssuer",
    "RewardIssuer",
    "Web3RewardIssuer",
]
