"""Error taxonomy for the quest ledger.

Every failure is a precondition violation: it aborts the current operation
with no partial state change and is reported verbatim to the caller. The
service facade converts these into failed ServiceResults carrying the
matching ErrorKind.
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    """Classification of operation failures."""
    UNAUTHORIZED = "unauthorized"
    ALREADY_INITIALIZED = "already_initialized"
    NOT_INITIALIZED = "not_initialized"
    INVALID_ADDRESS = "invalid_address"
    INVALID_QUEST = "invalid_quest"
    QUEST_NOT_COMPLETED = "quest_not_completed"
    ALREADY_CLAIMED = "already_claimed"
    ISSUANCE_FAILED = "issuance_failed"


class QuestError(ValueError):
    """Base class for all ledger precondition failures."""
    kind: ErrorKind


class Unauthorized(QuestError):
    """Raised when a privileged operation is not called by the authority."""
    kind = ErrorKind.UNAUTHORIZED


class AlreadyInitialized(QuestError):
    """Raised on any second attempt at one-time setup."""
    kind = ErrorKind.ALREADY_INITIALIZED


class NotInitialized(QuestError):
    """Raised when an operation runs before initialize() has succeeded."""
    kind = ErrorKind.NOT_INITIALIZED


class InvalidAddress(QuestError):
    """Raised for an empty, blank or all-zero identity/address."""
    kind = ErrorKind.INVALID_ADDRESS


class InvalidQuest(QuestError):
    """Raised when a quest id is not registered (or cannot be registered)."""
    kind = ErrorKind.INVALID_QUEST


class QuestNotCompleted(QuestError):
    """Raised when claiming a quest the authority has not certified."""
    kind = ErrorKind.QUEST_NOT_COMPLETED


class AlreadyClaimed(QuestError):
    """Raised when the reward for (user, quest) has already been issued."""
    kind = ErrorKind.ALREADY_CLAIMED


class IssuanceFailed(QuestError):
    """Raised when the external reward issuer rejects a mint."""
    kind = ErrorKind.ISSUANCE_FAILED

