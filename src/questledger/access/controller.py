"""Access controller — the single authority and the guard on privileged operations.

The authority is recorded exactly once, at initialization, and is
immutable for the lifetime of the system. There is no transfer, no
renouncement and no second authority.
"""

from __future__ import annotations

import re
from typing import Optional

from questledger.errors import AlreadyInitialized, InvalidAddress, Unauthorized


_ZERO_HEX = re.compile(r"^(0x)?0+$", re.IGNORECASE)


def require_identity(identity: str, label: str = "identity") -> str:
    """Return the stripped identity, or raise InvalidAddress if blank."""
    if not isinstance(identity, str) or not identity.strip():
        raise InvalidAddress(f"{label} must be a non-empty identity")
    return identity.strip()


def require_address(address: str, label: str = "address") -> str:
    """Like require_identity, but also rejects the all-zero hex address."""
    value = require_identity(address, label)
    if _ZERO_HEX.match(value):
        raise InvalidAddress(f"{label} must not be the zero address: {value}")
    return value


class AccessController:
    """Holds the authority identity and enforces that privileged calls come from it.

    Usage:
        access = AccessController()
        access.initialize_authority("authority")
        access.require_authority("authority")   # passes
        access.require_authority("mallory")     # raises Unauthorized
    """

    def __init__(self, authority: Optional[str] = None) -> None:
        self._authority = authority

    @property
    def authority(self) -> Optional[str]:
        return self._authority

    @property
    def is_initialized(self) -> bool:
        return self._authority is not None

    def initialize_authority(self, caller: str) -> str:
        """Record the caller as the authority. One-time only."""
        if self._authority is not None:
            raise AlreadyInitialized(
                f"Authority already set: {self._authority}"
            )
        self._authority = require_identity(caller, "authority")
        return self._authority

    def require_authority(self, caller: str) -> None:
        """Raise Unauthorized unless caller is the authority. No side effects."""
        if self._authority is None or caller != self._authority:
            raise Unauthorized(f"Caller is not the authority: {caller}")

    def reset(self) -> None:
        """Clear the authority. Only for rolling back a failed initialize()."""
        self._authority = None
