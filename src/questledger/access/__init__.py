"""Access control — the single authority."""

from questledger.access.controller import (
    AccessController,
    require_address,
    require_identity,
)

__all__ = ["AccessController", "require_address", "require_identity"]
