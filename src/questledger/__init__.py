"""Quest ledger — authority-gated, exactly-once reward claims."""

from questledger.service import QuestService, ServiceResult

__all__ = ["QuestService", "ServiceResult"]
