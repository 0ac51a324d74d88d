"""Persistence layer — event log and state storage."""

from questledger.persistence.event_log import EventLog, EventRecord, EventKind
from questledger.persistence.state_store import StateStore

__all__ = ["EventLog", "EventRecord", "EventKind", "StateStore"]
