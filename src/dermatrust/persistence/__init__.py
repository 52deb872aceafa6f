"""Persistence layer — event log and state storage."""

from dermatrust.persistence.event_log import EventLog, EventRecord, EventKind
from dermatrust.persistence.state_store import StateStore

__all__ = ["EventLog", "EventRecord", "EventKind", "StateStore"]
