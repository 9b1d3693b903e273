"""Clarity History — append-only version records per project.

``HistoryStore``  — append / read-ordered protocol
``snapshot_hook`` — controller terminal hook recording completed research
"""

from .store import (
    HistoryStore,
    InMemoryHistoryStore,
    RedisHistoryStore,
    decisions_from_insight,
    snapshot_hook,
)

__all__ = [
    "HistoryStore",
    "InMemoryHistoryStore",
    "RedisHistoryStore",
    "decisions_from_insight",
    "snapshot_hook",
]
