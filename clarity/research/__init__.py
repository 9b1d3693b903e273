"""Clarity Research — asynchronous research jobs producing InsightData.

Architecture:
    ResearchJobController — state machine for one job per (user, project, query)
    Collector             — external content collection (protocol)
    normalize_findings    — raw collector payload → InsightData
    validate              — InsightData invariants, checked before completion
    JobStore              — get/put persistence (in-memory or Redis)
"""

from .collector import CollectionRequest, Collector, FileCollector
from .controller import ResearchJobController
from .normalize import normalize_findings
from .store import InMemoryJobStore, JobStore, RedisJobStore
from .validation import find_violations, validate

__all__ = [
    "CollectionRequest",
    "Collector",
    "FileCollector",
    "InMemoryJobStore",
    "JobStore",
    "RedisJobStore",
    "ResearchJobController",
    "find_violations",
    "normalize_findings",
    "validate",
]
