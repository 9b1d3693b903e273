from .history import Decision, LockedDecisions, VersionData, VersionRecord
from .insight import (
    Citation,
    Competitor,
    Demographics,
    InsightData,
    Opportunity,
    PainPoint,
    Persona,
)
from .job import JobError, JobStatus, ResearchJob

__all__ = [
    "Citation",
    "Competitor",
    "Decision",
    "Demographics",
    "InsightData",
    "JobError",
    "JobStatus",
    "LockedDecisions",
    "Opportunity",
    "PainPoint",
    "Persona",
    "ResearchJob",
    "VersionData",
    "VersionRecord",
]
