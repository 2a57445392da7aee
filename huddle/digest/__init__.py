"""Scheduled digest runs: profiles, orchestration and run events."""

from __future__ import annotations

from .observability import DigestEventLogger, DigestEventType
from .profiles import (
    ACTIVITY_PROFILE,
    PROFILES,
    TICKETS_PROFILE,
    ProfileName,
    RunProfile,
)
from .service import (
    DRY_RUN_FENCE,
    Deliverer,
    DigestRunResult,
    DigestService,
    DigestServiceDependencies,
    FailureCategory,
    RunFailure,
    RunOutcome,
)

__all__ = [
    "ACTIVITY_PROFILE",
    "DRY_RUN_FENCE",
    "PROFILES",
    "TICKETS_PROFILE",
    "Deliverer",
    "DigestEventLogger",
    "DigestEventType",
    "DigestRunResult",
    "DigestService",
    "DigestServiceDependencies",
    "FailureCategory",
    "ProfileName",
    "RunFailure",
    "RunOutcome",
    "RunProfile",
]
