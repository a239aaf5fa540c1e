"""Suspicion event schemas consumed by the monitoring dashboard."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .evidence import Evidence

Severity = Literal["low", "medium", "high", "critical"]
EventStatus = Literal["flagged", "reviewed", "resolved", "escalated"]

SEVERITIES: tuple[Severity, ...] = ("low", "medium", "high", "critical")


class StatusChange(BaseModel):
    from_status: EventStatus
    to_status: EventStatus
    changed_at: datetime
    reviewer: str | None = None
    note: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class SuspicionReport(BaseModel):
    """Input for a new suspicion event."""

    employer_id: str
    candidate_id: str
    activity_type: str
    severity: Severity
    evidence: Evidence | None = None
    actor_id: str | None = None
    description: str = ""

    model_config = ConfigDict(extra="forbid", frozen=True)


class SuspicionEvent(BaseModel):
    """Auditable record of a detected or reported violation."""

    event_id: str
    employer_id: str
    candidate_id: str
    activity_type: str
    severity: Severity
    evidence: Evidence | None = None
    actor_id: str | None = None
    description: str = ""
    status: EventStatus = "flagged"
    created_at: datetime
    status_history: tuple[StatusChange, ...] = ()

    model_config = ConfigDict(extra="forbid", frozen=True)


class EventFilter(BaseModel):
    employer_id: str | None = None
    candidate_id: str | None = None
    status: EventStatus | None = None
    severity: Severity | None = None
    since: datetime | None = None
    until: datetime | None = None
    limit: int | None = Field(default=None, ge=1)

    model_config = ConfigDict(extra="forbid")

    def matches(self, event: SuspicionEvent) -> bool:
        if self.employer_id is not None and event.employer_id != self.employer_id:
            return False
        if self.candidate_id is not None and event.candidate_id != self.candidate_id:
            return False
        if self.status is not None and event.status != self.status:
            return False
        if self.severity is not None and event.severity != self.severity:
            return False
        if self.since is not None and event.created_at < self.since:
            return False
        if self.until is not None and event.created_at >= self.until:
            return False
        return True


class WindowStats(BaseModel):
    """Aggregated counters for a trailing time window."""

    window_seconds: float
    total: int = 0
    critical: int = 0
    high: int = 0
    by_severity: dict[str, int] = Field(default_factory=dict)
    top_activity_types: list[tuple[str, int]] = Field(default_factory=list)
    top_employers: list[tuple[str, int]] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


__all__ = [
    "EventFilter",
    "EventStatus",
    "SEVERITIES",
    "Severity",
    "StatusChange",
    "SuspicionEvent",
    "SuspicionReport",
    "WindowStats",
]
