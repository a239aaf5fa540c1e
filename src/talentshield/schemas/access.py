"""Access grant schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

MIN_LEVEL = 1
MAX_LEVEL = 4


class AccessGrant(BaseModel):
    """Disclosure level held by an employer for one candidate."""

    employer_id: str
    candidate_id: str
    level: int = Field(default=MIN_LEVEL, ge=MIN_LEVEL, le=MAX_LEVEL)
    granted_at: datetime
    restrictions: frozenset[str] = frozenset()
    watermark_enabled: bool = True
    evidence_id: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def key(self) -> tuple[str, str]:
        return (self.employer_id, self.candidate_id)


class AuditEntry(BaseModel):
    """Append-only record of a grant-affecting action."""

    employer_id: str
    candidate_id: str
    action: str
    from_level: int
    to_level: int
    recorded_at: datetime
    evidence_id: str | None = None
    evidence_kind: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


__all__ = ["AccessGrant", "AuditEntry", "MAX_LEVEL", "MIN_LEVEL"]
