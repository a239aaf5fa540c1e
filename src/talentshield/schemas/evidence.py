"""Tagged evidence payloads attached to grants and suspicion events."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .agreement import SignerInfo


class PaymentEvidence(BaseModel):
    """Confirmation of the one-time access fee from the payment collaborator."""

    kind: Literal["payment"] = "payment"
    evidence_id: str
    employer_id: str
    candidate_id: str
    target_level: int
    amount: float
    currency: str = "GBP"
    confirmed_at: datetime | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class ClauseEvidence(BaseModel):
    """Reference to agreement clauses accepted in the ledger."""

    kind: Literal["clause"] = "clause"
    evidence_id: str | None = None
    clause_ids: tuple[str, ...] = ()
    signer: SignerInfo | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class ClassifierEvidence(BaseModel):
    """Masked classifier findings for a blocked message."""

    kind: Literal["classifier"] = "classifier"
    message_id: str
    conversation_id: str
    categories: tuple[str, ...] = ()
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    masked: tuple[str, ...] = ()

    model_config = ConfigDict(extra="forbid", frozen=True)


class ReportEvidence(BaseModel):
    """Manual report filed by a candidate or an administrator."""

    kind: Literal["report"] = "report"
    reporter_id: str
    report_type: str
    description: str = ""

    model_config = ConfigDict(extra="forbid", frozen=True)


class ActivityEvidence(BaseModel):
    """Counters behind a behavioural pattern detection."""

    kind: Literal["activity"] = "activity"
    pattern: str
    counts: dict[str, int] = Field(default_factory=dict)
    window_hours: float = 24.0

    model_config = ConfigDict(extra="forbid", frozen=True)


Evidence = Annotated[
    Union[
        PaymentEvidence,
        ClauseEvidence,
        ClassifierEvidence,
        ReportEvidence,
        ActivityEvidence,
    ],
    Field(discriminator="kind"),
]


__all__ = [
    "ActivityEvidence",
    "ClassifierEvidence",
    "ClauseEvidence",
    "Evidence",
    "PaymentEvidence",
    "ReportEvidence",
]
