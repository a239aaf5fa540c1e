"""Employer agreement ledger schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SignerInfo(BaseModel):
    """Authorised signatory details captured by the agreement UI."""

    name: str
    position: str | None = None
    company_name: str | None = None
    email: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class Clause(BaseModel):
    """Static clause definition."""

    clause_id: str
    title: str
    content: str = ""
    penalty: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class ClauseAcceptance(BaseModel):
    clause_id: str
    signer: SignerInfo
    accepted_at: datetime

    model_config = ConfigDict(extra="forbid", frozen=True)


class ClauseRevocation(BaseModel):
    """Administrative override withdrawing a previously accepted clause."""

    clause_id: str
    admin_id: str
    reason: str
    revoked_at: datetime

    model_config = ConfigDict(extra="forbid", frozen=True)


class AgreementRecord(BaseModel):
    """Append-only clause history for one employer."""

    employer_id: str
    acceptances: tuple[ClauseAcceptance, ...] = ()
    revocations: tuple[ClauseRevocation, ...] = ()
    created_at: datetime | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    def accepted_clauses(self) -> frozenset[str]:
        """Current accepted set, replaying acceptances and revocations in time order."""
        timeline: list[tuple[datetime, bool, str]] = [
            (item.accepted_at, False, item.clause_id) for item in self.acceptances
        ]
        timeline.extend((item.revoked_at, True, item.clause_id) for item in self.revocations)
        accepted: set[str] = set()
        for _, is_revocation, clause_id in sorted(timeline, key=lambda entry: (entry[0], entry[1])):
            if is_revocation:
                accepted.discard(clause_id)
            else:
                accepted.add(clause_id)
        return frozenset(accepted)

    def acceptance_for(self, clause_id: str) -> ClauseAcceptance | None:
        for item in reversed(self.acceptances):
            if item.clause_id == clause_id:
                return item
        return None


__all__ = [
    "AgreementRecord",
    "Clause",
    "ClauseAcceptance",
    "ClauseRevocation",
    "SignerInfo",
]
