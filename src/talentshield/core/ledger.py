"""Per-employer record of accepted agreement clauses."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable, Mapping

import pendulum
import structlog

from ..errors import UnknownClause
from ..schemas import (
    AgreementRecord,
    Clause,
    ClauseAccepted,
    ClauseAcceptance,
    ClauseRevocation,
    SignerInfo,
)
from ..stores import AgreementStore, InMemoryAgreementStore, KeyedLocks

logger = structlog.get_logger(__name__)

SUCCESS_FEE_CLAUSE = "success_fee_commitment"

CLAUSES: dict[str, Clause] = {
    clause.clause_id: clause
    for clause in (
        Clause(
            clause_id="no_poaching",
            title="No-Poaching Commitment",
            content=(
                "The employer will not contact candidates directly outside the platform "
                "or hire candidates met through the platform without using its services."
            ),
            penalty="£500 per unauthorised contact, £2,000 per unauthorised hire",
        ),
        Clause(
            clause_id="platform_fee",
            title="Platform Fee Obligation",
            content=(
                "Any hire of a candidate sourced through the platform owes a success fee "
                "of 15% of first-year salary, whether the hire happens on or off platform."
            ),
            penalty="Applies for 12 months from first contact",
        ),
        Clause(
            clause_id="exclusive_period",
            title="Exclusive Period Restriction",
            content=(
                "For 12 months any hire of a candidate first contacted through the "
                "platform must be processed through the platform."
            ),
            penalty="Full success fee due regardless of final contact method",
        ),
        Clause(
            clause_id="monitoring_consent",
            title="Monitoring and Audit Rights",
            content=(
                "The employer consents to monitoring of platform communications and will "
                "provide hiring records and employment verification on request."
            ),
            penalty="Refusal to cooperate may result in account suspension",
        ),
        Clause(
            clause_id="information_security",
            title="Information Security and Non-Disclosure",
            content=(
                "Candidate information is used solely for recruitment through the "
                "platform and is not shared with third parties."
            ),
            penalty="£1,000 per candidate information breach",
        ),
        Clause(
            clause_id="platform_messaging",
            title="Platform-Only Communication",
            content=(
                "All communication with candidates stays inside platform messaging until "
                "full access is granted."
            ),
            penalty="External contact attempts are flagged and may restrict access",
        ),
        Clause(
            clause_id=SUCCESS_FEE_CLAUSE,
            title="Success Fee Commitment",
            content=(
                "The employer commits to the success fee for any hire resulting from "
                "full contact access."
            ),
            penalty="Full success fee due on hire",
        ),
    )
}

SKILLS_ACCESS_CLAUSES: tuple[str, ...] = (
    "no_poaching",
    "platform_fee",
    "exclusive_period",
    "monitoring_consent",
    "information_security",
    "platform_messaging",
)

DEFAULT_REQUIRED_CLAUSES: dict[int, tuple[str, ...]] = {
    2: SKILLS_ACCESS_CLAUSES,
    3: (),
    4: (SUCCESS_FEE_CLAUSE,),
}


class AgreementLedger:
    """Append-only clause acceptances per employer.

    Acceptance is idempotent: accepting a clause that is already in force
    returns the original acceptance and leaves the record untouched.
    Administrative revocations are appended rather than deleting history.
    """

    def __init__(
        self,
        *,
        store: AgreementStore | None = None,
        required_clauses: Mapping[int, Iterable[str]] | None = None,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store or InMemoryAgreementStore()
        source = DEFAULT_REQUIRED_CLAUSES if required_clauses is None else required_clauses
        self._required = {int(level): tuple(ids) for level, ids in source.items()}
        for clause_ids in self._required.values():
            for clause_id in clause_ids:
                self.clause(clause_id)
        self._now = now_provider or (lambda: pendulum.now("UTC"))
        self._locks = KeyedLocks()

    @staticmethod
    def clause(clause_id: str) -> Clause:
        try:
            return CLAUSES[clause_id]
        except KeyError:
            raise UnknownClause(clause_id) from None

    def required_for(self, level: int) -> tuple[str, ...]:
        """Clause ids that must be in force before moving to ``level``."""
        return self._required.get(level, ())

    def record(self, employer_id: str) -> AgreementRecord:
        return self._store.get(employer_id) or AgreementRecord(employer_id=employer_id)

    def accepted_clauses(self, employer_id: str) -> frozenset[str]:
        return self.record(employer_id).accepted_clauses()

    def record_acceptance(
        self, employer_id: str, clause_id: str, signer: SignerInfo
    ) -> ClauseAcceptance:
        self.clause(clause_id)
        with self._locks.hold(employer_id):
            record = self._store.get(employer_id)
            if record is None:
                record = AgreementRecord(employer_id=employer_id, created_at=self._now())
            if clause_id in record.accepted_clauses():
                existing = record.acceptance_for(clause_id)
                if existing is not None:
                    return existing
            acceptance = ClauseAcceptance(
                clause_id=clause_id, signer=signer, accepted_at=self._now()
            )
            self._store.save(
                record.model_copy(update={"acceptances": record.acceptances + (acceptance,)})
            )
        logger.info("agreement.clause_accepted", employer_id=employer_id, clause_id=clause_id)
        return acceptance

    def handle_clause_accepted(self, event: ClauseAccepted) -> ClauseAcceptance:
        return self.record_acceptance(event.employer_id, event.clause_id, event.signer)

    def administrative_revoke(
        self, employer_id: str, clause_id: str, *, admin_id: str, reason: str
    ) -> ClauseRevocation | None:
        """Withdraw an accepted clause. Returns None when it was not in force."""
        self.clause(clause_id)
        with self._locks.hold(employer_id):
            record = self._store.get(employer_id)
            if record is None or clause_id not in record.accepted_clauses():
                return None
            revocation = ClauseRevocation(
                clause_id=clause_id,
                admin_id=admin_id,
                reason=reason,
                revoked_at=self._now(),
            )
            self._store.save(
                record.model_copy(update={"revocations": record.revocations + (revocation,)})
            )
        logger.warning(
            "agreement.clause_revoked",
            employer_id=employer_id,
            clause_id=clause_id,
            admin_id=admin_id,
        )
        return revocation

    def missing_clauses(self, employer_id: str, required: Iterable[str]) -> list[str]:
        accepted = self.accepted_clauses(employer_id)
        return [clause_id for clause_id in required if clause_id not in accepted]

    def is_fully_signed(self, employer_id: str, required: Iterable[str]) -> bool:
        return not self.missing_clauses(employer_id, required)


__all__ = [
    "AgreementLedger",
    "CLAUSES",
    "DEFAULT_REQUIRED_CLAUSES",
    "SKILLS_ACCESS_CLAUSES",
    "SUCCESS_FEE_CLAUSE",
]
