"""Access level state machine for employer/candidate pairs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

import pendulum
import structlog

from ..errors import GatingNotSatisfied, InvalidTransition
from ..schemas import (
    MAX_LEVEL,
    MIN_LEVEL,
    AccessGrant,
    AuditEntry,
    Evidence,
    PaymentConfirmed,
    PaymentEvidence,
)
from ..stores import GrantStore, InMemoryGrantStore, KeyedLocks
from .ledger import AgreementLedger

logger = structlog.get_logger(__name__)

PAYMENT_REQUIREMENT = "one_time_fee_payment"
PAID_LEVEL = 3

ALWAYS_RESTRICTED: frozenset[str] = frozenset({"no_external_contact", "platform_messaging_only"})

# restriction -> first level at which it is lifted
_LIFTED_AT: dict[str, int] = {
    "limited_profile_info": 2,
    "no_portfolio_access": 3,
    "no_video_profile": 3,
    "no_contact_details": 4,
    "watermarked_content": 4,
}


def restrictions_for(level: int) -> frozenset[str]:
    """Restrictions active for an employer holding ``level``."""
    lifted = {name for name, at in _LIFTED_AT.items() if level < at}
    return ALWAYS_RESTRICTED | lifted


@dataclass
class AccessPolicyConfig:
    """Configuration for level gating."""

    one_time_fee: float = 50.0
    currency: str = "GBP"


@dataclass(slots=True)
class UpgradeResult:
    granted: bool
    changed: bool
    level: int
    reason: str | None = None
    grant: AccessGrant | None = None


class AccessLevelPolicy:
    """Owns grant state and applies gated, single-step level upgrades.

    Upgrades for one (employer, candidate) pair are serialised with a keyed
    lock and written with a compare-and-swap on the previous level, so two
    concurrent requests cannot both change state.
    """

    def __init__(
        self,
        ledger: AgreementLedger,
        *,
        store: GrantStore | None = None,
        config: AccessPolicyConfig | None = None,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self._ledger = ledger
        self._store = store or InMemoryGrantStore()
        self._config = config or AccessPolicyConfig()
        self._now = now_provider or (lambda: pendulum.now("UTC"))
        self._locks = KeyedLocks()

    @property
    def ledger(self) -> AgreementLedger:
        return self._ledger

    def ensure_grant(self, employer_id: str, candidate_id: str) -> AccessGrant:
        """Return the pair's grant, creating it at level 1 on first interest."""
        with self._locks.hold((employer_id, candidate_id)):
            return self._ensure_locked(employer_id, candidate_id)

    def current_grant(self, employer_id: str, candidate_id: str) -> AccessGrant | None:
        return self._store.get(employer_id, candidate_id)

    def current_level(self, employer_id: str, candidate_id: str) -> int:
        grant = self._store.get(employer_id, candidate_id)
        return grant.level if grant is not None else MIN_LEVEL

    def history(self, employer_id: str, candidate_id: str) -> list[AccessGrant]:
        return self._store.history(employer_id, candidate_id)

    def audit_trail(self, employer_id: str, candidate_id: str) -> list[AuditEntry]:
        return self._store.audit(employer_id, candidate_id)

    def requirements_for(
        self,
        employer_id: str,
        candidate_id: str,
        target_level: int,
        evidence: Evidence | None = None,
    ) -> list[str]:
        """Names of the requirements still outstanding for ``target_level``."""
        remaining = self._ledger.missing_clauses(
            employer_id, self._ledger.required_for(target_level)
        )
        if target_level == PAID_LEVEL and not self._payment_satisfied(
            employer_id, candidate_id, evidence
        ):
            remaining.append(PAYMENT_REQUIREMENT)
        return remaining

    def request_upgrade(
        self,
        employer_id: str,
        candidate_id: str,
        target_level: int,
        evidence: Evidence | None = None,
    ) -> UpgradeResult:
        evidence_id = getattr(evidence, "evidence_id", None)
        with self._locks.hold((employer_id, candidate_id)):
            current = self._ensure_locked(employer_id, candidate_id)
            if not MIN_LEVEL <= target_level <= MAX_LEVEL:
                raise InvalidTransition(current.level, target_level, "level out of range")

            applied = (
                self._store.evidence_applied(employer_id, candidate_id, evidence_id)
                if evidence_id is not None
                else None
            )
            if applied is not None:
                if applied.level < target_level:
                    raise InvalidTransition(
                        current.level, target_level, f"evidence {evidence_id} was spent on level {applied.level}"
                    )
                logger.info(
                    "access.evidence_replayed",
                    employer_id=employer_id,
                    candidate_id=candidate_id,
                    evidence_id=evidence_id,
                )
                return UpgradeResult(
                    granted=True,
                    changed=False,
                    level=current.level,
                    reason="evidence_already_applied",
                    grant=current,
                )
            if target_level == current.level:
                return UpgradeResult(
                    granted=True,
                    changed=False,
                    level=current.level,
                    reason="already_granted",
                    grant=current,
                )
            if target_level < current.level:
                raise InvalidTransition(current.level, target_level, "levels never decrease")
            if target_level > current.level + 1:
                raise InvalidTransition(current.level, target_level, "levels cannot be skipped")

            remaining = self.requirements_for(employer_id, candidate_id, target_level, evidence)
            if remaining:
                logger.info(
                    "access.gating_not_satisfied",
                    employer_id=employer_id,
                    candidate_id=candidate_id,
                    target_level=target_level,
                    remaining=remaining,
                )
                raise GatingNotSatisfied(target_level, remaining)

            # only payment evidence is consumed by a transition
            spent_id = evidence_id if self._consumes(target_level, evidence) else None
            grant = self._build_grant(employer_id, candidate_id, target_level, spent_id)
            self._store.save(grant, expected_level=current.level)
            if spent_id is not None:
                self._store.mark_evidence(spent_id, grant)
            self._store.append_audit(
                AuditEntry(
                    employer_id=employer_id,
                    candidate_id=candidate_id,
                    action="ACCESS_UPGRADED",
                    from_level=current.level,
                    to_level=target_level,
                    recorded_at=grant.granted_at,
                    evidence_id=evidence_id,
                    evidence_kind=getattr(evidence, "kind", None),
                )
            )

        logger.info(
            "access.upgraded",
            employer_id=employer_id,
            candidate_id=candidate_id,
            from_level=current.level,
            to_level=target_level,
            evidence_id=evidence_id,
        )
        return UpgradeResult(granted=True, changed=True, level=target_level, grant=grant)

    def handle_payment_confirmed(self, event: PaymentConfirmed) -> UpgradeResult:
        return self.request_upgrade(
            event.employer_id,
            event.candidate_id,
            event.target_level,
            event.to_evidence(),
        )

    def _ensure_locked(self, employer_id: str, candidate_id: str) -> AccessGrant:
        grant = self._store.get(employer_id, candidate_id)
        if grant is not None:
            return grant
        grant = self._build_grant(employer_id, candidate_id, MIN_LEVEL, None)
        self._store.save(grant, expected_level=None)
        self._store.append_audit(
            AuditEntry(
                employer_id=employer_id,
                candidate_id=candidate_id,
                action="ACCESS_CREATED",
                from_level=MIN_LEVEL,
                to_level=MIN_LEVEL,
                recorded_at=grant.granted_at,
            )
        )
        logger.info("access.created", employer_id=employer_id, candidate_id=candidate_id)
        return grant

    def _build_grant(
        self,
        employer_id: str,
        candidate_id: str,
        level: int,
        evidence_id: str | None,
    ) -> AccessGrant:
        return AccessGrant(
            employer_id=employer_id,
            candidate_id=candidate_id,
            level=level,
            granted_at=self._now(),
            restrictions=restrictions_for(level),
            watermark_enabled=level < MAX_LEVEL,
            evidence_id=evidence_id,
        )

    @staticmethod
    def _consumes(target_level: int, evidence: Evidence | None) -> bool:
        return target_level == PAID_LEVEL and isinstance(evidence, PaymentEvidence)

    def _payment_satisfied(
        self,
        employer_id: str,
        candidate_id: str,
        evidence: Evidence | None,
    ) -> bool:
        if not isinstance(evidence, PaymentEvidence):
            return False
        return (
            evidence.employer_id == employer_id
            and evidence.candidate_id == candidate_id
            and evidence.target_level == PAID_LEVEL
            and evidence.currency.upper() == self._config.currency.upper()
            and evidence.amount >= self._config.one_time_fee
        )


__all__ = [
    "AccessLevelPolicy",
    "AccessPolicyConfig",
    "ALWAYS_RESTRICTED",
    "PAYMENT_REQUIREMENT",
    "UpgradeResult",
    "restrictions_for",
]
