from __future__ import annotations

import itertools

import pendulum
import pytest

from talentshield.core import (
    AccessLevelPolicy,
    AgreementLedger,
    MessageGate,
    PatternClassifier,
    ProfileProjector,
    SuspicionMonitor,
)
from talentshield.core.ledger import SKILLS_ACCESS_CLAUSES, SUCCESS_FEE_CLAUSE
from talentshield.notifications import RecordingNotifier
from talentshield.schemas import CandidateRecord, PaymentConfirmed, SignerInfo


class FakeClock:
    def __init__(self) -> None:
        self.current = pendulum.datetime(2025, 1, 6, 9, 0, 0, tz="UTC")

    def __call__(self):
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current.add(**kwargs)


class Engine:
    """Fully wired engine sharing one clock."""

    def __init__(self, clock: FakeClock) -> None:
        counter = itertools.count(1)
        self.clock = clock
        self.notifier = RecordingNotifier()
        self.ledger = AgreementLedger(now_provider=clock)
        self.policy = AccessLevelPolicy(self.ledger, now_provider=clock)
        self.monitor = SuspicionMonitor(
            notifier=self.notifier,
            now_provider=clock,
            id_factory=lambda: f"EV-{next(counter)}",
        )
        self.projector = ProfileProjector(
            self.policy,
            monitor=self.monitor,
            today_provider=lambda: clock().date(),
        )
        self.delivered: list = []
        self.gate = MessageGate(
            PatternClassifier(),
            self.policy,
            self.monitor,
            on_deliver=self.delivered.append,
            now_provider=clock,
        )

    def sign(self, employer_id: str, clause_ids, signer: SignerInfo) -> None:
        for clause_id in clause_ids:
            self.ledger.record_acceptance(employer_id, clause_id, signer)
            self.clock.advance(seconds=1)

    def raise_to(self, employer_id: str, candidate_id: str, level: int, signer: SignerInfo) -> None:
        """Walk the pair up to ``level`` satisfying every gate on the way."""
        if level >= 2:
            self.sign(employer_id, SKILLS_ACCESS_CLAUSES, signer)
            self.policy.request_upgrade(employer_id, candidate_id, 2)
        if level >= 3:
            self.policy.handle_payment_confirmed(
                PaymentConfirmed(
                    employer_id=employer_id,
                    candidate_id=candidate_id,
                    target_level=3,
                    amount=50.0,
                    evidence_id=f"PAY-{employer_id}-{candidate_id}",
                )
            )
        if level >= 4:
            self.sign(employer_id, [SUCCESS_FEE_CLAUSE], signer)
            self.policy.request_upgrade(employer_id, candidate_id, 4)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def signer() -> SignerInfo:
    return SignerInfo(
        name="Alex Morgan",
        position="Head of Talent",
        company_name="Northwind Engineering Ltd",
        email="alex.morgan@northwind.example",
    )


@pytest.fixture
def engine(clock: FakeClock) -> Engine:
    return Engine(clock)


def build_record(**overrides) -> CandidateRecord:
    payload = {
        "candidate_id": "C1",
        "first_name": "Jane",
        "last_name": "Smith",
        "date_of_birth": "2005-03-14",
        "city": "Manchester",
        "summary": "Motivated school leaver looking for a software apprenticeship.",
        "industry_interests": ["Technology", "Engineering"],
        "skills": ["Python", "Customer service"],
        "education": [{"institution": "Salford City College", "qualification": "A-levels"}],
        "certifications": ["First Aid"],
        "work_preferences": {
            "work_type": "Hybrid",
            "salary_range": {"min_gbp": 22500, "max_gbp": 25000},
            "industries": ["Technology"],
        },
        "career_goals": "Become a backend developer.",
        "portfolio": [{"title": "Weather app", "description": "Flask side project"}],
        "achievements": ["Duke of Edinburgh Silver"],
        "video": {"url": "https://media.example/videos/c1.mp4", "duration_seconds": 95},
        "contact": {
            "email": "jane.smith@example.com",
            "phone": "07123456789",
            "linkedin": "https://linkedin.com/in/janesmith",
        },
        "address": {"line1": "1 Deansgate", "city": "Manchester", "postcode": "M3 1AA"},
    }
    payload.update(overrides)
    return CandidateRecord.model_validate(payload)


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def candidate_record() -> CandidateRecord:
    return build_record()
