from __future__ import annotations

import pytest

from talentshield.core import AgreementLedger
from talentshield.core.ledger import CLAUSES, SKILLS_ACCESS_CLAUSES, SUCCESS_FEE_CLAUSE
from talentshield.errors import TalentShieldError, UnknownClause
from talentshield.schemas import ClauseAccepted


def test_acceptance_is_idempotent(clock, signer):
    ledger = AgreementLedger(now_provider=clock)

    first = ledger.record_acceptance("E1", "no_poaching", signer)
    clock.advance(minutes=5)
    second = ledger.record_acceptance("E1", "no_poaching", signer)

    assert second == first
    assert len(ledger.record("E1").acceptances) == 1
    assert ledger.accepted_clauses("E1") == frozenset({"no_poaching"})


def test_unknown_clause_is_rejected(signer):
    ledger = AgreementLedger()

    with pytest.raises(UnknownClause) as excinfo:
        ledger.record_acceptance("E1", "free_lunch", signer)

    assert isinstance(excinfo.value, KeyError)
    assert isinstance(excinfo.value, TalentShieldError)
    assert "free_lunch" in str(excinfo.value)
    assert ledger.record("E1").acceptances == ()


def test_missing_clauses_preserve_required_order(clock, signer):
    ledger = AgreementLedger(now_provider=clock)
    ledger.record_acceptance("E1", "platform_fee", signer)
    clock.advance(seconds=1)
    ledger.record_acceptance("E1", "monitoring_consent", signer)

    missing = ledger.missing_clauses("E1", SKILLS_ACCESS_CLAUSES)

    assert missing == ["no_poaching", "exclusive_period", "information_security", "platform_messaging"]
    assert ledger.is_fully_signed("E1", SKILLS_ACCESS_CLAUSES) is False
    assert ledger.is_fully_signed("E1", ()) is True


def test_fully_signed_after_every_clause(clock, signer):
    ledger = AgreementLedger(now_provider=clock)
    for clause_id in SKILLS_ACCESS_CLAUSES:
        ledger.record_acceptance("E1", clause_id, signer)
        clock.advance(seconds=1)

    assert ledger.is_fully_signed("E1", SKILLS_ACCESS_CLAUSES)
    assert ledger.missing_clauses("E1", ledger.required_for(4)) == [SUCCESS_FEE_CLAUSE]


def test_employers_are_isolated(signer):
    ledger = AgreementLedger()
    ledger.record_acceptance("E1", "no_poaching", signer)

    assert ledger.accepted_clauses("E2") == frozenset()


def test_administrative_revoke_keeps_history(clock, signer):
    ledger = AgreementLedger(now_provider=clock)
    ledger.record_acceptance("E1", "no_poaching", signer)
    clock.advance(hours=1)

    revocation = ledger.administrative_revoke(
        "E1", "no_poaching", admin_id="ADMIN-1", reason="signed by unauthorised staff"
    )

    assert revocation is not None
    assert revocation.admin_id == "ADMIN-1"
    assert "no_poaching" not in ledger.accepted_clauses("E1")
    record = ledger.record("E1")
    assert len(record.acceptances) == 1
    assert len(record.revocations) == 1

    clock.advance(hours=1)
    ledger.record_acceptance("E1", "no_poaching", signer)

    assert "no_poaching" in ledger.accepted_clauses("E1")
    assert len(ledger.record("E1").acceptances) == 2


def test_revoke_of_clause_not_in_force_returns_none(signer):
    ledger = AgreementLedger()

    assert ledger.administrative_revoke("E1", "no_poaching", admin_id="A", reason="x") is None
    with pytest.raises(UnknownClause):
        ledger.administrative_revoke("E1", "nope", admin_id="A", reason="x")


def test_required_clauses_per_level():
    ledger = AgreementLedger()

    assert ledger.required_for(2) == SKILLS_ACCESS_CLAUSES
    assert ledger.required_for(3) == ()
    assert ledger.required_for(4) == (SUCCESS_FEE_CLAUSE,)
    assert ledger.required_for(1) == ()


def test_custom_required_clauses_are_validated():
    ledger = AgreementLedger(required_clauses={2: ["no_poaching"]})

    assert ledger.required_for(2) == ("no_poaching",)
    assert ledger.required_for(4) == ()
    with pytest.raises(UnknownClause):
        AgreementLedger(required_clauses={2: ["no_poaching", "made_up"]})


def test_handle_clause_accepted_event(signer):
    ledger = AgreementLedger()
    event = ClauseAccepted(employer_id="E9", clause_id="platform_messaging", signer=signer)

    acceptance = ledger.handle_clause_accepted(event)

    assert acceptance.signer.company_name == "Northwind Engineering Ltd"
    assert ledger.accepted_clauses("E9") == frozenset({"platform_messaging"})


def test_clause_catalogue_carries_penalties():
    assert set(SKILLS_ACCESS_CLAUSES) < set(CLAUSES)
    assert AgreementLedger.clause("no_poaching").penalty.startswith("£500")
