"""Inbound events delivered by UI and payment collaborators."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .agreement import SignerInfo
from .evidence import PaymentEvidence
from .messaging import MessageType


class PaymentConfirmed(BaseModel):
    type: Literal["payment_confirmed"] = "payment_confirmed"
    employer_id: str
    candidate_id: str
    target_level: int
    amount: float
    currency: str = "GBP"
    evidence_id: str

    model_config = ConfigDict(extra="forbid", frozen=True)

    def to_evidence(self) -> PaymentEvidence:
        return PaymentEvidence(
            evidence_id=self.evidence_id,
            employer_id=self.employer_id,
            candidate_id=self.candidate_id,
            target_level=self.target_level,
            amount=self.amount,
            currency=self.currency,
        )


class ClauseAccepted(BaseModel):
    type: Literal["clause_accepted"] = "clause_accepted"
    employer_id: str
    clause_id: str
    signer: SignerInfo

    model_config = ConfigDict(extra="forbid", frozen=True)


class SendMessage(BaseModel):
    type: Literal["send_message"] = "send_message"
    conversation_id: str
    sender_id: str
    text: str
    message_type: MessageType = "text"

    model_config = ConfigDict(extra="forbid", frozen=True)


class OpenConversation(BaseModel):
    type: Literal["open_conversation"] = "open_conversation"
    employer_id: str
    candidate_id: str
    conversation_id: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class CandidateReportFiled(BaseModel):
    type: Literal["candidate_report"] = "candidate_report"
    candidate_id: str
    employer_id: str
    report_type: str
    description: str = ""

    model_config = ConfigDict(extra="forbid", frozen=True)


class UpgradeRequested(BaseModel):
    type: Literal["upgrade_requested"] = "upgrade_requested"
    employer_id: str
    candidate_id: str
    target_level: int

    model_config = ConfigDict(extra="forbid", frozen=True)


InboundEvent = Annotated[
    Union[
        PaymentConfirmed,
        ClauseAccepted,
        SendMessage,
        OpenConversation,
        UpgradeRequested,
        CandidateReportFiled,
    ],
    Field(discriminator="type"),
]


__all__ = [
    "CandidateReportFiled",
    "ClauseAccepted",
    "InboundEvent",
    "OpenConversation",
    "PaymentConfirmed",
    "SendMessage",
    "UpgradeRequested",
]
