"""Conversation, message and classifier verdict schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

RiskLevel = Literal["none", "medium", "high", "critical"]
MessageType = Literal["text", "interview_request", "contact_exchange"]
MessageStatus = Literal["delivered", "blocked", "withheld"]

GENERIC_BLOCK_NOTICE = "Message not sent. It has been flagged for review."
FEATURE_LOCKED_NOTICE = "Message not sent. This action is not available at your current access level."


class MatchedCategory(BaseModel):
    """One detection category hit by the classifier."""

    category: str
    confidence: float = Field(ge=0.0, le=1.0)
    match_count: int = 1
    masked: tuple[str, ...] = ()

    model_config = ConfigDict(extra="forbid", frozen=True)


class Verdict(BaseModel):
    """Immutable outcome of scoring one message."""

    should_block: bool = False
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    categories: tuple[MatchedCategory, ...] = ()
    risk_level: RiskLevel = "none"
    inconclusive: bool = False

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def allowed(cls, *, inconclusive: bool = False) -> "Verdict":
        return cls(inconclusive=inconclusive)

    @property
    def category_names(self) -> tuple[str, ...]:
        return tuple(item.category for item in self.categories)


class Conversation(BaseModel):
    conversation_id: str
    employer_id: str
    candidate_id: str
    created_at: datetime
    level_snapshot: int = 1

    model_config = ConfigDict(extra="forbid", frozen=True)

    def participants(self) -> tuple[str, str]:
        return (self.employer_id, self.candidate_id)


class Message(BaseModel):
    """Persisted message. Immutable once stored."""

    message_id: str
    conversation_id: str
    sender_id: str
    content: str
    sent_at: datetime
    message_type: MessageType = "text"
    verdict: Verdict
    status: MessageStatus

    model_config = ConfigDict(extra="forbid", frozen=True)


class GateResult(BaseModel):
    """Decision returned to the messaging UI."""

    delivered: bool
    verdict: Verdict
    message_id: str
    notice: str | None = None
    reason: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    def sender_view(self) -> dict[str, object]:
        """Payload safe to show the sender. Classifier detail is omitted."""
        return {
            "delivered": self.delivered,
            "message_id": self.message_id,
            "notice": self.notice,
        }


__all__ = [
    "Conversation",
    "FEATURE_LOCKED_NOTICE",
    "GENERIC_BLOCK_NOTICE",
    "GateResult",
    "MatchedCategory",
    "Message",
    "MessageStatus",
    "MessageType",
    "RiskLevel",
    "Verdict",
]
