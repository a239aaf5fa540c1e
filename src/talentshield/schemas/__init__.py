"""Pydantic schema definitions for records, events and decisions."""

from __future__ import annotations

from .access import MAX_LEVEL, MIN_LEVEL, AccessGrant, AuditEntry
from .agreement import (
    AgreementRecord,
    Clause,
    ClauseAcceptance,
    ClauseRevocation,
    SignerInfo,
)
from .candidate import (
    Address,
    CandidateRecord,
    ContactChannels,
    EducationEntry,
    PortfolioItem,
    SalaryRange,
    StagedProfile,
    VideoMedia,
    WorkPreferences,
)
from .events import (
    CandidateReportFiled,
    ClauseAccepted,
    InboundEvent,
    OpenConversation,
    PaymentConfirmed,
    SendMessage,
    UpgradeRequested,
)
from .evidence import (
    ActivityEvidence,
    ClassifierEvidence,
    ClauseEvidence,
    Evidence,
    PaymentEvidence,
    ReportEvidence,
)
from .messaging import Conversation, GateResult, MatchedCategory, Message, Verdict
from .monitoring import (
    EventFilter,
    StatusChange,
    SuspicionEvent,
    SuspicionReport,
    WindowStats,
)

__all__ = [
    "AccessGrant",
    "ActivityEvidence",
    "Address",
    "AgreementRecord",
    "AuditEntry",
    "CandidateRecord",
    "CandidateReportFiled",
    "ClassifierEvidence",
    "Clause",
    "ClauseAcceptance",
    "ClauseAccepted",
    "ClauseEvidence",
    "ClauseRevocation",
    "ContactChannels",
    "Conversation",
    "EducationEntry",
    "EventFilter",
    "Evidence",
    "GateResult",
    "InboundEvent",
    "MAX_LEVEL",
    "MIN_LEVEL",
    "MatchedCategory",
    "Message",
    "OpenConversation",
    "PaymentConfirmed",
    "PaymentEvidence",
    "PortfolioItem",
    "ReportEvidence",
    "SalaryRange",
    "SendMessage",
    "SignerInfo",
    "StagedProfile",
    "StatusChange",
    "SuspicionEvent",
    "SuspicionReport",
    "UpgradeRequested",
    "Verdict",
    "VideoMedia",
    "WindowStats",
    "WorkPreferences",
]
