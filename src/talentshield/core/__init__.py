"""Disclosure and enforcement engine components."""

from __future__ import annotations

from .classifier import Classifier, PatternClassifier, PatternClassifierConfig
from .gate import MessageGate, MessageGateConfig
from .ledger import AgreementLedger
from .monitor import SuspicionMonitor, SuspicionMonitorConfig
from .policy import AccessLevelPolicy, AccessPolicyConfig, UpgradeResult, restrictions_for
from .projector import ProfileProjector, project

__all__ = [
    "AccessLevelPolicy",
    "AccessPolicyConfig",
    "AgreementLedger",
    "Classifier",
    "MessageGate",
    "MessageGateConfig",
    "PatternClassifier",
    "PatternClassifierConfig",
    "ProfileProjector",
    "SuspicionMonitor",
    "SuspicionMonitorConfig",
    "UpgradeResult",
    "project",
    "restrictions_for",
]
