"""Pydantic configuration schema for CLI YAML input."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError


class ClassifierConfig(BaseModel):
    fuzzy_threshold: float | None = None
    extra_platforms: list[str] | None = None


class PolicyConfig(BaseModel):
    one_time_fee: float | None = None
    currency: str | None = None
    required_clauses: dict[int, list[str]] | None = None


class GateConfig(BaseModel):
    interview_min_level: int | None = None
    contact_min_level: int | None = None


class MonitorConfig(BaseModel):
    bucket_seconds: int | None = None
    severity_weights: dict[str, float] | None = None
    escalation_threshold: float | None = None
    excessive_view_threshold: int | None = None
    retention_hours: float | None = None


class NotificationConfig(BaseModel):
    endpoint: str | None = None
    api_key: str | None = None
    timeout: float | None = None


class AppConfig(BaseModel):
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    gate: GateConfig = Field(default_factory=GateConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)

    def to_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {}
        for section in ("classifier", "policy", "gate", "monitor", "notifications"):
            values = getattr(self, section).model_dump(exclude_none=True)
            if values:
                settings[section] = values
        return settings


def load_config(raw: Any) -> AppConfig:
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
