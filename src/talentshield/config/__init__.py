"""Configuration management utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ..schemas.config import load_config


class ConfigManager:
    """YAML-backed configuration loader rooted at a directory."""

    def __init__(self, base_path: str | Path):
        self._base_path = Path(base_path)

    def load(self, name: str) -> dict[str, Any]:
        """Load a YAML configuration by name without file extension."""
        return read_yaml(self._base_path / f"{name}.yaml")

    def settings(self, name: str) -> dict[str, Any]:
        """Load, validate and flatten a configuration into container settings."""
        return load_config(self.load(name)).to_settings()


def read_yaml(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle)
    return {} if loaded is None else loaded


def load_settings(path: Path) -> dict[str, Any]:
    """Validate a YAML file against ``AppConfig`` and return container settings."""
    return load_config(read_yaml(path)).to_settings()


__all__ = ["ConfigManager", "load_settings", "read_yaml"]
