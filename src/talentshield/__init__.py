"""Staged candidate disclosure and anti-circumvention engine."""

__version__ = "0.1.0"
