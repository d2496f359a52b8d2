"""Exceptions raised at the public entry points of the gait analysis core."""
from __future__ import annotations

__all__ = ["GaitLabError", "ConfigurationError", "ValidationError"]


class GaitLabError(Exception):
    """Base class for errors surfaced to callers."""


class ConfigurationError(GaitLabError):
    """Unknown gait mode or joint, or an invalid analysis parameter."""


class ValidationError(GaitLabError):
    """Input series that cannot be analysed together (length mismatch, missing columns)."""
