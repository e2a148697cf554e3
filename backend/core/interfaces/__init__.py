"""Core interfaces (ports) for dependency inversion."""

from .repositories import FreshnessStore

__all__ = ["FreshnessStore"]
