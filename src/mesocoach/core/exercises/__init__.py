"""
Exercise library for mesocoach.

The registry is imported lazily so that importing ``Exercise`` (used by
core.models) does not trigger YAML loading.
"""

from .base import Exercise

__all__ = [
    "Exercise",
]
