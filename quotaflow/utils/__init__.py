"""Utility functions."""

from quotaflow.utils.audit import log_action

__all__ = [
    "log_action",
]
