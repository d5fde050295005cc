"""Quotaflow - period-based sales commission engine."""
