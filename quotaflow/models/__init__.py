"""
Database models for Quotaflow.

All models are exported here for convenient imports:
    from quotaflow.models import Deal, Target, User, etc.
"""

from quotaflow.models.audit import AuditAction, AuditLog
from quotaflow.models.base import Base, TimestampMixin
from quotaflow.models.deal import Deal
from quotaflow.models.product_category import ProductCategory
from quotaflow.models.target import PeriodType, Target, period_granularity
from quotaflow.models.user import User

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # User
    "User",
    # Catalog
    "ProductCategory",
    # Deal
    "Deal",
    # Target
    "Target",
    "PeriodType",
    "period_granularity",
    # Audit
    "AuditLog",
    "AuditAction",
]
