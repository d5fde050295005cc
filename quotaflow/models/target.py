"""
Target model for quota periods.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import JSON, Boolean, Date, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quotaflow.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from quotaflow.models.user import User


class PeriodType(str, Enum):
    """Length of a target period."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"
    CUSTOM = "custom"


# Lower rank wins when overlapping targets tie on quota
PERIOD_GRANULARITY = {
    PeriodType.WEEKLY.value: 0,
    PeriodType.MONTHLY.value: 1,
    PeriodType.QUARTERLY.value: 2,
    PeriodType.ANNUAL.value: 3,
    "yearly": 3,
    PeriodType.CUSTOM.value: 4,
}


def period_granularity(period_type: Optional[str]) -> int:
    """Sort rank of a period type, finest first. Unknown types sort last."""
    if not period_type:
        return len(PERIOD_GRANULARITY)
    return PERIOD_GRANULARITY.get(period_type.strip().lower(), len(PERIOD_GRANULARITY))


class Target(Base, TimestampMixin):
    """
    A quota assigned to a rep for a period.

    commission_structure and performance_gates are stored as JSON as
    written by the target configuration UI and parsed into
    quotaflow.schemas.commission types by the engine.
    """

    __tablename__ = "targets"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    name: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    period_type: Mapped[str] = mapped_column(
        String(20),
        default=PeriodType.ANNUAL.value,
        nullable=False,
    )
    period_start: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        index=True,
    )
    period_end: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        index=True,
    )
    quota_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )
    commission_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 4),
        nullable=False,
        comment="Base commission rate as fraction of deal amount",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        index=True,
    )
    product_category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("product_categories.id"),
        nullable=True,
    )
    commission_structure: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
    )
    performance_gates: Mapped[Optional[Any]] = mapped_column(
        JSON,
        nullable=True,
        comment="{'gates': [...]} as saved by the target configuration UI",
    )

    # Relationships
    user: Mapped["User"] = relationship(
        "User",
        back_populates="targets",
    )

    def __repr__(self) -> str:
        return (
            f"<Target(id={self.id}, user_id={self.user_id}, "
            f"period={self.period_start}..{self.period_end})>"
        )
