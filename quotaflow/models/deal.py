"""
Deal model for sales opportunities and their computed commission.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quotaflow.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from quotaflow.models.target import Target
    from quotaflow.models.user import User


class Deal(Base, TimestampMixin):
    """
    A sales opportunity owned by one rep.

    Deals are created and edited by the host application (manual entry,
    CRM sync). The commission engine only ever writes the commission_*
    columns and target_id, and only while the deal is closed-won and a
    target applies. Otherwise those columns are null.
    """

    __tablename__ = "deals"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    deal_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    # Free text as received from CRM sync ("Closed Won", "closedwon", ...)
    stage: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
    )
    close_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        index=True,
    )
    product_category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("product_categories.id"),
        nullable=True,
        index=True,
    )

    # Computed by the commission engine
    commission_rate: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(9, 6),
        nullable=True,
        comment="Final rate applied for the period (fraction)",
    )
    commission_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2),
        nullable=True,
    )
    commission_calculated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    target_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("targets.id"),
        nullable=True,
        index=True,
    )
    commission_breakdown: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
        comment="Attainment, gate results and multipliers behind the rate",
    )

    # Relationships
    user: Mapped["User"] = relationship(
        "User",
        back_populates="deals",
    )
    target: Mapped[Optional["Target"]] = relationship("Target")

    def __repr__(self) -> str:
        return f"<Deal(id={self.id}, amount={self.amount}, stage='{self.stage}')>"

    @property
    def has_commission(self) -> bool:
        return self.commission_amount is not None

    def clear_commission(self) -> None:
        """Null out every engine-owned column."""
        self.commission_rate = None
        self.commission_amount = None
        self.commission_calculated_at = None
        self.target_id = None
        self.commission_breakdown = None
