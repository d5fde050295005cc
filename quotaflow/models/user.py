"""
User model for sales reps who own deals and targets.
"""

from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quotaflow.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from quotaflow.models.deal import Deal
    from quotaflow.models.target import Target


class User(Base, TimestampMixin):
    """
    Sales rep account.

    Authentication and team membership live with the host application;
    the commission engine only needs a stable owner id for deals and targets.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    display_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Relationships
    deals: Mapped[List["Deal"]] = relationship(
        "Deal",
        back_populates="user",
    )
    targets: Mapped[List["Target"]] = relationship(
        "Target",
        back_populates="user",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
