"""
ProductCategory model used to scope targets to a product line.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from quotaflow.models.base import Base, TimestampMixin


class ProductCategory(Base, TimestampMixin):
    """A product line that deals belong to and targets can be restricted to."""

    __tablename__ = "product_categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ProductCategory(id={self.id}, name='{self.name}')>"
