"""
Commission engine errors.

"No target" and "no deals" are not errors; the engine returns None for
them. Everything here is meant to reach the caller.
"""

from typing import Iterable, Optional


class CommissionError(Exception):
    """Base class for commission engine errors."""


class NotFoundError(CommissionError):
    """A referenced record does not exist."""


class DealNotFoundError(NotFoundError):
    def __init__(self, deal_id: int):
        self.deal_id = deal_id
        super().__init__(f"Deal {deal_id} not found")


class TargetNotFoundError(NotFoundError):
    def __init__(self, target_id: int):
        self.target_id = target_id
        super().__init__(f"Target {target_id} not found")


class CategoryMismatchError(CommissionError):
    """
    Active targets cover the deal's date, but none accepts its product category.

    Raised instead of falling back to another target so commission is
    never attributed at the wrong rate.
    """

    def __init__(
        self,
        deal_id: int,
        deal_category_id: Optional[int],
        target_category_ids: Iterable[Optional[int]],
    ):
        self.deal_id = deal_id
        self.deal_category_id = deal_category_id
        self.target_category_ids = sorted(
            set(target_category_ids),
            key=lambda c: (c is None, c or 0),
        )
        available = ", ".join(
            "uncategorized" if c is None else str(c) for c in self.target_category_ids
        )
        wanted = "uncategorized" if deal_category_id is None else f"category {deal_category_id}"
        super().__init__(
            f"Deal {deal_id} is {wanted} but active targets only cover: {available}"
        )


class InvalidCommissionConfigError(CommissionError):
    """A target's commission structure or performance gates failed validation."""

    def __init__(self, target_id: Optional[int], field: str, detail: str):
        self.target_id = target_id
        self.field = field
        super().__init__(f"Target {target_id} has invalid {field}: {detail}")
