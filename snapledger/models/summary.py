"""
Summary models produced by the monthly aggregator.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from snapledger.models.month import MonthCursor
from snapledger.models.receipt import Expense


class TrendCategory(str, Enum):
    """
    Month-over-month comparison outcome.

    CRITICAL: NO_PREVIOUS_DATA and NO_CHANGE are different answers.
    "Nothing to compare with" must never be shown as "0% change".
    """
    NO_PREVIOUS_DATA = "no-previous-data"
    NO_CHANGE = "no-change"
    INCREASE = "increase"
    DECREASE = "decrease"


class Trend(BaseModel):
    """Trend classification with its magnitude."""

    category: TrendCategory
    percent: Optional[float] = Field(
        default=None,
        ge=0,
        description="Magnitude of the change in percent; None without previous data"
    )

    @property
    def signed_percent(self) -> Optional[float]:
        """Percent change with the direction applied."""
        if self.percent is None:
            return None
        if self.category == TrendCategory.DECREASE:
            return -self.percent
        return self.percent


class MonthlySummary(BaseModel):
    """Everything a summary card needs for one month."""

    cursor: MonthCursor
    expenses: list[Expense] = Field(default_factory=list)
    total: Decimal = Decimal("0")
    previous_total: Decimal = Decimal("0")
    trend: Trend

    @property
    def count(self) -> int:
        return len(self.expenses)
