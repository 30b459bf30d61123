"""
Monthly Aggregation Engine

DESIGN DECISION: Aggregation is a set of PURE functions over a ledger
snapshot. They never touch storage and never mutate their input, so
they can be recomputed on every change without any caching.

Months are selected by the receipt date recorded on each expense, not
by when the expense was saved.
"""

from decimal import Decimal
from typing import Iterable, Optional

from snapledger.models.month import MonthCursor
from snapledger.models.receipt import Expense
from snapledger.models.summary import MonthlySummary, Trend, TrendCategory


def monthly_view(ledger: Iterable[Expense], cursor: MonthCursor) -> list[Expense]:
    """
    Expenses dated within the cursor's month.

    The result is ordered by receipt date, newest first, for display.
    Entries with the same date keep their ledger order.
    """
    selected = [expense for expense in ledger if cursor.contains(expense.date)]
    # sorted() is stable, so same-day entries stay newest-saved first
    return sorted(selected, key=lambda expense: expense.date, reverse=True)


def total(view: Iterable[Expense]) -> Decimal:
    """Sum of amounts. An empty view totals zero."""
    return sum((expense.amount for expense in view), Decimal("0"))


def trend(current_total: Decimal, previous_total: Decimal) -> Trend:
    """
    Classify the change from the previous month to the current one.

    - previous is zero: NO_PREVIOUS_DATA, no percentage
    - totals are equal: NO_CHANGE
    - otherwise INCREASE / DECREASE with |current - previous| / previous * 100
    """
    current = Decimal(str(current_total))
    previous = Decimal(str(previous_total))

    if previous == 0:
        return Trend(category=TrendCategory.NO_PREVIOUS_DATA, percent=None)

    if current == previous:
        return Trend(category=TrendCategory.NO_CHANGE, percent=0.0)

    magnitude = abs(current - previous) / previous * 100
    category = TrendCategory.INCREASE if current > previous else TrendCategory.DECREASE
    return Trend(category=category, percent=float(magnitude))


def summarize(
    ledger: Iterable[Expense],
    cursor: MonthCursor,
    previous_cursor: Optional[MonthCursor] = None,
) -> MonthlySummary:
    """
    View, totals and trend for one month in a single call.

    Args:
        ledger: All expenses
        cursor: Month being viewed
        previous_cursor: Month to compare against (defaults to the month before)
    """
    expenses = list(ledger)
    previous_cursor = previous_cursor or cursor.previous()

    view = monthly_view(expenses, cursor)
    current_total = total(view)
    previous_total = total(monthly_view(expenses, previous_cursor))

    return MonthlySummary(
        cursor=cursor,
        expenses=view,
        total=current_total,
        previous_total=previous_total,
        trend=trend(current_total, previous_total),
    )
