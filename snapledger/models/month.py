"""
Month cursor.

A (year, month) pair selecting which slice of the ledger is shown.
Months are zero-based (0 = January, 11 = December).

Navigation stops at the ends of the datetime range: next() from
December 9999 and previous() from January 1 return the same cursor.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MonthCursor(BaseModel):
    """Immutable (year, month) value. Navigation returns a new cursor."""

    model_config = ConfigDict(frozen=True)

    year: int = Field(..., ge=dt.MINYEAR, le=dt.MAXYEAR)
    month: int = Field(..., ge=0, le=11)

    @classmethod
    def containing(cls, day: dt.date) -> "MonthCursor":
        """Cursor for the month that contains ``day``."""
        return cls(year=day.year, month=day.month - 1)

    @classmethod
    def current(cls, today: Optional[dt.date] = None) -> "MonthCursor":
        return cls.containing(today or dt.date.today())

    def next(self) -> "MonthCursor":
        if self.month == 11:
            if self.year == dt.MAXYEAR:
                return self
            return MonthCursor(year=self.year + 1, month=0)
        return MonthCursor(year=self.year, month=self.month + 1)

    def previous(self) -> "MonthCursor":
        if self.month == 0:
            if self.year == dt.MINYEAR:
                return self
            return MonthCursor(year=self.year - 1, month=11)
        return MonthCursor(year=self.year, month=self.month - 1)

    def contains(self, day: dt.date) -> bool:
        return day.year == self.year and day.month - 1 == self.month

    @property
    def first_day(self) -> dt.date:
        return dt.date(self.year, self.month + 1, 1)

    @property
    def label(self) -> str:
        """``YYYY-MM`` with a one-based month."""
        return f"{self.year:04d}-{self.month + 1:02d}"

    def __str__(self) -> str:
        return self.label
