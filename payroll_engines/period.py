"""
Pay period value object (``payroll_engines.period``).

A pay period is one calendar year-month.  Its date range runs from the
first to the last day of the month, inclusive.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date

from payroll_kernel.exceptions import InvalidPeriodError

_PERIOD_RE = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True, order=True)
class PayPeriod:
    """A calendar year-month identifying one payroll run."""
    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise InvalidPeriodError(f"{self.year:04d}-{self.month:02d}")

    @classmethod
    def parse(cls, value: str | PayPeriod) -> PayPeriod:
        """Parse ``YYYY-MM``; an existing PayPeriod is returned unchanged."""
        if isinstance(value, PayPeriod):
            return value
        match = _PERIOD_RE.match(value.strip()) if isinstance(value, str) else None
        if match is None:
            raise InvalidPeriodError(str(value))
        return cls(int(match.group(1)), int(match.group(2)))

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"
