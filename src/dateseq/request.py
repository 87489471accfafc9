"""
SequenceRequest - the resolved inputs for one date sequence.
"""

from dataclasses import dataclass, field
from enum import Enum

import pandas as pd

from .errors import ConfigurationError
from .utils.dates import day_of_week, default_increment, is_weekend, is_zero_duration


class BusinessMode(Enum):
    """Which days of the week survive the filter."""
    NO_FILTER = 'none'
    ONLY_BUSINESS = 'business'
    ONLY_NON_BUSINESS = 'no-business'
    ONLY_BUSINESS6 = 'business6'
    ONLY_NON_BUSINESS6 = 'no-business6'

    @classmethod
    def from_flags(cls, business: bool | None = None, business6: bool | None = None) -> 'BusinessMode':
        """
        Map the two tri-state CLI flags onto a single mode.

        Args:
            business: True for Mon-Fri only, False for weekends only, None if unset
            business6: True for Mon-Sat only, False for Sundays only, None if unset

        Returns:
            The matching mode

        Raises:
            ConfigurationError: If both flags are set
        """
        if business is not None and business6 is not None:
            raise ConfigurationError("Only one of business and business6 may be specified")
        if business is not None:
            return cls.ONLY_BUSINESS if business else cls.ONLY_NON_BUSINESS
        if business6 is not None:
            return cls.ONLY_BUSINESS6 if business6 else cls.ONLY_NON_BUSINESS6
        return cls.NO_FILTER

    def accepts(self, d: pd.Timestamp) -> bool:
        """Check whether a date passes this filter."""
        if self is BusinessMode.NO_FILTER:
            return True

        if self is BusinessMode.ONLY_BUSINESS:
            return not is_weekend(d)
        if self is BusinessMode.ONLY_NON_BUSINESS:
            return is_weekend(d)

        dow = day_of_week(d)
        if self is BusinessMode.ONLY_BUSINESS6:
            return dow < 7
        return dow >= 7


def _today() -> pd.Timestamp:
    return pd.Timestamp.today().normalize()


@dataclass
class SequenceRequest:
    """
    Everything needed to produce one sequence.

    Attributes:
        start: First candidate date (defaults to today at midnight)
        end: Boundary date; forward runs stop before it, reverse runs stop below it
        increment: Step between candidates
        reverse: Step backwards instead of forwards
        business: Day-of-week filter
        header: Optional first row, never filtered
        limit: Maximum number of rows, header included
        date_format: strftime pattern; resolved from the inputs when None
    """
    start: pd.Timestamp = field(default_factory=_today)
    end: pd.Timestamp | None = None
    increment: pd.DateOffset = field(default_factory=default_increment)
    reverse: bool = False
    business: BusinessMode = BusinessMode.NO_FILTER
    header: str | None = None
    limit: int | None = None
    date_format: str | None = None

    def __post_init__(self):
        """Reject inputs that could never produce a valid sequence."""
        if self.limit is not None and self.limit < 1:
            raise ConfigurationError(f"Limit must be a positive integer, got {self.limit}")

        if is_zero_duration(self.increment):
            raise ConfigurationError("Increment must not be zero")

        if self.end is not None and (self.start.tzinfo is None) != (self.end.tzinfo is None):
            raise ConfigurationError("Cannot mix timezone-aware and naive dates")

    @property
    def is_bounded(self) -> bool:
        """Check if the sequence ends by itself (end date or limit)."""
        return self.end is not None or self.limit is not None

    @property
    def has_header(self) -> bool:
        """An empty header counts as no header."""
        return bool(self.header)
