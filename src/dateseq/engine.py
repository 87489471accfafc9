"""
Sequence engine: turns a SequenceRequest into formatted date rows.

Bounded requests (end date and/or limit) are materialised into a list in one
call. Unbounded requests return a DateStream that computes one row per pull
and never ends on its own.
"""

from enum import Enum
from typing import Callable

import pandas as pd
from pandas.errors import OutOfBoundsDatetime

from .errors import ConfigurationError, FormattingError
from .logging_setup import get_logger
from .request import BusinessMode, SequenceRequest
from .utils.dates import format_date, has_sub_day_component, has_time_of_day


DATE_FORMAT = '%Y-%m-%d'
DATETIME_FORMAT = '%Y-%m-%dT%H:%M:%S'


def resolve_date_format(request: SequenceRequest) -> str:
    """
    Pick the output pattern for a request.

    An explicit ``date_format`` wins. Otherwise the time-of-day pattern is
    used as soon as the start, the end or the increment carries hours,
    minutes or seconds.
    """
    if request.date_format is not None:
        return request.date_format

    if has_time_of_day(request.start):
        return DATETIME_FORMAT
    if request.end is not None and has_time_of_day(request.end):
        return DATETIME_FORMAT
    if has_sub_day_component(request.increment):
        return DATETIME_FORMAT
    return DATE_FORMAT


class DateFormatter:
    """Renders timestamps with a strftime pattern."""

    def __init__(self, pattern: str):
        self.pattern = pattern

    def __call__(self, d: pd.Timestamp) -> str:
        try:
            return format_date(d, self.pattern)
        except (ValueError, UnicodeError) as e:
            raise FormattingError(f"Cannot format {d} with '{self.pattern}': {e}") from e


def advance(cursor: pd.Timestamp, increment: pd.DateOffset, reverse: bool = False) -> pd.Timestamp:
    """Step the cursor once; always returns a new timestamp."""
    try:
        return cursor - increment if reverse else cursor + increment
    except (OutOfBoundsDatetime, OverflowError) as e:
        raise FormattingError(f"Stepping from {cursor} leaves the supported date range") from e


FIXED_UNITS = {'weeks', 'days', 'hours', 'minutes', 'seconds'}
WEEK = pd.Timedelta(days=7)


def _keeps_weekday(increment: pd.DateOffset) -> bool:
    """Check if every step lands on the same day of the week."""
    kwds = {unit: value for unit, value in increment.kwds.items() if value}
    if not kwds or set(kwds) - FIXED_UNITS:
        return False
    total = pd.Timedelta(**kwds) * increment.n
    return total % WEEK == pd.Timedelta(0)


class StreamState(Enum):
    """Lifecycle of a DateStream."""
    PENDING_HEADER = 'pending_header'
    ITERATING = 'iterating'
    ERRORED = 'errored'


class DateStream:
    """
    Lazy, unbounded sequence of formatted dates.

    The header (if any) is returned by the first pull without consuming a
    date. The first date pull returns the start itself; each later pull
    steps once from the previously returned date, skipping dates the filter
    rejects. Nothing is computed ahead of a pull.

    A formatting failure is raised from the pull that hit it and leaves the
    stream in the ERRORED state; later pulls end iteration. The stream is
    its own iterator, so it cannot be restarted.
    """

    def __init__(
        self,
        start: pd.Timestamp,
        increment: pd.DateOffset,
        formatter: Callable[[pd.Timestamp], str],
        accepts: Callable[[pd.Timestamp], bool] = BusinessMode.NO_FILTER.accepts,
        reverse: bool = False,
        header: str | None = None
    ):
        self._cursor = start
        self._increment = increment
        self._formatter = formatter
        self._accepts = accepts
        self._reverse = reverse
        self._header = header
        self._started = False
        self._pulled = 0
        self.state = StreamState.PENDING_HEADER if header else StreamState.ITERATING

    @property
    def pulled(self) -> int:
        """Number of rows returned so far, header included."""
        return self._pulled

    def __iter__(self) -> 'DateStream':
        return self

    def __next__(self) -> str:
        if self.state is StreamState.ERRORED:
            raise StopIteration

        if self.state is StreamState.PENDING_HEADER:
            self.state = StreamState.ITERATING
            self._pulled += 1
            return self._header

        try:
            row = self._next_date()
        except FormattingError:
            self.state = StreamState.ERRORED
            raise

        self._pulled += 1
        return row

    def _next_date(self) -> str:
        if self._started:
            self._cursor = advance(self._cursor, self._increment, self._reverse)
        self._started = True

        while not self._accepts(self._cursor):
            self._cursor = advance(self._cursor, self._increment, self._reverse)

        return self._formatter(self._cursor)


class SequenceEngine:
    """
    Generates the rows for a single SequenceRequest.

    Each engine owns its cursor; build a new engine for every sequence.
    """

    def __init__(
        self,
        request: SequenceRequest,
        formatter: Callable[[pd.Timestamp], str] | None = None
    ):
        """
        Initialize engine.

        Args:
            request: Validated request
            formatter: Override for rendering dates (defaults to strftime
                with the resolved pattern)
        """
        self.request = request
        self.date_format = resolve_date_format(request)
        self.formatter = formatter or DateFormatter(self.date_format)
        self.logger = get_logger('engine')

    def generate(self) -> list[str] | DateStream:
        """
        Produce the sequence.

        Returns:
            A list of rows when the request is bounded, otherwise a DateStream

        Raises:
            ConfigurationError: If the request can never render or match a date
            FormattingError: If a date fails to render (bounded mode only;
                streams raise from the failing pull)
        """
        self._validate()

        if self.request.is_bounded:
            self.logger.debug(
                f"Generating bounded sequence from {self.request.start} "
                f"(end={self.request.end}, limit={self.request.limit}, format='{self.date_format}')"
            )
            return self._generate_bounded()

        self.logger.debug(
            f"Streaming sequence from {self.request.start} (format='{self.date_format}')"
        )
        req = self.request
        return DateStream(
            start=req.start,
            increment=req.increment,
            formatter=self.formatter,
            accepts=req.business.accepts,
            reverse=req.reverse,
            header=req.header if req.has_header else None
        )

    def _validate(self) -> None:
        req = self.request

        try:
            self.formatter(req.start)
        except FormattingError as e:
            raise ConfigurationError(f"Invalid date format '{self.date_format}': {e}") from e

        # Without an end date a filter that never matches would spin forever
        if (
            req.end is None
            and req.business is not BusinessMode.NO_FILTER
            and _keeps_weekday(req.increment)
            and not req.business.accepts(req.start)
        ):
            raise ConfigurationError(
                f"Filter '{req.business.value}' rejects every date: "
                f"every step from a {req.start:%A} lands on a {req.start:%A}"
            )

    def _generate_bounded(self) -> list[str]:
        req = self.request
        accepts = req.business.accepts

        rows = []
        if req.has_header:
            rows.append(req.header)

        cursor = req.start
        while True:
            if req.end is not None:
                if req.reverse and cursor < req.end:
                    break
                if not req.reverse and cursor >= req.end:
                    break
            if req.limit is not None and len(rows) >= req.limit:
                break

            if accepts(cursor):
                rows.append(self.formatter(cursor))

            if req.limit is not None and len(rows) >= req.limit:
                break

            cursor = advance(cursor, req.increment, req.reverse)

        self.logger.debug(f"Generated {len(rows)} rows")
        return rows
