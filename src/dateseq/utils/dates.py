"""
Date and duration helpers built on pandas Timestamp / DateOffset.
"""

import re

import pandas as pd

from ..errors import ConfigurationError


DEFAULT_INCREMENT = {'days': 1}

# Components a DateOffset may carry, largest first
DURATION_UNITS = ('years', 'months', 'weeks', 'days', 'hours', 'minutes', 'seconds')
SUB_DAY_UNITS = ('hours', 'minutes', 'seconds')

_ISO_DURATION = re.compile(
    r'^P(?:(?P<years>\d+)Y)?(?:(?P<months>\d+)M)?(?:(?P<weeks>\d+)W)?(?:(?P<days>\d+)D)?'
    r'(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$',
    re.IGNORECASE
)
_SIMPLE_DURATION = re.compile(r'^(\d+)\s*([a-z]+)$', re.IGNORECASE)

_UNIT_ALIASES = {
    'y': 'years', 'yr': 'years', 'yrs': 'years', 'year': 'years', 'years': 'years',
    'mo': 'months', 'mon': 'months', 'month': 'months', 'months': 'months',
    'w': 'weeks', 'wk': 'weeks', 'wks': 'weeks', 'week': 'weeks', 'weeks': 'weeks',
    'd': 'days', 'day': 'days', 'days': 'days',
    'h': 'hours', 'hr': 'hours', 'hrs': 'hours', 'hour': 'hours', 'hours': 'hours',
    'm': 'minutes', 'min': 'minutes', 'mins': 'minutes', 'minute': 'minutes', 'minutes': 'minutes',
    's': 'seconds', 'sec': 'seconds', 'secs': 'seconds', 'second': 'seconds', 'seconds': 'seconds',
}


def day_of_week(d: pd.Timestamp) -> int:
    """ISO day of week: 1=Monday .. 7=Sunday."""
    return d.isoweekday()


def is_weekend(d: pd.Timestamp) -> bool:
    """Check if date is a Saturday or Sunday."""
    return day_of_week(d) >= 6


def has_time_of_day(d: pd.Timestamp) -> bool:
    """Check if a timestamp carries a nonzero hour, minute or second."""
    return bool(d.hour or d.minute or d.second)


def has_sub_day_component(offset: pd.DateOffset) -> bool:
    """Check if a duration carries nonzero hours, minutes or seconds."""
    return any(offset.kwds.get(unit) for unit in SUB_DAY_UNITS)


def is_zero_duration(offset: pd.DateOffset) -> bool:
    """Check if stepping by this duration would never move the cursor."""
    if offset.n == 0:
        return True
    # A bare DateOffset() means one day, so only explicit all-zero kwds count
    return bool(offset.kwds) and not any(offset.kwds.get(unit) for unit in DURATION_UNITS)


def default_increment() -> pd.DateOffset:
    """The increment used when none is given: one day."""
    return pd.DateOffset(**DEFAULT_INCREMENT)


def parse_date(date_str: str, now: pd.Timestamp | None = None) -> pd.Timestamp:
    """
    Parse a start or end point.

    Accepts anything ``pandas.Timestamp`` understands (``2015-01-01``,
    ``2015-01-01T08:00:00``, ``20150101``) plus the keywords ``today``,
    ``yesterday``, ``tomorrow`` (all at midnight) and ``now``.

    Args:
        date_str: Text to parse
        now: Reference time for the keywords (defaults to the current time)

    Returns:
        Parsed timestamp

    Raises:
        ConfigurationError: If the text is not a date
    """
    text = date_str.strip()
    keyword = text.lower()
    reference = now if now is not None else pd.Timestamp.now()

    if keyword == 'now':
        return reference.floor('s')
    if keyword == 'today':
        return reference.normalize()
    if keyword == 'yesterday':
        return reference.normalize() - pd.DateOffset(days=1)
    if keyword == 'tomorrow':
        return reference.normalize() + pd.DateOffset(days=1)

    try:
        parsed = pd.Timestamp(text)
    except (ValueError, TypeError, OverflowError) as e:
        raise ConfigurationError(f"Invalid date '{date_str}': {e}") from e

    if pd.isna(parsed):
        raise ConfigurationError(f"Invalid date '{date_str}'")
    return parsed


def parse_duration(duration_str: str) -> pd.DateOffset:
    """
    Parse an increment.

    Supports ISO 8601 durations (``P3D``, ``P1M``, ``P1Y2M``, ``P2W``,
    ``PT1H30M``) and a single ``<count> <unit>`` pair (``3 days``,
    ``1 month``, ``2w``, ``6h``).

    Args:
        duration_str: Text to parse

    Returns:
        Calendar-aware offset

    Raises:
        ConfigurationError: If the text is not a duration
    """
    text = duration_str.strip()

    match = _ISO_DURATION.match(text)
    if match:
        components = {
            unit: int(value)
            for unit, value in match.groupdict().items()
            if value is not None
        }
        if not components:
            raise ConfigurationError(f"Invalid duration '{duration_str}': no components")
        return pd.DateOffset(**components)

    match = _SIMPLE_DURATION.match(text)
    if match:
        count, unit = match.groups()
        unit_name = _UNIT_ALIASES.get(unit.lower())
        if unit_name is None:
            raise ConfigurationError(f"Invalid duration '{duration_str}': unknown unit '{unit}'")
        return pd.DateOffset(**{unit_name: int(count)})

    raise ConfigurationError(
        f"Invalid duration '{duration_str}' (expected e.g. P3D, P1M, PT6H or '3 days')"
    )


def format_date(d: pd.Timestamp, fmt: str) -> str:
    """Format a timestamp with a strftime pattern."""
    return d.strftime(fmt)
