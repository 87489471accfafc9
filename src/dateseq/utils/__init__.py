"""Utilities package."""

from .dates import (
    day_of_week,
    default_increment,
    format_date,
    has_sub_day_component,
    has_time_of_day,
    is_weekend,
    is_zero_duration,
    parse_date,
    parse_duration,
)

__all__ = [
    'day_of_week',
    'default_increment',
    'format_date',
    'has_sub_day_component',
    'has_time_of_day',
    'is_weekend',
    'is_zero_duration',
    'parse_date',
    'parse_duration',
]
