"""
Pytest configuration and fixtures.
Tests never read the user's real configuration.
"""

import pandas as pd
import pytest

from dateseq import config as config_module
from dateseq.errors import FormattingError
from dateseq.request import SequenceRequest


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Hide $DATESEQ_CONFIG and ~/.config/dateseq from every test."""
    for var in ('DATESEQ_CONFIG', 'DATESEQ_INCREMENT', 'DATESEQ_LOG_LEVEL'):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(
        config_module,
        'USER_CONFIG_PATH',
        tmp_path / 'no-such-dir' / 'settings.yaml'
    )


@pytest.fixture
def jan_first() -> pd.Timestamp:
    """2015-01-01, a Thursday."""
    return pd.Timestamp('2015-01-01')


@pytest.fixture
def make_request(jan_first):
    """Build a SequenceRequest starting on 2015-01-01 unless told otherwise."""
    def _make(**kwargs) -> SequenceRequest:
        kwargs.setdefault('start', jan_first)
        return SequenceRequest(**kwargs)
    return _make


class RecordingFormatter:
    """Formatter that records every date it renders and can fail on one."""

    def __init__(self, fail_on: pd.Timestamp | None = None, pattern: str = '%Y-%m-%d'):
        self.pattern = pattern
        self.fail_on = fail_on
        self.calls: list[pd.Timestamp] = []

    def __call__(self, d: pd.Timestamp) -> str:
        self.calls.append(d)
        if self.fail_on is not None and d == self.fail_on:
            raise FormattingError(f"cannot render {d}")
        return d.strftime(self.pattern)


@pytest.fixture
def recording_formatter():
    """Factory for RecordingFormatter instances."""
    return RecordingFormatter
