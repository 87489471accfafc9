"""dateseq: generate sequences of dates, like seq(1) for the calendar."""

from .config import Config, load_config
from .engine import DateStream, SequenceEngine, resolve_date_format
from .errors import ConfigurationError, DateseqError, FormattingError
from .main import main
from .request import BusinessMode, SequenceRequest

__all__ = [
    'main',
    'Config',
    'load_config',
    'BusinessMode',
    'SequenceRequest',
    'SequenceEngine',
    'DateStream',
    'resolve_date_format',
    'DateseqError',
    'ConfigurationError',
    'FormattingError',
]
