"""Exceptions raised by dateseq."""


class DateseqError(Exception):
    """Base exception for dateseq."""

    pass


class ConfigurationError(DateseqError):
    """Invalid input detected before any output is produced."""

    pass


class FormattingError(DateseqError):
    """A date could not be rendered (or stepped) while generating."""

    pass
