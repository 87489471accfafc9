"""
Tests for the command line entry point.
"""

import io
import os
import sys
from itertools import islice

import pandas as pd
import pytest

from dateseq.config import Config, DefaultsConfig
from dateseq.engine import DateStream
from dateseq.errors import ConfigurationError
from dateseq.main import build_request, main, parse_args, write_rows
from dateseq.request import BusinessMode
from dateseq.utils import parse_duration


def run(capsys, *argv):
    """Run the CLI and return (exit code, stdout lines, stderr)."""
    code = main(list(argv))
    captured = capsys.readouterr()
    return code, captured.out.splitlines(), captured.err


class TestMain:
    """End-to-end tests for the CLI."""

    def test_range(self, capsys):
        """Positional from/to print one date per line."""
        code, lines, _ = run(capsys, '2015-01-01', '2015-01-04')

        assert code == 0
        assert lines == ['2015-01-01', '2015-01-02', '2015-01-03']

    def test_positional_increment(self, capsys):
        """The third positional argument is the increment."""
        code, lines, _ = run(capsys, '2015-01-01', '2015-01-10', 'P3D')

        assert code == 0
        assert lines == ['2015-01-01', '2015-01-04', '2015-01-07']

    def test_csv_with_header(self, capsys):
        """Format and header produce CSV rows."""
        code, lines, _ = run(
            capsys, '2015-01-01', '2015-01-03', '-f', '%Y,%m,%d', '--header', 'year,month,day'
        )

        assert code == 0
        assert lines == ['year,month,day', '2015,01,01', '2015,01,02']

    def test_monthly_periods(self, capsys):
        """Monthly increments with a year-month format."""
        code, lines, _ = run(capsys, '2010-01-01', '2010-06-30', '-i', 'P1M', '-f', '%Y-%m')

        assert code == 0
        assert lines == ['2010-01', '2010-02', '2010-03', '2010-04', '2010-05', '2010-06']

    def test_limit_with_business(self, capsys):
        """A limit alone bounds the run; weekends are skipped."""
        code, lines, _ = run(capsys, '2015-01-01', '-n', '3', '--business')

        assert code == 0
        assert lines == ['2015-01-01', '2015-01-02', '2015-01-05']

    def test_no_business(self, capsys):
        """--no-business lists weekend days."""
        code, lines, _ = run(capsys, '2015-01-01', '2015-01-08', '--no-business')

        assert code == 0
        assert lines == ['2015-01-03', '2015-01-04']

    def test_business6(self, capsys):
        """--no-business6 lists Sundays only."""
        code, lines, _ = run(capsys, '2015-01-01', '2015-01-15', '--no-business6')

        assert code == 0
        assert lines == ['2015-01-04', '2015-01-11']

    def test_reverse(self, capsys):
        """--reverse walks back down to the end date inclusive."""
        code, lines, _ = run(capsys, '2015-01-03', '2015-01-01', '-r')

        assert code == 0
        assert lines == ['2015-01-03', '2015-01-02', '2015-01-01']

    def test_options_between_positionals(self, capsys):
        """Options may appear between positional arguments."""
        code, lines, _ = run(capsys, '--header', 'd', '2015-01-01', '-n', '2', '2015-01-10')

        assert code == 0
        assert lines == ['d', '2015-01-01']

    @pytest.mark.parametrize('flags', [
        ['--business', '--business6'],
        ['--business', '--no-business'],
        ['--no-business', '--no-business6'],
    ])
    def test_conflicting_business_flags(self, capsys, flags):
        """Conflicting filters are rejected before any output."""
        with pytest.raises(SystemExit) as exc_info:
            main(['2015-01-01', '2015-01-10', *flags])

        assert exc_info.value.code == 2
        assert capsys.readouterr().out == ''

    @pytest.mark.parametrize('argv', [
        ['2015-01-01', '-n', '0'],
        ['2015-01-01', '2015-01-10', 'P1D', '-i', 'P2D'],
        ['not-a-date', '2015-01-10'],
        ['2015-01-01', '2015-01-10', 'P0D'],
        ['2015-01-01', '2015-01-10', 'every so often'],
    ])
    def test_configuration_errors(self, capsys, argv):
        """Bad input exits 1 with an error and no output."""
        code, lines, err = run(capsys, *argv)

        assert code == 1
        assert lines == []
        assert 'Error:' in err

    def test_missing_config_file(self, capsys, tmp_path):
        """A named config file that does not exist is an error."""
        code, lines, err = run(capsys, '2015-01-01', '2015-01-03', '-c', str(tmp_path / 'nope.yaml'))

        assert code == 1
        assert lines == []
        assert 'not found' in err

    def test_config_defaults(self, capsys, tmp_path):
        """Config defaults fill in options left off the command line."""
        path = tmp_path / 'settings.yaml'
        path.write_text("defaults:\n  business: true\n  date_format: '%a %d'\n")

        code, lines, _ = run(capsys, '2015-01-01', '2015-01-06', '-c', str(path))

        assert code == 0
        assert lines == ['Thu 01', 'Fri 02', 'Mon 05']

    def test_cli_overrides_config(self, capsys, tmp_path):
        """A command line filter replaces the configured one."""
        path = tmp_path / 'settings.yaml'
        path.write_text("defaults:\n  business: true\n  increment: P2D\n")

        code, lines, _ = run(capsys, '2015-01-01', '2015-01-08', '--no-business', '-i', 'P1D', '-c', str(path))

        assert code == 0
        assert lines == ['2015-01-03', '2015-01-04']

    def test_verbose_logs_to_stderr(self, capsys):
        """Debug logging goes to stderr, never stdout."""
        code, lines, err = run(capsys, '-v', '2015-01-01', '2015-01-02')

        assert code == 0
        assert lines == ['2015-01-01']
        assert 'Generated 1 rows' in err


class TestBuildRequest:
    """Tests for turning arguments into a request."""

    def test_defaults(self):
        """No arguments means today, one day steps, no bounds."""
        request = build_request(parse_args([]), Config())

        assert request.start == pd.Timestamp.today().normalize()
        assert request.end is None
        assert request.increment.kwds == {'days': 1}
        assert not request.is_bounded

    def test_config_increment(self):
        """The configured increment is used when none is given."""
        config = Config(defaults=DefaultsConfig(increment='P1W', reverse=True))
        request = build_request(parse_args(['2015-01-01']), config)

        assert request.increment.kwds == {'weeks': 1}
        assert request.reverse

    def test_flags_map_to_mode(self):
        """Business flags become a BusinessMode."""
        request = build_request(parse_args(['2015-01-01', '--business6']), Config())
        assert request.business is BusinessMode.ONLY_BUSINESS6

    def test_conflicting_config_flags(self):
        """Both filters set in config is a configuration error."""
        config = Config(defaults=DefaultsConfig(business=True, business6=True))
        with pytest.raises(ConfigurationError):
            build_request(parse_args(['2015-01-01']), config)


class TestWriteRows:
    """Tests for line output."""

    def test_writes_lines(self):
        """Each row becomes one line."""
        out = io.StringIO()
        assert write_rows(['a', 'b'], out) == 2
        assert out.getvalue() == 'a\nb\n'

    def test_streams_lazily(self):
        """A stream can be written a slice at a time."""
        stream = DateStream(
            start=pd.Timestamp('2015-01-01'),
            increment=parse_duration('PT12H'),
            formatter=lambda d: d.strftime('%Y-%m-%dT%H:%M:%S'),
            header='when'
        )
        out = io.StringIO()

        write_rows(islice(stream, 3), out, flush=True)

        assert out.getvalue().splitlines() == ['when', '2015-01-01T00:00:00', '2015-01-01T12:00:00']
        assert next(stream) == '2015-01-02T00:00:00'


class FakeStdout:
    """Stand-in for stdout whose reader goes away after a number of lines."""

    def __init__(self, fd: int, fail_after: int, error: type[BaseException] = BrokenPipeError):
        self.fd = fd
        self.fail_after = fail_after
        self.error = error
        self.lines: list[str] = []
        self.flushes = 0

    def write(self, text: str) -> int:
        if len(self.lines) >= self.fail_after:
            raise self.error()
        self.lines.append(text)
        return len(text)

    def flush(self) -> None:
        self.flushes += 1

    def fileno(self) -> int:
        return self.fd


class TestStreaming:
    """Tests for the endless output mode of the CLI."""

    @pytest.fixture
    def stdout_fd(self, tmp_path):
        """A real file descriptor the CLI may redirect to /dev/null."""
        fd = os.open(tmp_path / 'stdout.txt', os.O_WRONLY | os.O_CREAT)
        yield fd
        os.close(fd)

    def test_closed_pipe_exits_quietly(self, monkeypatch, stdout_fd):
        """A reader closing the pipe ends the stream with exit 0."""
        fake = FakeStdout(stdout_fd, fail_after=5)
        monkeypatch.setattr(sys, 'stdout', fake)

        code = main(['2015-01-01'])

        assert code == 0
        assert fake.lines == [f'2015-01-0{day}\n' for day in range(1, 6)]

    def test_flushes_every_line(self, monkeypatch, stdout_fd):
        """Each streamed line is flushed as soon as it is written."""
        fake = FakeStdout(stdout_fd, fail_after=4)
        monkeypatch.setattr(sys, 'stdout', fake)

        main(['2015-01-01', '--header', 'date'])

        assert fake.lines == ['date\n', '2015-01-01\n', '2015-01-02\n', '2015-01-03\n']
        assert fake.flushes == 4

    def test_interrupt_exits_130(self, monkeypatch, stdout_fd):
        """Ctrl-C stops the stream with exit code 130."""
        fake = FakeStdout(stdout_fd, fail_after=3, error=KeyboardInterrupt)
        monkeypatch.setattr(sys, 'stdout', fake)

        code = main(['2015-01-01', '--business'])

        assert code == 130
        assert fake.lines == ['2015-01-01\n', '2015-01-02\n', '2015-01-05\n']
