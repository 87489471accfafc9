"""
Main entry point for dateseq.
"""

import argparse
import os
import sys
from typing import Iterable, TextIO

from .config import Config, load_config
from .engine import DateStream, SequenceEngine
from .errors import ConfigurationError, DateseqError
from .logging_setup import setup_logging
from .request import BusinessMode, SequenceRequest
from .utils import default_increment, parse_date, parse_duration


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog='dateseq',
        description='Generate a sequence of dates, like seq(1) but for the calendar',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Dates from 2015-01-01 up to (not including) 2015-01-31
  dateseq 2015-01-01 2015-01-31

  # Every third day
  dateseq 2015-01-01 2015-01-31 P3D

  # CSV with a header row
  dateseq 2010-01-01 2015-01-31 -f "%Y,%m,%d" --header "year,month,day"

  # Monthly periods (YYYY-MM)
  dateseq 2010-01-01 2015-12-31 -i P1M -f "%Y-%m"

  # Next ten business days
  dateseq today --business -n 10

  # Endless stream, one line at a time
  dateseq now -i PT1H | head -n 48
        """
    )

    parser.add_argument(
        'start',
        nargs='?',
        metavar='from',
        help='Starting date (default: today)'
    )

    parser.add_argument(
        'end',
        nargs='?',
        metavar='to',
        help='End date; without it (and without --limit) dates stream forever'
    )

    parser.add_argument(
        'increment_pos',
        nargs='?',
        metavar='increment',
        help='Step between dates, e.g. P1D, P3D, P1M, PT6H or "2 weeks" (default: 1 day)'
    )

    parser.add_argument(
        '--increment', '-i',
        dest='increment',
        help='Same as the positional increment'
    )

    parser.add_argument(
        '--header',
        help='Add a header row'
    )

    parser.add_argument(
        '--limit', '-n',
        type=int,
        help='Only generate this many rows (header included)'
    )

    parser.add_argument(
        '--date-format', '-f',
        dest='date_format',
        help='strftime() format for each date (default: %%Y-%%m-%%d, or '
             '%%Y-%%m-%%dT%%H:%%M:%%S when hour/minute/second is involved)'
    )

    business_group = parser.add_mutually_exclusive_group()
    business_group.add_argument(
        '--business',
        dest='business',
        action='store_true',
        default=None,
        help='Only list business days (Mon-Fri)'
    )
    business_group.add_argument(
        '--no-business',
        dest='business',
        action='store_false',
        default=None,
        help='Only list weekend days (Sat-Sun)'
    )
    business_group.add_argument(
        '--business6',
        dest='business6',
        action='store_true',
        default=None,
        help='Only list business days (Mon-Sat)'
    )
    business_group.add_argument(
        '--no-business6',
        dest='business6',
        action='store_false',
        default=None,
        help='Only list Sundays'
    )

    parser.add_argument(
        '--reverse', '-r',
        action='store_true',
        help='Step backwards from the starting date'
    )

    parser.add_argument(
        '--config', '-c',
        help='Path to a YAML configuration file (default: $DATESEQ_CONFIG or '
             '~/.config/dateseq/settings.yaml)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser.parse_intermixed_args(argv)


def build_request(args: argparse.Namespace, config: Config) -> SequenceRequest:
    """
    Turn parsed arguments into a SequenceRequest.

    Command line values take precedence over the config file defaults.

    Raises:
        ConfigurationError: If any value is invalid or values conflict
    """
    if args.increment_pos and args.increment:
        raise ConfigurationError("Increment given both positionally and with --increment")

    defaults = config.defaults

    start = parse_date(args.start) if args.start else parse_date('today')
    end = parse_date(args.end) if args.end else None

    increment_str = args.increment_pos or args.increment or defaults.increment
    increment = parse_duration(increment_str) if increment_str else default_increment()

    # Config flags only apply when no filter was chosen on the command line
    if args.business is None and args.business6 is None:
        business = BusinessMode.from_flags(defaults.business, defaults.business6)
    else:
        business = BusinessMode.from_flags(args.business, args.business6)

    return SequenceRequest(
        start=start,
        end=end,
        increment=increment,
        reverse=args.reverse or defaults.reverse,
        business=business,
        header=args.header,
        limit=args.limit,
        date_format=args.date_format if args.date_format is not None else defaults.date_format
    )


def write_rows(rows: Iterable[str], out: TextIO, flush: bool = False) -> int:
    """
    Write one row per line.

    Args:
        rows: Rows to write (a list or a DateStream)
        out: Destination stream
        flush: Flush after every line so pipelines see rows immediately

    Returns:
        Number of rows written
    """
    count = 0
    for row in rows:
        out.write(f"{row}\n")
        if flush:
            out.flush()
        count += 1
    return count


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config)
    except (FileNotFoundError, ConfigurationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.verbose:
        config.logging.level = 'DEBUG'

    # Setup logging
    logger = setup_logging(config.logging)
    if config.source:
        logger.debug(f"Loaded configuration from {config.source}")

    try:
        request = build_request(args, config)
        result = SequenceEngine(request).generate()
        streaming = isinstance(result, DateStream)
        count = write_rows(result, sys.stdout, flush=streaming)
        sys.stdout.flush()
    except DateseqError as e:
        logger.debug(f"Aborting: {e!r}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except BrokenPipeError:
        # Reader went away (e.g. `| head`); silence the flush at interpreter exit
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        return 0
    except KeyboardInterrupt:
        return 130

    logger.debug(f"Wrote {count} rows")
    return 0


if __name__ == '__main__':
    sys.exit(main())
