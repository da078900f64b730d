"""Command-line interface for PyReach.
Usage: pyreach path/to/decision.py
Prints the reachable return values of the program's ``evaluate`` function
as ``[v1, v2, ...].`` on success; errors go to stderr with exit status 1.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pyreach import __version__
from pyreach.api import solve
from pyreach.config import PyReachConfig, init_config, load_config
from pyreach.core.exceptions import ConfigError
from pyreach.logging import LogLevel, configure_logging
from pyreach.reporting.formatters import format_result


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pyreach",
        description="PyReach - reachable return values of boolean decision programs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Let PyReach choose between static analysis and exhaustive execution
  pyreach decision.py
  # Force exhaustive execution and print the full result as JSON
  pyreach decision.py --strategy dynamic --format json
  # Only report which strategy would run
  pyreach decision.py --dry-run -v
  # Keep a full trace of the run
  pyreach decision.py -vvv --log-file pyreach.log
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"PyReach {__version__}",
    )
    parser.add_argument(
        "path",
        nargs="?",
        help="Python file defining the decision function",
    )
    parser.add_argument(
        "--strategy",
        choices=["auto", "static", "dynamic"],
        default="auto",
        help="Evaluation strategy (default: auto)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Select the strategy without running it",
    )
    parser.add_argument(
        "--format",
        choices=["text", "json"],
        default=None,
        help="Output format (default: text, or the configured format)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Configuration file (default: discovered pyreach.toml or pyproject.toml)",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write a default pyreach.toml to the current directory and exit",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Verbose progress on stderr (repeat for debug and trace output)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write the progress log to this file",
    )
    return parser


def _log_level(config: PyReachConfig, verbosity: int) -> LogLevel:
    if verbosity >= 3:
        return LogLevel.TRACE
    if verbosity == 2:
        return LogLevel.DEBUG
    if verbosity == 1 or config.output.verbose:
        return LogLevel.VERBOSE
    if config.output.quiet:
        return LogLevel.QUIET
    return LogLevel.NORMAL


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    if args.init_config:
        try:
            created = init_config()
        except FileExistsError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1
        print(f"wrote {created}")
        return 0
    if args.path is None:
        parser.print_usage(sys.stderr)
        return 1
    try:
        config = load_config(Path(args.config) if args.config else None)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    try:
        logger = configure_logging(
            level=_log_level(config, args.verbose),
            color=config.output.color,
            file_path=Path(args.log_file) if args.log_file else None,
        )
    except OSError as e:
        print(f"error: cannot open log file {args.log_file}: {e.strerror or e}", file=sys.stderr)
        return 1
    try:
        return _run(args, config)
    finally:
        logger.close()


def _run(args: argparse.Namespace, config: PyReachConfig) -> int:
    path = Path(args.path)
    try:
        source = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        reason = e.strerror if isinstance(e, OSError) and e.strerror else str(e)
        print(f"error: cannot read {path}: {reason}", file=sys.stderr)
        return 1
    result = solve(
        source,
        args.strategy,
        args.dry_run,
        config=config.solver,
        filename=str(path),
    )
    output = format_result(result, args.format or config.output.format)
    if result.success:
        print(output)
        return 0
    if (args.format or config.output.format) == "json":
        print(output)
    else:
        print(output, file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
