#!/usr/bin/env python3
"""
s3du command-line entry point.

Prints the size of each bucket, alphabetically, followed by the total.
Buckets that could not be sized are listed on stderr.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from dataclasses import replace
from threading import Event
from typing import Optional, Sequence

from s3du import __version__
from s3du.backends import Backend
from s3du.common.format_utils import format_size
from s3du.config import (
    SizerConfig,
    load_config_from_env,
    parse_backend,
    parse_object_versions,
    parse_workers,
)
from s3du.engine import compute_bucket_sizes
from s3du.errors import ConfigurationError, DiscoveryError, RunCancelledError
from s3du.models import SizeReport, VersionMode

EXIT_OK = 0
EXIT_PARTIAL_FAILURE = 1
EXIT_ERROR = 2
EXIT_CANCELLED = 130


def _argparse_type(parser_func):
    def _parse(value):
        try:
            return parser_func(value)
        except ConfigurationError as exc:
            raise argparse.ArgumentTypeError(str(exc)) from exc

    _parse.__name__ = parser_func.__name__
    return _parse


def build_parser() -> argparse.ArgumentParser:
    """Create the ArgumentParser for s3du."""
    parser = argparse.ArgumentParser(
        prog="s3du",
        description="Report the space used by S3 buckets.",
    )
    parser.add_argument(
        "buckets",
        nargs="*",
        metavar="BUCKET",
        help="Only size these buckets (default: every bucket the backend can see)",
    )
    parser.add_argument(
        "-m",
        "--backend",
        type=_argparse_type(parse_backend),
        help=f"Where sizes come from: {', '.join(b.value for b in Backend)} (default: cloudwatch)",
    )
    parser.add_argument(
        "-o",
        "--object-versions",
        type=_argparse_type(parse_object_versions),
        help=(
            f"Versions to count with the s3 backend: {', '.join(m.value for m in VersionMode)} "
            "(default: current)"
        ),
    )
    parser.add_argument("-r", "--region", help="AWS region (default: AWS_REGION or us-east-1)")
    parser.add_argument("-e", "--endpoint", help="Endpoint URL of an S3-compatible store (s3 backend only)")
    parser.add_argument(
        "-w",
        "--workers",
        type=_argparse_type(parse_workers),
        help="Number of buckets sized at the same time (default: 4 per CPU)",
    )
    parser.add_argument(
        "-u",
        "--unit",
        choices=("binary", "decimal", "bytes"),
        default="binary",
        help="How sizes are printed (default: binary)",
    )
    parser.add_argument("--env-file", help="Path to a .env file with AWS credentials (default: ~/.env)")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log progress")
    verbosity.add_argument("--debug", action="store_true", help="Log every API page")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(args: argparse.Namespace) -> None:
    level = logging.WARNING
    if args.debug:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(threadName)s %(message)s")
    if not args.debug:
        logging.getLogger("botocore").setLevel(logging.WARNING)


def config_from_args(args: argparse.Namespace, base: SizerConfig) -> SizerConfig:
    """Overlay command-line values on the environment-derived configuration."""
    overrides = {}
    if args.backend is not None:
        overrides["backend"] = args.backend
    if args.object_versions is not None:
        overrides["object_versions"] = args.object_versions
    if args.region:
        overrides["region"] = args.region
    if args.endpoint:
        overrides["endpoint_url"] = args.endpoint
        if args.backend is None:
            overrides["backend"] = Backend.S3
    if args.workers is not None:
        overrides["workers"] = args.workers
    if args.buckets:
        overrides["buckets"] = tuple(args.buckets)
    return replace(base, **overrides)


def print_report(report: SizeReport, unit: str = "binary", out=None, err=None) -> None:
    """Print sizes alphabetically with a total, and failures to ``err``."""
    out = out or sys.stdout
    err = err or sys.stderr

    rows = [(format_size(size, unit), name) for name, size in report.sorted_sizes()]
    total = format_size(report.total_bytes, unit)
    width = max([len(size) for size, _ in rows] + [len(total)])
    for size, name in rows:
        print(f"{size:>{width}}  {name}", file=out)
    print(f"{total:>{width}}  total", file=out)

    if report.failures:
        print(f"\n⚠️  {len(report.failures)} bucket(s) could not be sized:", file=err)
        for name, reason in sorted(report.failures.items()):
            print(f"  - {name}: {reason}", file=err)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run s3du and return the process exit status."""
    args = build_parser().parse_args(argv)
    configure_logging(args)

    try:
        config = config_from_args(args, load_config_from_env(args.env_file)).validate()
    except ConfigurationError as exc:
        print(f"❌ {exc}", file=sys.stderr)
        return EXIT_ERROR

    cancel_event = Event()

    def _signal_handler(_signum, _frame):
        print("\nInterrupted, waiting for in-flight requests to finish...", file=sys.stderr)
        cancel_event.set()

    previous_handler = signal.signal(signal.SIGINT, _signal_handler)
    try:
        report = compute_bucket_sizes(config, cancel_event=cancel_event)
    except (ConfigurationError, DiscoveryError) as exc:
        print(f"❌ {exc}", file=sys.stderr)
        return EXIT_ERROR
    except RunCancelledError:
        print("❌ Cancelled", file=sys.stderr)
        return EXIT_CANCELLED
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    print_report(report, args.unit)
    return EXIT_OK if report.ok else EXIT_PARTIAL_FAILURE


if __name__ == "__main__":
    sys.exit(main())
