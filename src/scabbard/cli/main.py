"""Main CLI entry point for Scabbard."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from scabbard.cli.commands import EXIT_USAGE, list_tasks, run


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scabbard",
        description="Scabbard - CI pipeline task runner",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        help="Path to a scabbard.yaml (default: ./scabbard.yaml if present)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Run the tasks of a pipeline file")
    run_parser.add_argument("file", help="Pipeline file, e.g. ci/test.py")
    run_parser.add_argument(
        "--only",
        action="append",
        metavar="NAME",
        help="Run only this task (repeatable)",
    )
    run_parser.add_argument(
        "--log-level",
        help="Minimum log level (default: INFO)",
    )
    run_parser.add_argument(
        "--json-logs",
        action="store_true",
        default=None,
        help="Emit JSON log lines",
    )

    # list command
    list_parser = subparsers.add_parser("list", help="List the tasks of a pipeline file")
    list_parser.add_argument("file", help="Pipeline file, e.g. ci/test.py")

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "run":
        code = run(
            args.file,
            only=args.only,
            log_level=args.log_level,
            json_logs=args.json_logs,
            config_path=args.config_path,
        )
    elif args.command == "list":
        code = list_tasks(args.file, config_path=args.config_path)
    else:
        parser.print_help()
        code = EXIT_USAGE

    sys.exit(code)


if __name__ == "__main__":
    main()
