"""Command line entry point: run a program and echo its output.

Usage:
    python -m instances.cli [--cwd DIR] [--env KEY=VALUE ...] PROGRAM [ARG ...]
"""

import argparse
import logging
import sys

from instances.exceptions import ExecutableNotFoundError
from instances.process_arguments import DEFAULT_BUFFER_CAPACITY, ProcessArguments

logger = logging.getLogger(__name__)

# Conventional shell exit status for "command not found"
EXIT_NOT_FOUND = 127


def _parse_env(pairs: list[str]) -> dict[str, str]:
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            error_msg = f"--env expects KEY=VALUE, got {pair!r}"
            raise argparse.ArgumentTypeError(error_msg)
        env[key] = value
    return env


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="instances",
        description="Run a program, echoing its stdout and stderr lines as they arrive.",
    )
    parser.add_argument("program", nargs="?", help="Program to run")
    parser.add_argument("arguments", nargs=argparse.REMAINDER, help="Arguments passed to the program")
    parser.add_argument("--cwd", default=None, help="Working directory for the program")
    parser.add_argument("--env", action="append", default=[], metavar="KEY=VALUE", help="Environment override")
    parser.add_argument(
        "--buffer-capacity",
        type=int,
        default=DEFAULT_BUFFER_CAPACITY,
        help="Lines kept per stream (default: %(default)s)",
    )
    parser.add_argument("--ignore-empty-lines", action="store_true", help="Skip blank output lines")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.program is None:
        parser.print_help()
        return 0

    try:
        env = _parse_env(args.env)
    except argparse.ArgumentTypeError as e:
        print(f"error: {e}", file=sys.stderr)  # noqa: T201
        return 2

    process_arguments = ProcessArguments(
        program=args.program,
        arguments=args.arguments,
        working_directory=args.cwd,
        environment=env,
        buffer_capacity=args.buffer_capacity,
        ignore_empty_lines=args.ignore_empty_lines,
    )
    process_arguments.output_data_received += lambda line: print(line, flush=True)  # noqa: T201
    process_arguments.error_data_received += lambda line: print(line, file=sys.stderr, flush=True)  # noqa: T201

    try:
        instance = process_arguments.start()
    except ExecutableNotFoundError as e:
        print(f"error: {e}", file=sys.stderr)  # noqa: T201
        return EXIT_NOT_FOUND

    with instance:
        try:
            result = instance.wait_for_exit()
        except KeyboardInterrupt:
            logger.warning("Interrupted, killing process %s", instance.pid)
            result = instance.kill()
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
