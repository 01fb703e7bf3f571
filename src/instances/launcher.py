"""Static launch helpers.

Thin compositions over ProcessArguments and Instance for the common
"start it", "run it to completion" and "run it to completion asynchronously" cases.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from instances.process_arguments import ProcessArguments

if TYPE_CHECKING:
    from instances.instance import Instance
    from instances.process_result import ProcessResult


def _build_arguments(
    program: str,
    arguments: str | Sequence[str],
    on_output: Callable[[str], None] | None,
    on_error: Callable[[str], None] | None,
    options: dict[str, Any],
) -> ProcessArguments:
    process_arguments = ProcessArguments(program, arguments, **options)
    if on_output is not None:
        process_arguments.output_data_received += on_output
    if on_error is not None:
        process_arguments.error_data_received += on_error
    return process_arguments


def start(program: str, arguments: str | Sequence[str] = "", **options: Any) -> Instance:
    """Launch ``program`` and return the running Instance.

    Args:
        program: Program name or path.
        arguments: Argument string or sequence of arguments.
        **options: Any other ProcessArguments field (working_directory, environment,
            buffer_capacity, ignore_empty_lines).

    Raises:
        ExecutableNotFoundError: If the program cannot be launched.
    """
    return ProcessArguments(program, arguments, **options).start()


def finish(
    program: str,
    arguments: str | Sequence[str] = "",
    on_output: Callable[[str], None] | None = None,
    on_error: Callable[[str], None] | None = None,
    **options: Any,
) -> ProcessResult:
    """Launch ``program``, block until it exits and return its result.

    ``on_output`` and ``on_error`` are called on reader threads for every captured
    stdout and stderr line. A non-zero exit code is returned, not raised.

    Raises:
        ExecutableNotFoundError: If the program cannot be launched.
    """
    process_arguments = _build_arguments(program, arguments, on_output, on_error, options)
    with process_arguments.start() as instance:
        return instance.wait_for_exit()


async def finish_async(
    program: str,
    arguments: str | Sequence[str] = "",
    cancel: asyncio.Event | None = None,
    on_output: Callable[[str], None] | None = None,
    on_error: Callable[[str], None] | None = None,
    **options: Any,
) -> ProcessResult:
    """Launch ``program`` and wait for its result without blocking the event loop.

    Raises:
        ExecutableNotFoundError: If the program cannot be launched.
        WaitCancelledError: If ``cancel`` is set before the process exits. The
            process is left running.
    """
    process_arguments = _build_arguments(program, arguments, on_output, on_error, options)
    instance = process_arguments.start()
    return await instance.wait_for_exit_async(cancel=cancel)
