"""Launch configuration for an Instance."""

from __future__ import annotations

import asyncio
import os
import shlex
import subprocess
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from instances.events import EventHook

if TYPE_CHECKING:
    from instances.instance import Instance
    from instances.process_result import ProcessResult

# Lines kept per stream unless configured otherwise
DEFAULT_BUFFER_CAPACITY = 100_000


@dataclass
class ProcessArguments:
    """Describes what to launch and how to capture it.

    The configuration may be changed freely while it is being built. Starting an
    Instance takes a private copy, so later changes (including new subscriptions on the
    hooks) only affect Instances started afterwards.

    Args:
        program: Program name or path, resolved by the OS loader.
        arguments: Argument string, or a sequence of arguments passed verbatim.
            A string is split with ``shlex.split`` on POSIX and handed to
            CreateProcess unchanged on Windows.
        working_directory: Working directory for the child. None inherits ours.
        environment: Variables added to, or overriding, the inherited environment.
        buffer_capacity: Lines kept per stream; further lines are dropped.
            None keeps everything.
        ignore_empty_lines: Skip empty and whitespace-only lines entirely; they are
            neither stored nor reported to the line hooks.
    """

    program: str
    arguments: str | Sequence[str] = ""
    working_directory: str | os.PathLike[str] | None = None
    environment: dict[str, str] = field(default_factory=dict)
    buffer_capacity: int | None = DEFAULT_BUFFER_CAPACITY
    ignore_empty_lines: bool = False
    output_data_received: EventHook[str] = field(default_factory=lambda: EventHook("output_data_received"))
    error_data_received: EventHook[str] = field(default_factory=lambda: EventHook("error_data_received"))
    exited: EventHook[ProcessResult] = field(default_factory=lambda: EventHook("exited"))

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raise ValueError if the configuration cannot be launched."""
        if not self.program:
            error_message = "program must be a non-empty string"
            raise ValueError(error_message)
        if self.buffer_capacity is not None and self.buffer_capacity < 0:
            error_message = f"buffer_capacity must be >= 0 or None, got {self.buffer_capacity}"
            raise ValueError(error_message)

    def frozen_copy(self) -> ProcessArguments:
        """Return a deep enough copy that mutating ``self`` cannot affect it."""
        return ProcessArguments(
            program=self.program,
            arguments=self.arguments if isinstance(self.arguments, str) else tuple(self.arguments),
            working_directory=self.working_directory,
            environment=dict(self.environment),
            buffer_capacity=self.buffer_capacity,
            ignore_empty_lines=self.ignore_empty_lines,
            output_data_received=self.output_data_received.copy(),
            error_data_received=self.error_data_received.copy(),
            exited=self.exited.copy(),
        )

    def build_command(self) -> str | list[str]:
        """Build the command passed to subprocess.Popen (never through a shell)."""
        if not isinstance(self.arguments, str):
            return [self.program, *self.arguments]
        if sys.platform == "win32":
            command = subprocess.list2cmdline([self.program])
            return f"{command} {self.arguments}" if self.arguments else command
        return [self.program, *shlex.split(self.arguments)]

    def get_command_str(self) -> str:
        command = self.build_command()
        if isinstance(command, list):
            return subprocess.list2cmdline(command)
        return command

    def build_environment(self) -> dict[str, str]:
        """Inherited environment overlaid with the configured variables."""
        # Force unbuffered output for Python children so lines arrive as they are printed
        env = os.environ.copy()
        env["PYTHONUNBUFFERED"] = "1"
        env.update(self.environment)
        return env

    def start(self) -> Instance:
        """Launch an Instance from this configuration without waiting for it."""
        from instances.instance import Instance  # noqa: PLC0415

        return Instance.start(self)

    def start_and_wait_for_exit(self, timeout: float | None = None) -> ProcessResult:
        """Launch an Instance and block until it exits."""
        return self.start().wait_for_exit(timeout=timeout)

    async def start_and_wait_for_exit_async(
        self,
        cancel: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        """Launch an Instance and wait for it without blocking the event loop."""
        return await self.start().wait_for_exit_async(cancel=cancel, timeout=timeout)
