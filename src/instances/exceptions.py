"""Exceptions raised by the instances package."""

from __future__ import annotations


class InstanceError(Exception):
    """Base class for errors raised by this package."""


class ExecutableNotFoundError(InstanceError, FileNotFoundError):
    """Raised when the OS loader cannot locate or launch the program.

    No Instance is produced when this is raised. A process that starts and then
    exits with a failure status is not an error; its exit code is carried in the
    ProcessResult instead.
    """

    def __init__(self, program: str, reason: str | None = None) -> None:
        self.program = program
        message = f"Executable not found or not launchable: {program}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class WaitCancelledError(InstanceError):
    """Raised to a single async waiter whose wait was cancelled or timed out.

    The underlying process keeps running and other waiters are unaffected.
    """
