"""Immutable outcome of a completed Instance."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass


@dataclass(frozen=True)
class ProcessResult:
    """Exit code and captured lines of a finished process.

    Produced exactly once per Instance and handed to every caller of
    ``wait_for_exit``, ``wait_for_exit_async`` and ``kill``.
    """

    exit_code: int
    output_data: tuple[str, ...] = ()
    error_data: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def check_returncode(self) -> None:
        """Raise CalledProcessError if the exit code is non-zero."""
        if self.exit_code != 0:
            raise subprocess.CalledProcessError(
                returncode=self.exit_code,
                cmd=None,
                output="\n".join(self.output_data),
                stderr="\n".join(self.error_data),
            )
