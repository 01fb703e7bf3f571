"""Launch a child process, capture its output line by line and wait for it safely."""

from __future__ import annotations

__version__ = "1.0.0"

from instances.events import EventHook
from instances.exceptions import ExecutableNotFoundError, InstanceError, WaitCancelledError
from instances.instance import Instance
from instances.launcher import finish, finish_async, start
from instances.line_buffer import LineBuffer
from instances.process_arguments import DEFAULT_BUFFER_CAPACITY, ProcessArguments
from instances.process_result import ProcessResult
from instances.process_utils import kill_process_tree

__all__ = [
    "DEFAULT_BUFFER_CAPACITY",
    "EventHook",
    "ExecutableNotFoundError",
    "Instance",
    "InstanceError",
    "LineBuffer",
    "ProcessArguments",
    "ProcessResult",
    "WaitCancelledError",
    "finish",
    "finish_async",
    "kill_process_tree",
    "start",
]
