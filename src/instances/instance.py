"""Lifecycle management for a single external child process.

## Basic Usage

### Launch and wait
```python
instance = Instance.start(ProcessArguments("git", "status --short"))
result = instance.wait_for_exit()
print(result.exit_code, result.output_data)

# Or in one call
result = Instance.finish("git", "status --short")
```

### Observing output as it arrives
```python
arguments = ProcessArguments("make", "build", ignore_empty_lines=True)
arguments.output_data_received += print
arguments.error_data_received += lambda line: print("ERR", line)
arguments.exited += lambda result: print("done", result.exit_code)
with arguments.start() as instance:
    instance.wait_for_exit()
```

### Async waiting with a per-caller cancellation
```python
instance = ProcessArguments("python", "server.py").start()
try:
    result = await instance.wait_for_exit_async(timeout=5)
except WaitCancelledError:
    # Only this wait gave up; the process is still running
    result = instance.kill()
```

### Talking to standard input
```python
instance = ProcessArguments("python", ["-c", "print(input())"]).start()
instance.send_input("hello")
assert instance.wait_for_exit().output_data == ("hello",)
```

## Completion guarantees

- A ProcessResult is built exactly once, after both output streams reached end of
  stream, by whichever of natural exit, a blocking wait or ``kill()`` gets there first.
- Every later call to ``wait_for_exit``, ``wait_for_exit_async`` or ``kill`` returns
  that same cached object, from any thread or task.
- Cancelling an async wait never touches the process or the other waiters.
"""

import asyncio
import concurrent.futures
import contextlib
import logging
import subprocess
import threading
import time
from pathlib import Path
from typing import Any

import psutil

from instances.events import EventHook
from instances.exceptions import ExecutableNotFoundError, WaitCancelledError
from instances.exit_watcher import ExitWatcher
from instances.line_buffer import LineBuffer
from instances.process_arguments import ProcessArguments
from instances.process_result import ProcessResult
from instances.process_utils import kill_process_tree
from instances.stream_reader import StreamReader

# Create module-level logger
logger = logging.getLogger(__name__)


class Instance:
    """
    A launched OS process together with its captured output and completion state.

    Instances are created with ``Instance.start`` (or ``ProcessArguments.start``).
    Standard output and standard error are drained by two reader threads into
    bounded line buffers; a watcher thread resolves the instance when the process
    exits on its own.

    Thread-safe: wait, kill and send_input may be called concurrently from any
    number of threads and asyncio tasks.
    """

    def __init__(self, arguments: ProcessArguments, proc: "subprocess.Popen[str]") -> None:
        """Wrap an already spawned process. Use ``Instance.start`` instead."""
        self._arguments = arguments
        self.proc = proc
        self._output = LineBuffer(arguments.buffer_capacity)
        self._error = LineBuffer(arguments.buffer_capacity)
        self._exited: EventHook[ProcessResult] = arguments.exited
        self._gate = threading.RLock()
        self._stdin_lock = threading.Lock()
        self._result: ProcessResult | None = None
        # Broadcast-once completion signal; marked running so no waiter can cancel it
        self._completion: concurrent.futures.Future[ProcessResult] = concurrent.futures.Future()
        self._completion.set_running_or_notify_cancel()
        self._killed = False
        self._start_time: float = time.time()
        self._end_time: float | None = None
        self._stdout_reader = self._create_reader(proc.stdout, self._output, arguments.output_data_received, "stdout")
        self._stderr_reader = self._create_reader(proc.stderr, self._error, arguments.error_data_received, "stderr")
        self._watcher = ExitWatcher(self)

    @classmethod
    def start(cls, arguments: ProcessArguments) -> "Instance":
        """
        Spawn the configured process and start capturing its output.

        Returns as soon as the process is running; use one of the wait methods
        to block for completion.

        Raises:
            ExecutableNotFoundError: If the OS loader cannot launch the program.
            FileNotFoundError: If the configured working directory does not exist.
        """
        arguments = arguments.frozen_copy()
        proc = cls._create_process(arguments)
        instance = cls(arguments, proc)
        instance._start_threads()
        return instance

    @staticmethod
    def _create_process(arguments: ProcessArguments) -> "subprocess.Popen[str]":
        """Create the subprocess with all three standard streams redirected."""
        command = arguments.build_command()
        cwd = str(arguments.working_directory) if arguments.working_directory is not None else None
        try:
            proc = subprocess.Popen(  # noqa: S603
                command,
                cwd=cwd,
                env=arguments.build_environment(),
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,  # Use text mode
                encoding="utf-8",  # Explicitly use UTF-8
                errors="replace",  # Replace invalid chars instead of failing
                bufsize=1,  # Line-buffered for real-time output
            )
        except OSError as e:
            # A missing working directory is reported against the directory, not the program
            if cwd is not None and e.filename is not None and str(e.filename) == cwd and not Path(cwd).is_dir():
                raise
            logger.debug("Failed to launch %s: %s", arguments.get_command_str(), e)
            raise ExecutableNotFoundError(arguments.program, e.strerror or str(e)) from e

        logger.debug("Started pid %s: %s", proc.pid, arguments.get_command_str())
        return proc

    def _create_reader(
        self, stream: Any, buffer: LineBuffer, line_received: EventHook[str], stream_name: str
    ) -> StreamReader:
        assert stream is not None
        return StreamReader(
            stream=stream,
            buffer=buffer,
            line_received=line_received,
            ignore_empty_lines=self._arguments.ignore_empty_lines,
            name=f"Instance-{stream_name}-{self.proc.pid}",
            on_end=self._on_reader_end,
        )

    def _start_threads(self) -> None:
        """Start both stream readers and the exit watcher."""
        self._stdout_reader.start()
        self._stderr_reader.start()
        self._watcher.start()

    def _on_reader_end(self) -> None:
        # Capture completion time of useful output once both streams are drained
        if self._stdout_reader.finished and self._stderr_reader.finished and self._end_time is None:
            self._end_time = time.time()

    def _wait_for_process(self) -> None:
        """Block until the OS process has exited."""
        self.proc.wait()

    def _drain_readers(self) -> None:
        """Wait for both stream readers to reach end of stream.

        A reader completing the instance from one of its own line callbacks is not
        joined; its remaining lines are not captured.
        """
        current = threading.current_thread()
        for reader in (self._stdout_reader, self._stderr_reader):
            if reader.thread is not current:
                reader.join()

    def _terminate(self) -> None:
        """Forcefully kill the process and any descendants holding its pipes."""
        if self.proc.poll() is not None:
            # Already reaped; the pid may belong to someone else by now
            logger.debug("Process %s exited before kill", self.pid)
            return
        self._killed = True
        logger.debug("Killing pid %s: %s", self.pid, self._arguments.get_command_str())
        try:
            kill_process_tree(self.proc.pid)
        except psutil.NoSuchProcess:
            logger.debug("Process %s already gone before kill", self.pid)
        except (OSError, psutil.Error) as e:
            # Fallback to simple kill if tree kill fails
            logger.warning("Failed to kill process tree for %s: %s", self.pid, e)
            with contextlib.suppress(ProcessLookupError, PermissionError, OSError):
                self.proc.kill()  # Process might already be dead

    def _close_stdin(self) -> None:
        with self._stdin_lock:
            stdin = self.proc.stdin
            if stdin is not None and not stdin.closed:
                try:
                    stdin.close()
                except (BrokenPipeError, OSError, ValueError) as e:
                    logger.debug("Closing stdin of %s failed: %s", self.pid, e)

    def _materialize(self) -> ProcessResult:
        """Build the result from the drained buffers. Caller holds the gate."""
        exit_code = self.proc.wait()
        result = ProcessResult(
            exit_code=exit_code,
            output_data=self._output.snapshot(),
            error_data=self._error.snapshot(),
        )
        if self._end_time is None:
            self._end_time = time.time()
        self._close_stdin()
        logger.debug(
            "Process %s completed with exit code %s (%d stdout lines, %d stderr lines, %d dropped)",
            self.pid,
            exit_code,
            len(result.output_data),
            len(result.error_data),
            self._output.dropped + self._error.dropped,
        )
        return result

    def _resolve(self, terminate: bool = False) -> ProcessResult:
        """Complete the instance exactly once and return the cached result.

        Every completion path goes through here. A terminating caller kills the
        process under the gate (only the first one does). Both readers are drained
        outside the gate, so a line callback that completes the instance never
        waits on a thread that is itself waiting for that callback's reader. The
        first caller to take the gate afterwards builds the result; everyone else
        returns the cached one.
        """
        if terminate:
            with self._gate:
                if self._result is None and not self._killed:
                    self._terminate()

        self._drain_readers()
        self.proc.wait()

        produced = False
        with self._gate:
            if self._result is None:
                self._result = self._materialize()
                self._completion.set_result(self._result)
                produced = True
            result = self._result

        if produced:
            self._exited.fire(result)
        return result

    def wait_for_exit(self, timeout: float | None = None) -> ProcessResult:
        """
        Block until the process has exited and its output is fully captured.

        Args:
            timeout: Seconds to wait. None waits indefinitely.

        Returns:
            The instance's ProcessResult; the same object on every call.

        Raises:
            TimeoutError: If ``timeout`` elapses first. The process keeps running.
        """
        if self._result is not None:
            return self._result
        if timeout is None:
            self._wait_for_process()
            return self._resolve()
        # Bounded waits leave the resolution to the watcher thread
        try:
            return self._completion.result(timeout=timeout)
        except concurrent.futures.TimeoutError as e:
            timeout_msg = f"Process {self.pid} still running after {timeout} seconds"
            raise TimeoutError(timeout_msg) from e

    async def wait_for_exit_async(
        self,
        cancel: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        """
        Wait for the process to exit without blocking the event loop.

        Args:
            cancel: Event that abandons this wait when set.
            timeout: Seconds after which this wait is abandoned.

        Returns:
            The instance's ProcessResult; the same object on every call.

        Raises:
            WaitCancelledError: If ``cancel`` is set or ``timeout`` elapses first.
                Only this wait is abandoned; the process keeps running.

        Note:
            Each abandoned wait leaves a small done-callback registered on the shared
            completion future until the instance completes. Polling in a tight loop
            with a short ``timeout`` therefore grows that list; prefer one long wait
            with a ``cancel`` event.
        """
        if self._result is not None:
            return self._result

        # Per-call subscription to the shared completion signal
        waiter = asyncio.wrap_future(self._completion)
        pending: set[asyncio.Future[Any]] = {waiter}
        cancel_waiter: asyncio.Future[Any] | None = None
        if cancel is not None:
            cancel_waiter = asyncio.ensure_future(cancel.wait())
            pending.add(cancel_waiter)

        try:
            await asyncio.wait(pending, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if cancel_waiter is not None and not cancel_waiter.done():
                cancel_waiter.cancel()
            if not waiter.done():
                waiter.cancel()

        if waiter.done() and not waiter.cancelled():
            return waiter.result()
        if self._result is not None:
            # Completed while the wait was being abandoned
            return self._result
        reason = "cancelled" if cancel is not None and cancel.is_set() else f"timed out after {timeout} seconds"
        cancel_msg = f"Wait for process {self.pid} {reason}"
        raise WaitCancelledError(cancel_msg)

    def kill(self) -> ProcessResult:
        """
        Forcefully terminate the process and return the result.

        Kills the process and its descendants, waits for both output streams to
        drain and completes the instance. If the instance already completed this is
        a no-op returning the cached result. Safe to call concurrently and
        repeatedly; exactly one caller performs the termination.
        """
        if self._result is not None:
            return self._result
        return self._resolve(terminate=True)

    def send_input(self, text: str) -> None:
        """
        Write ``text`` and a line terminator to the process's standard input.

        Once the instance has completed, or stdin has been closed, this is a silent
        no-op. A child that already closed its end of the pipe is logged and ignored.
        """
        with self._stdin_lock:
            stdin = self.proc.stdin
            if self._result is not None or stdin is None or stdin.closed:
                logger.debug("Ignoring input for completed process %s", self.pid)
                return
            try:
                stdin.write(text + "\n")
                stdin.flush()
            except (BrokenPipeError, OSError, ValueError) as e:
                logger.warning("Writing to stdin of process %s failed: %s", self.pid, e)

    async def send_input_async(self, text: str) -> None:
        """Write a line to standard input from a worker thread."""
        await asyncio.to_thread(self.send_input, text)

    def close(self) -> None:
        """
        Release the instance's OS resources.

        A process that is still running is killed first, so no reader thread or
        pipe outlives the instance.
        """
        if self._result is None:
            self.kill()
        self._close_stdin()

    def __enter__(self) -> "Instance":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        self.close()
        # Do not suppress exceptions
        return False

    @property
    def arguments(self) -> ProcessArguments:
        """The private copy of the configuration this instance was started with."""
        return self._arguments

    @property
    def pid(self) -> int:
        return self.proc.pid

    @property
    def result(self) -> ProcessResult | None:
        return self._result

    @property
    def finished(self) -> bool:
        return self._result is not None

    @property
    def killed(self) -> bool:
        return self._killed

    @property
    def returncode(self) -> int | None:
        if self._result is None:
            return None
        return self._result.exit_code

    @property
    def output_data(self) -> tuple[str, ...]:
        """Captured stdout lines; a live snapshot until the instance completes."""
        if self._result is not None:
            return self._result.output_data
        return self._output.snapshot()

    @property
    def error_data(self) -> tuple[str, ...]:
        """Captured stderr lines; a live snapshot until the instance completes."""
        if self._result is not None:
            return self._result.error_data
        return self._error.snapshot()

    @property
    def start_time(self) -> float:
        """Get the process start time"""
        return self._start_time

    @property
    def end_time(self) -> float | None:
        """Get the time both output streams were drained"""
        return self._end_time

    @property
    def duration(self) -> float | None:
        """Get the process duration in seconds, or None if not completed"""
        if self._end_time is None:
            return None
        return self._end_time - self._start_time

    @staticmethod
    def finish(program: str, arguments: str | list[str] = "", **options: Any) -> ProcessResult:
        """Public static accessor for ``instances.launcher.finish``."""
        from instances.launcher import finish  # noqa: PLC0415

        return finish(program, arguments, **options)

    @staticmethod
    async def finish_async(program: str, arguments: str | list[str] = "", **options: Any) -> ProcessResult:
        """Public static accessor for ``instances.launcher.finish_async``."""
        from instances.launcher import finish_async  # noqa: PLC0415

        return await finish_async(program, arguments, **options)
