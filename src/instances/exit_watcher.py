"""Exit watcher module.

This module contains the ExitWatcher class that waits for an Instance's process to
exit in a background thread and then resolves the Instance.
"""

import logging
import subprocess
import threading
import traceback
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from instances.instance import Instance

logger = logging.getLogger(__name__)


class ExitWatcher:
    """Background watcher that turns a natural process exit into a completed Instance."""

    def __init__(self, instance: "Instance") -> None:
        self._instance = instance
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        name = f"InstanceWatcher-{self._instance.pid}"
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        thread_name = threading.current_thread().name
        try:
            self._instance._wait_for_process()  # noqa: SLF001
            self._instance._resolve()  # noqa: SLF001
        except (OSError, subprocess.SubprocessError, RuntimeError) as e:
            # Surface unexpected errors; waiters are still released by kill() or a blocking wait
            logger.warning("Watcher thread error in %s: %s", thread_name, e)
            traceback.print_exc()

    @property
    def thread(self) -> threading.Thread | None:
        return self._thread
