"""Process utilities for forcefully stopping a process and its descendants."""

from __future__ import annotations

import contextlib
import warnings

import psutil

# Seconds to wait for killed descendants to be reaped; SIGKILL is not blockable,
# so only a child stuck in uninterruptible sleep takes this long
REAP_TIMEOUT = 0.5


def kill_process_tree(pid: int) -> None:
    """Kill a process and all its children.

    Descendants are killed first so none of them keeps the parent's output pipes
    open. Raises psutil.NoSuchProcess if ``pid`` no longer exists.
    """
    parent = psutil.Process(pid)
    try:
        children = parent.children(recursive=True)
    except psutil.NoSuchProcess:
        # Exited (or a zombie) already; nothing left to enumerate
        children = []
    except (OSError, psutil.Error) as e:
        warnings.warn(f"Could not list children of {pid}: {e}", UserWarning, stacklevel=2)
        children = []

    for child in children:
        with contextlib.suppress(psutil.NoSuchProcess):
            child.kill()

    parent.kill()

    # Reap the killed children so they do not linger as zombies
    psutil.wait_procs(children, timeout=REAP_TIMEOUT)
