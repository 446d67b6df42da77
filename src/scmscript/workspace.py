# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""Exclusive leases over checkout directories.

At most one checkout writes a given directory at a time. Within a process
this is a condition-guarded set of held paths; across processes a
sibling '<dir>.lock' file is flocked where fcntl is available.
"""

import logging
import os
import threading
import time
from pathlib import Path
from typing import Dict, Optional

from scmscript.errors import CheckoutCancelledError

try:
    import fcntl  # POSIX file locking
    _HAVE_FCNTL = True
except ImportError:
    _HAVE_FCNTL = False

logger = logging.getLogger(__name__)


def _key(path: Path) -> str:
    return os.path.normpath(os.path.abspath(path))


class Lease:
    """A scoped, exclusive claim on one directory.

    release() is idempotent; using the lease as a context manager releases
    it on every exit path.
    """

    def __init__(self, workspaces: "WorkspaceList", path: Path):
        self.workspaces = workspaces
        self.path = path
        self.key = _key(path)
        self.released = False
        self._lock_fh = None

    def _lock_file(self, cancel_event: Optional[threading.Event], poll_interval: float) -> None:
        """Take the cross-process lock, polling with LOCK_NB until free or cancelled."""
        lock_path = Path(self.key + ".lock")
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock_fh = open(lock_path, "w")
        waiting = False
        while True:
            try:
                fcntl.flock(self._lock_fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                return
            except BlockingIOError:
                pass
            if cancel_event is not None and cancel_event.is_set():
                self._lock_fh.close()
                self._lock_fh = None
                raise CheckoutCancelledError(f"Cancelled while waiting for workspace {self.path}")
            if not waiting:
                logger.info(f"Waiting for workspace {self.path} held by another process")
                waiting = True
            if cancel_event is not None:
                cancel_event.wait(poll_interval)
            else:
                time.sleep(poll_interval)

    def _unlock_file(self) -> None:
        if self._lock_fh is None:
            return
        try:
            fcntl.flock(self._lock_fh.fileno(), fcntl.LOCK_UN)
        finally:
            self._lock_fh.close()
            self._lock_fh = None

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        try:
            self._unlock_file()
        finally:
            self.workspaces._release(self)
        logger.debug(f"Released workspace lease on {self.path}")

    def __enter__(self) -> "Lease":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self.released else "held"
        return f"Lease({self.path}, {state})"


class WorkspaceList:
    """Grants exclusive leases on directories.

    acquire() blocks until no other lease holds the same directory. Fairness
    between waiters is whatever order the condition wakes them in.
    """

    def __init__(self, interprocess: bool = True, poll_interval: float = 0.5):
        self.interprocess = interprocess and _HAVE_FCNTL
        self.poll_interval = poll_interval
        self._cond = threading.Condition()
        self._in_use: Dict[str, Lease] = {}

    def acquire(self, path: Path, cancel_event: Optional[threading.Event] = None) -> Lease:
        """Block until path is free, then lease it.

        Raises:
            CheckoutCancelledError: If cancel_event is set while waiting.
        """
        lease = Lease(self, Path(path))
        with self._cond:
            while lease.key in self._in_use:
                if cancel_event is not None and cancel_event.is_set():
                    raise CheckoutCancelledError(f"Cancelled while waiting for workspace {path}")
                logger.info(f"Waiting for workspace {path} held by another run")
                self._cond.wait(timeout=self.poll_interval)
            self._in_use[lease.key] = lease

        if self.interprocess:
            try:
                lease._lock_file(cancel_event, self.poll_interval)
            except BaseException:
                lease.release()
                raise
        logger.debug(f"Acquired workspace lease on {path}")
        return lease

    def in_use(self, path: Path) -> bool:
        with self._cond:
            return _key(Path(path)) in self._in_use

    def _release(self, lease: Lease) -> None:
        with self._cond:
            if self._in_use.get(lease.key) is lease:
                del self._in_use[lease.key]
                self._cond.notify_all()


# Process-wide default, shared by every resolution in this process
WORKSPACES = WorkspaceList()
