"""
Advisory lock management.

Uses flock on per-entity lock files under .sdlc/locks/ so that two
processes mutating the same feature, milestone or the state document
serialize their load -> mutate -> save sequences. Read-only queries
take no locks.
"""

import fcntl
import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path

from sdlc.lib.constants import LOCK_TIMEOUT
from sdlc.lib.paths import locks_dir, validate_slug

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1


class LockTimeout(Exception):
    """Lock acquisition timed out."""
    pass


@contextmanager
def _acquire_lock(lock_file: Path, timeout: float, lock_name: str):
    """
    Internal helper to acquire a file lock.

    Args:
        lock_file: Path to the lock file
        timeout: Seconds to wait for lock
        lock_name: Human-readable name for error messages
    """
    lock_file.parent.mkdir(parents=True, exist_ok=True)

    # Lock files are never deleted: unlinking would let two processes
    # hold "exclusive" locks on different inodes with the same path.
    fd = open(lock_file, 'w')
    start = time.monotonic()

    while True:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            break
        except BlockingIOError:
            if time.monotonic() - start > timeout:
                fd.close()
                raise LockTimeout(f"Could not acquire {lock_name} within {timeout}s")
            time.sleep(POLL_INTERVAL)

    logger.debug(f"[LOCK] acquired {lock_name}")
    try:
        fd.write(f"{os.getpid()}\n")
        fd.flush()
        yield
    finally:
        fcntl.flock(fd, fcntl.LOCK_UN)
        fd.close()
        logger.debug(f"[LOCK] released {lock_name}")


@contextmanager
def feature_lock(root: Path, slug: str, timeout: float = LOCK_TIMEOUT):
    """Acquire the lock for one feature manifest."""
    validate_slug(slug)
    lock_file = locks_dir(root) / "features" / f"{slug}.lock"
    with _acquire_lock(lock_file, timeout, f"lock for feature {slug}"):
        yield


@contextmanager
def milestone_lock(root: Path, slug: str, timeout: float = LOCK_TIMEOUT):
    """Acquire the lock for one milestone manifest."""
    validate_slug(slug)
    lock_file = locks_dir(root) / "milestones" / f"{slug}.lock"
    with _acquire_lock(lock_file, timeout, f"lock for milestone {slug}"):
        yield


@contextmanager
def state_lock(root: Path, timeout: float = LOCK_TIMEOUT):
    """Acquire the lock for state.yaml."""
    lock_file = locks_dir(root) / "state.lock"
    with _acquire_lock(lock_file, timeout, "state lock"):
        yield
