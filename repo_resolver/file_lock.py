"""
Cross-platform file locking utilities for Repo Resolver.

The persisted remote index may be written by several resolver processes
(one per editor window, for example); writes are serialised with a lock file.
"""

import os
import time
import logging
import threading
from pathlib import Path

import psutil


class FileLock:
    """
    Cross-platform exclusive lock based on atomic lock-file creation.

    A lock file left behind by a dead process, or older than
    ``stale_after`` seconds, is removed and the lock retaken.
    """

    def __init__(self, lock_file_path: Path, timeout: float = 30.0, stale_after: float = 300.0):
        """
        Initialize file lock.

        Args:
            lock_file_path: Path to the lock file
            timeout: Maximum time to wait for lock acquisition (seconds)
            stale_after: Age after which an existing lock file is considered abandoned
        """
        self.lock_file_path = lock_file_path
        self.timeout = timeout
        self.stale_after = stale_after
        self.logger = logging.getLogger('repo_resolver.file_lock')
        self._lock_acquired = False

    def acquire(self) -> bool:
        """
        Acquire the file lock.

        Returns:
            True if lock was acquired, False if timeout occurred
        """
        start_time = time.time()

        while time.time() - start_time < self.timeout:
            try:
                self.lock_file_path.parent.mkdir(parents=True, exist_ok=True)
                if self._try_create():
                    self._lock_acquired = True
                    self.logger.debug(f"Acquired lock: {self.lock_file_path}")
                    return True
            except OSError as e:
                self.logger.warning(f"Error acquiring lock {self.lock_file_path}: {e}")

            time.sleep(0.05)

        self.logger.warning(f"Failed to acquire lock {self.lock_file_path} within {self.timeout}s")
        return False

    def _try_create(self) -> bool:
        try:
            # O_CREAT | O_EXCL is atomic on every supported platform
            fd = os.open(self.lock_file_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            if self._cleanup_stale_lock():
                return self._try_create()
            return False

        with os.fdopen(fd, 'w') as f:
            f.write(f"locked_by_pid_{os.getpid()}_thread_{threading.get_ident()}")
        return True

    def _cleanup_stale_lock(self) -> bool:
        """
        Remove the existing lock file if its owner is gone.

        Returns:
            True if a stale lock was removed
        """
        try:
            lock_age = time.time() - self.lock_file_path.stat().st_mtime
            if lock_age > self.stale_after:
                self.logger.warning(f"Cleaning up stale lock file: {self.lock_file_path}")
                self.lock_file_path.unlink()
                return True

            owner = read_lock_owner(self.lock_file_path)
            if owner is None:
                # Still being written by its owner, or garbage; let it age out
                return False
            if not psutil.pid_exists(owner):
                self.logger.warning(f"Cleaning up lock from dead process {owner}: {self.lock_file_path}")
                self.lock_file_path.unlink()
                return True
            return False
        except FileNotFoundError:
            # Released between our create attempt and the check
            return True

    def release(self) -> bool:
        """
        Release the file lock.

        Returns:
            True if lock was released, False otherwise
        """
        if not self._lock_acquired:
            return True

        try:
            self.lock_file_path.unlink()
            self.logger.debug(f"Released lock: {self.lock_file_path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.error(f"Error releasing lock {self.lock_file_path}: {e}")
            return False

        self._lock_acquired = False
        return True

    def is_locked(self) -> bool:
        """Check if the lock is currently held by this instance."""
        return self._lock_acquired

    def __enter__(self):
        if not self.acquire():
            raise TimeoutError(f"Could not acquire lock {self.lock_file_path} within {self.timeout}s")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


def read_lock_owner(lock_file_path: Path):
    """Return the pid recorded in a lock file, or None if it cannot be parsed."""
    try:
        content = lock_file_path.read_text()
        return int(content.split("locked_by_pid_")[1].split("_")[0])
    except (IndexError, ValueError):
        return None


def cleanup_stale_locks(lock_dir: Path, max_age_minutes: int = 10) -> int:
    """
    Clean up lock files left behind by dead processes.

    Args:
        lock_dir: Directory holding ``*.lock`` files
        max_age_minutes: Only locks older than this are examined

    Returns:
        Number of stale locks cleaned up
    """
    logger = logging.getLogger('repo_resolver.file_lock')

    if not lock_dir.exists():
        return 0

    cleaned_count = 0
    current_time = time.time()

    for lock_file in lock_dir.glob("*.lock"):
        try:
            if current_time - lock_file.stat().st_mtime <= max_age_minutes * 60:
                continue

            owner = read_lock_owner(lock_file)
            if owner is None or not psutil.pid_exists(owner):
                lock_file.unlink()
                cleaned_count += 1
                logger.info(f"Cleaned up stale lock file: {lock_file}")
        except OSError as e:
            logger.warning(f"Error processing lock file {lock_file}: {e}")

    if cleaned_count > 0:
        logger.info(f"Cleaned up {cleaned_count} stale lock files")

    return cleaned_count
