"""Depth-bounded search for git working copies, driven by ``find``."""

import codecs
import logging
import os
import subprocess
import threading
from typing import Callable, List, Optional, Sequence

from ..platform import get_find_executable, real_path


class CrawlError(Exception):
    """The directory search could not run or exited with an error."""


class LineBuffer:
    """
    Reassembles lines from output that arrives in arbitrary chunks.

    The trailing partial line of each chunk is held back until the next
    chunk (or ``flush``) completes it.
    """

    def __init__(self, encoding: str = 'utf-8'):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors='replace')
        self._pending = ''

    def feed(self, chunk: bytes) -> List[str]:
        data = self._pending + self._decoder.decode(chunk)
        idx = data.rfind('\n')
        if idx < 0:
            self._pending = data
            return []
        self._pending = data[idx + 1:]
        return data[:idx].split('\n')

    def flush(self) -> List[str]:
        data = self._pending + self._decoder.decode(b'', final=True)
        self._pending = ''
        return [data] if data else []


class RepositoryCrawler:
    """
    Walks a directory tree looking for ``.git`` directories.

    Equivalent to::

        find ROOT -maxdepth 10 -type d -name .git -print \\
            -o \\( -name '.*' -o -name node_modules \\) -prune

    Each printed metadata directory yields its parent as a candidate
    repository root. A crawler runs one search; ``cancel`` may be called from
    any thread and kills the ``find`` process.
    """

    METADATA_DIR_NAME = ".git"
    READ_SIZE = 64 * 1024

    def __init__(self, max_depth: int = 10, prune_names: Sequence[str] = (".*", "node_modules"),
                 find_executable: Optional[str] = None):
        self.max_depth = max_depth
        self.prune_names = tuple(prune_names)
        self.find_executable = find_executable
        self.logger = logging.getLogger('repo_resolver.discovery.crawler')
        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self._process: Optional[subprocess.Popen] = None

    @staticmethod
    def available() -> bool:
        """False on platforms without a usable ``find``; callers treat that as "found nothing"."""
        return get_find_executable() is not None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def build_command(self, root: str) -> List[str]:
        find = self.find_executable or get_find_executable()
        if find is None:
            raise CrawlError("no find utility available on this platform")

        args = [find, root, "-maxdepth", str(self.max_depth),
                "-type", "d", "-name", self.METADATA_DIR_NAME, "-print"]
        if self.prune_names:
            args += ["-o", "("]
            for name in self.prune_names:
                args += ["-name", name, "-o"]
            args.pop()  # trailing -o
            args += [")", "-prune"]
        return args

    def search(self, root: str, on_candidate: Callable[[str], None]) -> bool:
        """
        Run the search, calling ``on_candidate`` for every repository root found.

        Returns:
            True if the search completed, False if it was cancelled

        Raises:
            CrawlError: if ``find`` could not start or exited with an error
        """
        root = real_path(root)
        command = self.build_command(root)

        with self._lock:
            if self._cancelled.is_set():
                return False
            try:
                process = subprocess.Popen(
                    command,
                    cwd=root,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.DEVNULL,
                )
            except OSError as e:
                raise CrawlError(f"could not start {command[0]}: {e}")
            self._process = process

        self.logger.debug(f"Started repository search under {root}")
        buffer = LineBuffer()
        try:
            while not self._cancelled.is_set():
                chunk = process.stdout.read1(self.READ_SIZE)
                if not chunk:
                    break
                self._emit(buffer.feed(chunk), on_candidate)
            if self._cancelled.is_set():
                process.kill()
            returncode = process.wait()
        finally:
            process.stdout.close()
            with self._lock:
                self._process = None

        if self._cancelled.is_set():
            self.logger.debug(f"Repository search under {root} was cancelled")
            return False

        if returncode != 0:
            raise CrawlError(f"find failed with exit code {returncode}")

        self._emit(buffer.flush(), on_candidate)
        return True

    def _emit(self, lines: List[str], on_candidate: Callable[[str], None]) -> None:
        for line in lines:
            if self._cancelled.is_set():
                return
            line = line.rstrip('\r')
            if not line:
                continue
            candidate = os.path.dirname(line)
            if candidate:
                on_candidate(candidate)

    def cancel(self) -> None:
        """Stop the search; its result will report cancellation."""
        self._cancelled.set()
        with self._lock:
            process = self._process
        if process is not None and process.poll() is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
