"""
Persisted mapping from canonical remote to a local working copy.

Rebuilds crawl a directory tree, probe every repository found for its
configured remotes and replace the index only when the crawl completed and no
newer rebuild has started since.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Optional, Set, Tuple

from git.cmd import Git
from git.exc import GitError

from ..resolver.performance_logger import get_performance_logger
from ..resolver.remote_url import canonical_remote, extract_canonical_remotes
from .crawler import CrawlError, RepositoryCrawler
from .store import RemoteIndexStore


CrawlerFactory = Callable[[], RepositoryCrawler]


def probe_remotes(path: str) -> List[str]:
    """Canonical remotes configured in the repository at ``path``; empty on any failure."""
    try:
        output = Git(path).remote("--verbose")
    except (GitError, OSError):
        return []
    return extract_canonical_remotes(output)


class RemoteIndex:
    """
    Canonical remote -> path index with generation-guarded rebuilds.

    Only the rebuild holding the current generation may commit. Starting a
    rebuild bumps the generation and cancels the previous crawl, so a late
    finisher cannot overwrite (or evict from) what a newer rebuild produced.
    """

    def __init__(self, store: RemoteIndexStore, max_depth: int = 10,
                 prune_names: Tuple[str, ...] = (".*", "node_modules"),
                 max_workers: int = 8,
                 crawler_factory: Optional[CrawlerFactory] = None,
                 probe: Callable[[str], List[str]] = probe_remotes):
        self.store = store
        self.max_depth = max_depth
        self.prune_names = prune_names
        self.max_workers = max_workers
        self.crawler_factory = crawler_factory or (
            lambda: RepositoryCrawler(max_depth=self.max_depth, prune_names=self.prune_names)
        )
        self.probe = probe
        self.logger = logging.getLogger('repo_resolver.discovery.index')
        self.performance_logger = get_performance_logger()

        self._lock = threading.Lock()
        self._generation = 0
        self._crawler: Optional[RepositoryCrawler] = None
        self._entries: Dict[str, str] = store.load()

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def resolve_remote(self, remote: str) -> Optional[str]:
        """Look up the path recorded for a remote. No I/O, no validation."""
        with self._lock:
            path = self._entries.get(remote)
        if path is not None:
            return path

        key = canonical_remote(remote)
        if key is None or key == remote:
            return None
        with self._lock:
            return self._entries.get(key)

    def entries(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._entries)

    def cancel(self) -> None:
        """Invalidate and stop any in-flight rebuild."""
        with self._lock:
            self._generation += 1
            crawler, self._crawler = self._crawler, None
        if crawler is not None:
            crawler.cancel()

    def rebuild(self, root_dir: str) -> bool:
        """
        Crawl ``root_dir`` and replace the index with what was found.

        Returns:
            True if this rebuild committed, False if discovery is unavailable,
            the crawl failed, or a newer rebuild superseded this one
        """
        crawler = self.crawler_factory()
        if not crawler.available():
            self.logger.info("Repository discovery is not available on this platform")
            return False

        with self._lock:
            self._generation += 1
            generation = self._generation
            previous, self._crawler = self._crawler, crawler
            stale = set(self._entries)
        if previous is not None:
            previous.cancel()

        provisional: Dict[str, str] = {}
        provisional_lock = threading.Lock()

        def confirm(path: str) -> None:
            remotes = self.probe(path)
            if not remotes:
                return
            with provisional_lock:
                for remote in remotes:
                    provisional[remote] = path

        with self.performance_logger.time_operation("index_rebuild", {"root_dir": root_dir}, log_level=logging.DEBUG):
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = []
                try:
                    completed = crawler.search(root_dir, lambda path: futures.append(executor.submit(confirm, path)))
                except CrawlError as e:
                    self.logger.warning(f"Repository discovery under {root_dir} failed: {e}")
                    completed = False
                wait(futures)

        with self._lock:
            if self._crawler is crawler:
                self._crawler = None

        if not completed:
            return False
        return self._commit(generation, provisional, stale)

    def _commit(self, generation: int, provisional: Dict[str, str], stale: Set[str]) -> bool:
        with self._lock:
            if generation != self._generation:
                self.logger.debug(f"Discarding superseded index rebuild {generation}")
                return False

            entries = dict(self._entries)
            entries.update(provisional)
            for key in stale - set(provisional):
                entries.pop(key, None)

            self.store.save(sorted(entries.items()))
            self._entries = entries

        self.logger.info(f"Remote index rebuilt with {len(entries)} repositories")
        return True

    def rebuild_in_background(self, root_dir: str) -> threading.Thread:
        def run() -> None:
            try:
                self.rebuild(root_dir)
            except Exception as e:
                self.logger.error(f"Index rebuild of {root_dir} failed: {e}")

        thread = threading.Thread(target=run, name="remote-index-rebuild", daemon=True)
        thread.start()
        return thread
