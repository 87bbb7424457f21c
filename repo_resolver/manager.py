"""Resolution manager wiring configuration, discovery and the resolver together."""

import logging
import threading
from typing import List, Optional, Tuple

from .config import Config
from .discovery import RemoteIndex, RemoteIndexStore
from .file_lock import cleanup_stale_locks
from .resolver import (
    CandidateCollector, PresetPrompter, Prompter, ResolutionError, ResolutionOutcome,
    ResolutionStrategy, Resolver, RemoteLocator, SyncExecutor, create_resolution_outcome,
)
from .workspace import Workspace


class ResolutionManager:
    """
    Entry point for resolving remote locators to local working copies.

    Owns the workspace view, the remote indexes consulted by the candidate
    collector and the background discovery that keeps the default index fresh.
    """

    def __init__(self, config: Config, prompter: Optional[Prompter] = None,
                 workspace: Optional[Workspace] = None,
                 indexes: Optional[List[RemoteIndex]] = None):
        """
        Initialize the manager.

        Args:
            config: Resolver configuration
            prompter: Default disambiguation front end; dismisses every prompt if omitted
            workspace: Open repositories and workspace roots of the caller
            indexes: Remote index sources; one index persisted under ``config.data_dir`` by default
        """
        self.config = config
        self.logger = logging.getLogger('repo_resolver.manager')
        self.prompter = prompter or PresetPrompter()
        self.workspace = workspace or Workspace()

        if indexes is None:
            store = RemoteIndexStore(config.index_path, config.lock_dir)
            indexes = [RemoteIndex(
                store,
                max_depth=config.crawl_max_depth,
                prune_names=config.crawl_prune_names,
                max_workers=config.max_workers,
            )]
        self.indexes = indexes

        self.collector = CandidateCollector(config, self.workspace, self.indexes, config.max_workers)
        self.resolver = Resolver(self.collector, SyncExecutor(), self.workspace, config.max_workers)

    @property
    def index(self) -> Optional[RemoteIndex]:
        """The index that discovery rebuilds."""
        return self.indexes[0] if self.indexes else None

    def start_discovery(self, directory: Optional[str] = None) -> Optional[threading.Thread]:
        """
        Rebuild the default index in the background.

        Without ``directory`` the configured scan directory is crawled; an
        empty scan template disables discovery.
        """
        if self.index is None:
            return None

        if directory is None:
            scan_directory = self.config.scan_directory
            if scan_directory is None:
                self.logger.info("Repository discovery disabled")
                return None
            directory = str(scan_directory)

        cleaned = cleanup_stale_locks(self.config.lock_dir)
        if cleaned:
            self.logger.info(f"Removed {cleaned} stale index locks")

        self.logger.info(f"Starting repository discovery under {directory}")
        return self.index.rebuild_in_background(directory)

    def resolve_locator(self, locator: RemoteLocator,
                        prompter: Optional[Prompter] = None) -> Tuple[str, ResolutionStrategy]:
        """
        Resolve a locator and register the chosen working copy in the workspace.

        Raises:
            ResolutionError: if no working copy could be produced
        """
        repository, strategy = self.resolver.resolve_repository(locator, prompter or self.prompter)
        repository = self.workspace.adopt(repository)
        return repository.root, strategy

    def resolve(self, clone_url: str, revision: Optional[str] = None,
                prompter: Optional[Prompter] = None) -> ResolutionOutcome:
        """
        Resolve ``clone_url`` at ``revision`` to a local path.

        Expected failures are reported in the outcome rather than raised.
        """
        try:
            locator = RemoteLocator.from_clone_url(clone_url, revision)
        except ResolutionError as e:
            return create_resolution_outcome(False, e.message, error_code=e.error_code)

        try:
            path, strategy = self.resolve_locator(locator, prompter)
        except ResolutionError as e:
            self.logger.warning(f"Could not resolve {locator}: {e}")
            return create_resolution_outcome(
                False, e.message,
                error_code=e.error_code,
                strategy=e.context.get("strategy"),
                locator=str(locator),
            )

        return create_resolution_outcome(
            True, f"Resolved {locator} to {path}",
            path=path,
            strategy=strategy.value,
            locator=str(locator),
        )

    def lookup_remote(self, remote: str) -> Optional[str]:
        """First path any index records for ``remote``."""
        for index in self.indexes:
            path = index.resolve_remote(remote)
            if path:
                return path
        return None

    def close(self) -> None:
        for index in self.indexes:
            index.cancel()
        self.workspace.close()


# Global resolution manager instance
_resolution_manager: Optional[ResolutionManager] = None


def get_resolution_manager(config: Config) -> ResolutionManager:
    """
    Get or create the global resolution manager instance.

    Args:
        config: Resolver configuration

    Returns:
        ResolutionManager instance
    """
    global _resolution_manager

    if _resolution_manager is None:
        _resolution_manager = ResolutionManager(config)

    return _resolution_manager
