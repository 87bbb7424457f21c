"""
Resolution of a remote locator to a local working copy.

The selector collects candidates, classifies them against the requested
revision and picks one of four strategies:

- CLONE: nothing local, clone to the well-known path
- PICK_ANY: no revision requested, hand back an existing copy untouched
- PICK_AND_FAST_FORWARD: some copies can fast-forward, pick one and advance it
- PICK_AND_STASH_CHECKOUT: none can, pick any copy and force it onto the revision
"""

import logging
from enum import Enum
from typing import List, Optional, Tuple, TYPE_CHECKING

from .candidates import CandidateCollector, get_clone_path
from .classifier import Classification, classify_all
from .error_types import ResolutionError
from .executor import SyncExecutor
from .locator import RemoteLocator
from .performance_logger import get_performance_logger
from .prompter import Prompter, pick_repository
from .repository import GitRepository

if TYPE_CHECKING:
    from ..workspace import Workspace


class ResolutionStrategy(Enum):
    CLONE = "clone"
    PICK_ANY = "pick_any"
    PICK_AND_FAST_FORWARD = "pick_and_fast_forward"
    PICK_AND_STASH_CHECKOUT = "pick_and_stash_checkout"


class Resolver:
    """Runs one resolution at a time per call; calls are not serialised against each other."""

    def __init__(self, collector: CandidateCollector, executor: SyncExecutor, workspace: "Workspace",
                 max_workers: int = 8):
        self.collector = collector
        self.executor = executor
        self.workspace = workspace
        self.max_workers = max_workers
        self.logger = logging.getLogger('repo_resolver.resolver')
        self.performance_logger = get_performance_logger()

    def select_strategy(self, locator: RemoteLocator, candidates: List[GitRepository],
                        classifications: Optional[List[Classification]] = None) -> ResolutionStrategy:
        if not candidates:
            return ResolutionStrategy.CLONE
        if not locator.has_revision:
            return ResolutionStrategy.PICK_ANY
        if classifications and any(c.forwardable for c in classifications):
            return ResolutionStrategy.PICK_AND_FAST_FORWARD
        return ResolutionStrategy.PICK_AND_STASH_CHECKOUT

    def resolve_repository(self, locator: RemoteLocator, prompter: Prompter) -> Tuple[GitRepository, ResolutionStrategy]:
        """
        Find or create a working copy of the locator's remote at its revision.

        Returns:
            The chosen repository and the strategy used to obtain it

        Raises:
            ResolutionError: on any failure, with locator and strategy in its context
        """
        with self.performance_logger.time_operation("resolve", {"locator": str(locator)}):
            try:
                return self._resolve(locator, prompter)
            except ResolutionError as e:
                e.add_context(locator=str(locator), revision=locator.revision)
                raise

    def _resolve(self, locator: RemoteLocator, prompter: Prompter) -> Tuple[GitRepository, ResolutionStrategy]:
        candidates = self.collector.find_candidates(locator.canonical_remote)

        classifications = None
        if candidates and locator.has_revision:
            classifications = classify_all(candidates, locator, self.max_workers)

        strategy = self.select_strategy(locator, candidates, classifications)
        self.logger.info(f"Resolving {locator} with strategy {strategy.value}")

        chosen = None
        try:
            chosen = self._apply(strategy, locator, prompter, candidates, classifications)
        except ResolutionError as e:
            e.add_context(strategy=strategy.value)
            raise
        finally:
            self.collector.release(candidates, keep=chosen)

        return chosen, strategy

    def _apply(self, strategy: ResolutionStrategy, locator: RemoteLocator, prompter: Prompter,
               candidates: List[GitRepository],
               classifications: Optional[List[Classification]]) -> GitRepository:
        if strategy is ResolutionStrategy.CLONE:
            return self.executor.clone(locator, get_clone_path(self.collector.config, locator.canonical_remote))

        if strategy is ResolutionStrategy.PICK_ANY:
            return pick_repository(
                prompter, candidates,
                f"Choose a clone for repository {locator.canonical_remote}",
                auto_select_workspace_roots=True, workspace=self.workspace,
            )

        if strategy is ResolutionStrategy.PICK_AND_FAST_FORWARD:
            forwardable = [c for c in classifications if c.forwardable]
            chosen = pick_repository(
                prompter, [c.repository for c in forwardable],
                f"Choose a clone for repository {locator.canonical_remote}",
                auto_select_workspace_roots=True, workspace=self.workspace,
            )
            target = next(c.target_commit for c in forwardable if c.repository is chosen)
            self.executor.fast_forward(chosen, locator, target)
            return chosen

        chosen = pick_repository(
            prompter, candidates,
            f"Choose a repository to stash and checkout {locator.canonical_remote}@{locator.revision}",
        )
        target = next((c.target_commit for c in classifications if c.repository is chosen), None)
        self.executor.stash_and_checkout(chosen, locator, prompter, target)
        return chosen
