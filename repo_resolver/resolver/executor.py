"""Mutations applied to the chosen working copy."""

import logging
import os
from enum import Enum
from typing import Optional

from git import Repo, GitCommandError

from .classifier import resolve_target_commit
from .error_strategies import build_clone_hints, is_missing_ref_error
from .error_types import CloneFailedError, GitOperationError, NotARepositoryError, RemoteRefNotFoundError
from .locator import RemoteLocator
from .prompter import Prompter, choose_checkout_strategy
from .repository import GitRepository, _stderr


class CheckoutStrategy(Enum):
    """How a working copy is moved onto a revision it cannot fast-forward to."""
    FAST_FORWARD = "ff"
    DETACHED = "detached"
    RESET = "reset"


class SyncExecutor:
    """Clone, fast-forward and stash-and-checkout operations."""

    def __init__(self):
        self.logger = logging.getLogger('repo_resolver.resolver.executor')

    def clone(self, locator: RemoteLocator, directory: str) -> GitRepository:
        """
        Clone the locator's remote into ``directory`` and check out its revision.

        If the clone fails but the directory exists, someone else created it
        and it is reopened instead.

        Raises:
            CloneFailedError: if nothing usable exists at ``directory``
            RemoteRefNotFoundError: if the revision cannot be checked out
        """
        os.makedirs(os.path.dirname(directory), exist_ok=True)
        self.logger.info(f"Cloning {locator.clone_url} into {directory}")

        try:
            Repo.clone_from(locator.clone_url, directory).close()
        except GitCommandError as e:
            if not os.path.isdir(directory):
                raise CloneFailedError(
                    f"Failed to clone {locator.clone_url}: {_stderr(e) or e}",
                    {"clone_url": locator.clone_url, "directory": directory},
                    hints=build_clone_hints(locator.clone_url),
                )
            self.logger.info(f"Clone failed but {directory} exists, reusing it")
            try:
                return GitRepository.open(directory)
            except NotARepositoryError:
                raise CloneFailedError(
                    f"Directory is not a valid Git repository: {directory}",
                    {"clone_url": locator.clone_url, "directory": directory},
                )

        repository = GitRepository.open(directory)
        if locator.revision:
            try:
                repository.checkout(locator.revision)
            except GitOperationError as e:
                repository.close()
                if is_missing_ref_error(e.stderr):
                    raise RemoteRefNotFoundError(locator.revision, locator.canonical_remote)
                raise
        return repository

    def fast_forward(self, repository: GitRepository, locator: RemoteLocator,
                     target: Optional[str] = None) -> None:
        """
        Move HEAD forward to the locator's revision.

        Raises:
            NonFastForwardError: if HEAD has diverged from the target
        """
        if target is None:
            target = resolve_target_commit(repository, locator)

        if repository.head().commit == target:
            self.logger.info(f"{repository.root} is already at {locator}")
            return

        self.logger.info(f"Fast-forwarding {repository.root} to {target}")
        repository.merge_fast_forward(target)

    def pick_checkout_strategy(self, repository: GitRepository, locator: RemoteLocator,
                               target: str, prompter: Prompter) -> CheckoutStrategy:
        if locator.is_absolute:
            return CheckoutStrategy.DETACHED

        branch_commit = repository.resolve_commit(locator.revision)
        if repository.is_ancestor(branch_commit, target):
            return CheckoutStrategy.FAST_FORWARD

        return CheckoutStrategy(choose_checkout_strategy(prompter, locator.revision))

    def stash_and_checkout(self, repository: GitRepository, locator: RemoteLocator,
                           prompter: Prompter, target: Optional[str] = None) -> CheckoutStrategy:
        """
        Put the working copy on the locator's revision, stashing local changes first.

        Returns:
            The checkout strategy that was applied

        Raises:
            StashFailedError: if local changes could not be stashed
            NoSelectionError: if the strategy prompt is dismissed
        """
        revision = locator.revision
        if target is None:
            target = resolve_target_commit(repository, locator)

        if not locator.is_absolute and not repository.has_local_branch(revision):
            self.logger.info(f"Creating branch {revision} at {target} in {repository.root}")
            repository.create_branch(revision, target)

        strategy = self.pick_checkout_strategy(repository, locator, target, prompter)
        self.logger.info(f"Checking out {locator} in {repository.root} using {strategy.value}")

        head = repository.head()
        if repository.stash(f"WIP on {head.name or head.commit} to checkout {revision}"):
            self.logger.info(f"Stashed local changes in {repository.root}")

        if strategy is CheckoutStrategy.DETACHED:
            repository.checkout(target)
        elif strategy is CheckoutStrategy.FAST_FORWARD:
            repository.checkout(revision)
            if repository.head().commit != target:
                repository.merge_fast_forward(target)
        else:
            repository.checkout(revision)
            repository.reset_hard(target)

        return strategy
