"""Deciding which candidates already are, or can be fast-forwarded to, a revision."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

from git import GitCommandError

from .error_types import RemoteRefNotFoundError, ResolutionError
from .locator import RemoteLocator
from .repository import GitRepository, HeadInfo


logger = logging.getLogger('repo_resolver.resolver.classifier')


@dataclass
class Classification:
    """Outcome of testing one candidate against the requested revision."""
    repository: GitRepository
    forwardable: bool
    target_commit: Optional[str] = None
    reason: str = ""


def head_matches_revision(head: HeadInfo, revision: str) -> bool:
    """
    A branch HEAD may only be fast-forwarded when it already tracks the revision:
    the branch is named after it, its upstream is, or it already sits on it.
    """
    candidates = (head.name, head.commit, head.upstream, head.upstream_branch)
    return revision in [value for value in candidates if value]


def resolve_target_commit(repository: GitRepository, locator: RemoteLocator) -> str:
    """
    Find the commit the locator's revision names, fetching as needed.

    A full commit id already present is used as is; a missing one triggers a
    single unscoped fetch. Ref names are always fetched because refs move.

    Raises:
        RemoteRefNotFoundError: if the revision is not on the remote
        GitOperationError: if a fetch fails for another reason
    """
    revision = locator.revision
    if revision is None:
        raise ValueError("locator has no revision")

    if not locator.is_absolute:
        logger.info(f"Fetching {revision} from {locator.canonical_remote} into {repository.root}")
        return repository.fetch(locator.clone_url, revision)

    if repository.has_commit(revision):
        return repository.resolve_commit(revision)

    names = repository.remote_names_for(locator.canonical_remote)
    logger.info(f"Fetching {locator.canonical_remote} into {repository.root} to find {revision}")
    if names:
        repository.fetch_remote(names[0])
    else:
        repository.fetch(locator.clone_url)

    if not repository.has_commit(revision):
        raise RemoteRefNotFoundError(revision, locator.canonical_remote)
    return repository.resolve_commit(revision)


def can_fast_forward(repository: GitRepository, head: HeadInfo, target: str) -> bool:
    if head.commit is None:
        return False
    if head.commit == target:
        return True
    return repository.is_ancestor(head.commit, target)


def classify(repository: GitRepository, locator: RemoteLocator) -> Classification:
    """
    Test whether ``repository`` can reach the locator's revision by fast-forward.

    Any failure excludes the candidate instead of aborting the resolution.
    """
    revision = locator.revision
    try:
        head = repository.head()
        if not head.detached and not head_matches_revision(head, revision):
            reason = f"on branch {head.name}, not {revision}"
            logger.debug(f"Rejecting {repository.root}: {reason}")
            return Classification(repository, False, reason=reason)

        target = resolve_target_commit(repository, locator)
        if not can_fast_forward(repository, head, target):
            reason = f"HEAD {head.commit} is not an ancestor of {target}"
            logger.debug(f"Rejecting {repository.root}: {reason}")
            return Classification(repository, False, target_commit=target, reason=reason)
    except (ResolutionError, GitCommandError, ValueError) as e:
        logger.debug(f"Rejecting {repository.root}: {e}")
        return Classification(repository, False, reason=str(e))

    return Classification(repository, True, target_commit=target)


def classify_all(repositories: List[GitRepository], locator: RemoteLocator,
                 max_workers: int = 8) -> List[Classification]:
    """Classify candidates concurrently; results keep the input order."""
    if not repositories:
        return []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(lambda repository: classify(repository, locator), repositories))
