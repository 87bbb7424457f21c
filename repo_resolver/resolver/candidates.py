"""Gathering the local working copies that may serve a remote."""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Protocol, TYPE_CHECKING

from ..config import Config
from ..platform import get_template_variables, real_path, replace_variables
from .error_types import NotARepositoryError
from .repository import GitRepository

if TYPE_CHECKING:
    from ..workspace import Workspace


class IndexSource(Protocol):
    def resolve_remote(self, remote: str) -> Optional[str]:
        ...


def get_clone_path(config: Config, remote: str) -> str:
    """The deterministic directory a fresh clone of ``remote`` goes to."""
    variables = get_template_variables()
    variables["folderRelativePath"] = remote.replace("/", os.sep)
    expanded = replace_variables(config.clone_path_template, variables)
    return os.path.normpath(os.path.expanduser(expanded))


class CandidateCollector:
    """
    Collects repositories for a canonical remote from three sources, in order:
    open workspace repositories with a matching remote, the well-known clone
    path, and every index source's recorded path.

    Paths that fail to open are dropped from this collection only; they are
    tried again on the next call.
    """

    def __init__(self, config: Config, workspace: "Workspace",
                 index_sources: Iterable[IndexSource] = (), max_workers: int = 8):
        self.config = config
        self.workspace = workspace
        self.index_sources = list(index_sources)
        self.max_workers = max_workers
        self.logger = logging.getLogger('repo_resolver.resolver.candidates')

    def candidate_paths(self, remote: str) -> List[str]:
        """Distinct real paths to try, in source order."""
        paths = [repo.root for repo in self.workspace.repositories if repo.has_remote(remote)]
        paths.append(get_clone_path(self.config, remote))
        for source in self.index_sources:
            path = source.resolve_remote(remote)
            if path:
                paths.append(path)

        seen = set()
        unique = []
        for path in paths:
            key = real_path(path)
            if key not in seen:
                seen.add(key)
                unique.append(key)
        return unique

    def _open(self, path: str) -> Optional[GitRepository]:
        existing = self.workspace.get_repository(path)
        if existing is not None:
            return existing
        try:
            return GitRepository.open(path)
        except NotARepositoryError as e:
            self.logger.debug(f"Dropping candidate {path}: {e}")
        except Exception as e:
            self.logger.warning(f"Dropping candidate {path}: {e}")
        return None

    def find_candidates(self, remote: str) -> List[GitRepository]:
        paths = self.candidate_paths(remote)
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            opened = list(executor.map(self._open, paths))

        candidates: List[GitRepository] = []
        roots = set()
        for repository in opened:
            if repository is None:
                continue
            if repository.root in roots:
                self.release([repository])
                continue
            roots.add(repository.root)
            candidates.append(repository)

        self.logger.info(f"Found {len(candidates)} repositories for remote {remote}")
        return candidates

    def release(self, repositories: Iterable[GitRepository], keep: Optional[GitRepository] = None) -> None:
        """Close handles opened for a collection, leaving workspace-owned ones open."""
        for repository in repositories:
            if repository is keep:
                continue
            if self.workspace.get_repository(repository.root) is repository:
                continue
            repository.close()
