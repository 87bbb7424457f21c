"""The caller's view: repositories already open and the active workspace roots."""

import logging
import threading
from typing import Dict, Iterable, List, Optional

from .platform import real_path
from .resolver.error_types import NotARepositoryError
from .resolver.repository import GitRepository


class Workspace:
    """
    Tracks the repositories a front end currently has open and the folders
    it treats as workspace roots.

    Open repositories are the first source the candidate collector consults;
    workspace roots only bias disambiguation.
    """

    def __init__(self, roots: Iterable[str] = ()):
        self.logger = logging.getLogger('repo_resolver.workspace')
        self._lock = threading.RLock()
        self._roots: List[str] = []
        self._repositories: Dict[str, GitRepository] = {}
        for root in roots:
            self.add_root(root)

    @property
    def roots(self) -> List[str]:
        with self._lock:
            return list(self._roots)

    def add_root(self, path: str) -> None:
        key = real_path(path)
        with self._lock:
            if key not in self._roots:
                self._roots.append(key)

    def is_root(self, path: str) -> bool:
        return real_path(path) in self.roots

    @property
    def repositories(self) -> List[GitRepository]:
        """Open repositories in the order they were opened."""
        with self._lock:
            return list(self._repositories.values())

    def get_repository(self, path: str) -> Optional[GitRepository]:
        with self._lock:
            return self._repositories.get(real_path(path))

    def open_repository(self, path: str) -> Optional[GitRepository]:
        """
        Open ``path`` and keep it open; returns None if it is not a repository root.
        """
        existing = self.get_repository(path)
        if existing is not None:
            return existing

        try:
            repository = GitRepository.open(path)
        except NotARepositoryError as e:
            self.logger.debug(f"Not opening {path}: {e}")
            return None

        return self.adopt(repository)

    def adopt(self, repository: GitRepository) -> GitRepository:
        """Keep an already opened handle; returns the handle the workspace holds."""
        with self._lock:
            # Another thread may have opened it meanwhile; keep the first handle
            current = self._repositories.setdefault(real_path(repository.root), repository)
        if current is not repository:
            repository.close()
        else:
            self.logger.info(f"Opened repository {repository.root}")
        return current

    def close(self) -> None:
        with self._lock:
            repositories = list(self._repositories.values())
            self._repositories.clear()
        for repository in repositories:
            repository.close()
