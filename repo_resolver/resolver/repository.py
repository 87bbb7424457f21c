"""Local working copy handle built on GitPython."""

import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from git import Repo, GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from ..platform import real_path
from .error_strategies import (
    NOTHING_TO_STASH_MARKER, is_missing_ref_error, is_non_fast_forward_error,
)
from .error_types import (
    GitOperationError, NonFastForwardError, NotARepositoryError,
    RemoteRefNotFoundError, StashFailedError,
)
from .remote_url import canonical_remote


@dataclass
class HeadInfo:
    """Where HEAD points: a branch (with optional upstream) or a detached commit."""
    name: Optional[str]
    commit: Optional[str]
    upstream: Optional[str] = None
    upstream_branch: Optional[str] = None

    @property
    def detached(self) -> bool:
        return self.name is None


def _stderr(error: GitCommandError) -> str:
    # GitPython wraps the output as "\n  stderr: '...'"
    text = str(error.stderr or "").strip()
    if text.startswith("stderr: '") and text.endswith("'"):
        text = text[len("stderr: '"):-1]
    return text.strip()


class GitRepository:
    """
    A handle to one local git working copy.

    Instances are created by ``open`` (or after a clone) and mutated in place
    by the synchronization executor. The handle never deletes anything.
    """

    def __init__(self, root: str, repo: Repo):
        self.root = root
        self.repo = repo
        self.logger = logging.getLogger('repo_resolver.resolver.repository')

    @classmethod
    def open(cls, path: str) -> "GitRepository":
        """
        Open ``path`` as a working copy root.

        Raises:
            NotARepositoryError: if the path is not a repository, is bare, or
                is not the repository's own top level (for example a case
                mismatch on a case-insensitive filesystem)
        """
        try:
            repo = Repo(path)
        except (InvalidGitRepositoryError, NoSuchPathError):
            raise NotARepositoryError(path)

        if repo.bare:
            repo.close()
            raise NotARepositoryError(path, "a bare repository")

        try:
            toplevel = os.path.normpath(repo.git.rev_parse("--show-toplevel"))
        except GitCommandError as e:
            repo.close()
            raise NotARepositoryError(path, f"not readable as a repository ({_stderr(e)})")

        if toplevel != real_path(path):
            repo.close()
            raise NotARepositoryError(path, f"not the repository root (root is {toplevel})")

        return cls(toplevel, repo)

    def close(self) -> None:
        self.repo.close()

    def __repr__(self) -> str:
        return f"GitRepository({self.root!r})"

    def _command_error(self, command: str, error: GitCommandError) -> GitOperationError:
        return GitOperationError(command, _stderr(error), error.status, {"repository": self.root})

    # Introspection

    def list_remotes(self) -> List[Tuple[str, str]]:
        """(name, url) pairs for every configured remote."""
        remotes = []
        for remote in self.repo.remotes:
            try:
                for url in remote.urls:
                    remotes.append((remote.name, url))
            except GitCommandError as e:
                self.logger.debug(f"Could not read urls of remote {remote.name} in {self.root}: {_stderr(e)}")
        return remotes

    def canonical_remotes(self) -> Dict[str, str]:
        """Map of configured remote url -> canonical remote."""
        result = {}
        for _, url in self.list_remotes():
            key = canonical_remote(url)
            if key:
                result[url] = key
        return result

    def has_remote(self, remote: str) -> bool:
        return remote in self.canonical_remotes().values()

    def remote_names_for(self, remote: str) -> List[str]:
        """Names of configured remotes whose canonical form equals ``remote``."""
        names = []
        for name, url in self.list_remotes():
            if canonical_remote(url) == remote and name not in names:
                names.append(name)
        return names

    def head(self) -> HeadInfo:
        """Read the current HEAD, its branch and the branch's upstream."""
        head = self.repo.head
        try:
            commit = head.commit.hexsha
        except ValueError:
            # Unborn branch, no commits yet
            commit = None

        if head.is_detached:
            return HeadInfo(name=None, commit=commit)

        branch = self.repo.active_branch
        tracking = branch.tracking_branch()
        return HeadInfo(
            name=branch.name,
            commit=commit,
            upstream=tracking.name if tracking is not None else None,
            upstream_branch=tracking.remote_head if tracking is not None else None,
        )

    def has_commit(self, ref: str) -> bool:
        """Check whether ``ref`` resolves to a commit in this repository."""
        try:
            self.repo.git.rev_parse("--verify", "--quiet", f"{ref}^{{commit}}")
            return True
        except GitCommandError:
            return False

    def resolve_commit(self, ref: str) -> str:
        """Resolve ``ref`` to a full commit id."""
        try:
            return self.repo.git.rev_parse("--verify", f"{ref}^{{commit}}")
        except GitCommandError as e:
            raise self._command_error(f"rev-parse {ref}", e)

    def has_local_branch(self, name: str) -> bool:
        return name in [head.name for head in self.repo.heads]

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """
        Ancestry test behind every fast-forward decision.

        ``git merge-base --is-ancestor`` exits 0 when true and 1 when false;
        any other status is an error.
        """
        try:
            self.repo.git.merge_base("--is-ancestor", ancestor, descendant)
            return True
        except GitCommandError as e:
            if e.status == 1:
                return False
            raise self._command_error(f"merge-base --is-ancestor {ancestor} {descendant}", e)

    def is_dirty(self) -> bool:
        return self.repo.is_dirty(untracked_files=False)

    # Remote operations

    def fetch(self, url: str, refspec: Optional[str] = None) -> Optional[str]:
        """
        Fetch from ``url``; with a refspec, return the fetched commit.

        Raises:
            RemoteRefNotFoundError: if the remote does not have ``refspec``
            GitOperationError: for any other fetch failure
        """
        args = ["--prune", url]
        if refspec:
            args.append(refspec)
        try:
            self.repo.git.fetch(*args)
        except GitCommandError as e:
            if refspec and is_missing_ref_error(_stderr(e)):
                raise RemoteRefNotFoundError(refspec, canonical_remote(url) or url)
            raise self._command_error(f"fetch {url} {refspec or ''}".strip(), e)

        if refspec:
            return self.resolve_commit("FETCH_HEAD")
        return None

    def fetch_remote(self, name: str) -> None:
        """Fetch every branch of a configured remote."""
        try:
            self.repo.git.fetch("--prune", name)
        except GitCommandError as e:
            raise self._command_error(f"fetch {name}", e)

    # Mutations

    def merge_fast_forward(self, target: str) -> None:
        """
        Merge ``target`` into HEAD, refusing anything but a fast-forward.

        Raises:
            NonFastForwardError: if git refuses because HEAD has diverged
        """
        try:
            self.repo.git.merge("--ff-only", target)
        except GitCommandError as e:
            stderr = _stderr(e)
            if is_non_fast_forward_error(stderr):
                raise NonFastForwardError(
                    f"Refusing non fast-forward merge of {target} into {self.root}",
                    {"repository": self.root, "target": target},
                )
            raise self._command_error(f"merge --ff-only {target}", e)

    def checkout(self, ref: str) -> None:
        try:
            self.repo.git.checkout(ref)
        except GitCommandError as e:
            raise self._command_error(f"checkout {ref}", e)

    def create_branch(self, name: str, commit: str) -> None:
        try:
            self.repo.git.branch(name, commit)
        except GitCommandError as e:
            raise self._command_error(f"branch {name} {commit}", e)

    def reset_hard(self, target: str) -> None:
        try:
            self.repo.git.reset("--hard", target)
        except GitCommandError as e:
            raise self._command_error(f"reset --hard {target}", e)

    def stash(self, message: str) -> bool:
        """
        Stash uncommitted changes.

        Returns:
            True if something was stashed, False if the tree was clean

        Raises:
            StashFailedError: for any other stash failure
        """
        try:
            output = self.repo.git.stash("push", "-m", message)
        except GitCommandError as e:
            stderr = _stderr(e)
            if NOTHING_TO_STASH_MARKER in stderr:
                return False
            raise StashFailedError(stderr or f"git stash failed with status {e.status}",
                                   {"repository": self.root})
        return NOTHING_TO_STASH_MARKER not in output
