"""Helpers shared by the test modules for building throwaway git repositories."""

import os
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from repo_resolver.platform import get_git_executable


# Commits and stashes need an identity; tests must not depend on the user's git config
GIT_IDENTITY = {
    "GIT_AUTHOR_NAME": "Test User",
    "GIT_AUTHOR_EMAIL": "test@example.com",
    "GIT_COMMITTER_NAME": "Test User",
    "GIT_COMMITTER_EMAIL": "test@example.com",
}


def git(*args: str, cwd: Optional[Path] = None) -> str:
    """Run git and return its stripped stdout."""
    env = dict(os.environ)
    env.update(GIT_IDENTITY)
    result = subprocess.run(
        [get_git_executable(), *args],
        cwd=str(cwd) if cwd is not None else None,
        check=True,
        capture_output=True,
        text=True,
        env=env,
    )
    return result.stdout.strip()


def commit_file(repo: Path, name: str, content: str, message: Optional[str] = None) -> str:
    """Write a file, commit it and return the new HEAD commit."""
    (repo / name).write_text(content)
    git("add", name, cwd=repo)
    git("commit", "-q", "-m", message or f"Update {name}", cwd=repo)
    return git("rev-parse", "HEAD", cwd=repo)


def create_origin(temp_dir: Path, name: str = "origin.git") -> Path:
    """
    Create a bare repository with one commit on ``main``.

    Returns:
        Path of the bare repository, usable as a clone URL
    """
    origin = temp_dir / name
    origin.mkdir(parents=True)
    git("init", "-q", "--bare", cwd=origin)
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=origin)

    seed = temp_dir / f"{name}-seed"
    git("clone", "-q", str(origin), str(seed))
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=seed)
    commit_file(seed, "README.md", "# Test Repository\n", "Initial commit")
    git("push", "-q", "origin", "main", cwd=seed)
    shutil.rmtree(seed)

    return origin


def clone(origin: Path, destination: Path) -> Path:
    destination.parent.mkdir(parents=True, exist_ok=True)
    git("clone", "-q", str(origin), str(destination))
    return destination


def push_commit(origin: Path, temp_dir: Path, branch: str = "main", name: str = "CHANGES.md",
                content: str = "change\n") -> str:
    """Advance ``branch`` on the origin by one commit, returning the new commit."""
    work = temp_dir / "pusher"
    if not work.exists():
        clone(origin, work)
    git("fetch", "-q", "origin", cwd=work)
    try:
        git("rev-parse", "--verify", "-q", f"origin/{branch}", cwd=work)
        start = f"origin/{branch}"
    except subprocess.CalledProcessError:
        start = "origin/main"
    git("checkout", "-q", "-B", branch, start, cwd=work)
    existing = (work / name).read_text() if (work / name).exists() else ""
    commit = commit_file(work, name, existing + content)
    git("push", "-q", "origin", branch, cwd=work)
    return commit


def head_commit(repo: Path) -> str:
    return git("rev-parse", "HEAD", cwd=repo)


def current_branch(repo: Path) -> str:
    """Branch name, or an empty string when HEAD is detached."""
    try:
        return git("symbolic-ref", "--short", "-q", "HEAD", cwd=repo)
    except subprocess.CalledProcessError:
        return ""
