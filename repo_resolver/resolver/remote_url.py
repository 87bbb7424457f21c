"""Canonicalization of git remote URLs."""

import re
from typing import List, Optional
from urllib.parse import SplitResult, unquote, urlsplit


# user@host:path and host:path (scp-like syntax git accepts for ssh)
_SCP_PATTERN = re.compile(r"^([^/@:]+@)?([^:/]+):([^/].*)$")
# host:port/path, the form canonical keys of port-qualified ssh remotes take
_HOST_PORT_PATTERN = re.compile(r"^[^/@:]+:\d+/")
_VCS_SUFFIX = re.compile(r"\.(git|hg|svn)$", re.IGNORECASE)
_REMOTE_LINE = re.compile(r"^\S+\s+(\S+)\s")


def parse_git_url(git_url: str) -> SplitResult:
    """
    Parse the URL forms git hands back.

    Git does not always return well-formed URLs; scp-style strings such as
    ``git@github.com:foo/bar.git`` are rewritten to ``ssh://`` URLs first.

    Raises:
        ValueError: if the URL cannot be split
    """
    git_url = unquote(git_url)
    if _HOST_PORT_PATTERN.match(git_url):
        return urlsplit(f"ssh://{git_url}")
    scp_match = _SCP_PATTERN.match(git_url)
    if scp_match:
        git_url = f"ssh://{scp_match.group(1) or ''}{scp_match.group(2)}/{scp_match.group(3)}"
    return urlsplit(git_url)


def canonical_remote(remote: Optional[str]) -> Optional[str]:
    """
    Canonicalize a git remote URL.

    Two URLs that point at the same repository over different protocols
    produce the same string, e.g. ``git@github.com:foo/bar.git`` and
    ``https://github.com/foo/bar`` both become ``github.com/foo/bar``.

    Returns:
        The canonical remote, or None when the URL cannot be parsed
    """
    if not remote or not remote.strip():
        return None

    try:
        parts = parse_git_url(remote.strip())
    except ValueError:
        return None

    authority = parts.netloc
    idx = authority.find("@")
    if idx != -1:
        authority = authority[idx + 1:]

    path = parts.path.rstrip("/")
    path = _VCS_SUFFIX.sub("", path).rstrip("/")

    canonical = (authority + path).lower()
    return canonical or None


def extract_canonical_remotes(remote_output: str) -> List[str]:
    """Canonical remotes listed in ``git remote --verbose`` output, in order, without duplicates."""
    remotes: List[str] = []
    for line in remote_output.strip().splitlines():
        match = _REMOTE_LINE.match(line + " ")
        if not match:
            continue
        key = canonical_remote(match.group(1))
        if key and key not in remotes:
            remotes.append(key)
    return remotes
