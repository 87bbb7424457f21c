"""Remote locators: which remote, and at which revision."""

import re
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from .error_types import InvalidLocatorError
from .remote_url import canonical_remote


_ABSOLUTE_COMMIT_ID = re.compile(r"^[0-9a-fA-F]{40}$")


def is_absolute_commit_id(revision: str) -> bool:
    """Exactly 40 hex characters is a full commit id; anything else is a ref name."""
    return bool(_ABSOLUTE_COMMIT_ID.match(revision))


@dataclass(frozen=True)
class RemoteLocator:
    """
    A remote repository plus an optional revision.

    Equality ignores the clone URL spelling: two locators whose URLs share a
    canonical remote and request the same revision are the same locator.
    """
    clone_url: str = field(compare=False)
    canonical_remote: str
    revision: Optional[str] = None

    @classmethod
    def from_clone_url(cls, clone_url: str, revision: Optional[str] = None) -> "RemoteLocator":
        """
        Build a locator, deriving the canonical remote from the clone URL.

        Raises:
            InvalidLocatorError: if the URL has no canonical form
        """
        remote = canonical_remote(clone_url)
        if remote is None:
            raise InvalidLocatorError(f"Invalid git clone URL {clone_url}", {"clone_url": clone_url})
        return cls(clone_url=clone_url, canonical_remote=remote, revision=revision or None)

    @property
    def has_revision(self) -> bool:
        return self.revision is not None

    @property
    def is_absolute(self) -> bool:
        """True when the revision is a full commit id."""
        return self.revision is not None and is_absolute_commit_id(self.revision)

    def __str__(self) -> str:
        return f"{self.canonical_remote}@{self.revision or 'HEAD'}"


def parse_resource(resource: str) -> Optional[RemoteLocator]:
    """
    Parse a git resource URI into a locator.

    ``git+ssh://git@github.com/foo/bar.git?master`` yields clone URL
    ``ssh://git@github.com/foo/bar.git``, canonical remote
    ``github.com/foo/bar`` and revision ``master``.

    A plain ``git:`` URI without an authority names a local document rather
    than a remote, so None is returned for it.

    Raises:
        InvalidLocatorError: if the resource has no canonical remote
    """
    parts = urlsplit(resource)
    if parts.scheme == "git" and not parts.netloc:
        return None

    revision = parts.query or None
    scheme = parts.scheme
    if scheme.startswith("git+"):
        scheme = scheme[len("git+"):]

    clone_url = urlunsplit((scheme, parts.netloc, parts.path, "", parts.fragment))
    return RemoteLocator.from_clone_url(clone_url, revision)
