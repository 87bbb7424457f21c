"""Recovery strategies and remediation hints for resolution errors."""

from typing import Dict, List
from urllib.parse import urlsplit

from .error_types import ErrorCategory, ErrorResolution, RecoveryAction
from .remote_url import canonical_remote


# Substrings git prints when a ref or revision is unknown
MISSING_REF_MARKERS = (
    "couldn't find remote ref",
    "could not find remote ref",
    "did not match any file(s) known to git",
    "invalid reference",
    "unknown revision",
    "not our ref",
)

NOTHING_TO_STASH_MARKER = "No local changes to save"

NON_FAST_FORWARD_MARKERS = (
    "Not possible to fast-forward",
    "not possible to fast-forward",
)


def is_missing_ref_error(stderr: str) -> bool:
    """Check whether git output reports a missing ref or commit."""
    return any(marker in stderr for marker in MISSING_REF_MARKERS)


def is_non_fast_forward_error(stderr: str) -> bool:
    """Check whether git refused a merge because it is not a fast-forward."""
    return any(marker in stderr for marker in NON_FAST_FORWARD_MARKERS)


_HOST_CLONE_HINTS: Dict[str, List[str]] = {
    "github.com": [
        "GitHub clone failed. Try switching the clone URL between ssh (git@github.com:owner/repo) "
        "and https (https://github.com/owner/repo).",
        "For private repositories make sure your SSH key or credential helper is configured for github.com",
    ],
    "gitlab.com": [
        "GitLab clone failed. Try switching the clone URL between ssh and https.",
        "Check that your GitLab personal access token has the read_repository scope",
    ],
    "bitbucket.org": [
        "Bitbucket clone failed. Try switching the clone URL between ssh and https.",
        "Bitbucket requires an app password for https clones",
    ],
}


def _remote_host(clone_url: str) -> str:
    remote = canonical_remote(clone_url) or ""
    host = remote.split("/", 1)[0]
    if not host:
        host = (urlsplit(clone_url).hostname or "").lower()
    return host


def build_clone_hints(clone_url: str) -> List[str]:
    """Return provider-specific remediation hints for a failed clone."""
    host = _remote_host(clone_url)
    for known_host, hints in _HOST_CLONE_HINTS.items():
        if host == known_host or host.endswith("." + known_host):
            return list(hints)
    return []


def build_error_strategies() -> Dict[ErrorCategory, ErrorResolution]:
    """Build recovery strategies for each error category."""
    return {
        ErrorCategory.LOCATOR: ErrorResolution(
            category=ErrorCategory.LOCATOR,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="The repository URL could not be understood",
            resolution_steps=[
                "Use a clone URL such as https://host/owner/repo or git@host:owner/repo.git",
                "Append ?<revision> to request a branch, tag or commit",
            ],
        ),

        ErrorCategory.REPOSITORY_ACCESS: ErrorResolution(
            category=ErrorCategory.REPOSITORY_ACCESS,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="A local directory is not a usable git repository",
            resolution_steps=[
                "Check that the directory contains a .git folder",
                "Move the directory aside so a fresh clone can be created",
            ],
        ),

        ErrorCategory.REMOTE_REFERENCE: ErrorResolution(
            category=ErrorCategory.REMOTE_REFERENCE,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="The requested revision does not exist on the remote",
            resolution_steps=[
                "Check the branch, tag or commit name for typos",
                "Make sure the revision has been pushed to the remote",
            ],
        ),

        ErrorCategory.USER_SELECTION: ErrorResolution(
            category=ErrorCategory.USER_SELECTION,
            action=RecoveryAction.RETRY_WITH_SELECTION,
            user_message="No repository was selected",
            resolution_steps=[
                "Resolve again and pick one of the offered choices",
            ],
        ),

        ErrorCategory.WORKING_COPY: ErrorResolution(
            category=ErrorCategory.WORKING_COPY,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="Local changes could not be stashed",
            resolution_steps=[
                "Commit or discard local changes in the working copy",
                "Resolve any in-progress merge or rebase",
            ],
        ),

        ErrorCategory.CLONE: ErrorResolution(
            category=ErrorCategory.CLONE,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="The repository could not be cloned",
            resolution_steps=[
                "Verify the clone URL and your network connection",
                "Check your credentials for the remote host",
            ],
        ),

        ErrorCategory.GIT_COMMAND: ErrorResolution(
            category=ErrorCategory.GIT_COMMAND,
            action=RecoveryAction.ABORT,
            user_message="A git command failed",
            resolution_steps=[
                "Inspect the working copy with git status",
                "Run the failing command manually to see the full output",
            ],
        ),

        ErrorCategory.INVARIANT: ErrorResolution(
            category=ErrorCategory.INVARIANT,
            action=RecoveryAction.REPORT_BUG,
            user_message="Internal error: a fast-forward was refused",
            resolution_steps=[
                "Check whether another process modified the working copy",
                "Report the log output if the problem persists",
            ],
        ),
    }
