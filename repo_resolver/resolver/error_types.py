"""Error types and categorization for repository resolution."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCategory(Enum):
    """Categories of resolution errors for appropriate handling."""
    LOCATOR = "locator"
    REPOSITORY_ACCESS = "repository_access"
    REMOTE_REFERENCE = "remote_reference"
    USER_SELECTION = "user_selection"
    WORKING_COPY = "working_copy"
    CLONE = "clone"
    GIT_COMMAND = "git_command"
    INVARIANT = "invariant"


class RecoveryAction(Enum):
    """Types of recovery actions that can be taken."""
    USER_ACTION_REQUIRED = "user_action_required"
    RETRY_WITH_SELECTION = "retry_with_selection"
    ABORT = "abort"
    REPORT_BUG = "report_bug"


@dataclass
class ErrorResolution:
    """Information about how to resolve a specific error."""
    category: ErrorCategory
    action: RecoveryAction
    user_message: str
    resolution_steps: List[str]


class ResolutionError(Exception):
    """Base class for every failure surfaced by the resolver."""

    error_code = "RESOLUTION_ERROR"
    category = ErrorCategory.GIT_COMMAND

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})

    def add_context(self, **context: Any) -> "ResolutionError":
        """Attach context without overwriting keys set closer to the failure."""
        for key, value in context.items():
            if value is not None:
                self.context.setdefault(key, value)
        return self

    def __str__(self) -> str:
        return self.message


class InvalidLocatorError(ResolutionError):
    """The clone URL cannot be turned into a canonical remote."""
    error_code = "INVALID_LOCATOR"
    category = ErrorCategory.LOCATOR


class NotARepositoryError(ResolutionError):
    """A path is not the root of a git working copy."""
    error_code = "NOT_A_REPOSITORY"
    category = ErrorCategory.REPOSITORY_ACCESS

    def __init__(self, path: str, reason: str = "not a git repository"):
        super().__init__(f"{path} is {reason}", {"path": path})
        self.path = path


class RemoteRefNotFoundError(ResolutionError):
    """The requested revision does not exist on the remote."""
    error_code = "REMOTE_REF_NOT_FOUND"
    category = ErrorCategory.REMOTE_REFERENCE

    def __init__(self, revision: str, remote: str):
        super().__init__(
            f"{revision} does not exist on remote {remote}",
            {"revision": revision, "remote": remote},
        )
        self.revision = revision
        self.remote = remote


class NoSelectionError(ResolutionError):
    """The user dismissed a disambiguation prompt."""
    error_code = "NO_SELECTION"
    category = ErrorCategory.USER_SELECTION

    def __init__(self, message: str = "no repository selected", placeholder: str = "",
                 choices: Optional[List[Dict[str, str]]] = None):
        super().__init__(message, {"placeholder": placeholder} if placeholder else None)
        self.placeholder = placeholder
        self.choices = list(choices or [])


class StashFailedError(ResolutionError):
    """Stashing local changes failed for a reason other than a clean tree."""
    error_code = "STASH_FAILED"
    category = ErrorCategory.WORKING_COPY


class CloneFailedError(ResolutionError):
    """git clone failed and nothing usable exists at the target directory."""
    error_code = "CLONE_FAILED"
    category = ErrorCategory.CLONE

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 hints: Optional[List[str]] = None):
        super().__init__(message, context)
        self.hints = list(hints or [])


class GitOperationError(ResolutionError):
    """A git command failed while mutating or inspecting a working copy."""
    error_code = "GIT_COMMAND_FAILED"
    category = ErrorCategory.GIT_COMMAND

    def __init__(self, command: str, stderr: str = "", status: Optional[int] = None,
                 context: Optional[Dict[str, Any]] = None):
        detail = stderr.strip() or f"exit status {status}"
        super().__init__(f"git {command} failed: {detail}", context)
        self.command = command
        self.stderr = stderr
        self.status = status


class NonFastForwardError(ResolutionError):
    """
    A fast-forward-only merge was refused.

    The classifier only offers candidates whose HEAD is an ancestor of the
    target, so reaching this means the working copy changed underneath us or
    the selector is wrong.
    """
    error_code = "NON_FAST_FORWARD"
    category = ErrorCategory.INVARIANT
