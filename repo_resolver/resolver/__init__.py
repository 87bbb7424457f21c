"""Resolution of remote locators to local git working copies."""

from .candidates import CandidateCollector, get_clone_path
from .classifier import Classification, classify, classify_all, resolve_target_commit
from .error_types import (
    CloneFailedError, ErrorCategory, GitOperationError, InvalidLocatorError, NoSelectionError,
    NonFastForwardError, NotARepositoryError, RemoteRefNotFoundError, ResolutionError,
    StashFailedError,
)
from .executor import CheckoutStrategy, SyncExecutor
from .locator import RemoteLocator, is_absolute_commit_id, parse_resource
from .prompter import PickItem, PresetPrompter, Prompter, choose_checkout_strategy, pick_repository
from .remote_url import canonical_remote
from .repository import GitRepository, HeadInfo
from .resolver import ResolutionStrategy, Resolver
from .utils import ResolutionOutcome, create_resolution_outcome

__all__ = [
    'CandidateCollector',
    'get_clone_path',
    'Classification',
    'classify',
    'classify_all',
    'resolve_target_commit',
    'CloneFailedError',
    'ErrorCategory',
    'GitOperationError',
    'InvalidLocatorError',
    'NoSelectionError',
    'NonFastForwardError',
    'NotARepositoryError',
    'RemoteRefNotFoundError',
    'ResolutionError',
    'StashFailedError',
    'CheckoutStrategy',
    'SyncExecutor',
    'RemoteLocator',
    'is_absolute_commit_id',
    'parse_resource',
    'PickItem',
    'PresetPrompter',
    'Prompter',
    'choose_checkout_strategy',
    'pick_repository',
    'canonical_remote',
    'GitRepository',
    'HeadInfo',
    'ResolutionStrategy',
    'Resolver',
    'ResolutionOutcome',
    'create_resolution_outcome'
]
