"""Result objects returned to callers of the resolver."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class ResolutionOutcome:
    """Result of resolving one remote locator."""
    success: bool
    message: str
    path: Optional[str] = None
    error_code: Optional[str] = None
    strategy: Optional[str] = None
    locator: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "path": self.path,
            "error_code": self.error_code,
            "strategy": self.strategy,
            "locator": self.locator,
        }


def create_resolution_outcome(
    success: bool,
    message: str,
    path: Optional[str] = None,
    error_code: Optional[str] = None,
    strategy: Optional[str] = None,
    locator: Optional[str] = None
) -> ResolutionOutcome:
    """
    Helper function to create ResolutionOutcome instances.

    Args:
        success: Whether a working copy was resolved
        message: Descriptive message about the result
        path: Root of the chosen working copy on success
        error_code: Error code of the failure
        strategy: Resolution strategy that was selected, if any
        locator: The locator that was resolved, as ``remote@revision``

    Returns:
        ResolutionOutcome instance with all fields populated
    """
    return ResolutionOutcome(
        success=success,
        message=message,
        path=path,
        error_code=error_code,
        strategy=strategy,
        locator=locator
    )
