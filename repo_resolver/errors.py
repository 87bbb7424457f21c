"""Structured error responses for the Repo Resolver front end."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Any, Optional

from .resolver.error_strategies import build_clone_hints, build_error_strategies
from .resolver.error_types import (
    CloneFailedError, ErrorCategory, NoSelectionError, NonFastForwardError, ResolutionError,
)


@dataclass
class ErrorResponse:
    """Standardized error response format for resolver operations."""
    error: str
    error_code: str
    message: str
    timestamp: str
    category: str
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error response to dictionary format."""
        result = {
            "error": self.error,
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp,
            "category": self.category
        }
        if self.context:
            result["context"] = self.context
        return result


class ErrorHandler:
    """Turns resolver exceptions into ErrorResponse objects and logs them."""

    def __init__(self):
        self.logger = logging.getLogger('repo_resolver.error_handler')
        self.strategies = build_error_strategies()

    def handle_resolution_error(self, error: Exception, context: Dict[str, Any] = None) -> ErrorResponse:
        """Handle a failed resolution, attaching recovery steps and choices."""
        context = dict(context or {})

        if isinstance(error, ResolutionError):
            error_code = error.error_code
            category = error.category
            message = error.message
            for key, value in error.context.items():
                context.setdefault(key, value)
        else:
            error_code = "RESOLUTION_GENERAL_ERROR"
            category = ErrorCategory.GIT_COMMAND
            message = f"Resolution failed: {error}"

        strategy = self.strategies.get(category)
        if strategy is not None:
            context["recovery_action"] = strategy.action.value
            context["resolution_steps"] = list(strategy.resolution_steps)

        if isinstance(error, NoSelectionError) and error.choices:
            context["choices"] = error.choices
        if isinstance(error, CloneFailedError):
            hints = error.hints or build_clone_hints(str(context.get("clone_url", "")))
            if hints:
                context["hints"] = hints

        error_response = ErrorResponse(
            error=strategy.user_message if strategy is not None else "Resolution failed",
            error_code=error_code,
            message=message,
            timestamp=datetime.now().isoformat(),
            category=category.value,
            context=context
        )

        log = self.logger.error if isinstance(error, NonFastForwardError) else self.logger.warning
        log(
            f"Resolution error: {message}",
            extra={
                'operation': 'resolution_error',
                'error_code': error_code,
                'locator': context.get('locator'),
                'strategy': context.get('strategy'),
            }
        )

        return error_response

    def handle_validation_error(self, error: Exception, context: Dict[str, Any] = None) -> ErrorResponse:
        """Handle input validation errors."""
        context = context or {}

        if "url" in str(error).lower():
            error_code = "VALIDATION_INVALID_URL"
        elif "strategy" in str(error).lower():
            error_code = "VALIDATION_INVALID_STRATEGY"
        else:
            error_code = "VALIDATION_GENERAL_ERROR"
        message = f"Input validation failed: {error}"

        error_response = ErrorResponse(
            error="Validation error",
            error_code=error_code,
            message=message,
            timestamp=datetime.now().isoformat(),
            category="validation",
            context=context
        )

        self.logger.warning(
            f"Validation error: {message}",
            extra={
                'operation': 'validation_error',
                'error_code': error_code,
                'field': context.get('field'),
                'value': context.get('value')
            }
        )

        return error_response

    def create_success_response(self, operation: str, data: Dict[str, Any], context: Dict[str, Any] = None) -> Dict[str, Any]:
        """Create a standardized success response."""
        response = {
            "success": True,
            "operation": operation,
            "timestamp": datetime.now().isoformat(),
            "data": data
        }

        if context:
            response["context"] = context

        return response


# Initialize global error handler
error_handler = ErrorHandler()
