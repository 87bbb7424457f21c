"""Timing of whole resolutions and index rebuilds."""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Optional, Any, Generator


@dataclass
class PerformanceMetrics:
    """Timing of the most recent run of one kind of operation."""
    operation: str
    duration: float
    start_time: float
    end_time: float
    context: Optional[Dict[str, Any]] = None
    success: bool = True


def _describe(context: Optional[Dict[str, Any]]) -> str:
    if not context:
        return ""
    return " (" + ", ".join(f"{k}={v}" for k, v in context.items()) + ")"


class PerformanceLogger:
    """
    Times resolver operations.

    Metrics are kept per operation kind ("resolve", "index_rebuild"), the
    specific locator or directory goes into the context.
    """

    SLOW_OPERATION_SECONDS = 30.0

    def __init__(self, logger_name: str = 'repo_resolver.resolver.performance'):
        self.logger = logging.getLogger(logger_name)
        self._metrics: Dict[str, PerformanceMetrics] = {}

    @contextmanager
    def time_operation(
        self,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
        log_level: int = logging.INFO
    ) -> Generator[None, None, None]:
        """
        Context manager for timing operations.

        Args:
            operation: Kind of operation being timed
            context: What the operation works on, included in every message
            log_level: Logging level for performance messages
        """
        label = f"{operation}{_describe(context)}"
        start_time = time.time()
        self.logger.log(log_level, f"Starting {label}")

        success = True
        try:
            yield
        except Exception as e:
            success = False
            self.logger.log(log_level, f"{label} failed after {time.time() - start_time:.3f}s: {e}")
            raise
        finally:
            end_time = time.time()
            duration = end_time - start_time

            self._metrics[operation] = PerformanceMetrics(
                operation=operation,
                duration=duration,
                start_time=start_time,
                end_time=end_time,
                context=context,
                success=success
            )

            if success:
                self.logger.log(log_level, f"{label} completed in {duration:.3f}s")

            if duration > self.SLOW_OPERATION_SECONDS:
                self.logger.warning(f"Slow operation: {label} took {duration:.3f}s")

    def get_metrics(self, operation: str) -> Optional[PerformanceMetrics]:
        return self._metrics.get(operation)


_performance_logger: Optional[PerformanceLogger] = None


def get_performance_logger() -> PerformanceLogger:
    """Get or create the global performance logger instance."""
    global _performance_logger
    if _performance_logger is None:
        _performance_logger = PerformanceLogger()
    return _performance_logger
