"""Error Handling Utilities

This module defines the error taxonomy used across discovery and enrichment,
retry logic with exponential backoff for transient item-store failures,
and warning collection for non-fatal events during an analysis run.

Taxonomy:
    NotFound: an item never resolves; absorbed by discovery (no exception type,
        the item simply comes back as None)
    EnrichmentError: one node's external call failed; absorbed per node
    AnalysisCancelled: the run was stopped on purpose; the only error that
        leaves the orchestrator
"""

import json
import time
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple, Type, TypeVar, Any


T = TypeVar('T')


class HNAPIError(Exception):
    """Transport failure talking to the Hacker News item store."""
    pass


class EnrichmentError(Exception):
    """The inference call for a single comment failed after retries.

    Attributes:
        comment_id: Id of the comment that could not be annotated (may be None)
    """

    def __init__(self, message: str, comment_id: Optional[int] = None):
        super().__init__(message)
        self.comment_id = comment_id


class AnalysisCancelled(Exception):
    """An analysis run was cancelled before every target was processed.

    Attributes:
        done: Number of targets processed when the run unwound
        total: Number of targets the run was started with
    """

    def __init__(self, message: str = "Analysis cancelled", done: int = 0, total: int = 0):
        super().__init__(message)
        self.done = done
        self.total = total


def retry_with_backoff(
    fn: Callable[[], T],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)
) -> T:
    """Execute a callable with exponential backoff retry logic.

    Used by the item-store client to ride out transient network failures.

    Args:
        fn: Callable to execute (should take no arguments)
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay cap in seconds (default: 30.0)
        retryable_exceptions: Tuple of exception types to retry on (default: all exceptions)

    Returns:
        The result of fn() on successful execution

    Raises:
        The final exception if all retries are exhausted, or immediately if the exception
        type is not in retryable_exceptions

    Backoff schedule (base_delay=1.0, max_delay=30.0):
        - Attempt 1: immediate
        - Attempt 2: wait 1.0s (base_delay * 2^0)
        - Attempt 3: wait 2.0s (base_delay * 2^1)
        - Attempt 4: wait 4.0s (base_delay * 2^2)
        - etc., capped at max_delay
    """
    for attempt in range(max_retries + 1):
        try:
            return fn()
        except Exception as e:
            if not isinstance(e, retryable_exceptions):
                raise

            if attempt >= max_retries:
                raise

            delay = min(base_delay * (2 ** attempt), max_delay)
            time.sleep(delay)

    raise RuntimeError("Unreachable code")


# Supported warning types
WARNING_TYPE_ITEM_FETCH_FAILED = "item_fetch_failed"
WARNING_TYPE_ORPHANED_ITEMS_DROPPED = "orphaned_items_dropped"
WARNING_TYPE_COMMENT_ANALYSIS_FAILED = "comment_analysis_failed"
WARNING_TYPE_QUESTION_GENERATION_FAILED = "question_generation_failed"
WARNING_TYPE_THREAD_SUMMARY_FAILED = "thread_summary_failed"

VALID_WARNING_TYPES = {
    WARNING_TYPE_ITEM_FETCH_FAILED,
    WARNING_TYPE_ORPHANED_ITEMS_DROPPED,
    WARNING_TYPE_COMMENT_ANALYSIS_FAILED,
    WARNING_TYPE_QUESTION_GENERATION_FAILED,
    WARNING_TYPE_THREAD_SUMMARY_FAILED,
}


class WarningsCollector:
    """Thread-safe collector for non-fatal warnings during an analysis run.

    Accumulates warning events with type, message, timestamp, and context.
    A run that finishes with warnings is still a successful run.

    Example:
        >>> collector = WarningsCollector()
        >>> collector.append(
        ...     "comment_analysis_failed",
        ...     "Inference call failed for comment 41780999",
        ...     {"comment_id": 41780999, "error_type": "EnrichmentError"}
        ... )
        >>> len(collector)
        1
    """

    def __init__(self):
        self._warnings: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._warnings)

    def append(self, warning_type: str, message: str, context: Dict[str, Any]) -> None:
        """Add a warning with type, message, timestamp, and context.

        Args:
            warning_type: One of the supported warning types (see VALID_WARNING_TYPES)
            message: Human-readable description of the warning
            context: Additional structured data (e.g., comment_id, error_type)

        Raises:
            ValueError: If warning_type is not in VALID_WARNING_TYPES
        """
        if warning_type not in VALID_WARNING_TYPES:
            raise ValueError(
                f"Invalid warning_type '{warning_type}'. "
                f"Must be one of: {', '.join(sorted(VALID_WARNING_TYPES))}"
            )

        warning = {
            "type": warning_type,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "context": context
        }

        with self._lock:
            self._warnings.append(warning)

    def by_type(self, warning_type: str) -> List[Dict[str, Any]]:
        """Return a copy of the warnings of one type, in insertion order."""
        with self._lock:
            return [w for w in self._warnings if w["type"] == warning_type]

    def to_json(self) -> Optional[str]:
        """Serialize warnings to JSON array string, or None if no warnings were collected."""
        with self._lock:
            if not self._warnings:
                return None
            return json.dumps(self._warnings)
