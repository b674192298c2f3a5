"""
Infrastructure-specific decorators, providing cross-cutting concerns like
retry logic for network operations.
"""

import logging

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from ..application.exceptions import TransportFailure

logger = logging.getLogger(__name__)

# --- Constants for Retry Logic ---
# The attempt count comes from settings; see HttpTransport.get.
_DEFAULT_RETRY_ATTEMPTS = 1
_RETRY_MIN_WAIT_SECONDS = 1
_RETRY_MAX_WAIT_SECONDS = 10


def _log_before_retry(retry_state):
    """Log the retry attempt with details about the exception and wait time."""
    exception = retry_state.outcome.exception()
    next_attempt_in = retry_state.next_action.sleep
    logger.warning(
        f"Retrying {retry_state.fn.__name__} in {next_attempt_in:.2f}s due to "
        f"{type(exception).__name__} (attempt {retry_state.attempt_number})..."
    )


def with_attempts(decorated, attempts: int):
    """Returns a copy of a retrying function limited to ``attempts`` calls."""
    return decorated.retry_with(stop=stop_after_attempt(attempts))


# A pre-configured decorator for connection-level transport failures.
# Status-code failures are not retried: they reach the fetcher as responses.
retry_on_transport_failure = retry(
    stop=stop_after_attempt(_DEFAULT_RETRY_ATTEMPTS),
    wait=wait_exponential(
        multiplier=1,
        min=_RETRY_MIN_WAIT_SECONDS,
        max=_RETRY_MAX_WAIT_SECONDS,
    ),
    retry=retry_if_exception_type(TransportFailure),
    before_sleep=_log_before_retry,
    reraise=True,
)
