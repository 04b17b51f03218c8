"""Retry helper for idempotent operations hitting transient storage errors.

Only :class:`StorageUnavailableError` is retried. Response submission is not
idempotent and never goes through here.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from bracket_quiz.constants.quiz_constants import (
    STORAGE_RETRY_ATTEMPTS,
    STORAGE_RETRY_INITIAL_DELAY_SECONDS,
)
from bracket_quiz.core.errors import StorageUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_idempotent(
    operation: Callable[[], T],
    retries: int = STORAGE_RETRY_ATTEMPTS,
    initial_delay: float = STORAGE_RETRY_INITIAL_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``operation``, retrying with exponential backoff on transient failures.

    Args:
        operation: Zero-argument callable that is safe to repeat.
        retries: Maximum number of attempts before the error is re-raised.
        initial_delay: Delay in seconds before the second attempt. Doubled after
            every further attempt.
        sleep: Injected for tests.

    Raises:
        StorageUnavailableError: Re-raised after the final attempt.
    """
    delay = initial_delay
    for attempt in range(retries):
        try:
            return operation()
        except StorageUnavailableError:
            if attempt == retries - 1:
                raise
            logger.warning(
                "Transient storage failure (attempt %d/%d); retrying in %.2fs",
                attempt + 1,
                retries,
                delay,
            )
            sleep(delay)
            delay *= 2
    raise StorageUnavailableError("No attempts were made.")
