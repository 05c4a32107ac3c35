"""
Bounded retry for storage failures.

Ledger operations are short read-modify-write transactions. Lock timeouts,
deadlocks and serialization conflicts surface from Django as
OperationalError, and a lost compare-and-swap as ConcurrentUpdateError; the
whole transaction is rolled back, so running it again is safe. Other
domain errors (LedgerError) are never retried.
"""

import functools
import logging
import time

from django.db import OperationalError, transaction

from stockledger.conf import ledger_settings
from stockledger.exceptions import ConcurrentUpdateError, TransientStorageError

RETRYABLE_ERRORS = (OperationalError, ConcurrentUpdateError)

logger = logging.getLogger('stockledger')


def run_with_retry(func, *, attempts: int | None = None, backoff: float | None = None,
                   using: str | None = None):
    """
    Run func, retrying RETRYABLE_ERRORS with exponential backoff.

    Only the outermost transaction can be retried: inside an enclosing
    atomic block the failed transaction is already broken, so func runs
    once and errors propagate to the owner of that block.

    Raises:
        TransientStorageError: after the last failed attempt
    """
    attempts = max(1, attempts or ledger_settings.RETRY_ATTEMPTS)
    backoff = ledger_settings.RETRY_BACKOFF_SECONDS if backoff is None else backoff

    if transaction.get_connection(using).in_atomic_block:
        return func()

    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            if attempt >= attempts:
                logger.error(
                    "stock.storage.gave_up",
                    extra={"attempts": attempts, "error": str(exc)},
                )
                raise TransientStorageError(attempts=attempts, error=str(exc)) from exc
            logger.warning(
                "stock.storage.retry",
                extra={"attempt": attempt, "error": str(exc)},
            )
            time.sleep(backoff * (2 ** (attempt - 1)))


def retrying(func):
    """Decorator form of run_with_retry for ledger operations."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return run_with_retry(lambda: func(*args, **kwargs))

    return wrapper
