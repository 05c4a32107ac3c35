"""
Stockledger configuration.

Usage in settings.py:
    STOCKLEDGER = {
        "RETRY_ATTEMPTS": 3,
        "RETRY_BACKOFF_SECONDS": 0.05,
        "DEFAULT_REORDER_POINT": 10,
        "DEFAULT_REORDER_QUANTITY": 50,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


@dataclass
class LedgerSettings:
    """Stockledger configuration settings."""

    # Attempts for a ledger operation hitting storage errors (1 = no retry)
    RETRY_ATTEMPTS: int = 3

    # Base delay between attempts; doubles every retry
    RETRY_BACKOFF_SECONDS: float = 0.05

    # Thresholds for records created without explicit values
    DEFAULT_REORDER_POINT: int = 10
    DEFAULT_REORDER_QUANTITY: int = 50

    # Display identifiers: TR-2026-000001, SM-2026-000001
    TRANSFER_NUMBER_PREFIX: str = "TR"
    MOVEMENT_NUMBER_PREFIX: str = "SM"


def get_ledger_settings() -> LedgerSettings:
    """
    Load settings from Django settings.

    Raises:
        ImproperlyConfigured: retry settings that would never run an
            operation, or would sleep a negative time
    """
    user_settings: dict[str, Any] = getattr(settings, "STOCKLEDGER", {})
    conf = LedgerSettings(**{
        k: v for k, v in user_settings.items()
        if k in LedgerSettings.__dataclass_fields__
    })
    if conf.RETRY_ATTEMPTS < 1:
        raise ImproperlyConfigured(
            f"STOCKLEDGER['RETRY_ATTEMPTS'] must be at least 1, got {conf.RETRY_ATTEMPTS}"
        )
    if conf.RETRY_BACKOFF_SECONDS < 0:
        raise ImproperlyConfigured(
            "STOCKLEDGER['RETRY_BACKOFF_SECONDS'] cannot be negative"
        )
    return conf


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_ledger_settings(), name)


ledger_settings = _LazySettings()
