"""
Exceptions for Stockledger.

All errors are LedgerError subclasses with a structured code for
programmatic handling. Catch the class when the kind of failure matters,
read ``code`` when the exact cause does.
"""

from decimal import Decimal
from typing import Any


class LedgerError(Exception):
    """
    Structured exception for ledger operations.

    Usage:
        try:
            stock.reserve(record, 10)
        except InsufficientStockError as e:
            print(f"Only {e.available} available")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    code = 'LEDGER_ERROR'

    _default_messages = {
        'LEDGER_ERROR': 'Stock ledger error',
        'INSUFFICIENT_STOCK': 'Requested quantity exceeds available stock',
        'INSUFFICIENT_QUANTITY': 'Requested quantity exceeds on-hand stock',
        'INVALID_TRANSITION': 'Invalid status transition',
        'SAME_BRANCH': 'Source and destination branches must be different',
        'INVALID_QUANTITY': 'Invalid quantity',
        'INVALID_PRICE': 'Prices must be non-negative decimals',
        'RECORD_NOT_FOUND': 'Stock record not found',
        'TRANSFER_NOT_FOUND': 'Stock transfer not found',
        'REASON_REQUIRED': 'Reason is required',
        'INVALID_REFERENCE': 'Invalid movement reference',
        'INVALID_IDENTIFIER': 'Product and branch identifiers are required',
        'PROTECTED_FIELD': 'Quantities can only change through ledger operations',
        'CONCURRENT_MODIFICATION': 'Stock record changed concurrently',
        'STORAGE_UNAVAILABLE': 'Stock storage temporarily unavailable',
        'IMMUTABLE_MOVEMENT': 'Stock movements are immutable',
    }

    def __init__(self, code: str | None = None, message: str | None = None, **data):
        self.code = code or self.code
        self.message = message or self._default_messages.get(self.code, self.code)
        self.data = data
        super().__init__(self.message)

    @property
    def available(self) -> int:
        """Shortcut for data['available']."""
        return self.data.get('available', 0)

    @property
    def requested(self) -> int:
        """Shortcut for data['requested']."""
        return self.data.get('requested', 0)

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, data={self.data!r})"


class InsufficientStockError(LedgerError):
    """Reserve (or a transfer) asked for more than the available quantity."""

    code = 'INSUFFICIENT_STOCK'


class InsufficientQuantityError(LedgerError):
    """Deduct asked for more than the on-hand quantity."""

    code = 'INSUFFICIENT_QUANTITY'


class InvalidTransitionError(LedgerError):
    """A workflow was asked for a state change its transition table forbids."""

    code = 'INVALID_TRANSITION'

    def __init__(self, current: str, requested: str, workflow: str = ''):
        label = f"{workflow} " if workflow else ''
        super().__init__(
            message=f"Cannot transition {label}from '{current}' to '{requested}'",
            current=current,
            requested=requested,
            workflow=workflow,
        )

    @property
    def current(self) -> str:
        return self.data['current']

    @property
    def requested(self) -> str:
        return self.data['requested']


class InvalidTransferError(LedgerError):
    """Transfer between the same branch, or of a non-positive quantity."""

    code = 'SAME_BRANCH'


class NotFoundError(LedgerError):
    """Referenced stock record or transfer does not exist."""

    code = 'RECORD_NOT_FOUND'


class ValidationError(LedgerError):
    """Missing or malformed input."""

    code = 'INVALID_QUANTITY'


class ConcurrentUpdateError(LedgerError):
    """
    A guarded update matched no row: the record moved under us.

    Retried by stockledger.retry like any storage conflict.
    """

    code = 'CONCURRENT_MODIFICATION'


class TransientStorageError(LedgerError):
    """Storage kept failing after the configured number of retries."""

    code = 'STORAGE_UNAVAILABLE'


class ImmutableRecordError(LedgerError):
    """Attempt to change or delete a movement."""

    code = 'IMMUTABLE_MOVEMENT'
