"""
Stock reservations: the only path by which quantities change.

Every operation follows the same protocol:

    1. open a transaction
    2. lock the StockRecord row(s) with select_for_update(), in pk order
    3. check the business rule against the locked values
    4. apply the change with a guarded UPDATE (version match + rule),
       so the row is never written from a stale read
    5. write the Movement describing the change in the same transaction

The ``*_locked`` helpers implement steps 3-5 and expect the caller to hold
the lock inside transaction.atomic(). Transfers and fulfillment compose
them; StockReservations exposes them as standalone, retried operations.
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import F, Q, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from stockledger.exceptions import (
    ConcurrentUpdateError,
    InsufficientQuantityError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from stockledger.models.enums import MovementType
from stockledger.models.movement import Movement, Reference
from stockledger.models.record import StockRecord
from stockledger.retry import retrying

logger = logging.getLogger('stockledger')

# Only ledger operations may set these
PROTECTED_FIELDS = frozenset({'quantity', 'reserved_quantity', 'version'})

# Record attributes a restock may overwrite
RESTOCK_FIELDS = (
    'cost_price',
    'selling_price',
    'reorder_point',
    'reorder_quantity',
    'supplier_ref',
    'location',
)

PRICE_FIELDS = ('cost_price', 'selling_price')
THRESHOLD_FIELDS = ('reorder_point', 'reorder_quantity')


# ══════════════════════════════════════════════════════════════════
# LOCKED PRIMITIVES
# ══════════════════════════════════════════════════════════════════


def _record_pk(record_or_pk):
    return getattr(record_or_pk, 'pk', record_or_pk)


def _check_amount(amount, *, allow_zero=False) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError('INVALID_QUANTITY', requested=amount)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError('INVALID_QUANTITY', requested=amount)
    return amount


def _check_attributes(values: dict) -> dict:
    """Prices are non-negative Decimals, reorder thresholds non-negative ints."""
    for name in PRICE_FIELDS:
        value = values.get(name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (Decimal, int)) or value < 0:
            raise ValidationError('INVALID_PRICE', field=name, value=value)
    for name in THRESHOLD_FIELDS:
        value = values.get(name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError('INVALID_QUANTITY', field=name, requested=value)
    return values


def lock_record(record_or_pk) -> StockRecord:
    """Lock one record. Must run inside transaction.atomic()."""
    pk = _record_pk(record_or_pk)
    try:
        return StockRecord.objects.select_for_update().get(pk=pk)
    except StockRecord.DoesNotExist:
        raise NotFoundError('RECORD_NOT_FOUND', record_id=pk) from None


def lock_records(*records) -> dict:
    """
    Lock several records in ascending pk order.

    A single global lock order keeps two multi-record operations from
    waiting on each other.

    Returns:
        dict of pk -> locked StockRecord
    """
    pks = sorted({_record_pk(r) for r in records})
    locked = {
        r.pk: r
        for r in StockRecord.objects.select_for_update().filter(pk__in=pks).order_by('pk')
    }
    missing = [pk for pk in pks if pk not in locked]
    if missing:
        raise NotFoundError('RECORD_NOT_FOUND', record_id=missing[0])
    return locked


def _apply(locked: StockRecord, guard: Q | None = None, **changes) -> None:
    """
    Guarded UPDATE of a locked record, then refresh it in place.

    The version match turns the write into a compare-and-swap against the
    values the caller checked. Zero rows matched means the row changed
    after it was read.
    """
    qs = StockRecord.objects.filter(pk=locked.pk, version=locked.version)
    if guard is not None:
        qs = qs.filter(guard)
    updated = qs.update(
        version=F('version') + 1,
        updated_at=timezone.now(),
        **changes,
    )
    if updated != 1:
        raise ConcurrentUpdateError(record_id=locked.pk, version=locked.version)
    locked.refresh_from_db()


def log_movement(locked: StockRecord, old_quantity: int, movement_type: str, *,
                 reference: Reference | None = None, reason: str = '', notes: str = '',
                 supplier_ref: str | None = None, performed_by: str = '',
                 metadata: dict | None = None) -> Movement:
    """Append the Movement for a change already applied to locked."""
    return Movement.objects.create(
        record=locked,
        product_id=locked.product_id,
        branch_id=locked.branch_id,
        type=movement_type,
        quantity=locked.quantity - old_quantity,
        old_quantity=old_quantity,
        new_quantity=locked.quantity,
        reference_kind=reference.kind if reference else '',
        reference_id=reference.id if reference else '',
        reason=reason or '',
        notes=notes or '',
        supplier_ref=supplier_ref,
        performed_by=performed_by or '',
        metadata=metadata or {},
    )


def reserve_locked(locked: StockRecord, amount: int) -> StockRecord:
    _check_amount(amount)
    if locked.available_quantity < amount:
        raise InsufficientStockError(
            available=locked.available_quantity,
            requested=amount,
            product_id=locked.product_id,
            branch_id=locked.branch_id,
        )
    _apply(
        locked,
        Q(quantity__gte=F('reserved_quantity') + amount),
        reserved_quantity=F('reserved_quantity') + amount,
    )
    return locked


def release_locked(locked: StockRecord, amount: int) -> StockRecord:
    """Lower the reservation, flooring at zero. Writes no movement."""
    _check_amount(amount, allow_zero=True)
    if amount == 0 or locked.reserved_quantity == 0:
        return locked
    _apply(
        locked,
        reserved_quantity=Greatest(F('reserved_quantity') - amount, Value(0)),
    )
    return locked


def deduct_locked(locked: StockRecord, amount: int, movement_type: str, *,
                  reference: Reference | None = None, **log) -> Movement:
    """
    Consume stock: lower quantity and its reservation together.

    Reservation shrinks by min(amount, reserved) whether or not this
    deduct was reserved, so an unreserved deduct consumes other callers'
    holds first.
    """
    _check_amount(amount)
    if locked.quantity < amount:
        raise InsufficientQuantityError(
            available=locked.quantity,
            requested=amount,
            product_id=locked.product_id,
            branch_id=locked.branch_id,
        )
    old_quantity = locked.quantity
    _apply(
        locked,
        Q(quantity__gte=amount),
        quantity=F('quantity') - amount,
        reserved_quantity=Greatest(F('reserved_quantity') - amount, Value(0)),
    )
    return log_movement(locked, old_quantity, movement_type, reference=reference, **log)


def credit_locked(locked: StockRecord, amount: int, movement_type: str, *,
                  reference: Reference | None = None, changes: dict | None = None,
                  **log) -> Movement:
    """Add on-hand stock, optionally updating record attributes."""
    _check_amount(amount)
    old_quantity = locked.quantity
    _apply(locked, quantity=F('quantity') + amount, **(changes or {}))
    return log_movement(locked, old_quantity, movement_type, reference=reference, **log)


def adjust_locked(locked: StockRecord, delta: int, reason: str, **log) -> Movement:
    """
    Signed manual correction, floored at zero.

    The movement records the delta actually applied, which differs from
    the requested one when the floor kicks in.
    """
    if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
        raise ValidationError('INVALID_QUANTITY', requested=delta)
    if not reason or not reason.strip():
        raise ValidationError('REASON_REQUIRED')

    old_quantity = locked.quantity
    new_quantity = max(0, old_quantity + delta)
    if new_quantity < locked.reserved_quantity:
        raise InsufficientStockError(
            message="Adjustment would leave less stock than is reserved",
            available=locked.available_quantity,
            requested=-delta,
            reserved=locked.reserved_quantity,
            product_id=locked.product_id,
            branch_id=locked.branch_id,
        )

    _apply(
        locked,
        Q(reserved_quantity__lte=new_quantity),
        quantity=new_quantity,
    )
    movement_type = (
        MovementType.ADJUSTMENT_ADD if delta > 0 else MovementType.ADJUSTMENT_REMOVE
    )
    return log_movement(locked, old_quantity, movement_type, reason=reason.strip(), **log)


def get_or_create_record(product_id, branch_id, defaults: dict | None = None):
    """
    Fetch or create the record for (product_id, branch_id).

    Returns:
        (StockRecord, created)
    """
    if not product_id or not branch_id:
        raise ValidationError(
            'INVALID_IDENTIFIER', product_id=product_id, branch_id=branch_id,
        )
    defaults = dict(defaults or {})
    protected = PROTECTED_FIELDS.intersection(defaults)
    if protected:
        raise ValidationError('PROTECTED_FIELD', fields=sorted(protected))
    _check_attributes(defaults)
    return StockRecord.objects.get_or_create(
        product_id=str(product_id),
        branch_id=str(branch_id),
        defaults=defaults,
    )


# ══════════════════════════════════════════════════════════════════
# OPERATIONS
# ══════════════════════════════════════════════════════════════════


class StockReservations:
    """Standalone quantity operations on a single stock record."""

    @classmethod
    @retrying
    def get_or_create(cls, product_id, branch_id, defaults=None) -> StockRecord:
        """
        Return the record for (product, branch), creating it at zero.

        Raises:
            ValidationError('INVALID_IDENTIFIER'): empty product or branch
            ValidationError('PROTECTED_FIELD'): defaults try to set quantities
        """
        with transaction.atomic():
            record, created = get_or_create_record(product_id, branch_id, defaults)
        if created:
            logger.info(
                "stock.record.created",
                extra={"record_id": record.pk, "product_id": record.product_id,
                       "branch_id": record.branch_id},
            )
        return record

    @classmethod
    @retrying
    def reserve(cls, record, amount: int) -> StockRecord:
        """
        Hold amount of the available quantity.

        Raises:
            InsufficientStockError: amount > quantity - reserved_quantity
            ValidationError('INVALID_QUANTITY'): amount <= 0
            NotFoundError: record does not exist
        """
        _check_amount(amount)
        with transaction.atomic():
            locked = reserve_locked(lock_record(record), amount)
        logger.info(
            "stock.reserve",
            extra={"record_id": locked.pk, "qty": amount,
                   "reserved": locked.reserved_quantity},
        )
        return locked

    @classmethod
    @retrying
    def release_reserved(cls, record, amount: int) -> StockRecord:
        """
        Give back up to amount of the reservation (floors at zero).

        Releasing more than is reserved is tolerated, so repeated
        cancellations are harmless.
        """
        _check_amount(amount, allow_zero=True)
        with transaction.atomic():
            locked = release_locked(lock_record(record), amount)
        logger.info(
            "stock.release",
            extra={"record_id": locked.pk, "qty": amount,
                   "reserved": locked.reserved_quantity},
        )
        return locked

    @classmethod
    @retrying
    def deduct(cls, record, amount: int, *, movement_type=MovementType.SALE,
               reference: Reference | None = None, performed_by: str = '',
               reason: str = '', notes: str = '') -> Movement:
        """
        Remove amount from on-hand stock and its reservation.

        Raises:
            InsufficientQuantityError: amount > quantity
            ValidationError('INVALID_QUANTITY'): amount <= 0
        """
        _check_amount(amount)
        with transaction.atomic():
            movement = deduct_locked(
                lock_record(record), amount, movement_type,
                reference=reference, performed_by=performed_by,
                reason=reason, notes=notes,
            )
        logger.info(
            "stock.deduct",
            extra={"record_id": movement.record_id, "qty": amount,
                   "type": movement_type, "reference": str(reference or '')},
        )
        return movement

    @classmethod
    @retrying
    def restock(cls, product_id, branch_id, amount: int, *, performed_by: str = '',
                notes: str = '', **attributes) -> StockRecord:
        """
        Receive amount into a branch, creating the record on first receipt.

        The movement is INITIAL when this call created the record, RESTOCK
        otherwise. Keyword attributes (cost_price, selling_price,
        reorder_point, reorder_quantity, supplier_ref, location) overwrite
        the record's values when given and not None.

        Raises:
            ValidationError('INVALID_QUANTITY'): amount <= 0, or a negative
                reorder threshold
            ValidationError('INVALID_PRICE'): negative or non-Decimal price
        """
        _check_amount(amount)
        unknown = set(attributes) - set(RESTOCK_FIELDS)
        if unknown:
            raise TypeError(f"Unexpected restock attributes: {sorted(unknown)}")
        changes = _check_attributes({k: v for k, v in attributes.items() if v is not None})

        with transaction.atomic():
            record, created = get_or_create_record(product_id, branch_id)
            locked = lock_record(record)
            movement_type = MovementType.INITIAL if created else MovementType.RESTOCK
            changes.update(
                last_restocked_at=timezone.now(),
                last_restocked_by=performed_by or '',
            )
            credit_locked(
                locked, amount, movement_type,
                changes=changes,
                supplier_ref=changes.get('supplier_ref', locked.supplier_ref),
                performed_by=performed_by,
                notes=notes,
            )
        logger.info(
            "stock.restock",
            extra={"record_id": locked.pk, "qty": amount, "type": movement_type,
                   "quantity": locked.quantity},
        )
        return locked

    @classmethod
    def restock_record(cls, record, amount: int, **kwargs) -> StockRecord:
        """Restock an existing record. Same keywords as restock()."""
        if not isinstance(record, StockRecord):
            try:
                record = StockRecord.objects.get(pk=record)
            except StockRecord.DoesNotExist:
                raise NotFoundError('RECORD_NOT_FOUND', record_id=record) from None
        return cls.restock(record.product_id, record.branch_id, amount, **kwargs)

    @classmethod
    @retrying
    def adjust(cls, record, delta: int, reason: str, *, performed_by: str = '',
               notes: str = '') -> Movement:
        """
        Manual correction by delta, never below zero.

        Raises:
            ValidationError('REASON_REQUIRED'): reason is empty
            ValidationError('INVALID_QUANTITY'): delta == 0
            InsufficientStockError: result would fall below reserved_quantity
        """
        with transaction.atomic():
            movement = adjust_locked(
                lock_record(record), delta, reason,
                performed_by=performed_by, notes=notes,
            )
        logger.info(
            "stock.adjust",
            extra={"record_id": movement.record_id, "delta": movement.quantity,
                   "requested": delta, "reason": reason},
        )
        return movement
