"""
Fulfillment integration: what order processing calls into.

Sales and service orders live with their own collaborators. They reserve
stock when an order is created and settle the reservation when it
completes (deduct) or is cancelled (release). The order reference is
carried onto the movements so the log can be traced back to the order.
"""

import logging
from dataclasses import dataclass

from django.db import transaction

from stockledger.exceptions import NotFoundError, ValidationError
from stockledger.models.enums import MovementType, ReferenceKind
from stockledger.models.movement import Movement, Reference
from stockledger.models.record import StockRecord
from stockledger.retry import retrying
from stockledger.services.reservations import (
    deduct_locked,
    lock_records,
    log_movement,
    release_locked,
    reserve_locked,
)
from stockledger.transitions import SALES_ORDER_TRANSITIONS, SERVICE_ORDER_TRANSITIONS

logger = logging.getLogger('stockledger')

COMPLETION_MOVEMENTS = {
    ReferenceKind.SALES_ORDER: MovementType.SALE,
    ReferenceKind.SERVICE_ORDER: MovementType.SERVICE_USE,
}

ORDER_TRANSITIONS = {
    ReferenceKind.SALES_ORDER: SALES_ORDER_TRANSITIONS,
    ReferenceKind.SERVICE_ORDER: SERVICE_ORDER_TRANSITIONS,
}

# Statuses that settle stock; both order workflows share these values
COMPLETED = 'completed'
CANCELLED = 'cancelled'


@dataclass(frozen=True)
class OrderLine:
    """One product line of an order."""

    product_id: str
    quantity: int


def _order_kind(order_ref: Reference) -> str:
    if not isinstance(order_ref, Reference) or order_ref.kind not in COMPLETION_MOVEMENTS:
        raise ValidationError(
            'INVALID_REFERENCE',
            message="Order reference must point at a sales or service order",
            reference=str(order_ref),
        )
    return order_ref.kind


def _find_locked(product_id, branch_id) -> StockRecord:
    try:
        return StockRecord.objects.select_for_update().get(
            product_id=str(product_id), branch_id=str(branch_id),
        )
    except StockRecord.DoesNotExist:
        raise NotFoundError(
            'RECORD_NOT_FOUND', product_id=product_id, branch_id=branch_id,
        ) from None


def _merge_lines(lines) -> dict:
    """Sum quantities per product; a product listed twice is one reservation."""
    merged = {}
    for line in lines:
        if not isinstance(line, OrderLine):
            line = OrderLine(*line)
        merged[str(line.product_id)] = merged.get(str(line.product_id), 0) + line.quantity
    return merged


class StockFulfillment:
    """Reservation and settlement on behalf of sales and service orders."""

    @classmethod
    @retrying
    def reserve_for_order(cls, product_id, branch_id, quantity: int) -> StockRecord:
        """
        Reserve stock for an order line at creation time.

        Raises:
            NotFoundError: branch carries no record for the product
            InsufficientStockError: not enough available stock
        """
        with transaction.atomic():
            record = reserve_locked(_find_locked(product_id, branch_id), quantity)
        logger.info(
            "stock.order.reserve",
            extra={"product_id": str(product_id), "branch_id": str(branch_id),
                   "qty": quantity},
        )
        return record

    @classmethod
    @retrying
    def settle_order_completion(cls, product_id, branch_id, quantity: int,
                                order_ref: Reference, performed_by: str = '') -> Movement:
        """
        Deduct a completed order line.

        Logged as SALE for sales orders and SERVICE_USE for service orders.
        """
        kind = _order_kind(order_ref)
        with transaction.atomic():
            movement = deduct_locked(
                _find_locked(product_id, branch_id),
                quantity,
                COMPLETION_MOVEMENTS[kind],
                reference=order_ref,
                performed_by=performed_by,
            )
        logger.info(
            "stock.order.complete",
            extra={"reference": str(order_ref), "product_id": str(product_id),
                   "branch_id": str(branch_id), "qty": quantity},
        )
        return movement

    @classmethod
    @retrying
    def settle_order_cancellation(cls, product_id, branch_id, quantity: int,
                                  order_ref: Reference, performed_by: str = '') -> Movement:
        """
        Release a cancelled order line.

        On-hand stock is untouched; the SALE_CANCEL movement has a zero
        delta and exists to tie the release to the order.
        """
        _order_kind(order_ref)
        with transaction.atomic():
            locked = release_locked(_find_locked(product_id, branch_id), quantity)
            movement = log_movement(
                locked, locked.quantity, MovementType.SALE_CANCEL,
                reference=order_ref,
                performed_by=performed_by,
                metadata={'released': quantity},
            )
        logger.info(
            "stock.order.cancel",
            extra={"reference": str(order_ref), "product_id": str(product_id),
                   "branch_id": str(branch_id), "qty": quantity},
        )
        return movement

    @classmethod
    @retrying
    def reserve_order_lines(cls, branch_id, lines) -> list[StockRecord]:
        """
        Reserve every line of an order, or none of them.

        Lines may be OrderLine instances or (product_id, quantity) pairs.

        Raises:
            NotFoundError / InsufficientStockError for the first failing line;
            no line stays reserved.
        """
        merged = _merge_lines(lines)
        with transaction.atomic():
            records = [_record_for(product_id, branch_id) for product_id in merged]
            locked = lock_records(*records)
            result = []
            for record in records:
                result.append(reserve_locked(locked[record.pk], merged[record.product_id]))
        logger.info(
            "stock.order.reserve_lines",
            extra={"branch_id": str(branch_id), "lines": len(merged)},
        )
        return result

    @classmethod
    @retrying
    def advance_order(cls, order_ref: Reference, branch_id, lines,
                      current_status: str, target_status: str,
                      performed_by: str = '') -> list[Movement]:
        """
        Validate an order's status change and settle its stock.

        completed deducts every line, cancelled releases every line; any
        other valid target touches no stock.

        Raises:
            InvalidTransitionError: target not allowed from current_status
        """
        kind = _order_kind(order_ref)
        ORDER_TRANSITIONS[kind].check(current_status, target_status)
        if target_status not in (COMPLETED, CANCELLED):
            return []

        merged = _merge_lines(lines)
        movements = []
        with transaction.atomic():
            records = [_record_for(product_id, branch_id) for product_id in merged]
            locked = lock_records(*records)
            for record in records:
                row = locked[record.pk]
                quantity = merged[record.product_id]
                if target_status == COMPLETED:
                    movements.append(deduct_locked(
                        row, quantity, COMPLETION_MOVEMENTS[kind],
                        reference=order_ref, performed_by=performed_by,
                    ))
                else:
                    release_locked(row, quantity)
                    movements.append(log_movement(
                        row, row.quantity, MovementType.SALE_CANCEL,
                        reference=order_ref, performed_by=performed_by,
                        metadata={'released': quantity},
                    ))
        logger.info(
            "stock.order.advance",
            extra={"reference": str(order_ref), "from_status": str(current_status),
                   "to_status": str(target_status), "lines": len(merged)},
        )
        return movements


def _record_for(product_id, branch_id) -> StockRecord:
    try:
        return StockRecord.objects.get(product_id=str(product_id), branch_id=str(branch_id))
    except StockRecord.DoesNotExist:
        raise NotFoundError(
            'RECORD_NOT_FOUND', product_id=product_id, branch_id=branch_id,
        ) from None
