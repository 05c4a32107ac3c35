"""
Inter-branch transfers.

A transfer holds its quantity as a reservation on the source record from
creation until it completes (deduct source, credit destination) or is
cancelled (release). All state changes go through TRANSFER_TRANSITIONS.
"""

import logging

from django.db import transaction
from django.utils import timezone

from stockledger.exceptions import InvalidTransferError, NotFoundError
from stockledger.models.enums import MovementType, TransferStatus
from stockledger.models.movement import Reference
from stockledger.models.record import StockRecord
from stockledger.models.transfer import StockTransfer
from stockledger.retry import retrying
from stockledger.services.reservations import (
    credit_locked,
    deduct_locked,
    get_or_create_record,
    lock_record,
    lock_records,
    release_locked,
    reserve_locked,
)
from stockledger.transitions import TRANSFER_TRANSITIONS

logger = logging.getLogger('stockledger')

# Copied from the source record when the destination carries none yet
INHERITED_FIELDS = (
    'cost_price',
    'selling_price',
    'reorder_point',
    'reorder_quantity',
    'supplier_ref',
)


def _get_transfer(transfer_id, *, lock=False) -> StockTransfer:
    transfer_id = getattr(transfer_id, 'pk', transfer_id)
    qs = StockTransfer.objects.select_for_update() if lock else StockTransfer.objects
    try:
        return qs.get(pk=transfer_id)
    except (StockTransfer.DoesNotExist, ValueError):
        raise NotFoundError('TRANSFER_NOT_FOUND', transfer_id=transfer_id) from None


class StockTransfers:
    """Transfer workflow between branches."""

    @classmethod
    @retrying
    def create_transfer(cls, product_id, from_branch_id, to_branch_id, quantity: int,
                        initiated_by: str = '', notes: str = '') -> StockTransfer:
        """
        Open a transfer and reserve its quantity at the source.

        Raises:
            InvalidTransferError('SAME_BRANCH'): from_branch_id == to_branch_id
            InvalidTransferError('INVALID_QUANTITY'): quantity <= 0
            NotFoundError: source branch has no record for the product
            InsufficientStockError: source cannot spare quantity
        """
        if str(from_branch_id) == str(to_branch_id):
            raise InvalidTransferError(
                'SAME_BRANCH', from_branch_id=from_branch_id, to_branch_id=to_branch_id,
            )
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidTransferError('INVALID_QUANTITY', requested=quantity)

        with transaction.atomic():
            try:
                source = StockRecord.objects.select_for_update().get(
                    product_id=str(product_id), branch_id=str(from_branch_id),
                )
            except StockRecord.DoesNotExist:
                raise NotFoundError(
                    'RECORD_NOT_FOUND', product_id=product_id, branch_id=from_branch_id,
                ) from None

            reserve_locked(source, quantity)

            transfer = StockTransfer.objects.create(
                product_id=str(product_id),
                from_branch_id=str(from_branch_id),
                to_branch_id=str(to_branch_id),
                quantity=quantity,
                initiated_by=initiated_by or '',
                notes=notes or '',
            )
            transfer.transfer_number = transfer.build_transfer_number()
            transfer.save(update_fields=['transfer_number'])

        logger.info(
            "stock.transfer.create",
            extra={"transfer": transfer.transfer_number, "product_id": transfer.product_id,
                   "from": transfer.from_branch_id, "to": transfer.to_branch_id,
                   "qty": quantity},
        )
        return transfer

    @classmethod
    @retrying
    def advance_transfer(cls, transfer_id, target_status: str,
                         performed_by: str = '') -> StockTransfer:
        """
        Move a transfer to target_status and apply its stock effect.

        Raises:
            NotFoundError('TRANSFER_NOT_FOUND'): unknown transfer
            InvalidTransitionError: target not allowed from the current status
        """
        with transaction.atomic():
            transfer = _get_transfer(transfer_id, lock=True)
            TRANSFER_TRANSITIONS.check(transfer.status, target_status)

            now = timezone.now()
            if target_status == TransferStatus.IN_TRANSIT:
                transfer.shipped_at = now
                transfer.approved_by = performed_by or ''
            elif target_status == TransferStatus.COMPLETED:
                cls._complete(transfer, performed_by)
                transfer.received_at = now
                transfer.received_by = performed_by or ''
            elif target_status == TransferStatus.CANCELLED:
                source = lock_record(cls._source_record(transfer))
                release_locked(source, transfer.quantity)
                transfer.cancelled_at = now
                transfer.cancelled_by = performed_by or ''

            previous = transfer.status
            transfer.status = target_status
            transfer.save()

        logger.info(
            "stock.transfer.advance",
            extra={"transfer": transfer.transfer_number, "from_status": previous,
                   "to_status": target_status, "performed_by": performed_by},
        )
        return transfer

    @classmethod
    def _source_record(cls, transfer: StockTransfer) -> StockRecord:
        try:
            return StockRecord.objects.get(
                product_id=transfer.product_id, branch_id=transfer.from_branch_id,
            )
        except StockRecord.DoesNotExist:
            raise NotFoundError(
                'RECORD_NOT_FOUND',
                product_id=transfer.product_id,
                branch_id=transfer.from_branch_id,
            ) from None

    @classmethod
    def _complete(cls, transfer: StockTransfer, performed_by: str) -> None:
        """Deduct the source and credit the destination, locked in pk order."""
        source = cls._source_record(transfer)
        defaults = {field: getattr(source, field) for field in INHERITED_FIELDS}
        destination, _ = get_or_create_record(
            transfer.product_id, transfer.to_branch_id, defaults,
        )

        locked = lock_records(source, destination)
        source, destination = locked[source.pk], locked[destination.pk]

        reference = Reference.stock_transfer(transfer.pk)
        label = transfer.transfer_number or f"#{transfer.pk}"
        deduct_locked(
            source, transfer.quantity, MovementType.TRANSFER_OUT,
            reference=reference,
            reason=f"Transfer to {transfer.to_branch_id}",
            notes=transfer.notes,
            performed_by=performed_by,
            metadata={'transfer': label},
        )
        credit_locked(
            destination, transfer.quantity, MovementType.TRANSFER_IN,
            reference=reference,
            reason=f"Transfer from {transfer.from_branch_id}",
            notes=transfer.notes,
            performed_by=performed_by,
            metadata={'transfer': label},
        )

    # ══════════════════════════════════════════════════════════════
    # SHORTCUTS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def approve_transfer(cls, transfer_id, performed_by: str = '') -> StockTransfer:
        return cls.advance_transfer(transfer_id, TransferStatus.IN_TRANSIT, performed_by)

    @classmethod
    def receive_transfer(cls, transfer_id, performed_by: str = '') -> StockTransfer:
        return cls.advance_transfer(transfer_id, TransferStatus.COMPLETED, performed_by)

    @classmethod
    def cancel_transfer(cls, transfer_id, performed_by: str = '') -> StockTransfer:
        return cls.advance_transfer(transfer_id, TransferStatus.CANCELLED, performed_by)

    @classmethod
    def get_transfer(cls, transfer_id) -> StockTransfer:
        """Raises NotFoundError('TRANSFER_NOT_FOUND')."""
        return _get_transfer(transfer_id)

    @classmethod
    def list_transfers(cls, branch_id=None, status: str | None = None,
                       product_id=None):
        """Transfers newest first, optionally filtered."""
        qs = StockTransfer.objects.all()
        if branch_id is not None:
            qs = qs.involving(str(branch_id))
        if status:
            qs = qs.filter(status=status)
        if product_id is not None:
            qs = qs.filter(product_id=str(product_id))
        return qs
