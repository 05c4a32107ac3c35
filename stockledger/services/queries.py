"""
Stock queries: read-only operations.

All methods are classmethod on Stock and use no locking.
"""

from dataclasses import dataclass, field
from datetime import datetime

from django.db.models import Sum
from django.db.models.functions import Coalesce

from stockledger.exceptions import NotFoundError
from stockledger.models.movement import Movement, Reference
from stockledger.models.record import StockRecord


@dataclass(frozen=True)
class MovementFilter:
    """
    Criteria for movement history. Unset fields don't filter.

    start is inclusive, end is exclusive.
    """

    record: StockRecord | int | None = None
    product_id: str | None = None
    branch_id: str | None = None
    types: tuple[str, ...] = field(default_factory=tuple)
    reference: Reference | None = None
    performed_by: str | None = None
    start: datetime | None = None
    end: datetime | None = None


class StockQueries:
    """Read-only stock query methods."""

    @classmethod
    def find_record(cls, product_id, branch_id) -> StockRecord | None:
        """Record for (product, branch), or None."""
        return StockRecord.objects.filter(
            product_id=str(product_id), branch_id=str(branch_id),
        ).first()

    @classmethod
    def get_record(cls, product_id, branch_id) -> StockRecord:
        """
        Record for (product, branch).

        Raises:
            NotFoundError('RECORD_NOT_FOUND'): no record exists
        """
        record = cls.find_record(product_id, branch_id)
        if record is None:
            raise NotFoundError(
                'RECORD_NOT_FOUND', product_id=product_id, branch_id=branch_id,
            )
        return record

    @classmethod
    def list_records(cls, branch_id=None, product_id=None,
                     low_stock: bool = False, out_of_stock: bool = False):
        """List records with filters."""
        qs = StockRecord.objects.all()

        if branch_id is not None:
            qs = qs.for_branch(str(branch_id))

        if product_id is not None:
            qs = qs.for_product(str(product_id))

        if low_stock:
            qs = qs.low_stock()

        if out_of_stock:
            qs = qs.out_of_stock()

        return qs

    @classmethod
    def low_stock(cls, branch_id=None):
        """Records at or below their reorder point, emptiest first."""
        return cls.list_records(branch_id=branch_id, low_stock=True).order_by(
            'quantity', 'branch_id', 'product_id',
        )

    @classmethod
    def product_summary(cls, product_id) -> dict:
        """
        Stock of one product across all branches.

        Returns:
            {
                'product_id': ...,
                'quantity': total on hand,
                'reserved_quantity': total reserved,
                'available_quantity': total available,
                'branches': [{'branch_id', 'quantity', 'reserved_quantity',
                              'available_quantity', 'stock_status'}, ...],
            }
        """
        records = list(StockRecord.objects.for_product(str(product_id)))
        totals = StockRecord.objects.for_product(str(product_id)).aggregate(
            quantity=Coalesce(Sum('quantity'), 0),
            reserved_quantity=Coalesce(Sum('reserved_quantity'), 0),
        )
        return {
            'product_id': str(product_id),
            'quantity': totals['quantity'],
            'reserved_quantity': totals['reserved_quantity'],
            'available_quantity': totals['quantity'] - totals['reserved_quantity'],
            'branches': [
                {
                    'branch_id': r.branch_id,
                    'quantity': r.quantity,
                    'reserved_quantity': r.reserved_quantity,
                    'available_quantity': r.available_quantity,
                    'stock_status': r.stock_status,
                }
                for r in records
            ],
        }

    @classmethod
    def get_movement_history(cls, filter: MovementFilter | None = None):
        """Movements matching filter, newest first."""
        filter = filter or MovementFilter()
        qs = Movement.objects.all()

        if filter.record is not None:
            qs = qs.filter(record_id=getattr(filter.record, 'pk', filter.record))
        if filter.product_id is not None:
            qs = qs.filter(product_id=str(filter.product_id))
        if filter.branch_id is not None:
            qs = qs.filter(branch_id=str(filter.branch_id))
        if filter.types:
            qs = qs.filter(type__in=list(filter.types))
        if filter.reference is not None:
            qs = qs.for_reference(filter.reference)
        if filter.performed_by is not None:
            qs = qs.filter(performed_by=filter.performed_by)
        if filter.start is not None:
            qs = qs.filter(created_at__gte=filter.start)
        if filter.end is not None:
            qs = qs.filter(created_at__lt=filter.end)

        return qs.order_by('-created_at', '-pk')
