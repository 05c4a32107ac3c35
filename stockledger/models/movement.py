"""
Movement model: immutable ledger of quantity changes.
"""

from dataclasses import dataclass

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.conf import ledger_settings
from stockledger.exceptions import ImmutableRecordError, ValidationError
from stockledger.models.enums import MovementType, ReferenceKind


@dataclass(frozen=True)
class Reference:
    """
    Pointer to the external document behind a movement.

    The ledger stores (kind, id) and never dereferences it.
    """

    kind: str
    id: str

    def __post_init__(self):
        if self.kind not in ReferenceKind.values:
            raise ValidationError('INVALID_REFERENCE', kind=str(self.kind))
        if not self.id:
            raise ValidationError('INVALID_REFERENCE', kind=str(self.kind), id=self.id)
        object.__setattr__(self, 'kind', str(self.kind))
        object.__setattr__(self, 'id', str(self.id))

    @classmethod
    def sales_order(cls, order_id) -> 'Reference':
        return cls(ReferenceKind.SALES_ORDER, str(order_id))

    @classmethod
    def service_order(cls, order_id) -> 'Reference':
        return cls(ReferenceKind.SERVICE_ORDER, str(order_id))

    @classmethod
    def stock_transfer(cls, transfer_id) -> 'Reference':
        return cls(ReferenceKind.STOCK_TRANSFER, str(transfer_id))

    def __str__(self) -> str:
        return f"{self.kind}:{self.id}"


class MovementQuerySet(models.QuerySet):
    """QuerySet that refuses bulk changes to the log."""

    def update(self, **kwargs):
        raise ImmutableRecordError(
            message="Movements are immutable. Record a new movement instead."
        )

    def delete(self):
        raise ImmutableRecordError(
            message="Movements are immutable and cannot be deleted."
        )

    def for_reference(self, reference: Reference):
        return self.filter(reference_kind=reference.kind, reference_id=reference.id)


class Movement(models.Model):
    """
    Immutable record of a quantity change on a StockRecord.

    Rules:
    - NEVER update() or delete()
    - Corrections are new movements (adjustments)
    - quantity == new_quantity - old_quantity
    - Written by the reservation protocol in the same transaction
      as the change it describes
    """

    record = models.ForeignKey(
        'stockledger.StockRecord',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Stock record'),
    )

    # Denormalized for history queries
    product_id = models.CharField(max_length=64, db_index=True)
    branch_id = models.CharField(max_length=64, db_index=True)

    type = models.CharField(
        max_length=20,
        choices=MovementType.choices,
        verbose_name=_('Type'),
    )

    quantity = models.IntegerField(
        verbose_name=_('Change'),
        help_text=_('Positive = in, negative = out'),
    )
    old_quantity = models.PositiveIntegerField(verbose_name=_('Quantity before'))
    new_quantity = models.PositiveIntegerField(verbose_name=_('Quantity after'))

    # External reference (order, transfer)
    reference_kind = models.CharField(
        max_length=20,
        choices=ReferenceKind.choices,
        blank=True,
        default='',
    )
    reference_id = models.CharField(max_length=64, blank=True, default='')

    reason = models.CharField(max_length=200, blank=True, default='')
    notes = models.CharField(max_length=500, blank=True, default='')
    supplier_ref = models.CharField(max_length=64, null=True, blank=True)
    performed_by = models.CharField(max_length=64, blank=True, default='')
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    objects = MovementQuerySet.as_manager()

    class Meta:
        verbose_name = _('Movement')
        verbose_name_plural = _('Movements')
        ordering = ['created_at', 'pk']
        indexes = [
            models.Index(fields=['record', 'created_at'], name='stock_move_record_time_idx'),
            models.Index(fields=['type', 'created_at'], name='stock_move_type_time_idx'),
            models.Index(fields=['reference_kind', 'reference_id'], name='stock_move_reference_idx'),
        ]

    @property
    def reference(self) -> Reference | None:
        if not self.reference_kind:
            return None
        return Reference(self.reference_kind, self.reference_id)

    @property
    def movement_number(self) -> str:
        """Display identifier, e.g. SM-2026-000042."""
        prefix = ledger_settings.MOVEMENT_NUMBER_PREFIX
        return f"{prefix}-{self.created_at.year}-{self.pk:06d}"

    def save(self, *args, **kwargs):
        """Insert only."""
        if self.pk:
            raise ImmutableRecordError(
                message="Movements are immutable. Record a new movement instead."
            )
        if self.quantity != self.new_quantity - self.old_quantity:
            raise ValueError(
                f"Movement delta {self.quantity} does not match "
                f"{self.old_quantity} -> {self.new_quantity}"
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordError(
            message="Movements are immutable and cannot be deleted."
        )

    def __str__(self) -> str:
        sign = '+' if self.quantity > 0 else ''
        return f"{sign}{self.quantity} | {self.type} | {self.product_id} @ {self.branch_id}"
