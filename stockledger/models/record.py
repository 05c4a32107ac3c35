"""
StockRecord model: per (product, branch) inventory ledger row.
"""

from decimal import Decimal

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _

from stockledger.conf import ledger_settings
from stockledger.models.enums import StockStatus


def default_reorder_point() -> int:
    return ledger_settings.DEFAULT_REORDER_POINT


def default_reorder_quantity() -> int:
    return ledger_settings.DEFAULT_REORDER_QUANTITY


class StockRecordQuerySet(models.QuerySet):
    """QuerySet with convenience filters for stock records."""

    def for_branch(self, branch_id):
        return self.filter(branch_id=branch_id)

    def for_product(self, product_id):
        return self.filter(product_id=product_id)

    def low_stock(self):
        """At or below reorder point (includes out of stock)."""
        return self.filter(quantity__lte=F('reorder_point'))

    def out_of_stock(self):
        return self.filter(quantity=0)


class StockRecord(models.Model):
    """
    Inventory of one product at one branch.

    Invariants:
    - Exactly one record per (product_id, branch_id)
    - 0 <= reserved_quantity <= quantity
    - quantity only changes through the reservation protocol
      (stockledger.services.reservations), which writes a Movement
      in the same transaction

    Prices and reorder settings are branch-specific and independent
    of any catalog price.
    """

    # Opaque identifiers owned by the catalog / branch collaborators
    product_id = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name=_('Product'),
    )
    branch_id = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name=_('Branch'),
    )

    quantity = models.PositiveIntegerField(
        default=0,
        verbose_name=_('On hand'),
    )
    reserved_quantity = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Reserved'),
        help_text=_('Held for in-flight orders and transfers'),
    )

    cost_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Cost price'),
    )
    selling_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Selling price'),
    )
    reorder_point = models.PositiveIntegerField(
        default=default_reorder_point,
        verbose_name=_('Reorder point'),
    )
    reorder_quantity = models.PositiveIntegerField(
        default=default_reorder_quantity,
        verbose_name=_('Reorder quantity'),
    )
    supplier_ref = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        verbose_name=_('Supplier'),
    )
    location = models.CharField(
        max_length=100,
        blank=True,
        default='',
        verbose_name=_('Location'),
        help_text=_('Shelf, bin or aisle'),
    )

    last_restocked_at = models.DateTimeField(null=True, blank=True)
    last_restocked_by = models.CharField(max_length=64, blank=True, default='')

    # Bumped by every guarded update
    version = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockRecordQuerySet.as_manager()

    class Meta:
        verbose_name = _('Stock record')
        verbose_name_plural = _('Stock records')
        ordering = ['branch_id', 'product_id']
        constraints = [
            models.UniqueConstraint(
                fields=['product_id', 'branch_id'],
                name='unique_stock_record_per_branch',
            ),
            models.CheckConstraint(
                condition=Q(reserved_quantity__lte=F('quantity')),
                name='stock_reserved_within_quantity',
            ),
            models.CheckConstraint(
                condition=Q(cost_price__gte=0) & Q(selling_price__gte=0),
                name='stock_prices_not_negative',
            ),
        ]
        indexes = [
            models.Index(fields=['branch_id', 'quantity'], name='stock_record_branch_qty_idx'),
        ]

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def available_quantity(self) -> int:
        """Free to be newly reserved."""
        return self.quantity - self.reserved_quantity

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.reorder_point

    @property
    def stock_status(self) -> str:
        if self.quantity == 0:
            return StockStatus.OUT_OF_STOCK
        if self.quantity <= self.reorder_point:
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK

    def has_sufficient_stock(self, requested: int) -> bool:
        return self.available_quantity >= requested

    def __str__(self) -> str:
        return (
            f"{self.product_id} @ {self.branch_id}: "
            f"{self.quantity} ({self.reserved_quantity} reserved)"
        )
