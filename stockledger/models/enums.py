"""
Enums for Stockledger models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class MovementType(models.TextChoices):
    """
    Kind of quantity-affecting event recorded in the movement log.

    Additions: INITIAL, RESTOCK, ADJUSTMENT_ADD, SALE_CANCEL (zero delta), TRANSFER_IN
    Removals:  ADJUSTMENT_REMOVE, SALE, SERVICE_USE, TRANSFER_OUT
    """
    INITIAL = 'initial', _('Initial stock')
    RESTOCK = 'restock', _('Restock')
    ADJUSTMENT_ADD = 'adjustment_add', _('Adjustment (add)')
    ADJUSTMENT_REMOVE = 'adjustment_remove', _('Adjustment (remove)')
    SALE = 'sale', _('Sale')
    SALE_CANCEL = 'sale_cancel', _('Sale cancelled')
    SERVICE_USE = 'service_use', _('Service parts')
    TRANSFER_OUT = 'transfer_out', _('Transfer out')
    TRANSFER_IN = 'transfer_in', _('Transfer in')


class ReferenceKind(models.TextChoices):
    """Kind of external document a movement points at."""
    SALES_ORDER = 'sales_order', _('Sales order')
    SERVICE_ORDER = 'service_order', _('Service order')
    STOCK_TRANSFER = 'stock_transfer', _('Stock transfer')


class StockStatus(models.TextChoices):
    """Derived status of a stock record."""
    OUT_OF_STOCK = 'out-of-stock', _('Out of stock')
    LOW_STOCK = 'low-stock', _('Low stock')
    IN_STOCK = 'in-stock', _('In stock')


class TransferStatus(models.TextChoices):
    """Stock transfer lifecycle status."""
    PENDING = 'pending', _('Pending')           # Created, source reserved
    IN_TRANSIT = 'in-transit', _('In transit')  # Approved and shipped
    COMPLETED = 'completed', _('Completed')     # Received, stock moved
    CANCELLED = 'cancelled', _('Cancelled')     # Source reservation released


class SalesOrderStatus(models.TextChoices):
    """Status of a sales order (owned by the order collaborator)."""
    PENDING = 'pending', _('Pending')
    PROCESSING = 'processing', _('Processing')
    COMPLETED = 'completed', _('Completed')
    CANCELLED = 'cancelled', _('Cancelled')


class ServiceOrderStatus(models.TextChoices):
    """Status of a service order (owned by the order collaborator)."""
    PENDING = 'pending', _('Pending')
    SCHEDULED = 'scheduled', _('Scheduled')
    IN_PROGRESS = 'in-progress', _('In progress')
    COMPLETED = 'completed', _('Completed')
    CANCELLED = 'cancelled', _('Cancelled')
