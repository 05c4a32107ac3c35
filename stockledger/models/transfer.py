"""
StockTransfer model: moving one product between two branches.
"""

from django.db import models
from django.db.models import F, Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.conf import ledger_settings
from stockledger.models.enums import TransferStatus


class StockTransferQuerySet(models.QuerySet):
    """QuerySet with convenience filters for transfers."""

    def involving(self, branch_id):
        """Transfers leaving or arriving at branch_id."""
        return self.filter(Q(from_branch_id=branch_id) | Q(to_branch_id=branch_id))

    def open(self):
        return self.filter(status__in=[TransferStatus.PENDING, TransferStatus.IN_TRANSIT])


class StockTransfer(models.Model):
    """
    Transfer of a fixed quantity of one product between two branches.

    LIFECYCLE:

        pending ──approve──► in-transit ──receive──► completed
           │                     │
           └──────cancel─────────┴──────────────────► cancelled

    - pending:    source reservation of `quantity` is held
    - in-transit: still only reserved at source
    - completed:  source deducted, destination credited
    - cancelled:  source reservation released

    Transitions are validated by stockledger.transitions.TRANSFER_TRANSITIONS.
    """

    transfer_number = models.CharField(
        max_length=32,
        unique=True,
        null=True,
        blank=True,
        verbose_name=_('Transfer number'),
    )

    product_id = models.CharField(max_length=64, db_index=True, verbose_name=_('Product'))
    from_branch_id = models.CharField(max_length=64, verbose_name=_('From branch'))
    to_branch_id = models.CharField(max_length=64, verbose_name=_('To branch'))
    quantity = models.PositiveIntegerField(verbose_name=_('Quantity'))

    status = models.CharField(
        max_length=20,
        choices=TransferStatus.choices,
        default=TransferStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )

    initiated_by = models.CharField(max_length=64, blank=True, default='')
    approved_by = models.CharField(max_length=64, blank=True, default='')
    received_by = models.CharField(max_length=64, blank=True, default='')
    cancelled_by = models.CharField(max_length=64, blank=True, default='')

    shipped_at = models.DateTimeField(null=True, blank=True)
    received_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    notes = models.CharField(max_length=500, blank=True, default='')

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockTransferQuerySet.as_manager()

    class Meta:
        verbose_name = _('Stock transfer')
        verbose_name_plural = _('Stock transfers')
        ordering = ['-created_at', '-pk']
        constraints = [
            models.CheckConstraint(
                condition=~Q(from_branch_id=F('to_branch_id')),
                name='transfer_branches_differ',
            ),
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name='transfer_quantity_positive',
            ),
        ]
        indexes = [
            models.Index(fields=['from_branch_id', 'to_branch_id'], name='stock_transfer_route_idx'),
        ]

    @property
    def is_open(self) -> bool:
        return self.status in (TransferStatus.PENDING, TransferStatus.IN_TRANSIT)

    @property
    def moved_quantity(self) -> int:
        """Quantity already credited at the destination."""
        return self.quantity if self.status == TransferStatus.COMPLETED else 0

    @property
    def held_quantity(self) -> int:
        """Quantity still reserved at the source."""
        return self.quantity if self.is_open else 0

    def build_transfer_number(self) -> str:
        prefix = ledger_settings.TRANSFER_NUMBER_PREFIX
        return f"{prefix}-{self.created_at.year}-{self.pk:06d}"

    def __str__(self) -> str:
        number = self.transfer_number or f"#{self.pk}"
        return (
            f"{number}: {self.quantity}x {self.product_id} "
            f"{self.from_branch_id} -> {self.to_branch_id} [{self.status}]"
        )
