"""
Tests for inter-branch transfers.
"""

from decimal import Decimal

import pytest
from django.db import IntegrityError

from stockledger import (
    InsufficientStockError,
    InvalidTransferError,
    InvalidTransitionError,
    NotFoundError,
    Reference,
    stock,
)
from stockledger.models import Movement, MovementType, StockRecord, StockTransfer, TransferStatus


pytestmark = pytest.mark.django_db


class TestCreateTransfer:
    """Tests for stock.create_transfer()."""

    def test_create_reserves_source(self, record):
        """A new transfer is pending and holds its quantity at the source."""
        transfer = stock.create_transfer('SKU-1', 'branch-a', 'branch-b', 20, initiated_by='ana')
        record.refresh_from_db()

        assert transfer.status == TransferStatus.PENDING
        assert transfer.initiated_by == 'ana'
        assert transfer.transfer_number == f"TR-{transfer.created_at.year}-{transfer.pk:06d}"
        assert record.quantity == 100
        assert record.reserved_quantity == 20

    def test_same_branch_rejected(self, record):
        """Source and destination must differ; nothing is reserved."""
        with pytest.raises(InvalidTransferError) as exc:
            stock.create_transfer('SKU-1', 'branch-a', 'branch-a', 20)

        assert exc.value.code == 'SAME_BRANCH'
        record.refresh_from_db()
        assert record.reserved_quantity == 0
        assert not StockTransfer.objects.exists()

    @pytest.mark.parametrize('quantity', [0, -3])
    def test_non_positive_quantity(self, record, quantity):
        """Transfers move at least one unit."""
        with pytest.raises(InvalidTransferError) as exc:
            stock.create_transfer('SKU-1', 'branch-a', 'branch-b', quantity)

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_insufficient_source(self, record):
        """No transfer is created when the source cannot spare it."""
        stock.reserve(record, 90)

        with pytest.raises(InsufficientStockError):
            stock.create_transfer('SKU-1', 'branch-a', 'branch-b', 20)

        assert not StockTransfer.objects.exists()
        record.refresh_from_db()
        assert record.reserved_quantity == 90

    def test_missing_source_record(self, db):
        """Source branch must carry the product."""
        with pytest.raises(NotFoundError) as exc:
            stock.create_transfer('SKU-1', 'branch-a', 'branch-b', 1)

        assert exc.value.code == 'RECORD_NOT_FOUND'


class TestAdvanceTransfer:
    """Tests for stock.advance_transfer() and its shortcuts."""

    def test_full_lifecycle(self, record):
        """pending -> in-transit -> completed moves stock and inherits prices."""
        transfer = stock.create_transfer('SKU-1', 'branch-a', 'branch-b', 20)

        transfer = stock.advance_transfer(transfer.pk, TransferStatus.IN_TRANSIT, 'boss')
        record.refresh_from_db()
        assert transfer.status == TransferStatus.IN_TRANSIT
        assert transfer.approved_by == 'boss'
        assert transfer.shipped_at is not None
        assert (record.quantity, record.reserved_quantity) == (100, 20)

        transfer = stock.advance_transfer(transfer.pk, TransferStatus.COMPLETED, 'receiver')
        record.refresh_from_db()
        destination = StockRecord.objects.get(product_id='SKU-1', branch_id='branch-b')

        assert transfer.status == TransferStatus.COMPLETED
        assert transfer.received_by == 'receiver'
        assert transfer.received_at is not None
        assert (record.quantity, record.reserved_quantity) == (80, 0)
        assert destination.quantity == 20
        assert destination.cost_price == Decimal('4.50')
        assert destination.selling_price == Decimal('9.90')
        assert destination.reorder_point == 15
        assert destination.reorder_quantity == 60
        assert destination.supplier_ref == 'acme'

    def test_completion_logs_both_sides(self, record):
        """transfer_out at the source, transfer_in at the destination."""
        transfer = stock.create_transfer('SKU-1', 'branch-a', 'branch-b', 20)
        stock.approve_transfer(transfer.pk)
        stock.receive_transfer(transfer.pk)

        ref = Reference.stock_transfer(transfer.pk)
        out, in_ = Movement.objects.for_reference(ref).order_by('pk')

        assert (out.type, out.branch_id, out.quantity) == (MovementType.TRANSFER_OUT, 'branch-a', -20)
        assert (in_.type, in_.branch_id, in_.quantity) == (MovementType.TRANSFER_IN, 'branch-b', 20)
        assert in_.old_quantity == 0

    def test_existing_destination_keeps_prices(self, record, remote_record):
        """Inheritance only applies to newly created destinations."""
        transfer = stock.create_transfer('SKU-1', 'branch-a', 'branch-b', 20)
        stock.approve_transfer(transfer)
        stock.receive_transfer(transfer)
        remote_record.refresh_from_db()

        assert remote_record.quantity == 25
        assert remote_record.cost_price == Decimal('5.00')
        assert remote_record.selling_price == Decimal('11.00')

    @pytest.mark.parametrize('approve_first', [False, True])
    def test_cancel_releases_reservation(self, record, approve_first):
        """Cancelling from pending or in-transit releases the source."""
        transfer = stock.create_transfer('SKU-1', 'branch-a', 'branch-b', 20)
        if approve_first:
            stock.approve_transfer(transfer.pk)
        movements = Movement.objects.count()

        transfer = stock.cancel_transfer(transfer.pk, 'boss')
        record.refresh_from_db()

        assert transfer.status == TransferStatus.CANCELLED
        assert transfer.cancelled_by == 'boss'
        assert transfer.cancelled_at is not None
        assert (record.quantity, record.reserved_quantity) == (100, 0)
        assert Movement.objects.count() == movements

    def test_skip_in_transit_rejected(self, record):
        """pending cannot jump straight to completed."""
        transfer = stock.create_transfer('SKU-1', 'branch-a', 'branch-b', 20)

        with pytest.raises(InvalidTransitionError) as exc:
            stock.receive_transfer(transfer.pk)

        assert exc.value.current == 'pending'
        assert exc.value.requested == 'completed'
        record.refresh_from_db()
        assert record.quantity == 100

    @pytest.mark.parametrize('target', [
        TransferStatus.PENDING,
        TransferStatus.IN_TRANSIT,
        TransferStatus.COMPLETED,
        TransferStatus.CANCELLED,
    ])
    def test_terminal_states_are_final(self, record, target):
        """Completed transfers never change status again."""
        transfer = stock.create_transfer('SKU-1', 'branch-a', 'branch-b', 20)
        stock.approve_transfer(transfer.pk)
        stock.receive_transfer(transfer.pk)

        with pytest.raises(InvalidTransitionError):
            stock.advance_transfer(transfer.pk, target)

    def test_cancelled_cannot_be_received(self, record):
        """A cancelled transfer stays cancelled."""
        transfer = stock.create_transfer('SKU-1', 'branch-a', 'branch-b', 20)
        stock.cancel_transfer(transfer.pk)

        with pytest.raises(InvalidTransitionError):
            stock.approve_transfer(transfer.pk)

    def test_unknown_transfer(self, db):
        """Advancing a missing transfer raises NotFoundError."""
        with pytest.raises(NotFoundError) as exc:
            stock.approve_transfer(999)

        assert exc.value.code == 'TRANSFER_NOT_FOUND'

    def test_conservation(self, record):
        """Moved plus still-held equals the requested quantity at every step."""
        transfer = stock.create_transfer('SKU-1', 'branch-a', 'branch-b', 20)

        def check():
            transfer.refresh_from_db()
            source = StockRecord.objects.get(product_id='SKU-1', branch_id='branch-a')
            destination = StockRecord.objects.filter(
                product_id='SKU-1', branch_id='branch-b',
            ).first()
            moved = destination.quantity if destination else 0
            assert moved == transfer.moved_quantity
            assert source.reserved_quantity == transfer.held_quantity
            assert transfer.moved_quantity + transfer.held_quantity == transfer.quantity
            assert source.quantity + moved == 100

        check()
        stock.approve_transfer(transfer.pk)
        check()
        stock.receive_transfer(transfer.pk)
        check()

    def test_failed_transfer_in_log_undoes_completion(self, record, remote_record, monkeypatch):
        """If the TRANSFER_IN movement can't be written, neither side changes."""
        transfer = stock.create_transfer('SKU-1', 'branch-a', 'branch-b', 20)
        stock.approve_transfer(transfer)
        create = Movement.objects.create

        def failing_create(**kwargs):
            if kwargs['type'] == MovementType.TRANSFER_IN:
                raise IntegrityError('movement insert failed')
            return create(**kwargs)

        monkeypatch.setattr(Movement.objects, 'create', failing_create)

        with pytest.raises(IntegrityError):
            stock.receive_transfer(transfer)

        record.refresh_from_db()
        remote_record.refresh_from_db()
        transfer.refresh_from_db()
        assert (record.quantity, record.reserved_quantity) == (100, 20)
        assert remote_record.quantity == 5
        assert transfer.status == TransferStatus.IN_TRANSIT
        assert not Movement.objects.for_reference(Reference.stock_transfer(transfer.pk)).exists()


class TestTransferQueries:
    """Tests for stock.get_transfer() and stock.list_transfers()."""

    def test_get_transfer(self, record):
        transfer = stock.create_transfer('SKU-1', 'branch-a', 'branch-b', 5)

        assert stock.get_transfer(transfer.pk) == transfer

    def test_list_by_branch_and_status(self, record, remote_record):
        """Branch filter matches either side of the transfer."""
        outgoing = stock.create_transfer('SKU-1', 'branch-a', 'branch-b', 5)
        incoming = stock.create_transfer('SKU-1', 'branch-b', 'branch-a', 2)
        stock.cancel_transfer(incoming.pk)

        assert set(stock.list_transfers(branch_id='branch-b')) == {outgoing, incoming}
        assert list(stock.list_transfers(status=TransferStatus.CANCELLED)) == [incoming]
        assert list(stock.list_transfers(branch_id='branch-z')) == []
