"""
Tests for read-only stock queries.
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from stockledger import MovementFilter, NotFoundError, Reference, stock
from stockledger.models import MovementType, StockStatus


pytestmark = pytest.mark.django_db


class TestRecordLookup:
    """Tests for get_record / find_record / list_records."""

    def test_get_record(self, record):
        assert stock.get_record('SKU-1', 'branch-a').pk == record.pk

    def test_get_missing_record(self, db):
        with pytest.raises(NotFoundError):
            stock.get_record('SKU-1', 'nowhere')

    def test_find_missing_record(self, db):
        assert stock.find_record('SKU-1', 'nowhere') is None

    def test_list_filters(self, record, other_record, remote_record):
        assert set(stock.list_records(branch_id='branch-a')) == {record, other_record}
        assert set(stock.list_records(product_id='SKU-1')) == {record, remote_record}
        assert list(stock.list_records(branch_id='branch-b', product_id='SKU-1')) == [remote_record]

    def test_list_out_of_stock(self, record, other_record):
        stock.adjust(other_record, -10, 'stocktake')

        assert list(stock.list_records(out_of_stock=True)) == [other_record]


class TestLowStock:
    """Tests for stock.low_stock()."""

    def test_low_stock_emptiest_first(self, record, other_record, remote_record):
        """quantity <= reorder_point, lowest quantity first."""
        stock.adjust(record, -90, 'damage')  # 10 <= 15

        low = list(stock.low_stock())

        assert low == [remote_record, record, other_record]

    def test_low_stock_by_branch(self, record, other_record, remote_record):
        assert list(stock.low_stock(branch_id='branch-a')) == [other_record]

    def test_stock_status(self, record, other_record):
        stock.adjust(other_record, -10, 'stocktake')
        other_record.refresh_from_db()

        assert record.stock_status == StockStatus.IN_STOCK
        assert other_record.stock_status == StockStatus.OUT_OF_STOCK
        assert record.is_low_stock is False


class TestProductSummary:
    """Tests for stock.product_summary()."""

    def test_totals_across_branches(self, record, remote_record):
        stock.reserve(record, 30)

        summary = stock.product_summary('SKU-1')

        assert summary['quantity'] == 105
        assert summary['reserved_quantity'] == 30
        assert summary['available_quantity'] == 75
        assert [b['branch_id'] for b in summary['branches']] == ['branch-a', 'branch-b']
        assert summary['branches'][1]['stock_status'] == StockStatus.LOW_STOCK

    def test_unknown_product(self, db):
        summary = stock.product_summary('SKU-404')

        assert summary['quantity'] == 0
        assert summary['branches'] == []


class TestMovementHistory:
    """Tests for stock.get_movement_history()."""

    def test_newest_first(self, record):
        stock.restock('SKU-1', 'branch-a', 5)
        stock.adjust(record, -1, 'breakage')

        history = list(stock.get_movement_history(MovementFilter(record=record)))

        assert [m.type for m in history] == [
            MovementType.ADJUSTMENT_REMOVE,
            MovementType.RESTOCK,
            MovementType.INITIAL,
        ]

    def test_filter_by_type_and_branch(self, record, remote_record):
        history = stock.get_movement_history(
            MovementFilter(types=(MovementType.INITIAL,), branch_id='branch-b'),
        )

        assert [m.record_id for m in history] == [remote_record.pk]

    def test_filter_by_reference(self, record):
        ref = Reference.sales_order(5)
        stock.deduct(record, 1, reference=ref)
        stock.deduct(record, 1)

        history = list(stock.get_movement_history(MovementFilter(reference=ref)))

        assert len(history) == 1
        assert history[0].reference == ref

    def test_filter_by_performer_and_window(self, record):
        stock.adjust(record, 2, 'recount', performed_by='auditor')
        now = timezone.now()

        assert stock.get_movement_history(MovementFilter(performed_by='auditor')).count() == 1
        assert stock.get_movement_history(MovementFilter(start=now + timedelta(minutes=1))).count() == 0
        assert stock.get_movement_history(
            MovementFilter(start=now - timedelta(hours=1), end=now + timedelta(hours=1)),
        ).count() == 2

    def test_unfiltered(self, record, other_record):
        assert stock.get_movement_history().count() == 2
