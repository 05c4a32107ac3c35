"""
Tests for the ledger audit and the verify_stock_ledger command.
"""

from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from stockledger import stock
from stockledger.models import Movement, MovementType, StockRecord


pytestmark = pytest.mark.django_db


def _busy_day(record):
    stock.reserve(record, 30)
    stock.deduct(record, 30)
    stock.restock('SKU-1', 'branch-a', 10)
    stock.adjust(record, -150, 'flood')
    stock.restock('SKU-1', 'branch-a', 3)


class TestVerifyRecord:
    """Tests for stock.verify_record()."""

    def test_clean_history(self, record):
        """A ledger built through the API replays exactly."""
        _busy_day(record)
        record.refresh_from_db()

        assert stock.verify_record(record) == []

    def test_audit_is_idempotent(self, record, other_record):
        """Auditing twice reports the same and changes nothing."""
        _busy_day(record)
        record.refresh_from_db()
        snapshot = list(StockRecord.objects.values_list('pk', 'quantity', 'reserved_quantity', 'version'))

        first = stock.verify_ledger()
        second = stock.verify_ledger()

        assert first == second == []
        assert list(StockRecord.objects.values_list('pk', 'quantity', 'reserved_quantity', 'version')) == snapshot

    def test_quantity_changed_outside_ledger(self, record):
        """A raw quantity write shows up as a chain end mismatch."""
        StockRecord.objects.filter(pk=record.pk).update(quantity=140)
        record.refresh_from_db()

        issues = stock.verify_record(record)

        assert [i.code for i in issues] == ['CHAIN_END']
        assert issues[0].record_id == record.pk

    def test_broken_chain(self, record):
        """A movement that doesn't continue from the previous one is reported."""
        Movement.objects.create(
            record=record, product_id=record.product_id, branch_id=record.branch_id,
            type=MovementType.RESTOCK, quantity=5, old_quantity=40, new_quantity=45,
        )

        codes = [i.code for i in stock.verify_record(record)]

        assert codes == ['CHAIN_BROKEN', 'CHAIN_END']

    def test_chain_start(self, db):
        """The first movement of a record must start from zero."""
        record = stock.get_or_create('SKU-9', 'branch-c')
        Movement.objects.create(
            record=record, product_id='SKU-9', branch_id='branch-c',
            type=MovementType.INITIAL, quantity=5, old_quantity=3, new_quantity=8,
        )

        codes = [i.code for i in stock.verify_record(record)]

        assert codes == ['CHAIN_START', 'CHAIN_END']

    def test_reserved_above_quantity(self, record):
        """Reported even though the database refuses to store it."""
        record.reserved_quantity = record.quantity + 1

        codes = [i.code for i in stock.verify_record(record)]

        assert codes == ['RESERVED_EXCEEDS_QUANTITY']

    def test_ledger_scoped_to_branch(self, record, remote_record):
        StockRecord.objects.filter(pk=remote_record.pk).update(quantity=99)

        assert stock.verify_ledger(branch_id='branch-a') == []
        assert [i.record_id for i in stock.verify_ledger(branch_id='branch-b')] == [remote_record.pk]


class TestVerifyCommand:
    """Tests for `manage.py verify_stock_ledger`."""

    def test_consistent(self, record):
        out = StringIO()
        call_command('verify_stock_ledger', stdout=out)

        assert 'Ledger consistent' in out.getvalue()

    def test_inconsistent_exits_with_error(self, record):
        StockRecord.objects.filter(pk=record.pk).update(quantity=1)
        err = StringIO()

        with pytest.raises(CommandError) as exc:
            call_command('verify_stock_ledger', '--branch', 'branch-a', stderr=err)

        assert exc.value.returncode == 1
        assert 'CHAIN_END' in err.getvalue()
