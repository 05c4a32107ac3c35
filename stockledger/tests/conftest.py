"""
Pytest fixtures for Stockledger tests.
"""

from decimal import Decimal

import pytest

from stockledger import stock


@pytest.fixture
def record(db):
    """Branch A holds 100 units of SKU-1."""
    return stock.restock(
        'SKU-1', 'branch-a', 100,
        cost_price=Decimal('4.50'),
        selling_price=Decimal('9.90'),
        reorder_point=15,
        reorder_quantity=60,
        supplier_ref='acme',
        performed_by='clerk',
    )


@pytest.fixture
def other_record(db):
    """Branch A holds 10 units of SKU-2."""
    return stock.restock('SKU-2', 'branch-a', 10, selling_price=Decimal('2.00'))


@pytest.fixture
def remote_record(db):
    """Branch B holds 5 units of SKU-1 at its own prices."""
    return stock.restock(
        'SKU-1', 'branch-b', 5,
        cost_price=Decimal('5.00'),
        selling_price=Decimal('11.00'),
    )
