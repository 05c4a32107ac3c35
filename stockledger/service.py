"""
Stock Service: The single public interface for all stock operations.

Usage:
    from stockledger import stock, InsufficientStockError

    record = stock.restock('SKU-1', 'branch-a', 100, cost_price=Decimal('4.50'))
    stock.reserve(record, 30)
    stock.deduct(record, 30, reference=Reference.sales_order(981))
"""

from stockledger.services.audit import verify_ledger, verify_record
from stockledger.services.fulfillment import StockFulfillment
from stockledger.services.queries import StockQueries
from stockledger.services.reservations import StockReservations
from stockledger.services.transfers import StockTransfers


class Stock(StockReservations, StockTransfers, StockFulfillment, StockQueries):
    """
    Single interface for all stock operations.

    Parameter convention: (record or product_id/branch_id, quantity, ...)

    IMPORTANT: All state-changing methods run in one atomic transaction,
    lock the stock records they touch and are retried on storage conflicts
    when called outside an enclosing transaction. Nested inside a caller's
    transaction.atomic() they join it, and the caller owns the outcome.
    """

    # ══════════════════════════════════════════════════════════════
    # AUDIT
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def verify_record(cls, record):
        """Inconsistencies between one record and its movement log."""
        return verify_record(record)

    @classmethod
    def verify_ledger(cls, branch_id=None):
        """Inconsistencies across all records (or one branch)."""
        return verify_ledger(branch_id)
