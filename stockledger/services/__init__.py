"""
Stock services: modular organization of stock operations.

    from stockledger.services import StockReservations, StockTransfers, StockFulfillment, StockQueries
"""

from stockledger.services.fulfillment import OrderLine, StockFulfillment
from stockledger.services.queries import MovementFilter, StockQueries
from stockledger.services.reservations import StockReservations
from stockledger.services.transfers import StockTransfers

__all__ = [
    'StockReservations',
    'StockTransfers',
    'StockFulfillment',
    'StockQueries',
    'MovementFilter',
    'OrderLine',
]
