"""
Stockledger Models.

Core models for branch stock:
- StockRecord: On-hand and reserved quantity per (product, branch)
- Movement: Immutable ledger of quantity changes
- StockTransfer: Inter-branch transfer workflow
"""

from stockledger.models.enums import (
    MovementType,
    ReferenceKind,
    SalesOrderStatus,
    ServiceOrderStatus,
    StockStatus,
    TransferStatus,
)
from stockledger.models.movement import Movement, Reference
from stockledger.models.record import StockRecord
from stockledger.models.transfer import StockTransfer

__all__ = [
    'MovementType',
    'ReferenceKind',
    'SalesOrderStatus',
    'ServiceOrderStatus',
    'StockStatus',
    'TransferStatus',
    'StockRecord',
    'Movement',
    'Reference',
    'StockTransfer',
]
