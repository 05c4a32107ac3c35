"""
Django Stockledger: multi-branch stock ledger and fulfillment engine.

Usage:
    from stockledger import stock, LedgerError

    stock.restock('SKU-1', 'branch-a', 100)
    record = stock.reserve_for_order('SKU-1', 'branch-a', 5)
    record.available_quantity  # 95
"""

_LAZY = {
    'stock': ('stockledger.service', 'Stock'),
    'LedgerError': ('stockledger.exceptions', 'LedgerError'),
    'InsufficientStockError': ('stockledger.exceptions', 'InsufficientStockError'),
    'InsufficientQuantityError': ('stockledger.exceptions', 'InsufficientQuantityError'),
    'InvalidTransitionError': ('stockledger.exceptions', 'InvalidTransitionError'),
    'InvalidTransferError': ('stockledger.exceptions', 'InvalidTransferError'),
    'NotFoundError': ('stockledger.exceptions', 'NotFoundError'),
    'ValidationError': ('stockledger.exceptions', 'ValidationError'),
    'TransientStorageError': ('stockledger.exceptions', 'TransientStorageError'),
    'ImmutableRecordError': ('stockledger.exceptions', 'ImmutableRecordError'),
    'StockRecord': ('stockledger.models.record', 'StockRecord'),
    'Movement': ('stockledger.models.movement', 'Movement'),
    'Reference': ('stockledger.models.movement', 'Reference'),
    'StockTransfer': ('stockledger.models.transfer', 'StockTransfer'),
    'MovementType': ('stockledger.models.enums', 'MovementType'),
    'TransferStatus': ('stockledger.models.enums', 'TransferStatus'),
    'MovementFilter': ('stockledger.services.queries', 'MovementFilter'),
    'OrderLine': ('stockledger.services.fulfillment', 'OrderLine'),
}


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name in _LAZY:
        from importlib import import_module
        module, attr = _LAZY[name]
        return getattr(import_module(module), attr)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = list(_LAZY)

__version__ = '0.1.0'
