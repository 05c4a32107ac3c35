"""
State transition tables.

One data structure for every status machine that touches stock: stock
transfers, and the sales/service orders of the order collaborators.

Usage:
    from stockledger.transitions import TRANSFER_TRANSITIONS

    TRANSFER_TRANSITIONS.check('pending', 'completed')  # InvalidTransitionError
    TRANSFER_TRANSITIONS.allowed('pending')             # {'in-transit', 'cancelled'}
"""

from collections.abc import Iterable, Mapping

from stockledger.exceptions import InvalidTransitionError
from stockledger.models.enums import (
    SalesOrderStatus,
    ServiceOrderStatus,
    TransferStatus,
)


class TransitionTable:
    """
    Immutable map of state -> states reachable in one step.

    Every state must appear as a key; terminal states map to nothing.
    """

    def __init__(self, name: str, transitions: Mapping[str, Iterable[str]]):
        self.name = name
        self._transitions = {
            str(state): frozenset(str(t) for t in targets)
            for state, targets in transitions.items()
        }
        unknown = set().union(*self._transitions.values()) - set(self._transitions)
        if unknown:
            raise ValueError(
                f"{name}: targets without an entry: {', '.join(sorted(unknown))}"
            )

    @property
    def states(self) -> frozenset[str]:
        return frozenset(self._transitions)

    def allowed(self, current: str) -> frozenset[str]:
        """States reachable from current (empty for terminal or unknown states)."""
        return self._transitions.get(str(current), frozenset())

    def can(self, current: str, target: str) -> bool:
        return str(target) in self.allowed(current)

    def is_terminal(self, state: str) -> bool:
        return str(state) in self._transitions and not self._transitions[str(state)]

    def check(self, current: str, target: str) -> None:
        """Raise InvalidTransitionError unless current -> target is allowed."""
        if not self.can(current, target):
            raise InvalidTransitionError(str(current), str(target), workflow=self.name)

    def __repr__(self) -> str:
        return f"TransitionTable({self.name!r})"


TRANSFER_TRANSITIONS = TransitionTable('transfer', {
    TransferStatus.PENDING: [TransferStatus.IN_TRANSIT, TransferStatus.CANCELLED],
    TransferStatus.IN_TRANSIT: [TransferStatus.COMPLETED, TransferStatus.CANCELLED],
    TransferStatus.COMPLETED: [],
    TransferStatus.CANCELLED: [],
})

SALES_ORDER_TRANSITIONS = TransitionTable('sales order', {
    SalesOrderStatus.PENDING: [SalesOrderStatus.PROCESSING, SalesOrderStatus.CANCELLED],
    SalesOrderStatus.PROCESSING: [SalesOrderStatus.COMPLETED, SalesOrderStatus.CANCELLED],
    SalesOrderStatus.COMPLETED: [],
    SalesOrderStatus.CANCELLED: [],
})

SERVICE_ORDER_TRANSITIONS = TransitionTable('service order', {
    ServiceOrderStatus.PENDING: [ServiceOrderStatus.SCHEDULED, ServiceOrderStatus.CANCELLED],
    ServiceOrderStatus.SCHEDULED: [ServiceOrderStatus.IN_PROGRESS, ServiceOrderStatus.CANCELLED],
    ServiceOrderStatus.IN_PROGRESS: [ServiceOrderStatus.COMPLETED, ServiceOrderStatus.CANCELLED],
    ServiceOrderStatus.COMPLETED: [],
    ServiceOrderStatus.CANCELLED: [],
})
