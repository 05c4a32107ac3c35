"""
Ledger audit: replay the movement log against the records.

Read-only: findings are reported, never corrected. A correction is an
adjustment recorded by an operator like any other movement.
"""

import logging
from dataclasses import dataclass

from stockledger.models.movement import Movement
from stockledger.models.record import StockRecord

logger = logging.getLogger('stockledger')


@dataclass(frozen=True)
class LedgerIssue:
    """One inconsistency between a record and its movement log."""

    record_id: int
    code: str
    detail: str

    def __str__(self) -> str:
        return f"record {self.record_id}: {self.code}: {self.detail}"


def verify_record(record: StockRecord) -> list[LedgerIssue]:
    """
    Check one record against its movements.

    Codes:
        RESERVED_EXCEEDS_QUANTITY  reserved_quantity > quantity
        CHAIN_START                first movement does not start from zero
        CHAIN_BROKEN               old_quantity != previous new_quantity
        DELTA_MISMATCH             quantity != new_quantity - old_quantity
        CHAIN_END                  last new_quantity != record quantity
    """
    issues = []

    def report(code, detail):
        issues.append(LedgerIssue(record.pk, code, detail))

    if record.reserved_quantity > record.quantity:
        report(
            'RESERVED_EXCEEDS_QUANTITY',
            f"reserved {record.reserved_quantity} > quantity {record.quantity}",
        )

    # pk order is insertion order, and inserts happen under the record lock
    running = 0
    movements = Movement.objects.filter(record_id=record.pk).order_by('pk')
    for index, movement in enumerate(movements.iterator()):
        if movement.old_quantity != running:
            if index == 0:
                report('CHAIN_START', f"movement {movement.pk} starts at {movement.old_quantity}")
            else:
                report(
                    'CHAIN_BROKEN',
                    f"movement {movement.pk} starts at {movement.old_quantity}, "
                    f"previous ended at {running}",
                )
        if movement.quantity != movement.new_quantity - movement.old_quantity:
            report(
                'DELTA_MISMATCH',
                f"movement {movement.pk} delta {movement.quantity} for "
                f"{movement.old_quantity} -> {movement.new_quantity}",
            )
        running = movement.new_quantity

    if running != record.quantity:
        report('CHAIN_END', f"log ends at {running}, record holds {record.quantity}")

    return issues


def verify_ledger(branch_id=None) -> list[LedgerIssue]:
    """Check every record, optionally for one branch."""
    records = StockRecord.objects.all()
    if branch_id is not None:
        records = records.for_branch(str(branch_id))

    issues = []
    for record in records.iterator():
        found = verify_record(record)
        for issue in found:
            logger.warning(
                "stock.audit.issue",
                extra={"record_id": issue.record_id, "code": issue.code,
                       "detail": issue.detail},
            )
        issues.extend(found)

    logger.info(
        "stock.audit",
        extra={"branch_id": str(branch_id or ''), "issues": len(issues)},
    )
    return issues
