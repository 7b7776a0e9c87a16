"""Payment priority: failed invoices first, then the outstanding balance, then drafts"""

from functools import cmp_to_key
from typing import Iterable, List

from billing_engine.domain.models import PayableTarget, TargetKind

PRIORITY_CLASSES = {
    TargetKind.FAILED: 0,
    TargetKind.OUTSTANDING: 1,
    TargetKind.DRAFT: 2,
}


def priority_class(target: PayableTarget) -> int:
    return PRIORITY_CLASSES[target.kind]


def compare(a: PayableTarget, b: PayableTarget) -> int:
    """
    Order two targets for payment.

    Lower priority class wins; within a class the sooner sort date wins.
    Returns a negative number when ``a`` is paid before ``b``, 0 on a tie.
    """
    key_a = (priority_class(a), a.sort_date)
    key_b = (priority_class(b), b.sort_date)
    return (key_a > key_b) - (key_a < key_b)


def sort_targets(targets: Iterable[PayableTarget]) -> List[PayableTarget]:
    """Targets in payment order; ties keep their input order (sorted() is stable)"""
    return sorted(targets, key=cmp_to_key(compare))
