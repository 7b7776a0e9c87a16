"""Turn fetched invoice records into payable targets"""

from datetime import date
from typing import Iterable, List, Optional

from billing_engine.domain.clock import Clock
from billing_engine.domain.exceptions import ValidationError
from billing_engine.domain.models import InvoiceRecord, PayableTarget, TargetKind
from billing_engine.domain.priority import sort_targets

OUTSTANDING_TARGET_ID = "outstanding"


def is_failed(invoice: InvoiceRecord) -> bool:
    """Open invoice with a balance and at least one unsuccessful charge attempt"""
    return invoice.status == "open" and invoice.amount_remaining_cents > 0 and invoice.attempt_count > 0


def is_draft(invoice: InvoiceRecord) -> bool:
    return invoice.status == "draft"


def effective_remaining(invoice: InvoiceRecord) -> int:
    """
    What is still owed on an invoice.

    Drafts are not finalized yet, so the processor does not track partial
    payments on them; those are subtracted from amount due here.
    """
    if is_draft(invoice):
        return max(0, invoice.amount_due_cents - invoice.total_paid_cents)
    return invoice.amount_remaining_cents


def sort_date(invoice: InvoiceRecord) -> date:
    """Failed: due date. Draft: when it will be finalized. Creation date as last resort"""
    if is_draft(invoice):
        return (
            invoice.scheduled_finalize_date
            or invoice.auto_finalize_date
            or invoice.due_date
            or invoice.created
        )
    return invoice.due_date or invoice.created


def outstanding_balance(
    invoices: Iterable[InvoiceRecord],
    paid_cents: int,
    total_cents: Optional[int] = None,
) -> int:
    """
    Contracted total not yet paid, scheduled as drafts or sitting in failed invoices.

    outstanding = total - paid - scheduled - failed, floored at 0. Without a
    contracted total everything is already billed, so the balance is 0.
    """
    invoices = list(invoices)
    scheduled = sum(inv.amount_due_cents for inv in invoices if is_draft(inv))
    failed = sum(inv.amount_remaining_cents for inv in invoices if is_failed(inv))

    if total_cents is None:
        total_cents = paid_cents + scheduled + failed

    return max(0, total_cents - paid_cents - scheduled - failed)


def target_from_invoice(invoice: InvoiceRecord) -> Optional[PayableTarget]:
    if is_failed(invoice):
        kind = TargetKind.FAILED
    elif is_draft(invoice) and effective_remaining(invoice) > 0:
        kind = TargetKind.DRAFT
    else:
        return None

    metadata = {"status": invoice.status, "attempt_count": str(invoice.attempt_count)}
    if is_draft(invoice) and invoice.total_paid_cents:
        metadata["total_paid_cents"] = str(invoice.total_paid_cents)

    return PayableTarget(
        target_id=invoice.invoice_id,
        kind=kind,
        remaining_cents=effective_remaining(invoice),
        sort_date=sort_date(invoice),
        label=invoice.number,
        metadata=metadata,
    )


def build_candidates(
    invoices: Iterable[InvoiceRecord],
    clock: Clock,
    outstanding_cents: int = 0,
) -> List[PayableTarget]:
    """
    Payable targets for a customer, in payment order.

    Failed and draft invoices become targets; open invoices without a failed
    attempt are left to automatic collection. A positive outstanding balance
    adds one synthetic target dated today.

    Raises:
        ValidationError: An invoice id appears twice or collides with the
            outstanding target id
    """
    invoices = list(invoices)
    seen = {OUTSTANDING_TARGET_ID}
    for inv in invoices:
        if inv.invoice_id in seen:
            raise ValidationError("duplicate invoice id", field="invoice_id", value=inv.invoice_id)
        seen.add(inv.invoice_id)

    targets = [t for t in (target_from_invoice(inv) for inv in invoices) if t is not None]

    if outstanding_cents > 0:
        targets.append(
            PayableTarget(
                target_id=OUTSTANDING_TARGET_ID,
                kind=TargetKind.OUTSTANDING,
                remaining_cents=outstanding_cents,
                sort_date=clock.today(),
                label="Outstanding balance",
            )
        )

    return sort_targets(targets)
