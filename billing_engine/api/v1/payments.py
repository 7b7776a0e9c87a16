"""Payment endpoints - candidate targets, form transitions and final allocation"""

import logging
import time
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from billing_engine.api.dependencies import get_clock, get_request_id
from billing_engine.api.v1.schemas import (
    AllocationPreviewSchema,
    AllocationStateSchema,
    AppliedPaymentSchema,
    CandidatesRequest,
    CandidatesResponse,
    PayableTargetSchema,
    PaymentAllocationRequest,
    PaymentAllocationResponse,
    SelectionEvent,
    SelectionRequest,
    SelectionResponse,
)
from billing_engine.domain import allocation
from billing_engine.domain.candidates import build_candidates, outstanding_balance
from billing_engine.domain.clock import Clock
from billing_engine.domain.exceptions import AllocationError, ValidationError
from billing_engine.domain.models import AllocationState, PayableTarget
from billing_engine.infrastructure.observability.logging import log_allocation
from billing_engine.infrastructure.observability.metrics import record_domain_error, record_payment
from billing_engine.utils.money import to_minor_units

router = APIRouter()


def _require_target_id(event: SelectionEvent) -> str:
    if not event.target_id:
        raise ValidationError(f"{event.type} requires a target_id", field="target_id")
    return event.target_id


def apply_event(
    state: AllocationState,
    candidates: List[PayableTarget],
    event: SelectionEvent,
    currency: str,
) -> AllocationState:
    """Dispatch one form event to its state transition"""
    if event.type == "open":
        return allocation.open_for_target(candidates, _require_target_id(event))
    if event.type == "select":
        return allocation.select_target(state, candidates, _require_target_id(event))
    if event.type == "deselect":
        return allocation.deselect_target(state, candidates, _require_target_id(event))
    if event.type == "toggle":
        return allocation.toggle_target(state, candidates, _require_target_id(event))
    if event.type == "set_amount":
        return allocation.set_amount(state, candidates, to_minor_units(event.amount, currency))
    if event.type == "toggle_mode":
        return allocation.toggle_mode(state, candidates)
    return allocation.reset_state(state, candidates)


@router.post("/payments/candidates", response_model=CandidatesResponse)
def post_candidates(request_body: CandidatesRequest, request: Request, clock: Clock = Depends(get_clock)):
    """
    Payable targets for a customer, in payment order.

    Returns failed invoices, drafts with a balance, and the outstanding
    balance when the contract total exceeds what is paid or billed.
    """
    invoices = [inv.to_domain() for inv in request_body.invoices]
    outstanding = outstanding_balance(invoices, request_body.paid_cents, request_body.contract_total_cents)
    try:
        candidates = build_candidates(invoices, clock, outstanding)
    except ValidationError as e:
        record_domain_error("validation_error")
        logging.warning(f"Invalid invoice records: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=422, detail=e.to_dict())

    return CandidatesResponse(
        outstanding_cents=outstanding,
        candidates=[PayableTargetSchema.from_domain(c) for c in candidates],
    )


@router.post("/payments/selection", response_model=SelectionResponse)
def post_selection(request_body: SelectionRequest, request: Request):
    """Apply one operator action to the payment form and return the new state"""
    request_id = get_request_id(request)
    candidates = [c.to_domain() for c in request_body.candidates]
    currency = request_body.currency.lower()

    try:
        state = apply_event(request_body.state.to_domain(), candidates, request_body.event, currency)
        preview = allocation.preview(state, candidates, currency)
        interactable_ids = allocation.interactable_ids(state, candidates)
    except ValidationError as e:
        record_domain_error("validation_error")
        logging.warning(f"Rejected form event: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=e.to_dict())
    except AllocationError as e:
        record_domain_error("allocation_error")
        logging.warning(f"Stale payment target: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=e.to_dict())

    return SelectionResponse(
        state=AllocationStateSchema.from_domain(state),
        preview=AllocationPreviewSchema.from_domain(preview),
        interactable_ids=interactable_ids,
    )


@router.post("/payments/allocate", response_model=PaymentAllocationResponse)
def post_allocate(request_body: PaymentAllocationRequest, request: Request):
    """
    Final allocation of a payment, ready for the payments API.

    Flow:
    1. Reject non-positive amounts and targets that are no longer payable
    2. Apply the amount in priority order
    3. Report leftover as account credit
    """
    start_time = time.time()
    request_id = get_request_id(request)
    candidates = [c.to_domain() for c in request_body.candidates]

    try:
        payment = allocation.build_payment_request(
            request_body.state.to_domain(),
            candidates,
            currency=request_body.currency.lower(),
            apply_to_all=request_body.apply_to_all,
        )
    except ValidationError as e:
        record_domain_error("validation_error")
        logging.warning(f"Invalid payment: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=e.to_dict())
    except AllocationError as e:
        record_domain_error("allocation_error")
        logging.warning(
            f"Stale payment targets: {e}",
            extra={"request_id": request_id, "missing_ids": list(e.missing_ids)},
        )
        raise HTTPException(status_code=409, detail=e.to_dict())

    record_payment(payment)
    log_allocation(request_id, payment, (time.time() - start_time) * 1000)

    return PaymentAllocationResponse(
        total_cents=payment.total_cents,
        currency=payment.currency,
        allocations=[
            AppliedPaymentSchema(
                target_id=a.target_id,
                kind=a.kind,
                applied_cents=a.applied_cents,
                fully_paid=a.fully_paid,
            )
            for a in payment.allocations
        ],
        leftover_credit_cents=payment.leftover_credit_cents,
        apply_to_all=payment.apply_to_all,
    )
