"""Schedule endpoints - preview multi-payment invoices before they are created"""

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request

from billing_engine.api.dependencies import get_clock, get_request_id
from billing_engine.api.v1.schemas import (
    CycleCountRequest,
    CycleCountResponse,
    OccurrenceSchema,
    ScheduleDefaultsResponse,
    ScheduleRequest,
    ScheduleResponse,
)
from billing_engine.config import settings
from billing_engine.domain.clock import Clock
from billing_engine.domain.exceptions import ValidationError
from billing_engine.domain.models import Cadence, ScheduleSpec
from billing_engine.domain.schedule import (
    build_schedule,
    default_start_date,
    partition_occurrences,
    resolve_cycle_count,
)
from billing_engine.infrastructure.observability.logging import log_schedule
from billing_engine.infrastructure.observability.metrics import record_domain_error, record_schedule

router = APIRouter()


def _check_cycle_limit(cycle_count: int) -> None:
    if cycle_count > settings.max_cycle_count:
        raise ValidationError(
            f"schedule cannot exceed {settings.max_cycle_count} payments",
            field="end_date",
            value=cycle_count,
        )


@router.get("/schedules/defaults", response_model=ScheduleDefaultsResponse)
def get_schedule_defaults(clock: Clock = Depends(get_clock)):
    """Values the multi-payment form starts from"""
    return ScheduleDefaultsResponse(
        cadence=Cadence(settings.default_cadence),
        cycle_count=settings.default_cycle_count,
        currency=settings.default_currency,
        start_date=default_start_date(clock),
    )


@router.post("/schedules/cycles", response_model=CycleCountResponse)
def post_cycle_count(request_body: CycleCountRequest, request: Request):
    """Number of payments between a start and an end date"""
    try:
        cycle_count = resolve_cycle_count(request_body.cadence, request_body.start_date, request_body.end_date)
    except ValidationError as e:
        record_domain_error("validation_error")
        logging.warning(f"Invalid cycle request: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=422, detail=e.to_dict())

    return CycleCountResponse(cadence=request_body.cadence, cycle_count=cycle_count)


@router.post("/schedules/preview", response_model=ScheduleResponse)
def post_schedule_preview(
    request_body: ScheduleRequest,
    request: Request,
    clock: Clock = Depends(get_clock),
):
    """
    Build the dated, balanced payments for a new schedule.

    Flow:
    1. Resolve cycle count (explicit, or from the end date)
    2. Generate occurrences; the last one absorbs the rounding remainder
    3. Flag each occurrence as charged now or scheduled for later
    """
    start_time = time.time()
    request_id = get_request_id(request)

    spec = ScheduleSpec(
        cadence=request_body.cadence,
        total_cents=request_body.total_cents,
        currency=request_body.currency.lower(),
        start_date=request_body.start_date,
        cycle_count=request_body.cycle_count,
        end_date=request_body.end_date,
        custom_dates=request_body.custom_dates,
        first_payment_number=request_body.first_payment_number,
    )

    try:
        if spec.cadence.is_recurring and spec.cycle_count is None and spec.end_date is not None:
            _check_cycle_limit(resolve_cycle_count(spec.cadence, spec.start_date, spec.end_date))
        schedule = build_schedule(spec)
    except ValidationError as e:
        record_domain_error("validation_error")
        logging.warning(f"Invalid schedule request: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=e.to_dict())

    due_now, _ = partition_occurrences(schedule.occurrences, clock)
    due_now_indexes = {o.index for o in due_now}

    record_schedule(schedule)
    log_schedule(request_id, schedule, (time.time() - start_time) * 1000)

    return ScheduleResponse(
        cadence=schedule.cadence,
        currency=schedule.currency,
        total_cents=schedule.total_cents,
        per_occurrence_cents=schedule.per_occurrence_cents,
        cycle_count=schedule.cycle_count,
        start_date=schedule.start_date,
        custom_dates=schedule.custom_dates,
        end_date=schedule.end_date,
        occurrences=[
            OccurrenceSchema(
                index=o.index,
                number=o.number,
                label=o.label,
                due_date=o.due_date,
                amount_cents=o.amount_cents,
                status="due_now" if o.index in due_now_indexes else "scheduled",
            )
            for o in schedule.occurrences
        ],
    )
