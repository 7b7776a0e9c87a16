"""Multi-payment schedule generation for recurring and custom-date invoices"""

from datetime import date
from typing import Iterable, List, Optional, Tuple

from billing_engine.domain.clock import Clock
from billing_engine.domain.exceptions import ValidationError
from billing_engine.domain.models import Cadence, GeneratedSchedule, ScheduleOccurrence, ScheduleSpec
from billing_engine.utils.date_utils import add_days, add_months, days_between, months_between

INTERVAL_DAYS = {
    Cadence.WEEKLY: 7,
    Cadence.BI_WEEKLY: 14,
}


def resolve_cycle_count(cadence: Cadence, start_date: Optional[date], end_date: Optional[date]) -> int:
    """
    Number of payments needed to cover start_date..end_date (both inclusive).

    Weekly and Bi-Weekly count whole intervals plus the first payment.
    Monthly counts calendar months touched, so 2024-01-15..2024-04-15 is 4.
    An end date on or before the start date still yields one payment.

    Raises:
        ValidationError: Custom cadence (use explicit dates), or a missing date
    """
    if cadence is Cadence.CUSTOM:
        raise ValidationError(
            "cycle count is not defined for custom dates; pass the dates instead",
            field="cadence",
            value=cadence.value,
        )
    if start_date is None:
        raise ValidationError("start date is required", field="start_date")
    if end_date is None:
        raise ValidationError("end date is required", field="end_date")

    if end_date <= start_date:
        return 1

    if cadence is Cadence.MONTHLY:
        return max(1, months_between(start_date, end_date) + 1)

    return days_between(start_date, end_date) // INTERVAL_DAYS[cadence] + 1


def split_amount(total_cents: int, count: int) -> List[int]:
    """
    Split a total into ``count`` integer shares that sum to the total exactly.

    Every share gets the floor division; the last share absorbs the
    remainder, e.g. 1000 / 3 -> [333, 333, 334].
    """
    if count < 1:
        raise ValidationError("cycle count must be at least 1", field="cycle_count", value=count)

    base_amount = total_cents // count
    remainder = total_cents % count

    return [base_amount + (remainder if i == count - 1 else 0) for i in range(count)]


def occurrence_date(cadence: Cadence, start_date: date, index: int) -> date:
    """Due date of the index-th recurring payment, always computed from the start date"""
    if cadence is Cadence.MONTHLY:
        return add_months(start_date, index)
    return add_days(start_date, index * INTERVAL_DAYS[cadence])


def _sorted_custom_dates(custom_dates: Iterable[date]) -> List[date]:
    dates = sorted(custom_dates)
    if not dates:
        raise ValidationError("at least one date is required", field="custom_dates")

    for previous, current in zip(dates, dates[1:]):
        if previous == current:
            raise ValidationError("custom dates must be unique", field="custom_dates", value=current.isoformat())

    return dates


def generate_occurrences(
    cadence: Cadence,
    total_cents: int,
    start_date: Optional[date] = None,
    cycle_count: Optional[int] = None,
    custom_dates: Optional[Iterable[date]] = None,
    first_payment_number: int = 1,
) -> List[ScheduleOccurrence]:
    """
    Spread a total amount over dated payments.

    Requirements:
    - Weekly / Bi-Weekly: start_date + i*7 / i*14 days
    - Monthly: start_date + i calendar months, clamped at month end
    - Custom: the given dates sorted ascending; cycle_count is ignored
    - Amounts sum to total_cents exactly, last payment absorbs the remainder

    Args:
        cadence: Recurrence pattern
        total_cents: Total to split, must be positive
        start_date: First due date (recurring cadences)
        cycle_count: Number of payments (recurring cadences)
        custom_dates: Explicit due dates (custom cadence)
        first_payment_number: Display number of the first payment

    Raises:
        ValidationError: Any invalid input; no partial schedule is returned
    """
    if total_cents <= 0:
        raise ValidationError("total amount must be positive", field="total_cents", value=total_cents)
    if first_payment_number < 1:
        raise ValidationError(
            "first payment number must be at least 1",
            field="first_payment_number",
            value=first_payment_number,
        )

    if cadence is Cadence.CUSTOM:
        dates = _sorted_custom_dates(custom_dates or [])
    else:
        if start_date is None:
            raise ValidationError("start date is required for recurring schedules", field="start_date")
        if cycle_count is None or cycle_count < 1:
            raise ValidationError("cycle count must be at least 1", field="cycle_count", value=cycle_count)
        try:
            dates = [occurrence_date(cadence, start_date, i) for i in range(cycle_count)]
        except (ValueError, OverflowError):
            raise ValidationError(
                "schedule runs past the last supported date",
                field="start_date",
                value=start_date.isoformat(),
            )

    amounts = split_amount(total_cents, len(dates))

    return [
        ScheduleOccurrence(
            index=i,
            due_date=due_date,
            amount_cents=amount,
            number=first_payment_number + i,
        )
        for i, (due_date, amount) in enumerate(zip(dates, amounts))
    ]


def resolve_schedule_end_date(occurrences: List[ScheduleOccurrence]) -> date:
    """Day after the last payment: the schedule is fully scheduled through this date"""
    if not occurrences:
        raise ValidationError("schedule has no occurrences", field="occurrences")
    last_due = max(o.due_date for o in occurrences)
    try:
        return add_days(last_due, 1)
    except OverflowError:
        raise ValidationError(
            "schedule ends on the last supported date",
            field="occurrences",
            value=last_due.isoformat(),
        )


def build_schedule(spec: ScheduleSpec) -> GeneratedSchedule:
    """
    Main entry point: turn operator input into a schedule ready for submission.

    Recurring schedules take either an explicit cycle_count or an end_date
    from which the count is derived, never both.
    """
    if spec.cadence is Cadence.CUSTOM:
        occurrences = generate_occurrences(
            spec.cadence,
            spec.total_cents,
            custom_dates=spec.custom_dates,
            first_payment_number=spec.first_payment_number,
        )
        return GeneratedSchedule(
            cadence=spec.cadence,
            currency=spec.currency,
            total_cents=spec.total_cents,
            occurrences=occurrences,
            end_date=resolve_schedule_end_date(occurrences),
            start_date=occurrences[0].due_date,
            custom_dates=[o.due_date for o in occurrences],
        )

    if spec.cycle_count is not None and spec.end_date is not None:
        raise ValidationError("give either a cycle count or an end date, not both", field="end_date")
    if spec.cycle_count is None and spec.end_date is None:
        raise ValidationError("a cycle count or an end date is required", field="cycle_count")

    cycle_count = spec.cycle_count
    if cycle_count is None:
        cycle_count = resolve_cycle_count(spec.cadence, spec.start_date, spec.end_date)

    occurrences = generate_occurrences(
        spec.cadence,
        spec.total_cents,
        start_date=spec.start_date,
        cycle_count=cycle_count,
        first_payment_number=spec.first_payment_number,
    )

    return GeneratedSchedule(
        cadence=spec.cadence,
        currency=spec.currency,
        total_cents=spec.total_cents,
        occurrences=occurrences,
        end_date=resolve_schedule_end_date(occurrences),
        cycle_count=cycle_count,
        start_date=spec.start_date,
    )


def default_start_date(clock: Clock) -> date:
    """Start date pre-filled on a new schedule"""
    return clock.today()


def partition_occurrences(
    occurrences: List[ScheduleOccurrence], clock: Clock
) -> Tuple[List[ScheduleOccurrence], List[ScheduleOccurrence]]:
    """
    Split a schedule into payments due now and payments still upcoming.

    Due now: due today or earlier, charged on submission.
    Upcoming: due after today, created as scheduled drafts.
    """
    today = clock.today()
    due_now = [o for o in occurrences if o.due_date <= today]
    upcoming = [o for o in occurrences if o.due_date > today]
    return due_now, upcoming
