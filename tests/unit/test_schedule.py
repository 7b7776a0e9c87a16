"""Unit tests for payment schedule generation"""

import pytest
from datetime import date
from billing_engine.domain.clock import FixedClock
from billing_engine.domain.exceptions import ValidationError
from billing_engine.domain.models import Cadence, ScheduleSpec
from billing_engine.domain.schedule import (
    build_schedule,
    default_start_date,
    generate_occurrences,
    partition_occurrences,
    resolve_cycle_count,
    resolve_schedule_end_date,
    split_amount,
)


def _dates(occurrences):
    return [o.due_date for o in occurrences]


def test_weekly_dates_seven_days_apart():
    occurrences = generate_occurrences(Cadence.WEEKLY, 40000, start_date=date(2024, 1, 1), cycle_count=4)

    assert _dates(occurrences) == [
        date(2024, 1, 1),
        date(2024, 1, 8),
        date(2024, 1, 15),
        date(2024, 1, 22),
    ]


def test_bi_weekly_dates_fourteen_days_apart():
    occurrences = generate_occurrences(Cadence.BI_WEEKLY, 40000, start_date=date(2024, 1, 1), cycle_count=3)

    assert _dates(occurrences) == [date(2024, 1, 1), date(2024, 1, 15), date(2024, 1, 29)]


def test_monthly_dates_clamp_to_month_end_without_drifting():
    """Jan 31 start: Feb clamps to the 29th but March is back on the 31st"""
    occurrences = generate_occurrences(Cadence.MONTHLY, 40000, start_date=date(2024, 1, 31), cycle_count=4)

    assert _dates(occurrences) == [
        date(2024, 1, 31),
        date(2024, 2, 29),
        date(2024, 3, 31),
        date(2024, 4, 30),
    ]


def test_split_amount_last_absorbs_remainder():
    """$10.00 over 3 payments -> 3.33, 3.33, 3.34"""
    assert split_amount(1000, 3) == [333, 333, 334]
    assert split_amount(1000, 4) == [250, 250, 250, 250]
    assert split_amount(2, 3) == [0, 0, 2]


def test_occurrence_amounts_sum_to_total_exactly():
    for count in range(1, 13):
        occurrences = generate_occurrences(Cadence.MONTHLY, 1000, start_date=date(2024, 1, 1), cycle_count=count)

        assert len(occurrences) == count
        assert sum(o.amount_cents for o in occurrences) == 1000


def test_resolve_cycle_count_monthly():
    assert resolve_cycle_count(Cadence.MONTHLY, date(2024, 1, 15), date(2024, 4, 15)) == 4
    # Calendar months touched, not 30-day spans
    assert resolve_cycle_count(Cadence.MONTHLY, date(2024, 1, 31), date(2024, 2, 1)) == 2


def test_resolve_cycle_count_weekly_and_bi_weekly():
    assert resolve_cycle_count(Cadence.WEEKLY, date(2024, 1, 1), date(2024, 1, 22)) == 4
    assert resolve_cycle_count(Cadence.WEEKLY, date(2024, 1, 1), date(2024, 1, 21)) == 3
    assert resolve_cycle_count(Cadence.BI_WEEKLY, date(2024, 1, 1), date(2024, 1, 29)) == 3
    assert resolve_cycle_count(Cadence.BI_WEEKLY, date(2024, 1, 1), date(2024, 1, 14)) == 1


def test_resolve_cycle_count_end_not_after_start_is_one():
    assert resolve_cycle_count(Cadence.WEEKLY, date(2024, 1, 10), date(2024, 1, 10)) == 1
    assert resolve_cycle_count(Cadence.MONTHLY, date(2024, 3, 1), date(2024, 1, 1)) == 1


def test_resolve_cycle_count_rejects_custom_and_missing_dates():
    with pytest.raises(ValidationError) as exc_info:
        resolve_cycle_count(Cadence.CUSTOM, date(2024, 1, 1), date(2024, 2, 1))
    assert exc_info.value.field == "cadence"

    with pytest.raises(ValidationError):
        resolve_cycle_count(Cadence.WEEKLY, None, date(2024, 2, 1))

    with pytest.raises(ValidationError):
        resolve_cycle_count(Cadence.WEEKLY, date(2024, 1, 1), None)


def test_custom_dates_sorted_and_cycle_count_ignored():
    occurrences = generate_occurrences(
        Cadence.CUSTOM,
        1000,
        cycle_count=10,
        custom_dates=[date(2024, 3, 1), date(2024, 1, 5), date(2024, 2, 20)],
    )

    assert _dates(occurrences) == [date(2024, 1, 5), date(2024, 2, 20), date(2024, 3, 1)]
    assert [o.amount_cents for o in occurrences] == [333, 333, 334]


def test_custom_dates_must_be_unique():
    with pytest.raises(ValidationError) as exc_info:
        generate_occurrences(Cadence.CUSTOM, 1000, custom_dates=[date(2024, 1, 5), date(2024, 1, 5)])
    assert exc_info.value.value == "2024-01-05"


@pytest.mark.parametrize(
    "kwargs, field",
    [
        ({"cadence": Cadence.MONTHLY, "total_cents": 0, "start_date": date(2024, 1, 1), "cycle_count": 3}, "total_cents"),
        ({"cadence": Cadence.MONTHLY, "total_cents": -5, "start_date": date(2024, 1, 1), "cycle_count": 3}, "total_cents"),
        ({"cadence": Cadence.MONTHLY, "total_cents": 1000, "start_date": date(2024, 1, 1), "cycle_count": 0}, "cycle_count"),
        ({"cadence": Cadence.WEEKLY, "total_cents": 1000, "start_date": None, "cycle_count": 3}, "start_date"),
        ({"cadence": Cadence.CUSTOM, "total_cents": 1000, "custom_dates": []}, "custom_dates"),
        (
            {"cadence": Cadence.WEEKLY, "total_cents": 1000, "start_date": date(2024, 1, 1), "cycle_count": 2, "first_payment_number": 0},
            "first_payment_number",
        ),
    ],
)
def test_generate_occurrences_validation(kwargs, field):
    with pytest.raises(ValidationError) as exc_info:
        generate_occurrences(**kwargs)
    assert exc_info.value.field == field


def test_occurrences_numbered_from_first_payment_number():
    occurrences = generate_occurrences(
        Cadence.WEEKLY, 3000, start_date=date(2024, 1, 1), cycle_count=3, first_payment_number=4
    )

    assert [o.index for o in occurrences] == [0, 1, 2]
    assert [o.number for o in occurrences] == [4, 5, 6]
    assert occurrences[0].label == "Payment 4"


def test_resolve_schedule_end_date_is_day_after_last_payment():
    occurrences = generate_occurrences(Cadence.MONTHLY, 3000, start_date=date(2024, 1, 31), cycle_count=2)
    assert resolve_schedule_end_date(occurrences) == date(2024, 3, 1)

    with pytest.raises(ValidationError):
        resolve_schedule_end_date([])


def test_build_schedule_derives_cycle_count_from_end_date():
    spec = ScheduleSpec(
        cadence=Cadence.MONTHLY,
        total_cents=100000,
        currency="usd",
        start_date=date(2024, 1, 15),
        end_date=date(2024, 4, 15),
    )

    schedule = build_schedule(spec)

    assert schedule.cycle_count == 4
    assert [o.amount_cents for o in schedule.occurrences] == [25000, 25000, 25000, 25000]
    assert schedule.per_occurrence_cents == 25000
    assert schedule.start_date == date(2024, 1, 15)
    assert schedule.end_date == date(2024, 4, 16)
    assert schedule.custom_dates == []


def test_build_schedule_custom_dates():
    spec = ScheduleSpec(
        cadence=Cadence.CUSTOM,
        total_cents=1000,
        currency="usd",
        custom_dates=[date(2024, 2, 1), date(2024, 1, 20)],
    )

    schedule = build_schedule(spec)

    assert schedule.cycle_count is None
    assert schedule.start_date == date(2024, 1, 20)
    assert schedule.custom_dates == [date(2024, 1, 20), date(2024, 2, 1)]
    assert schedule.end_date == date(2024, 2, 2)
    assert sum(o.amount_cents for o in schedule.occurrences) == 1000


def test_build_schedule_requires_exactly_one_of_cycle_count_and_end_date():
    both = ScheduleSpec(
        cadence=Cadence.WEEKLY,
        total_cents=1000,
        currency="usd",
        start_date=date(2024, 1, 1),
        cycle_count=2,
        end_date=date(2024, 2, 1),
    )
    neither = ScheduleSpec(cadence=Cadence.WEEKLY, total_cents=1000, currency="usd", start_date=date(2024, 1, 1))

    with pytest.raises(ValidationError):
        build_schedule(both)
    with pytest.raises(ValidationError):
        build_schedule(neither)


def test_partition_occurrences_uses_clock():
    occurrences = generate_occurrences(Cadence.WEEKLY, 4000, start_date=date(2024, 1, 3), cycle_count=4)
    clock = FixedClock(date(2024, 1, 10))

    due_now, upcoming = partition_occurrences(occurrences, clock)

    assert _dates(due_now) == [date(2024, 1, 3), date(2024, 1, 10)]
    assert _dates(upcoming) == [date(2024, 1, 17), date(2024, 1, 24)]

    clock.advance(7)
    due_now, upcoming = partition_occurrences(occurrences, clock)
    assert len(due_now) == 3
    assert len(upcoming) == 1


def test_default_start_date_is_today(clock):
    assert default_start_date(clock) == date(2024, 1, 10)


@pytest.mark.parametrize("cadence", [Cadence.MONTHLY, Cadence.WEEKLY])
def test_schedule_past_last_supported_date_rejected(cadence):
    with pytest.raises(ValidationError) as exc_info:
        generate_occurrences(cadence, 1000, start_date=date(9999, 12, 1), cycle_count=6)

    assert exc_info.value.field == "start_date"


def test_end_date_after_last_supported_date_rejected():
    occurrences = generate_occurrences(Cadence.CUSTOM, 1000, custom_dates=[date(9999, 12, 31)])

    with pytest.raises(ValidationError):
        resolve_schedule_end_date(occurrences)
