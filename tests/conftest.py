"""Pytest fixtures for testing"""

import pytest
from datetime import date
from fastapi.testclient import TestClient
from billing_engine.api.main import create_app
from billing_engine.api.dependencies import get_clock
from billing_engine.domain.clock import FixedClock
from billing_engine.domain.models import PayableTarget, TargetKind


@pytest.fixture
def clock() -> FixedClock:
    """Clock frozen on 2024-01-10"""
    return FixedClock(date(2024, 1, 10))


@pytest.fixture
def client(clock: FixedClock) -> TestClient:
    """Create FastAPI test client with a fixed clock"""
    app = create_app()
    app.dependency_overrides[get_clock] = lambda: clock
    return TestClient(app)


@pytest.fixture
def failed_a() -> PayableTarget:
    return PayableTarget(
        target_id="in_failed_a",
        kind=TargetKind.FAILED,
        remaining_cents=3000,  # $30
        sort_date=date(2023, 12, 1),
    )


@pytest.fixture
def failed_b() -> PayableTarget:
    return PayableTarget(
        target_id="in_failed_b",
        kind=TargetKind.FAILED,
        remaining_cents=4000,  # $40
        sort_date=date(2023, 12, 15),
    )


@pytest.fixture
def outstanding() -> PayableTarget:
    return PayableTarget(
        target_id="outstanding",
        kind=TargetKind.OUTSTANDING,
        remaining_cents=2000,  # $20
        sort_date=date(2024, 1, 10),
    )


@pytest.fixture
def draft_c() -> PayableTarget:
    return PayableTarget(
        target_id="in_draft_c",
        kind=TargetKind.DRAFT,
        remaining_cents=1000,  # $10
        sort_date=date(2024, 2, 1),
    )


@pytest.fixture
def mixed_candidates(failed_a, failed_b, outstanding, draft_c) -> list[PayableTarget]:
    """All four target kinds, deliberately out of payment order"""
    return [draft_c, outstanding, failed_b, failed_a]
