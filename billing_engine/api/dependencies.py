"""Dependency injection for FastAPI endpoints"""

from fastapi import Request

from billing_engine.domain.clock import Clock, SystemClock


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_clock() -> Clock:
    """Provide the clock used for date defaults; tests override it with a FixedClock"""
    return SystemClock()
