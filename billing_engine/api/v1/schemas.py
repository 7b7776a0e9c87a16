"""Pydantic schemas for API request/response validation"""

from datetime import date
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from billing_engine.config import settings
from billing_engine.domain.models import (
    AllocationResult,
    AllocationState,
    Cadence,
    InteractionMode,
    InvoiceRecord,
    PayableTarget,
    TargetKind,
)


# --- Schedules ---


class ScheduleDefaultsResponse(BaseModel):
    """Response for GET /v1/schedules/defaults"""

    cadence: Cadence
    cycle_count: int
    currency: str
    start_date: date


class CycleCountRequest(BaseModel):
    """Request body for POST /v1/schedules/cycles"""

    cadence: Cadence
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class CycleCountResponse(BaseModel):
    cadence: Cadence
    cycle_count: int


class ScheduleRequest(BaseModel):
    """Request body for POST /v1/schedules/preview"""

    cadence: Cadence
    total_cents: int = Field(..., description="Total to split across payments, in minor units")
    currency: str = Field(default_factory=lambda: settings.default_currency, min_length=3, max_length=3)
    start_date: Optional[date] = None
    cycle_count: Optional[int] = Field(None, le=settings.max_cycle_count)
    end_date: Optional[date] = None
    custom_dates: List[date] = Field(default_factory=list, max_length=settings.max_cycle_count)
    first_payment_number: int = 1


class OccurrenceSchema(BaseModel):
    """Single payment in a generated schedule"""

    index: int
    number: int
    label: str
    due_date: date
    amount_cents: int
    status: Literal["due_now", "scheduled"]


class ScheduleResponse(BaseModel):
    """Response for POST /v1/schedules/preview"""

    cadence: Cadence
    currency: str
    total_cents: int
    per_occurrence_cents: int
    cycle_count: Optional[int] = None
    start_date: Optional[date] = None
    custom_dates: List[date] = []
    end_date: date
    occurrences: List[OccurrenceSchema]


# --- Payments ---


class PayableTargetSchema(BaseModel):
    """Obligation that can receive a payment"""

    target_id: str = Field(..., min_length=1)
    kind: TargetKind
    remaining_cents: int = Field(..., ge=0)
    sort_date: date
    label: Optional[str] = None
    metadata: Dict[str, str] = {}

    def to_domain(self) -> PayableTarget:
        return PayableTarget(
            target_id=self.target_id,
            kind=self.kind,
            remaining_cents=self.remaining_cents,
            sort_date=self.sort_date,
            label=self.label,
            metadata=dict(self.metadata),
        )

    @classmethod
    def from_domain(cls, target: PayableTarget) -> "PayableTargetSchema":
        return cls(
            target_id=target.target_id,
            kind=target.kind,
            remaining_cents=target.remaining_cents,
            sort_date=target.sort_date,
            label=target.label,
            metadata=dict(target.metadata),
        )


class AllocationStateSchema(BaseModel):
    """Payment form state as held by the client between events"""

    mode: InteractionMode = InteractionMode.SELECTION_DRIVEN
    selected_ids: List[str] = []
    amount_cents: int = Field(0, ge=0)
    primary_id: Optional[str] = Field(None, description="Target the form was opened for; always paid first")

    def to_domain(self) -> AllocationState:
        return AllocationState(
            mode=self.mode,
            selected_ids=tuple(self.selected_ids),
            amount_cents=self.amount_cents,
            primary_id=self.primary_id,
        )

    @classmethod
    def from_domain(cls, state: AllocationState) -> "AllocationStateSchema":
        return cls(
            mode=state.mode,
            selected_ids=list(state.selected_ids),
            amount_cents=state.amount_cents,
            primary_id=state.primary_id,
        )


class InvoiceRecordSchema(BaseModel):
    """Invoice fields needed to derive payable targets"""

    invoice_id: str = Field(..., min_length=1)
    status: Literal["draft", "open", "paid", "void", "uncollectible"]
    amount_due_cents: int = Field(..., ge=0)
    amount_remaining_cents: int = Field(..., ge=0)
    created: date
    attempt_count: int = Field(0, ge=0)
    due_date: Optional[date] = None
    scheduled_finalize_date: Optional[date] = None
    auto_finalize_date: Optional[date] = None
    total_paid_cents: int = Field(0, ge=0)
    number: Optional[str] = None

    def to_domain(self) -> InvoiceRecord:
        return InvoiceRecord(**self.model_dump())


class CandidatesRequest(BaseModel):
    """Request body for POST /v1/payments/candidates"""

    invoices: List[InvoiceRecordSchema]
    paid_cents: int = Field(0, ge=0, description="Successful payments so far, net of refunds")
    contract_total_cents: Optional[int] = Field(None, ge=0)


class CandidatesResponse(BaseModel):
    outstanding_cents: int
    candidates: List[PayableTargetSchema]


class SelectionEvent(BaseModel):
    """One operator action on the payment form"""

    type: Literal["open", "select", "deselect", "toggle", "set_amount", "toggle_mode", "reset"]
    target_id: Optional[str] = None
    amount: Optional[str] = Field(None, description="Amount as typed, in major units, e.g. '35.00'")


class SelectionRequest(BaseModel):
    """Request body for POST /v1/payments/selection"""

    candidates: List[PayableTargetSchema]
    state: AllocationStateSchema = AllocationStateSchema()
    event: SelectionEvent
    currency: str = Field(default_factory=lambda: settings.default_currency, min_length=3, max_length=3)


class TargetAllocationSchema(BaseModel):
    target_id: str
    kind: TargetKind
    remaining_before_cents: int
    applied_cents: int
    remaining_after_cents: int


class AllocationPreviewSchema(BaseModel):
    total_cents: int
    applied_cents: int
    leftover_credit_cents: int
    allocations: List[TargetAllocationSchema]

    @classmethod
    def from_domain(cls, result: AllocationResult) -> "AllocationPreviewSchema":
        return cls(
            total_cents=result.total_cents,
            applied_cents=result.applied_cents,
            leftover_credit_cents=result.leftover_credit_cents,
            allocations=[
                TargetAllocationSchema(
                    target_id=a.target_id,
                    kind=a.kind,
                    remaining_before_cents=a.remaining_before_cents,
                    applied_cents=a.applied_cents,
                    remaining_after_cents=a.remaining_after_cents,
                )
                for a in result.allocations
            ],
        )


class SelectionResponse(BaseModel):
    """Response for POST /v1/payments/selection"""

    state: AllocationStateSchema
    preview: AllocationPreviewSchema
    interactable_ids: List[str]


class PaymentAllocationRequest(BaseModel):
    """Request body for POST /v1/payments/allocate"""

    candidates: List[PayableTargetSchema]
    state: AllocationStateSchema
    currency: str = Field(default_factory=lambda: settings.default_currency, min_length=3, max_length=3)
    apply_to_all: bool = False


class AppliedPaymentSchema(BaseModel):
    target_id: str
    kind: TargetKind
    applied_cents: int
    fully_paid: bool


class PaymentAllocationResponse(BaseModel):
    """Response for POST /v1/payments/allocate"""

    total_cents: int
    currency: str
    allocations: List[AppliedPaymentSchema]
    leftover_credit_cents: int
    apply_to_all: bool
