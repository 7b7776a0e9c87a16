"""Domain models - pure Python dataclasses representing billing entities"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Tuple


class TargetKind(str, Enum):
    """What kind of obligation a payment can be applied to"""

    FAILED = "failed"
    OUTSTANDING = "outstanding"
    DRAFT = "draft"


class Cadence(str, Enum):
    """Recurrence pattern of a payment schedule"""

    WEEKLY = "Weekly"
    BI_WEEKLY = "Bi-Weekly"
    MONTHLY = "Monthly"
    CUSTOM = "Dates"

    @property
    def is_recurring(self) -> bool:
        return self is not Cadence.CUSTOM


class InteractionMode(str, Enum):
    """Who drives the payment form: the selected targets or the entered amount"""

    SELECTION_DRIVEN = "selection"
    AMOUNT_DRIVEN = "amount"


@dataclass
class PayableTarget:
    """Obligation that can receive (part of) a payment"""

    target_id: str
    kind: TargetKind
    remaining_cents: int
    sort_date: date
    label: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class TargetAllocation:
    """Portion of a payment applied to a single target"""

    target_id: str
    kind: TargetKind
    remaining_before_cents: int
    applied_cents: int
    remaining_after_cents: int


@dataclass
class AllocationResult:
    """Outcome of spreading one payment amount over ordered targets"""

    total_cents: int
    allocations: List[TargetAllocation]
    leftover_credit_cents: int
    currency: str

    @property
    def applied_cents(self) -> int:
        return sum(a.applied_cents for a in self.allocations)

    def for_target(self, target_id: str) -> Optional[TargetAllocation]:
        for allocation in self.allocations:
            if allocation.target_id == target_id:
                return allocation
        return None


@dataclass(frozen=True)
class AllocationState:
    """
    Payment form state; transitions return a new value instead of mutating.

    primary_id is set when the form was opened to pay one specific target:
    that target is always paid first and is never part of selected_ids.
    """

    mode: InteractionMode = InteractionMode.SELECTION_DRIVEN
    selected_ids: Tuple[str, ...] = ()
    amount_cents: int = 0
    primary_id: Optional[str] = None

    def is_selected(self, target_id: str) -> bool:
        return target_id in self.selected_ids


@dataclass
class AppliedPayment:
    """Single line of a payment request: money applied to one target"""

    target_id: str
    kind: TargetKind
    applied_cents: int
    fully_paid: bool


@dataclass
class PaymentRequest:
    """Payment ready for the payments-API client"""

    total_cents: int
    currency: str
    allocations: List[AppliedPayment]
    leftover_credit_cents: int
    apply_to_all: bool = False

    @property
    def target_ids(self) -> List[str]:
        return [a.target_id for a in self.allocations]


@dataclass
class ScheduleSpec:
    """Operator input for a multi-payment schedule"""

    cadence: Cadence
    total_cents: int
    currency: str
    start_date: Optional[date] = None
    cycle_count: Optional[int] = None
    end_date: Optional[date] = None
    custom_dates: List[date] = field(default_factory=list)
    first_payment_number: int = 1


@dataclass
class ScheduleOccurrence:
    """Single dated payment in a schedule"""

    index: int
    due_date: date
    amount_cents: int
    number: int

    @property
    def label(self) -> str:
        return f"Payment {self.number}"


@dataclass
class GeneratedSchedule:
    """Schedule ready for the invoice-creation call"""

    cadence: Cadence
    currency: str
    total_cents: int
    occurrences: List[ScheduleOccurrence]
    end_date: date
    cycle_count: Optional[int] = None  # None for custom dates
    start_date: Optional[date] = None
    custom_dates: List[date] = field(default_factory=list)

    @property
    def per_occurrence_cents(self) -> int:
        return self.occurrences[0].amount_cents if self.occurrences else 0


@dataclass
class InvoiceRecord:
    """Invoice as fetched from the payments API, reduced to what allocation needs"""

    invoice_id: str
    status: str  # "draft", "open", "paid", "void" or "uncollectible"
    amount_due_cents: int
    amount_remaining_cents: int
    created: date
    attempt_count: int = 0
    due_date: Optional[date] = None
    scheduled_finalize_date: Optional[date] = None
    auto_finalize_date: Optional[date] = None
    total_paid_cents: int = 0  # payments recorded against a draft before finalization
    number: Optional[str] = None
