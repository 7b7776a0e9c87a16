"""Payment allocation engine - spreads one payment over prioritized obligations"""

from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence

from billing_engine.domain.exceptions import AllocationError, ValidationError
from billing_engine.domain.models import (
    AllocationResult,
    AllocationState,
    AppliedPayment,
    InteractionMode,
    PayableTarget,
    PaymentRequest,
    TargetAllocation,
    TargetKind,
)
from billing_engine.domain.priority import sort_targets


def _check_unique(target_ids: Iterable[str], field: str) -> None:
    seen = set()
    duplicates = []
    for target_id in target_ids:
        if target_id in seen and target_id not in duplicates:
            duplicates.append(target_id)
        seen.add(target_id)

    if duplicates:
        raise ValidationError(
            f"duplicate target ids: {', '.join(duplicates)}",
            field=field,
            value=duplicates[0],
        )


def allocate(total_cents: int, targets: Sequence[PayableTarget], currency: str = "usd") -> AllocationResult:
    """
    Apply a payment to targets in priority order.

    Requirements:
    - Failed targets first, then the outstanding balance, then drafts;
      soonest sort date first within a kind
    - Each target receives min(money left, its remaining amount)
    - Whatever is left after the last target becomes account credit
    - sum(applied) + leftover credit == total_cents, exactly

    Example:
        3500 over Failed A (3000) and Failed B (4000)
        -> A 3000 (0 left), B 500 (3500 left), credit 0

    Raises:
        ValidationError: Negative total, negative target balance or a
            target listed twice
    """
    if total_cents < 0:
        raise ValidationError("payment amount cannot be negative", field="total_cents", value=total_cents)

    _check_unique((t.target_id for t in targets), "targets")

    for target in targets:
        if target.remaining_cents < 0:
            raise ValidationError(
                f"target {target.target_id} has a negative remaining amount",
                field="remaining_cents",
                value=target.remaining_cents,
            )

    remaining = total_cents
    allocations = []
    for target in sort_targets(targets):
        applied = min(remaining, target.remaining_cents)
        allocations.append(
            TargetAllocation(
                target_id=target.target_id,
                kind=target.kind,
                remaining_before_cents=target.remaining_cents,
                applied_cents=applied,
                remaining_after_cents=target.remaining_cents - applied,
            )
        )
        remaining -= applied

    return AllocationResult(
        total_cents=total_cents,
        allocations=allocations,
        leftover_credit_cents=remaining,
        currency=currency,
    )


# --- Selection state machine -------------------------------------------------
#
# The payment form is either selection-driven (the amount follows the ticked
# targets) or amount-driven (the operator typed an amount and targets are
# picked for it). Every transition takes the current candidate list and
# returns a new AllocationState.
#
# A form opened for one target (primary_id) pays that target first; the
# selection and auto-selection only cover the amount beyond its balance.


def initial_state() -> AllocationState:
    return AllocationState()


def open_for_target(candidates: Sequence[PayableTarget], target_id: str) -> AllocationState:
    """Form opened to pay one target, pre-filled with that target's balance"""
    primary = _require_candidate(candidates, target_id)
    return AllocationState(
        mode=InteractionMode.AMOUNT_DRIVEN,
        amount_cents=primary.remaining_cents,
        primary_id=target_id,
    )


def reset_state(state: AllocationState, candidates: Sequence[PayableTarget]) -> AllocationState:
    """Clear the form; a form opened for one target goes back to that target's balance"""
    if state.primary_id is None:
        return initial_state()
    return open_for_target(candidates, state.primary_id)


def _index_candidates(candidates: Sequence[PayableTarget]) -> Dict[str, PayableTarget]:
    _check_unique((c.target_id for c in candidates), "candidates")
    return {c.target_id: c for c in candidates}


def _require_candidate(candidates: Sequence[PayableTarget], target_id: str) -> PayableTarget:
    target = _index_candidates(candidates).get(target_id)
    if target is None:
        raise AllocationError(f"stale target: {target_id} is no longer payable", missing_ids=[target_id])
    return target


def _check_selection(state: AllocationState, selected_ids: Sequence[str]) -> None:
    _check_unique(selected_ids, "selected_ids")
    if state.primary_id is not None and state.primary_id in selected_ids:
        raise ValidationError(
            f"target {state.primary_id} is already paid first and cannot also be selected",
            field="selected_ids",
            value=state.primary_id,
        )


def _primary_target(state: AllocationState, candidates: Sequence[PayableTarget]) -> Optional[PayableTarget]:
    if state.primary_id is None:
        return None
    return _require_candidate(candidates, state.primary_id)


def _additional_candidates(state: AllocationState, candidates: Sequence[PayableTarget]) -> List[PayableTarget]:
    return [c for c in candidates if c.target_id != state.primary_id]


def _selected_targets(state: AllocationState, candidates: Sequence[PayableTarget]) -> List[PayableTarget]:
    _check_selection(state, state.selected_ids)
    by_id = _index_candidates(candidates)
    return [by_id[target_id] for target_id in state.selected_ids if target_id in by_id]


def _selection_total(
    state: AllocationState, selected_ids: Sequence[str], candidates: Sequence[PayableTarget]
) -> int:
    _check_selection(state, selected_ids)
    by_id = _index_candidates(candidates)
    total = sum(by_id[target_id].remaining_cents for target_id in selected_ids if target_id in by_id)

    primary = _primary_target(state, candidates)
    if primary is not None:
        total += primary.remaining_cents
    return total


def _with_selection(
    state: AllocationState, selected_ids: Sequence[str], candidates: Sequence[PayableTarget]
) -> AllocationState:
    """Apply a new selection, keeping mode/amount consistent with it"""
    selected_ids = tuple(selected_ids)

    if not selected_ids:
        if state.primary_id is None:
            return initial_state()
        return replace(state, selected_ids=(), amount_cents=_selection_total(state, (), candidates))

    if state.mode is InteractionMode.AMOUNT_DRIVEN:
        _check_selection(state, selected_ids)
        return replace(state, selected_ids=selected_ids)

    return replace(state, selected_ids=selected_ids, amount_cents=_selection_total(state, selected_ids, candidates))


def _allocate_state(
    state: AllocationState,
    candidates: Sequence[PayableTarget],
    targets: Sequence[PayableTarget],
    currency: str,
) -> AllocationResult:
    primary = _primary_target(state, candidates)
    if primary is None:
        return allocate(state.amount_cents, targets, currency)

    head = allocate(state.amount_cents, [primary], currency)
    tail = allocate(head.leftover_credit_cents, targets, currency)
    return AllocationResult(
        total_cents=head.total_cents,
        allocations=head.allocations + tail.allocations,
        leftover_credit_cents=tail.leftover_credit_cents,
        currency=currency,
    )


def preview(state: AllocationState, candidates: Sequence[PayableTarget], currency: str = "usd") -> AllocationResult:
    """Allocation of the current amount over the selected targets, for display"""
    return _allocate_state(state, candidates, _selected_targets(state, candidates), currency)


def leftover_credit(state: AllocationState, candidates: Sequence[PayableTarget]) -> int:
    return preview(state, candidates).leftover_credit_cents


def interactable(state: AllocationState, candidates: Sequence[PayableTarget], target_id: str) -> bool:
    """
    Whether the operator may tick/untick a target right now.

    Always true while selection-driven. While amount-driven, only selected
    targets, or any target as long as part of the amount is still unapplied.
    The primary target of a form is never interactable.
    """
    if target_id == state.primary_id:
        return False
    if state.mode is InteractionMode.SELECTION_DRIVEN:
        return True
    if state.is_selected(target_id):
        return True
    return leftover_credit(state, candidates) > 0


def interactable_ids(state: AllocationState, candidates: Sequence[PayableTarget]) -> List[str]:
    """Ids of every interactable candidate, in candidate order"""
    if state.mode is InteractionMode.AMOUNT_DRIVEN and leftover_credit(state, candidates) <= 0:
        return [c.target_id for c in candidates if state.is_selected(c.target_id)]
    return [c.target_id for c in candidates if c.target_id != state.primary_id]


def _check_interactable(state: AllocationState, candidates: Sequence[PayableTarget], target_id: str) -> None:
    if target_id == state.primary_id:
        raise ValidationError(
            f"target {target_id} is the primary target and is always paid first",
            field="target_id",
            value=target_id,
        )
    if not interactable(state, candidates, target_id):
        raise ValidationError(
            f"target {target_id} cannot be selected: the entered amount is fully applied; increase it first",
            field="target_id",
            value=target_id,
        )


def select_target(state: AllocationState, candidates: Sequence[PayableTarget], target_id: str) -> AllocationState:
    _require_candidate(candidates, target_id)
    if state.is_selected(target_id):
        return state

    _check_interactable(state, candidates, target_id)
    return _with_selection(state, state.selected_ids + (target_id,), candidates)


def deselect_target(state: AllocationState, candidates: Sequence[PayableTarget], target_id: str) -> AllocationState:
    _require_candidate(candidates, target_id)
    if not state.is_selected(target_id):
        return state

    return _with_selection(state, [t for t in state.selected_ids if t != target_id], candidates)


def toggle_target(state: AllocationState, candidates: Sequence[PayableTarget], target_id: str) -> AllocationState:
    if state.is_selected(target_id):
        return deselect_target(state, candidates, target_id)
    return select_target(state, candidates, target_id)


def auto_select(amount_cents: int, candidates: Sequence[PayableTarget]) -> List[str]:
    """
    Targets to tick for an entered amount.

    Failed targets are claimed in priority order while budget remains, even
    when the last one can only be partly paid. Leftover budget then claims
    the outstanding balance. Drafts always need an explicit selection.
    """
    budget = amount_cents
    selected = []

    for target in sort_targets(c for c in candidates if c.kind is TargetKind.FAILED):
        if budget <= 0:
            break
        selected.append(target.target_id)
        budget -= target.remaining_cents

    if budget > 0:
        outstanding = next((c for c in candidates if c.kind is TargetKind.OUTSTANDING), None)
        if outstanding is not None:
            selected.append(outstanding.target_id)

    return selected


def set_amount(
    state: AllocationState, candidates: Sequence[PayableTarget], amount_cents: Optional[int]
) -> AllocationState:
    """
    Operator typed (or cleared) the payment amount.

    A positive amount switches to amount-driven mode and re-derives the
    selection; an empty or zero amount resets the form. With a primary
    target only the amount beyond its balance is auto-selected.
    """
    if not amount_cents:
        return reset_state(state, candidates)

    if amount_cents < 0:
        raise ValidationError("payment amount cannot be negative", field="amount_cents", value=amount_cents)

    budget = amount_cents
    primary = _primary_target(state, candidates)
    if primary is not None:
        budget = max(0, amount_cents - primary.remaining_cents)

    return AllocationState(
        mode=InteractionMode.AMOUNT_DRIVEN,
        selected_ids=tuple(auto_select(budget, _additional_candidates(state, candidates))),
        amount_cents=amount_cents,
        primary_id=state.primary_id,
    )


def toggle_mode(state: AllocationState, candidates: Sequence[PayableTarget]) -> AllocationState:
    """
    Switch between amount-driven and selection-driven without losing the selection.

    Amount-driven -> selection-driven: amount goes back to the selection total.
    Selection-driven -> amount-driven: the current amount is pinned.
    """
    if state.mode is InteractionMode.AMOUNT_DRIVEN:
        return _with_selection(replace(state, mode=InteractionMode.SELECTION_DRIVEN), state.selected_ids, candidates)

    if state.amount_cents <= 0:
        raise ValidationError("non-positive amount", field="amount_cents", value=state.amount_cents)

    return replace(state, mode=InteractionMode.AMOUNT_DRIVEN)


def build_payment_request(
    state: AllocationState,
    candidates: Sequence[PayableTarget],
    currency: str = "usd",
    apply_to_all: bool = False,
) -> PaymentRequest:
    """
    Final allocation for submission to the payments API.

    The primary target, when set, is paid first. With nothing selected the
    rest becomes account credit, unless apply_to_all is set, in which case
    every other candidate is a target.

    Raises:
        ValidationError: Amount is zero or negative, or a target id repeats
        AllocationError: A selected or primary target disappeared from the candidates
    """
    if state.amount_cents <= 0:
        raise ValidationError("non-positive amount", field="amount_cents", value=state.amount_cents)

    _check_selection(state, state.selected_ids)
    by_id = _index_candidates(candidates)

    wanted = list(state.selected_ids)
    if state.primary_id is not None:
        wanted.insert(0, state.primary_id)
    missing = [target_id for target_id in wanted if target_id not in by_id]
    if missing:
        raise AllocationError("stale target", missing_ids=missing)

    if state.selected_ids:
        targets = [by_id[target_id] for target_id in state.selected_ids]
    elif apply_to_all:
        targets = _additional_candidates(state, candidates)
    else:
        targets = []

    result = _allocate_state(state, candidates, targets, currency)

    return PaymentRequest(
        total_cents=result.total_cents,
        currency=currency,
        allocations=[
            AppliedPayment(
                target_id=a.target_id,
                kind=a.kind,
                applied_cents=a.applied_cents,
                fully_paid=a.remaining_after_cents == 0,
            )
            for a in result.allocations
            if a.applied_cents > 0
        ],
        leftover_credit_cents=result.leftover_credit_cents,
        apply_to_all=apply_to_all and not state.selected_ids,
    )
