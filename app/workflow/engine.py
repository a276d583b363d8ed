"""
Requisition lifecycle engine.

Pure transition table plus the validation and field updates attached to each
transition. No database access and no clock access unless ``now`` is left
out; callers persist the returned changes themselves.

    draft --submit--> pending --start_review--> under_review --mark_reviewed--> reviewed
    pending | under_review | reviewed --approve--> approved
    pending | under_review | reviewed --reject--> rejected
    pending | under_review | reviewed --cancel--> cancelled

``approved -> partially_received -> completed`` is driven by receiving and
never by an event handled here.
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from app.workflow.errors import InvalidTransitionError, ValidationError
from app.workflow.states import RequisitionStatus, WorkflowEvent

S = RequisitionStatus
E = WorkflowEvent

TRANSITIONS: Mapping[Tuple[RequisitionStatus, WorkflowEvent], RequisitionStatus] = {
    (S.DRAFT, E.SUBMIT): S.PENDING,
    (S.PENDING, E.START_REVIEW): S.UNDER_REVIEW,
    (S.UNDER_REVIEW, E.MARK_REVIEWED): S.REVIEWED,
    (S.PENDING, E.APPROVE): S.APPROVED,
    (S.UNDER_REVIEW, E.APPROVE): S.APPROVED,
    (S.REVIEWED, E.APPROVE): S.APPROVED,
    (S.PENDING, E.REJECT): S.REJECTED,
    (S.UNDER_REVIEW, E.REJECT): S.REJECTED,
    (S.REVIEWED, E.REJECT): S.REJECTED,
    (S.PENDING, E.CANCEL): S.CANCELLED,
    (S.UNDER_REVIEW, E.CANCEL): S.CANCELLED,
    (S.REVIEWED, E.CANCEL): S.CANCELLED,
}

REQUIRED_SUBMIT_FIELDS = ("title", "project_id", "expense_account_id")

CENTS = Decimal("0.01")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so floats like 0.1 do not drag binary noise along
    return Decimal(str(value))


def line_total(quantity, unit_price) -> Decimal:
    return (to_decimal(quantity) * to_decimal(unit_price)).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_total(items: Iterable) -> Decimal:
    """Sum of quantity x unit price over the line items."""
    total = Decimal("0")
    for item in items:
        total += line_total(item.quantity, item.unit_price)
    return total.quantize(CENTS)


def next_status(status, event) -> RequisitionStatus:
    """Target status for ``event`` or InvalidTransitionError."""
    try:
        key = (RequisitionStatus(status), WorkflowEvent(event))
    except ValueError:
        raise InvalidTransitionError(status, event) from None
    if key not in TRANSITIONS:
        raise InvalidTransitionError(status, event)
    return TRANSITIONS[key]


def events_from(status) -> frozenset:
    status = RequisitionStatus(status)
    return frozenset(event for (source, event) in TRANSITIONS if source == status)


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_line_items(items) -> None:
    if not items:
        raise ValidationError("A requisition needs at least one line item", field="items")
    for position, item in enumerate(items, start=1):
        if item.quantity is None or to_decimal(item.quantity) <= 0:
            raise ValidationError(f"Line {position}: quantity must be greater than zero", field="items")
        if item.unit_price is None or to_decimal(item.unit_price) < 0:
            raise ValidationError(f"Line {position}: unit price cannot be negative", field="items")


def validate_submission(requisition) -> None:
    for field in REQUIRED_SUBMIT_FIELDS:
        if _is_blank(getattr(requisition, field, None)):
            raise ValidationError(f"{field} is required", field=field)
    validate_line_items(list(requisition.items or []))


def clean_reason(comment: Optional[str]) -> str:
    if comment is None or not comment.strip():
        raise ValidationError("A rejection reason is required", field="comment")
    return comment.strip()


def apply_event(
    requisition,
    event,
    actor_id: int,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Return the fields ``event`` changes on ``requisition``.

    The requisition itself is never modified, so a failed validation leaves
    it exactly as it was.
    """
    target = next_status(requisition.status, event)
    event = WorkflowEvent(event)
    now = now or datetime.utcnow()
    changes: Dict[str, Any] = {"status": target.value}

    if event == E.SUBMIT:
        validate_submission(requisition)
        changes["submitted_at"] = now
        total = compute_total(requisition.items)
        if to_decimal(requisition.total_amount or 0) != total:
            changes["total_amount"] = total
    elif event == E.START_REVIEW:
        changes["reviewed_by"] = actor_id
    elif event == E.MARK_REVIEWED:
        changes["reviewed_by"] = actor_id
        changes["reviewed_at"] = now
    elif event == E.APPROVE:
        changes["approved_by"] = actor_id
        changes["approved_at"] = now
    elif event == E.REJECT:
        changes["rejection_reason"] = clean_reason(comment)
        changes["rejected_by"] = actor_id
        changes["rejected_at"] = now
    elif event == E.CANCEL:
        changes["cancelled_by"] = actor_id
        changes["cancelled_at"] = now

    return changes
