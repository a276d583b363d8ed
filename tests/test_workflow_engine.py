import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.workflow import engine
from app.workflow.errors import InvalidTransitionError, ValidationError
from app.workflow.states import RequisitionStatus, WorkflowEvent


NOW = datetime(2024, 5, 1, 12, 0, 0)


def line(quantity, unit_price):
    return SimpleNamespace(quantity=Decimal(str(quantity)), unit_price=Decimal(str(unit_price)))


def make_requisition(status="draft", items=None, **overrides):
    data = dict(
        id=1,
        org_id=1,
        status=status,
        title="Office chairs",
        project_id=10,
        expense_account_id=20,
        submitted_by=1,
        total_amount=Decimal("0"),
        items=[line(2, 100)] if items is None else items,
    )
    data.update(overrides)
    return SimpleNamespace(**data)


def apply(requisition, event, actor_id=2, comment=None):
    changes = engine.apply_event(requisition, event, actor_id, comment=comment, now=NOW)
    for key, value in changes.items():
        setattr(requisition, key, value)
    return changes


def test_total_amount_is_recomputed_from_line_items():
    items = [line(2, 100), line(3, 50)]
    assert engine.compute_total(items) == Decimal("350")

    requisition = make_requisition(items=items)
    changes = apply(requisition, "submit", actor_id=1)
    assert changes["total_amount"] == Decimal("350")


def test_line_total_rounds_half_up_to_cents():
    assert engine.line_total(Decimal("3"), Decimal("0.335")) == Decimal("1.01")
    assert engine.line_total(1.5, "2.10") == Decimal("3.15")


def test_full_round_trip_ends_approved():
    requisition = make_requisition()
    before = dict(vars(requisition))

    touched = set()
    touched |= set(apply(requisition, "submit", actor_id=1))
    touched |= set(apply(requisition, "start_review", actor_id=2))
    touched |= set(apply(requisition, "mark_reviewed", actor_id=2))
    touched |= set(apply(requisition, "approve", actor_id=3))

    assert requisition.status == "approved"
    assert requisition.approved_at == NOW
    assert requisition.approved_by == 3
    assert requisition.reviewed_by == 2
    assert touched == {
        "status", "submitted_at", "total_amount", "reviewed_by",
        "reviewed_at", "approved_by", "approved_at",
    }
    for key, value in before.items():
        if key not in touched:
            assert getattr(requisition, key) == value


def test_submit_with_zero_items_fails_and_changes_nothing():
    requisition = make_requisition(items=[])
    with pytest.raises(ValidationError) as exc:
        engine.apply_event(requisition, "submit", 1, now=NOW)
    assert exc.value.field == "items"
    assert requisition.status == "draft"


@pytest.mark.parametrize("field", ["title", "project_id", "expense_account_id"])
def test_submit_requires_header_fields(field):
    requisition = make_requisition(**{field: None})
    with pytest.raises(ValidationError) as exc:
        engine.apply_event(requisition, "submit", 1, now=NOW)
    assert exc.value.field == field


def test_submit_rejects_non_positive_quantity():
    requisition = make_requisition(items=[line(0, 10)])
    with pytest.raises(ValidationError):
        engine.apply_event(requisition, "submit", 1, now=NOW)


@pytest.mark.parametrize("status", ["pending", "under_review", "reviewed"])
@pytest.mark.parametrize("reason", [None, "", "   "])
def test_reject_needs_a_reason_in_every_rejectable_state(status, reason):
    requisition = make_requisition(status=status)
    with pytest.raises(ValidationError):
        engine.apply_event(requisition, "reject", 2, comment=reason, now=NOW)
    assert requisition.status == status


def test_reject_records_reason_and_actor():
    requisition = make_requisition(status="under_review")
    changes = engine.apply_event(requisition, "reject", 2, comment="  Over budget ", now=NOW)
    assert changes == {
        "status": "rejected",
        "rejection_reason": "Over budget",
        "rejected_by": 2,
        "rejected_at": NOW,
    }


def test_cancel_records_actor():
    changes = engine.apply_event(make_requisition(status="pending"), "cancel", 5, now=NOW)
    assert changes == {"status": "cancelled", "cancelled_by": 5, "cancelled_at": NOW}


@pytest.mark.parametrize("status,event", [
    ("draft", "approve"),
    ("draft", "start_review"),
    ("pending", "submit"),
    ("pending", "mark_reviewed"),
    ("reviewed", "start_review"),
    ("approved", "reject"),
    ("rejected", "submit"),
    ("cancelled", "approve"),
    ("completed", "cancel"),
    ("partially_received", "approve"),
    ("pending", "teleport"),
])
def test_undefined_transitions_raise(status, event):
    requisition = make_requisition(status=status)
    with pytest.raises(InvalidTransitionError):
        engine.apply_event(requisition, event, 1, comment="reason", now=NOW)
    assert requisition.status == status


def test_next_status_covers_the_table():
    for (source, event), target in engine.TRANSITIONS.items():
        assert engine.next_status(source.value, event.value) == target


def test_events_from_terminal_states_is_empty():
    for status in ("rejected", "cancelled", "completed", "approved", "partially_received"):
        assert engine.events_from(status) == frozenset()
    assert engine.events_from(RequisitionStatus.DRAFT) == {WorkflowEvent.SUBMIT}
