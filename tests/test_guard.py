import sys
from itertools import product
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.core.tenancy import OrgContext
from app.workflow import guard
from app.workflow.errors import InvalidTransitionError, PermissionDeniedError, UnknownRoleError
from app.workflow.states import RequisitionStatus, Role, WorkflowEvent
from app.workflow.transitions import attempt_transition, available_events, editable_fields


OWNER_ID = 1
OTHER_ID = 2


def requisition(status, submitted_by=OWNER_ID, org_id=1):
    return SimpleNamespace(
        id=7,
        org_id=org_id,
        status=status,
        submitted_by=submitted_by,
        title="Laptops",
        project_id=1,
        expense_account_id=1,
        total_amount=0,
        items=[SimpleNamespace(quantity=1, unit_price=900)],
    )


def actor(role, user_id=OTHER_ID, org_id=1):
    return OrgContext(user_id=user_id, org_id=org_id, role=Role(role))


def test_guard_is_total_over_every_combination():
    for role, is_owner, status, event in product(Role, (True, False), RequisitionStatus, WorkflowEvent):
        allowed = guard.allowed_events(role, is_owner, status)
        assert isinstance(allowed, frozenset)
        assert allowed <= set(WorkflowEvent)
        req = requisition(status.value, submitted_by=OTHER_ID if is_owner else OWNER_ID)
        assert guard.can_transition(role, OTHER_ID, req, event) is (event in allowed)


@pytest.mark.parametrize("status", [s for s in RequisitionStatus if s != RequisitionStatus.DRAFT])
@pytest.mark.parametrize("event", list(WorkflowEvent))
def test_reviewer_never_acts_on_own_requisition(status, event):
    req = requisition(status.value, submitted_by=OTHER_ID)
    assert not guard.can_transition(Role.REVIEWER, OTHER_ID, req, event)


def test_only_owner_submits_draft():
    for role in Role:
        assert guard.allowed_events(role, True, "draft") == {WorkflowEvent.SUBMIT}
        assert guard.allowed_events(role, False, "draft") == frozenset()


def test_reviewer_and_approver_windows():
    assert guard.allowed_events("reviewer", False, "pending") == guard.REVIEWER_EVENTS
    assert guard.allowed_events("reviewer", False, "under_review") == guard.REVIEWER_EVENTS
    assert guard.allowed_events("reviewer", False, "reviewed") == frozenset()
    assert guard.allowed_events("approver", False, "reviewed") == {WorkflowEvent.APPROVE, WorkflowEvent.REJECT}
    assert guard.allowed_events("approver", False, "pending") == frozenset()
    assert guard.allowed_events("submitter", False, "pending") == frozenset()
    assert guard.allowed_events("store_manager", False, "reviewed") == frozenset()


def test_super_admin_may_approve_before_review_even_own():
    for status in ("pending", "under_review", "reviewed"):
        assert WorkflowEvent.APPROVE in guard.allowed_events("super_admin", True, status)
    assert guard.allowed_events("super_admin", False, "completed") == frozenset()


def test_unknown_role_is_rejected():
    with pytest.raises(UnknownRoleError):
        guard.allowed_events("manager", False, "pending")
    assert Role.parse(" Reviewer ") == Role.REVIEWER


def test_unknown_event_is_simply_not_allowed():
    assert guard.can_transition("super_admin", OTHER_ID, requisition("pending"), "teleport") is False


def test_approver_who_submitted_gets_permission_error():
    req = requisition("reviewed", submitted_by=OTHER_ID)
    with pytest.raises(PermissionDeniedError):
        attempt_transition(req, "approve", actor("approver"))
    assert req.status == "reviewed"


def test_attempt_transition_returns_changed_fields():
    req = requisition("reviewed")
    changes = attempt_transition(req, "approve", actor("approver"))
    assert changes["status"] == "approved"
    assert changes["approved_by"] == OTHER_ID
    assert req.status == "reviewed"


def test_attempt_transition_allowed_by_guard_but_not_by_table():
    with pytest.raises(InvalidTransitionError):
        attempt_transition(requisition("reviewed"), "start_review", actor("super_admin"))


def test_attempt_transition_with_unknown_event():
    with pytest.raises(InvalidTransitionError):
        attempt_transition(requisition("pending"), "teleport", actor("super_admin"))


def test_attempt_transition_across_organizations_is_denied():
    with pytest.raises(PermissionDeniedError):
        attempt_transition(requisition("pending", org_id=2), "start_review", actor("reviewer"))


def test_editable_fields_only_for_owner_draft():
    owner = actor("submitter", user_id=OWNER_ID)
    assert editable_fields(requisition("draft"), owner) == guard.DRAFT_EDITABLE_FIELDS
    assert editable_fields(requisition("pending"), owner) == frozenset()
    assert editable_fields(requisition("draft"), actor("super_admin")) == frozenset()
    assert editable_fields(requisition("draft", org_id=2), owner) == frozenset()


def test_available_events_intersects_guard_and_table():
    admin = actor("super_admin")
    assert available_events(requisition("reviewed"), admin) == {
        WorkflowEvent.APPROVE, WorkflowEvent.REJECT, WorkflowEvent.CANCEL,
    }
    assert available_events(requisition("pending"), actor("reviewer")) == {
        WorkflowEvent.START_REVIEW, WorkflowEvent.REJECT,
    }
