"""Closed vocabularies for the requisition workflow.

Statuses, events and roles arrive from the database and from request bodies
as plain strings. They are converted to these enums at the boundary so the
guard and the engine never compare free-form strings.
"""

from enum import Enum
from typing import FrozenSet

from app.workflow.errors import UnknownRoleError


class RequisitionStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    PARTIALLY_RECEIVED = "partially_received"
    COMPLETED = "completed"


class WorkflowEvent(str, Enum):
    SUBMIT = "submit"
    START_REVIEW = "start_review"
    MARK_REVIEWED = "mark_reviewed"
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"


class Role(str, Enum):
    SUBMITTER = "submitter"
    REVIEWER = "reviewer"
    APPROVER = "approver"
    STORE_MANAGER = "store_manager"
    SUPER_ADMIN = "super_admin"

    @classmethod
    def parse(cls, value) -> "Role":
        """Convert a stored role string, rejecting anything outside the enum."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnknownRoleError(value) from None


class RequisitionType(str, Enum):
    PURCHASE = "purchase"
    EXPENSE = "expense"
    PETTY_CASH = "petty_cash"


TERMINAL_STATUSES: FrozenSet[RequisitionStatus] = frozenset({
    RequisitionStatus.REJECTED,
    RequisitionStatus.CANCELLED,
    RequisitionStatus.COMPLETED,
})


def is_terminal(status: RequisitionStatus) -> bool:
    return status in TERMINAL_STATUSES
