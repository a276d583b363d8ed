"""
Workflow exception hierarchy.

Every error carries a machine-readable ``code`` so the HTTP layer can map it
without string matching:

    ValidationError          -> 400, shown to the user as a form message
    InvalidTransitionError   -> 409, logged as unexpected (UI/caller bug)
    PermissionDeniedError    -> 403, generic message only
    ConflictError            -> 409, caller reloads and may retry once
    MissingOrgContextError   -> 400, no organization selected
    UnknownRoleError         -> 400, role string outside the closed set
"""


class WorkflowError(Exception):
    """Base exception for all requisition workflow errors."""

    code: str = "WORKFLOW_ERROR"


class ValidationError(WorkflowError):
    """Required input missing or invalid before a transition."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(message)


class InvalidTransitionError(WorkflowError):
    """Event is not defined for the requisition's current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, status, event):
        self.status = getattr(status, "value", status)
        self.event = getattr(event, "value", event)
        super().__init__(f"Cannot apply '{self.event}' to a requisition in status '{self.status}'")


class PermissionDeniedError(WorkflowError):
    """The actor may not perform the operation.

    The message is deliberately the same whether the resource is missing,
    belongs to another organization or is simply off limits.
    """

    code: str = "PERMISSION_DENIED"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class ConflictError(WorkflowError):
    """The stored status changed between read and write."""

    code: str = "CONFLICT"

    def __init__(self, requisition_id, expected_status):
        self.requisition_id = requisition_id
        self.expected_status = getattr(expected_status, "value", expected_status)
        super().__init__(
            f"Requisition {requisition_id} is no longer in status '{self.expected_status}'"
        )


class MissingOrgContextError(WorkflowError):
    code: str = "MISSING_ORG_CONTEXT"

    def __init__(self, message: str = "No organization selected"):
        super().__init__(message)


class UnknownRoleError(WorkflowError, ValueError):
    code: str = "UNKNOWN_ROLE"

    def __init__(self, role):
        self.role = role
        super().__init__(f"Unknown role: {role!r}")
