import logging
from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional

from app.core.tenancy import OrgContext, assert_same_org
from app.workflow import engine, guard
from app.workflow.errors import InvalidTransitionError, PermissionDeniedError
from app.workflow.states import WorkflowEvent

logger = logging.getLogger(__name__)


def attempt_transition(
    requisition,
    event,
    actor: OrgContext,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Check the actor, then the state machine, and return the changed fields.

    Raises PermissionDeniedError, InvalidTransitionError or ValidationError;
    the requisition is left untouched in every failure case.
    """
    assert_same_org(requisition, actor)
    try:
        event = WorkflowEvent(event)
    except ValueError:
        raise InvalidTransitionError(requisition.status, event) from None

    if not guard.can_transition(actor.role, actor.user_id, requisition, event):
        logger.info(
            "Denied %s on requisition %s for user %s (%s)",
            event.value, requisition.id, actor.user_id, actor.role.value,
        )
        raise PermissionDeniedError()

    return engine.apply_event(requisition, event, actor.user_id, comment=comment, now=now)


def editable_fields(requisition, actor: OrgContext) -> FrozenSet[str]:
    """Form inputs the actor may change on this requisition."""
    if requisition.org_id != actor.org_id:
        return frozenset()
    return guard.editable_fields_for(requisition, actor.user_id)


def available_events(requisition, actor: OrgContext) -> FrozenSet[WorkflowEvent]:
    """Events that would pass both the guard and the state machine right now."""
    if requisition.org_id != actor.org_id:
        return frozenset()
    permitted = guard.allowed_events(
        actor.role, guard.is_owner(requisition, actor.user_id), requisition.status
    )
    return permitted & engine.events_from(requisition.status)
