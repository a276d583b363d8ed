"""Organization (tenant) scoping for every persistence operation.

The storage layer is expected to enforce row level isolation as well; these
helpers restate the contract at the application boundary so it holds on any
backend:

* inputs always carry a resolved ``org_id`` (``require_org_id``)
* inserts take ``org_id`` from the session, never from the client (``stamp_org``)
* reads, updates and deletes are filtered by the session ``org_id`` (``scoped``)
* objects handed back to callers are same-org (``assert_same_org``)
"""

import logging
from dataclasses import dataclass
from typing import Optional, Type, TypeVar

from sqlmodel import Session, SQLModel, select

from app.workflow.errors import MissingOrgContextError, PermissionDeniedError
from app.workflow.states import Role

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=SQLModel)


@dataclass(frozen=True)
class OrgContext:
    """Who is acting, in which organization, with which per-org role."""

    user_id: int
    org_id: Optional[int]
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN


def require_org_id(ctx: Optional[OrgContext]) -> int:
    if ctx is None or ctx.org_id is None:
        raise MissingOrgContextError()
    return ctx.org_id


def stamp_org(obj: ModelT, ctx: Optional[OrgContext]) -> ModelT:
    """Set ``org_id`` on a new row from the session context."""
    org_id = require_org_id(ctx)
    current = getattr(obj, "org_id", None)
    if current is not None and current != org_id:
        logger.warning(
            "Rejected insert of %s into org %s from session org %s",
            type(obj).__name__, current, org_id,
        )
        raise PermissionDeniedError()
    obj.org_id = org_id
    return obj


def scoped(statement, model: Type[SQLModel], ctx: Optional[OrgContext]):
    """Add the session org filter to a select/update/delete statement."""
    return statement.where(model.org_id == require_org_id(ctx))


def get_scoped(session: Session, model: Type[ModelT], obj_id: int, ctx: Optional[OrgContext]) -> Optional[ModelT]:
    """Fetch by primary key inside the session org; other orgs look like missing rows."""
    return session.exec(scoped(select(model).where(model.id == obj_id), model, ctx)).first()


def assert_same_org(obj, ctx: Optional[OrgContext]):
    org_id = require_org_id(ctx)
    if obj is None or getattr(obj, "org_id", None) != org_id:
        raise PermissionDeniedError()
    return obj
