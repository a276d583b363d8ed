from decimal import Decimal
from typing import Dict

from sqlmodel import Session, func, select

from app.core.tenancy import OrgContext, assert_same_org, scoped
from app.models.project import Project
from app.models.requisition import Requisition
from app.workflow import engine
from app.workflow.states import RequisitionStatus

S = RequisitionStatus

# Money already committed to a supplier
SPENT_STATUSES = (S.APPROVED.value, S.PARTIALLY_RECEIVED.value, S.COMPLETED.value)
IN_REVIEW_STATUSES = (S.UNDER_REVIEW.value, S.REVIEWED.value)


def totals_by_status(session: Session, ctx: OrgContext, project_id: int) -> Dict[str, Decimal]:
    rows = session.exec(
        scoped(select(Requisition.status, func.sum(Requisition.total_amount)), Requisition, ctx)
        .where(Requisition.project_id == project_id)
        .group_by(Requisition.status)
    ).all()
    return {status: engine.to_decimal(total or 0) for status, total in rows}


def budget_summary(session: Session, ctx: OrgContext, project: Project) -> dict:
    """Budget against requisition totals for one project.

    ``remaining`` only subtracts spent money; ``available`` also holds back
    what is still waiting for a decision.
    """
    assert_same_org(project, ctx)
    totals = totals_by_status(session, ctx, project.id)

    def total_of(statuses) -> Decimal:
        return sum((totals.get(status, Decimal("0")) for status in statuses), Decimal("0")).quantize(engine.CENTS)

    budget = engine.to_decimal(project.budget or 0).quantize(engine.CENTS)
    spent = total_of(SPENT_STATUSES)
    pending = total_of((S.PENDING.value,))
    in_review = total_of(IN_REVIEW_STATUSES)
    utilization = (spent / budget * 100).quantize(engine.CENTS) if budget > 0 else Decimal("0")

    return {
        "project_id": project.id,
        "project_name": project.name,
        "budget": budget,
        "spent": spent,
        "pending": pending,
        "in_review": in_review,
        "remaining": budget - spent,
        "available": budget - spent - pending - in_review,
        "utilization_percentage": utilization,
    }
