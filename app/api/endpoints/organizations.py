from fastapi import APIRouter, HTTPException, Depends, status
from sqlmodel import Session, select
from typing import List

from app.api.endpoints.auth import (
    get_current_user,
    get_membership_cache,
    get_org_context,
    memberships_for,
    require_roles,
)
from app.core.tenancy import OrgContext
from app.database import get_session
from app.models.organization import Organization
from app.models.user import User
from app.schemas.organization import (
    MemberCreate,
    MemberRead,
    MemberUpdate,
    OrganizationCreate,
    OrganizationRead,
    OrganizationUpdate,
)
from app.services import organization_service
from app.services.membership_cache import MembershipCache
from app.workflow.states import Role

router = APIRouter()

admin_only = require_roles(Role.SUPER_ADMIN)


def to_member_read(member, user: User) -> MemberRead:
    return MemberRead(
        user_id=member.user_id,
        org_id=member.org_id,
        role=member.role,
        username=user.username if user else None,
        email=user.email if user else None,
        full_name=user.full_name if user else None,
    )


@router.post("/", response_model=OrganizationRead, status_code=status.HTTP_201_CREATED)
def create_organization(
    org_in: OrganizationCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    cache: MembershipCache = Depends(get_membership_cache),
):
    org = organization_service.create_organization(session, org_in.name, current_user)
    cache.invalidate(current_user.id)
    return org


@router.get("/", response_model=List[OrganizationRead])
def list_my_organizations(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    cache: MembershipCache = Depends(get_membership_cache),
):
    org_ids = list(memberships_for(current_user, session, cache))
    if not org_ids:
        return []
    return session.exec(
        select(Organization).where(Organization.id.in_(org_ids)).order_by(Organization.name)
    ).all()


@router.get("/current", response_model=OrganizationRead)
def get_current_organization(
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    org = session.get(Organization, ctx.org_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


@router.put("/current", response_model=OrganizationRead)
def update_current_organization(
    org_in: OrganizationUpdate,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(admin_only),
):
    org = session.get(Organization, ctx.org_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    for key, value in org_in.dict(exclude_unset=True).items():
        setattr(org, key, value)
    session.add(org)
    session.commit()
    session.refresh(org)
    return org


@router.get("/current/members", response_model=List[MemberRead])
def list_members(
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(get_org_context),
):
    return [to_member_read(member, user) for member, user in organization_service.list_members(session, ctx.org_id)]


@router.post("/current/members", response_model=MemberRead, status_code=status.HTTP_201_CREATED)
def add_member(
    member_in: MemberCreate,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(admin_only),
    cache: MembershipCache = Depends(get_membership_cache),
):
    user = session.exec(select(User).where(User.email == member_in.email)).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    member = organization_service.add_member(session, ctx.org_id, user, member_in.role)
    cache.invalidate(user.id)
    return to_member_read(member, user)


@router.put("/current/members/{user_id}", response_model=MemberRead)
def update_member(
    user_id: int,
    member_in: MemberUpdate,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(admin_only),
    cache: MembershipCache = Depends(get_membership_cache),
):
    member = organization_service.get_membership(session, ctx.org_id, user_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    member = organization_service.change_role(session, member, member_in.role)
    cache.invalidate(user_id)
    return to_member_read(member, session.get(User, user_id))


@router.delete("/current/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    user_id: int,
    session: Session = Depends(get_session),
    ctx: OrgContext = Depends(admin_only),
    cache: MembershipCache = Depends(get_membership_cache),
):
    member = organization_service.get_membership(session, ctx.org_id, user_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    organization_service.remove_member(session, member)
    cache.invalidate(user_id)
