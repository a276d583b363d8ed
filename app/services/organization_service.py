import logging
import re
from typing import Dict, List, Tuple

from sqlmodel import Session, select

from app.models.organization import Organization, OrganizationMember
from app.models.user import User
from app.workflow.errors import ValidationError
from app.workflow.states import Role

logger = logging.getLogger(__name__)

SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    return SLUG_RE.sub("-", (name or "").lower()).strip("-") or "org"


def unique_slug(session: Session, name: str) -> str:
    base = slugify(name)
    slug = base
    suffix = 1
    while session.exec(select(Organization).where(Organization.slug == slug)).first():
        suffix += 1
        slug = f"{base}-{suffix}"
    return slug


def create_organization(session: Session, name: str, creator: User) -> Organization:
    """Create an organization and make its creator the first super_admin."""
    if not name or not name.strip():
        raise ValidationError("Organization name is required", field="name")
    org = Organization(name=name.strip(), slug=unique_slug(session, name), created_by=creator.id)
    session.add(org)
    session.flush()
    session.add(OrganizationMember(user_id=creator.id, org_id=org.id, role=Role.SUPER_ADMIN.value))
    session.commit()
    session.refresh(org)
    logger.info("Organization %s created by user %s", org.id, creator.id)
    return org


def load_memberships(session: Session, user_id: int) -> Dict[int, str]:
    rows = session.exec(
        select(OrganizationMember)
        .join(Organization, Organization.id == OrganizationMember.org_id)
        .where(OrganizationMember.user_id == user_id)
        .where(Organization.is_active == True)  # noqa: E712
    ).all()
    return {m.org_id: m.role for m in rows}


def get_membership(session: Session, org_id: int, user_id: int):
    return session.exec(
        select(OrganizationMember)
        .where(OrganizationMember.org_id == org_id)
        .where(OrganizationMember.user_id == user_id)
    ).first()


def list_members(session: Session, org_id: int) -> List[Tuple[OrganizationMember, User]]:
    return session.exec(
        select(OrganizationMember, User)
        .join(User, User.id == OrganizationMember.user_id)
        .where(OrganizationMember.org_id == org_id)
        .order_by(OrganizationMember.id)
    ).all()


def add_member(session: Session, org_id: int, user: User, role) -> OrganizationMember:
    """Attach ``user`` to an existing organization.

    A membership always points at a real organization: unknown org ids are
    refused here instead of leaving an orphan row behind.
    """
    role = Role.parse(role)
    if org_id is None or session.get(Organization, org_id) is None:
        raise ValidationError("Organization does not exist", field="org_id")
    if user is None or user.id is None:
        raise ValidationError("User does not exist", field="user_id")
    if get_membership(session, org_id, user.id):
        raise ValidationError("User is already a member of this organization", field="email")
    member = OrganizationMember(user_id=user.id, org_id=org_id, role=role.value)
    session.add(member)
    session.commit()
    session.refresh(member)
    logger.info("User %s joined org %s as %s", user.id, org_id, role.value)
    return member


def _admin_count(session: Session, org_id: int) -> int:
    return len(session.exec(
        select(OrganizationMember)
        .where(OrganizationMember.org_id == org_id)
        .where(OrganizationMember.role == Role.SUPER_ADMIN.value)
    ).all())


def change_role(session: Session, member: OrganizationMember, role) -> OrganizationMember:
    role = Role.parse(role)
    if (
        member.role == Role.SUPER_ADMIN.value
        and role != Role.SUPER_ADMIN
        and _admin_count(session, member.org_id) <= 1
    ):
        raise ValidationError("An organization needs at least one super_admin", field="role")
    member.role = role.value
    session.add(member)
    session.commit()
    session.refresh(member)
    return member


def remove_member(session: Session, member: OrganizationMember) -> None:
    if member.role == Role.SUPER_ADMIN.value and _admin_count(session, member.org_id) <= 1:
        raise ValidationError("An organization needs at least one super_admin", field="role")
    session.delete(member)
    session.commit()
    logger.info("User %s removed from org %s", member.user_id, member.org_id)
