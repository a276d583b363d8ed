import sys
from pathlib import Path

import pytest
from sqlmodel import SQLModel, Session, create_engine, select
from sqlalchemy.pool import StaticPool

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.core.tenancy import OrgContext, assert_same_org, get_scoped, require_org_id, scoped, stamp_org
from app.models.organization import Organization
from app.models.project import Project
from app.models.user import User
from app.workflow.errors import MissingOrgContextError, PermissionDeniedError
from app.workflow.states import Role


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def reset_database():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)


def seed(session):
    session.add(User(id=1, username="alice", email="alice@example.com", password_hash="x"))
    session.add(Organization(id=1, name="Acme", slug="acme"))
    session.add(Organization(id=2, name="Globex", slug="globex"))
    session.add(Project(id=1, org_id=1, code="P-1", name="Acme project"))
    session.add(Project(id=2, org_id=2, code="P-1", name="Globex project"))
    session.commit()


ACME = OrgContext(user_id=1, org_id=1, role=Role.SUPER_ADMIN)


def test_missing_org_is_an_error():
    with pytest.raises(MissingOrgContextError):
        require_org_id(None)
    with pytest.raises(MissingOrgContextError):
        require_org_id(OrgContext(user_id=1, org_id=None, role=Role.SUBMITTER))
    with pytest.raises(MissingOrgContextError):
        stamp_org(Project(code="X", name="X"), OrgContext(user_id=1, org_id=None, role=Role.SUBMITTER))


def test_stamp_org_takes_org_from_context():
    project = stamp_org(Project(code="X", name="X"), ACME)
    assert project.org_id == 1
    with pytest.raises(PermissionDeniedError):
        stamp_org(Project(org_id=2, code="X", name="X"), ACME)


def test_scoped_reads_never_cross_organizations():
    reset_database()
    with Session(engine) as session:
        seed(session)
        projects = session.exec(scoped(select(Project), Project, ACME)).all()
        assert [p.name for p in projects] == ["Acme project"]
        assert get_scoped(session, Project, 1, ACME).name == "Acme project"
        assert get_scoped(session, Project, 2, ACME) is None


def test_assert_same_org():
    assert_same_org(Project(org_id=1, code="X", name="X"), ACME)
    with pytest.raises(PermissionDeniedError):
        assert_same_org(Project(org_id=2, code="X", name="X"), ACME)
    with pytest.raises(PermissionDeniedError):
        assert_same_org(None, ACME)
