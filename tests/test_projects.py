import sys
import os
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

os.environ.setdefault("database_url", "sqlite:///:memory:")
os.environ.setdefault("secret_key", "testsecret")

from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.models.organization import Organization, OrganizationMember
from app.models.user import User
from app.api.endpoints.auth import get_current_user, get_membership_cache
from app.database import get_session
from app.services.membership_cache import MembershipCache


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
SQLModel.metadata.create_all(engine)

ADMIN = User(id=1, username="alice", email="alice@example.com", password_hash="hashed")
SUBMITTER = User(id=2, username="bob", email="bob@example.com", password_hash="hashed")
STOREKEEPER = User(id=3, username="carol", email="carol@example.com", password_hash="hashed")
OUTSIDER = User(id=4, username="dave", email="dave@example.com", password_hash="hashed")


def override_get_session():
    with Session(engine) as session:
        yield session


def reset_database():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        session.add(Organization(id=1, name="Acme", slug="acme"))
        session.add(Organization(id=2, name="Globex", slug="globex"))
        session.add(OrganizationMember(user_id=1, org_id=1, role="super_admin"))
        session.add(OrganizationMember(user_id=2, org_id=1, role="submitter"))
        session.add(OrganizationMember(user_id=3, org_id=1, role="store_manager"))
        session.add(OrganizationMember(user_id=4, org_id=2, role="super_admin"))
        session.commit()


def setup_client(user):
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_membership_cache] = lambda: MembershipCache()
    return TestClient(app)


def test_create_project_is_stamped_with_current_org():
    reset_database()
    client = setup_client(ADMIN)

    payload = {"code": "HQ", "name": "Headquarters", "budget": "25000.00", "org_id": 2}
    response = client.post("/projects/", json=payload, headers={"X-Org-Id": "1"})
    assert response.status_code == 201
    data = response.json()
    assert data["org_id"] == 1
    assert data["code"] == "HQ"
    assert data["is_active"] is True

    app.dependency_overrides.clear()


def test_list_projects_filtered_by_organization():
    reset_database()
    client = setup_client(ADMIN)
    client.post("/projects/", json={"code": "A", "name": "Acme one"}, headers={"X-Org-Id": "1"})
    client.post("/projects/", json={"code": "B", "name": "Acme two"}, headers={"X-Org-Id": "1"})

    app.dependency_overrides[get_current_user] = lambda: OUTSIDER
    client.post("/projects/", json={"code": "G", "name": "Globex"}, headers={"X-Org-Id": "2"})
    response = client.get("/projects/", headers={"X-Org-Id": "2"})
    assert [p["name"] for p in response.json()] == ["Globex"]

    app.dependency_overrides[get_current_user] = lambda: SUBMITTER
    response = client.get("/projects/", headers={"X-Org-Id": "1"})
    assert [p["code"] for p in response.json()] == ["A", "B"]

    app.dependency_overrides.clear()


def test_project_writes_require_super_admin():
    reset_database()
    client = setup_client(SUBMITTER)

    response = client.post("/projects/", json={"code": "X", "name": "Nope"}, headers={"X-Org-Id": "1"})
    assert response.status_code == 403
    assert response.json()["detail"] == "Access denied"

    app.dependency_overrides.clear()


def test_update_deactivate_and_delete_project():
    reset_database()
    client = setup_client(ADMIN)
    headers = {"X-Org-Id": "1"}
    project_id = client.post("/projects/", json={"code": "A", "name": "Acme"}, headers=headers).json()["id"]

    response = client.put(f"/projects/{project_id}", json={"name": "Renamed", "is_active": False}, headers=headers)
    assert response.json()["name"] == "Renamed"
    assert client.get("/projects/", headers=headers).json() == []
    assert len(client.get("/projects/?include_inactive=true", headers=headers).json()) == 1

    app.dependency_overrides[get_current_user] = lambda: OUTSIDER
    assert client.delete(f"/projects/{project_id}", headers={"X-Org-Id": "2"}).status_code == 404

    app.dependency_overrides[get_current_user] = lambda: ADMIN
    assert client.delete(f"/projects/{project_id}", headers=headers).status_code == 204
    assert client.get(f"/projects/{project_id}", headers=headers).status_code == 404

    app.dependency_overrides.clear()


def test_expense_account_project_must_be_in_org():
    reset_database()
    client = setup_client(OUTSIDER)
    foreign_project = client.post(
        "/projects/", json={"code": "G", "name": "Globex"}, headers={"X-Org-Id": "2"}
    ).json()["id"]

    app.dependency_overrides[get_current_user] = lambda: ADMIN
    response = client.post(
        "/expense_accounts/",
        json={"code": "6000", "name": "Supplies", "project_id": foreign_project},
        headers={"X-Org-Id": "1"},
    )
    assert response.status_code == 400

    response = client.post(
        "/expense_accounts/", json={"code": "6000", "name": "Supplies"}, headers={"X-Org-Id": "1"}
    )
    assert response.status_code == 201
    assert response.json()["org_id"] == 1

    app.dependency_overrides.clear()


def test_store_manager_maintains_item_catalog():
    reset_database()
    client = setup_client(STOREKEEPER)
    headers = {"X-Org-Id": "1"}

    response = client.post("/items/", json={"code": "CH-01", "name": "Chair"}, headers=headers)
    assert response.status_code == 201
    assert response.json()["unit_of_measure"] == "each"

    duplicate = client.post("/items/", json={"code": "CH-01", "name": "Other chair"}, headers=headers)
    assert duplicate.status_code == 400

    app.dependency_overrides[get_current_user] = lambda: SUBMITTER
    assert client.post("/items/", json={"code": "CH-02", "name": "Stool"}, headers=headers).status_code == 403
    assert [i["code"] for i in client.get("/items/", headers=headers).json()] == ["CH-01"]

    app.dependency_overrides.clear()
