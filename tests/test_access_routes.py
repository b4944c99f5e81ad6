import pytest
from fastapi.testclient import TestClient

from shared.principals import Impersonation, Role

from access_service.main import app
from access_service.marketplace import CaseRecord, ContractorEligibility
from access_service.models import Organization
from access_service.rabbitmq import publisher
from access_service.routes import get_eligibility_source, get_impersonation_store, get_repository
from access_service.scoping import PropertyRecord, TenantLink


class FakeRepository:
    """In-memory repository. Returns every row so the scope checks do all the filtering."""

    def __init__(self):
        self.organizations = {"org-7": "Acme Property", "org-9": "Birch Homes"}
        self.cases = {
            "case-1": CaseRecord(id="case-1", org_id="org-7", property_id="p-1", unit_id="u-1",
                                 tenant_id="t-1", title="Leaking tap", specialty_id="plumbing"),
            "case-2": CaseRecord(id="case-2", org_id="org-7", property_id="p-2", title="Broken heater",
                                 assigned_contractor_id="c-1", status="In Progress"),
            "case-3": CaseRecord(id="case-3", org_id="org-9", property_id="p-3", title="Door jammed",
                                 specialty_id="plumbing", is_urgent=True, restrict_to_favorites=True),
        }
        self.properties = [
            PropertyRecord(id="p-1", org_id="org-7", name="Elm"),
            PropertyRecord(id="p-2", org_id="org-7", name="Oak"),
            PropertyRecord(id="p-3", org_id="org-9", name="Pine"),
        ]
        self.tenants = {"t-1": TenantLink(property_id="p-1", unit_id="u-1")}

    async def get_organization(self, org_id):
        if org_id not in self.organizations:
            return None
        return Organization(id=org_id, name=self.organizations[org_id])

    async def organization_exists(self, org_id):
        return org_id in self.organizations

    async def tenant_link(self, user_id):
        return self.tenants.get(user_id)

    async def list_cases(self, scope):
        return list(self.cases.values())

    async def get_case(self, case_id):
        return self.cases.get(case_id)

    async def list_properties(self, scope):
        return list(self.properties)

    async def contractor_property_ids(self, contractor_id):
        return frozenset(c.property_id for c in self.cases.values() if c.assigned_contractor_id == contractor_id)

    async def unassigned_cases(self, filters):
        return [c for c in self.cases.values() if not c.assigned_contractor_id]

    async def assign_case(self, case_id, contractor_id):
        case = self.cases[case_id]
        if case.assigned_contractor_id:
            return False
        self.cases[case_id] = CaseRecord(
            **{**case.__dict__, "assigned_contractor_id": contractor_id, "status": "In Progress"}
        )
        return True


class FakeEligibilitySource:
    def __init__(self):
        self.available = {"c-1": True, "c-busy": False}

    async def load(self, contractor_id):
        if contractor_id == "c-1":
            return ContractorEligibility.from_sets("c-1", {"plumbing"}, linked_org_ids={"org-7", "org-9"})
        return ContractorEligibility.from_sets(contractor_id, {"plumbing"}, linked_org_ids={"org-7"})

    async def is_available(self, contractor_id):
        return self.available.get(contractor_id)


class FakeStore:
    def __init__(self):
        self.sessions = {}

    async def current(self, admin_user_id):
        return self.sessions.get(admin_user_id)

    async def start(self, admin_user_id, org_id, org_name=None):
        self.sessions[admin_user_id] = Impersonation(org_id, org_name)
        return self.sessions[admin_user_id]

    async def stop(self, admin_user_id):
        self.sessions.pop(admin_user_id, None)


@pytest.fixture
def repo():
    return FakeRepository()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def published(monkeypatch):
    records = []

    async def publish(routing_key, body):
        records.append((routing_key, body))

    monkeypatch.setattr(publisher, "publish", publish)
    return records


@pytest.fixture
def client(repo, store):
    eligibility = FakeEligibilitySource()
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_eligibility_source] = lambda: eligibility
    app.dependency_overrides[get_impersonation_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin(auth):
    return auth("admin-1", Role.PLATFORM_SUPER_ADMIN)


def _ids(resp):
    assert resp.status_code == 200, resp.text
    return sorted(item["id"] for item in resp.json())


# ================= IMPERSONATION =================

def test_impersonation_matches_org_admin_view(client, auth, admin):
    org_admin = auth("oa-1", Role.ORG_ADMIN, "org-7")

    assert _ids(client.get("/cases", headers=admin)) == ["case-1", "case-2", "case-3"]

    resp = client.post("/admin/impersonation", json={"org_id": "org-7"}, headers=admin)
    assert resp.json() == {"active": True, "org_id": "org-7", "org_name": "Acme Property"}

    for path in ("/cases", "/properties"):
        assert _ids(client.get(path, headers=admin)) == _ids(client.get(path, headers=org_admin))

    scope = client.get("/access/scope/case", headers=admin).json()
    assert scope["kind"] == "org"
    assert scope["org_id"] == "org-7"
    assert scope["impersonating"] is True

    assert client.delete("/admin/impersonation", headers=admin).json()["active"] is False
    assert _ids(client.get("/cases", headers=admin)) == ["case-1", "case-2", "case-3"]
    assert client.get("/access/scope/property", headers=admin).json()["kind"] == "unscoped"


def test_impersonating_unknown_org(client, admin):
    resp = client.post("/admin/impersonation", json={"org_id": "org-404"}, headers=admin)
    assert resp.status_code == 404


def test_only_platform_admins_impersonate(client, auth):
    resp = client.post("/admin/impersonation", json={"org_id": "org-7"}, headers=auth("oa-1", Role.ORG_ADMIN, "org-7"))
    assert resp.status_code == 403


def test_stale_impersonation_fails_closed(client, admin, store):
    store.sessions["admin-1"] = Impersonation("org-gone")

    resp = client.get("/cases", headers=admin)
    assert resp.status_code == 409
    assert resp.json()["error"] == "impersonation_state_inconsistent"

    # the admin can still inspect and replace the broken session
    assert client.get("/admin/impersonation", headers=admin).json()["org_id"] == "org-gone"
    assert client.post("/admin/impersonation", json={"org_id": "org-9"}, headers=admin).status_code == 200
    assert _ids(client.get("/cases", headers=admin)) == ["case-3"]


# ================= CASES / PROPERTIES =================

def test_case_access(client, auth):
    org7 = auth("oa-1", Role.ORG_ADMIN, "org-7")
    org9 = auth("oa-9", Role.ORG_ADMIN, "org-9")

    resp = client.get("/cases/case-1/access", headers=org7)
    assert resp.json() == {"case_id": "case-1", "visible": True, "org_id": "org-7"}

    assert client.get("/cases/case-1/access", headers=org9).status_code == 403
    assert client.get("/cases/case-404/access", headers=org7).status_code == 403


def test_org_admin_without_org_sees_nothing(client, auth):
    headers = auth("oa-1", Role.ORG_ADMIN)
    assert _ids(client.get("/cases", headers=headers)) == []
    assert client.get("/access/scope/case", headers=headers).json()["kind"] == "denied"


def test_tenant_view(client, auth):
    headers = auth("t-1", Role.TENANT)
    assert _ids(client.get("/cases", headers=headers)) == ["case-1"]
    assert _ids(client.get("/properties", headers=headers)) == ["p-1"]


def test_contractor_view(client, auth):
    headers = auth("c-1", Role.CONTRACTOR)
    # case-3 is favorites-only but urgent
    assert _ids(client.get("/cases", headers=headers)) == ["case-1", "case-2", "case-3"]
    assert _ids(client.get("/properties", headers=headers)) == ["p-2"]


def test_unknown_resource_kind(client, admin):
    assert client.get("/access/scope/invoice", headers=admin).status_code == 404


def test_requires_token(client):
    assert client.get("/cases").status_code == 401


# ================= MARKETPLACE =================

def test_marketplace_listing(client, auth):
    headers = auth("c-1", Role.CONTRACTOR)
    assert _ids(client.get("/marketplace/cases", headers=headers)) == ["case-1", "case-3"]
    assert _ids(client.get("/marketplace/cases", params={"org_id": "org-9"}, headers=headers)) == ["case-3"]
    assert _ids(client.get("/marketplace/cases", params={"is_urgent": "false"}, headers=headers)) == ["case-1"]


def test_marketplace_is_for_contractors(client, auth):
    resp = client.get("/marketplace/cases", headers=auth("oa-1", Role.ORG_ADMIN, "org-7"))
    assert resp.status_code == 403


def test_accept_case(client, auth, published, repo):
    resp = client.post("/marketplace/cases/case-1/accept", headers=auth("c-1", Role.CONTRACTOR))

    assert resp.status_code == 200
    assert resp.json() == {"case_id": "case-1", "status": "In Progress", "assigned_contractor_id": "c-1"}
    assert repo.cases["case-1"].assigned_contractor_id == "c-1"

    [(routing_key, body)] = published
    assert routing_key == "case.accepted"
    assert '"audience":{"user_id":"c-1","org_id":"org-7"}' in body


def test_accept_refusals(client, auth, published):
    assert client.post("/marketplace/cases/case-2/accept", headers=auth("c-1", Role.CONTRACTOR)).status_code == 409
    assert client.post("/marketplace/cases/case-404/accept", headers=auth("c-1", Role.CONTRACTOR)).status_code == 404

    resp = client.post("/marketplace/cases/case-3/accept", headers=auth("c-busy", Role.CONTRACTOR))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Contractor is not available"

    resp = client.post("/marketplace/cases/case-3/accept", headers=auth("c-new", Role.CONTRACTOR))
    assert resp.json()["detail"] == "Contractor profile not found"

    assert published == []
