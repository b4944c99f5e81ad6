import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.pool import StaticPool

from shared.database import get_engine, get_session
from shared.errors import ImpersonationStateInconsistent
from shared.principals import Impersonation, Principal, RequestContext, Role

from access_service import services
from access_service.db import Base as AccessBase
from access_service.eligibility import EligibilitySource
from access_service.marketplace import MarketplaceFilters
from access_service.models import (
    ContractorOrgLink,
    ContractorProfile,
    FavoriteContractor,
    Organization,
    Property,
    SmartCase,
    Tenant,
    UserContractorSpecialty,
)
from access_service.repository import AccessRepository
from access_service.scoping import ContractorScope, Denied, OrgScope, TenantScope, Unscoped
from scheduling_service.db import Base as SchedulingBase
from scheduling_service.models import Appointment
from scheduling_service.repository import list_scheduled_jobs


def _utc(day, hour):
    return datetime(2024, 3, day, hour, tzinfo=timezone.utc)


def run_with_session(base, rows, check):
    """Seeds a fresh in-memory database and runs check(session) against it."""

    async def scenario():
        engine = get_engine("sqlite+aiosqlite://", poolclass=StaticPool)
        async with engine.begin() as conn:
            await conn.run_sync(base.metadata.create_all)

        session_factory = get_session(engine)
        async with session_factory() as db:
            db.add_all(rows)
            await db.commit()
            await check(db)

        await engine.dispose()

    asyncio.run(scenario())


# ================= SCHEDULING =================

def test_list_scheduled_jobs_skips_inactive_and_unscheduled():
    rows = [
        Appointment(id="a-1", case_id="case-1", contractor_id="c-1",
                    scheduled_start_at=_utc(4, 14), scheduled_end_at=_utc(4, 15)),
        Appointment(id="a-2", case_id="case-2", contractor_id="c-1",
                    scheduled_start_at=_utc(4, 9), scheduled_end_at=_utc(4, 10), status="Cancelled"),
        Appointment(id="a-3", case_id="case-3", contractor_id="c-1"),
        Appointment(id="a-4", case_id="case-4", contractor_id="c-2",
                    scheduled_start_at=_utc(4, 14), scheduled_end_at=_utc(4, 15)),
        Appointment(id="a-5", case_id="case-5", contractor_id="c-1",
                    scheduled_start_at=_utc(5, 9), scheduled_end_at=_utc(5, 9)),
        Appointment(id="a-6", case_id="case-6", contractor_id="c-1",
                    scheduled_start_at=_utc(3, 9), scheduled_end_at=_utc(3, 11), status="Completed"),
    ]

    async def check(db):
        jobs = await list_scheduled_jobs(db, "c-1")
        assert [j.id for j in jobs] == ["a-6", "a-1"]
        assert jobs[1].start == _utc(4, 14)
        assert jobs[1].start.tzinfo is not None
        assert jobs[1].case_id == "case-1"

        rescheduling = await list_scheduled_jobs(db, "c-1", exclude_job_id="a-1")
        assert [j.id for j in rescheduling] == ["a-6"]

    run_with_session(SchedulingBase, rows, check)


# ================= ACCESS =================

def _access_rows():
    return [
        Organization(id="org-7", name="Acme Property"),
        Organization(id="org-9", name="Birch Homes"),
        Property(id="p-1", org_id="org-7", name="Elm"),
        Property(id="p-2", org_id="org-7", name="Oak"),
        Property(id="p-3", org_id="org-9", name="Pine"),
        Tenant(user_id="t-1", property_id="p-1", unit_id="u-1"),
        SmartCase(id="case-1", org_id="org-7", property_id="p-1", unit_id="u-1", tenant_id="t-1",
                  title="Leaking tap", specialty_id="plumbing", priority="High",
                  posted_at=_utc(1, 9)),
        SmartCase(id="case-2", org_id="org-7", property_id="p-2", title="Broken heater",
                  assigned_contractor_id="c-1", status="In Progress"),
        SmartCase(id="case-3", org_id="org-9", property_id="p-3", title="Door jammed",
                  specialty_id="plumbing", is_urgent=True, restrict_to_favorites=True),
        SmartCase(id="case-4", org_id="org-7", property_id="p-1", title="Outlet sparks",
                  specialty_id="electrical"),
        ContractorOrgLink(contractor_user_id="c-1", org_id="org-7"),
        ContractorOrgLink(contractor_user_id="c-1", org_id="org-9", status="inactive"),
        FavoriteContractor(org_id="org-9", contractor_user_id="c-1"),
        UserContractorSpecialty(user_id="c-1", specialty_id="plumbing"),
        ContractorProfile(user_id="c-1", is_available=True),
    ]


def _case_ids(cases):
    return sorted(c.id for c in cases)


def test_scoped_case_queries():
    async def check(db):
        repo = AccessRepository(db)

        assert _case_ids(await repo.list_cases(Unscoped())) == ["case-1", "case-2", "case-3", "case-4"]
        assert _case_ids(await repo.list_cases(OrgScope("org-9"))) == ["case-3"]
        assert _case_ids(await repo.list_cases(ContractorScope("c-1"))) == ["case-1", "case-2", "case-3", "case-4"]
        assert _case_ids(await repo.list_cases(ContractorScope("c-2"))) == ["case-1", "case-3", "case-4"]
        assert _case_ids(await repo.list_cases(TenantScope("t-1", "p-1", "u-1"))) == ["case-1"]
        assert await repo.list_cases(Denied()) == []

    run_with_session(AccessBase, _access_rows(), check)


def test_scoped_property_queries():
    async def check(db):
        repo = AccessRepository(db)

        assert [p.id for p in await repo.list_properties(OrgScope("org-7"))] == ["p-1", "p-2"]
        assert [p.id for p in await repo.list_properties(ContractorScope("c-1"))] == ["p-2"]
        assert [p.id for p in await repo.list_properties(TenantScope("t-1", "p-1", "u-1"))] == ["p-1"]
        assert await repo.list_properties(TenantScope("t-2")) == []
        assert await repo.contractor_property_ids("c-1") == frozenset({"p-2"})

    run_with_session(AccessBase, _access_rows(), check)


def test_tenant_link_and_orgs():
    async def check(db):
        repo = AccessRepository(db)
        link = await repo.tenant_link("t-1")
        assert (link.property_id, link.unit_id) == ("p-1", "u-1")
        assert await repo.tenant_link("t-2") is None
        assert await repo.organization_exists("org-7")
        assert not await repo.organization_exists("org-404")

    run_with_session(AccessBase, _access_rows(), check)


def test_eligibility_source():
    async def check(db):
        source = EligibilitySource(db)
        eligibility = await source.load("c-1")

        assert eligibility.specialty_ids == frozenset({"plumbing"})
        assert eligibility.has_active_org_link("org-7")
        assert not eligibility.has_active_org_link("org-9")
        assert eligibility.is_favorite_of("org-9")
        assert await source.is_favorite("org-9", "c-1")
        assert await source.has_active_org_link("org-7", "c-1")
        assert not await source.has_active_org_link("org-9", "c-1")
        assert await source.is_available("c-1") is True
        assert await source.is_available("c-404") is None

    run_with_session(AccessBase, _access_rows(), check)


def test_contractor_visible_cases_apply_gate_and_specialty():
    contractor = RequestContext(Principal(user_id="c-1", role=Role.CONTRACTOR))

    async def check(db):
        repo = AccessRepository(db)
        source = EligibilitySource(db)

        # case-3 is urgent but its org link is inactive; case-4 needs another specialty
        assert _case_ids(await services.visible_cases(contractor, repo, source)) == ["case-1", "case-2"]

        listed = await services.marketplace_cases(contractor, MarketplaceFilters(), repo, source)
        assert [c.id for c in listed] == ["case-1"]

    run_with_session(AccessBase, _access_rows(), check)


def test_assign_case_is_first_come_first_served():
    async def check(db):
        repo = AccessRepository(db)

        assert await repo.assign_case("case-3", "c-2")
        assert not await repo.assign_case("case-3", "c-1")

        case = await repo.get_case("case-3")
        assert case.assigned_contractor_id == "c-2"
        assert case.status == "In Progress"

        res = await db.execute(
            select(ContractorOrgLink).where(ContractorOrgLink.contractor_user_id == "c-2")
        )
        link = res.scalar_one()
        assert (link.org_id, link.status) == ("org-9", "active")
        assert link.last_job_at is not None

    run_with_session(AccessBase, _access_rows(), check)


def test_accept_case_end_to_end():
    contractor = RequestContext(Principal(user_id="c-1", role=Role.CONTRACTOR))

    async def check(db):
        repo = AccessRepository(db)
        source = EligibilitySource(db)

        decision, case = await services.accept_case(contractor, "case-1", repo, source)
        assert decision.can_accept
        assert case.org_id == "org-7"

        decision, _ = await services.accept_case(contractor, "case-1", repo, source)
        assert decision.reason == "Case already assigned"

        decision, _ = await services.accept_case(contractor, "case-3", repo, source)
        assert decision.reason == "No active relationship with this organization"

    run_with_session(AccessBase, _access_rows(), check)


class _StaticStore:
    def __init__(self, impersonation):
        self.impersonation = impersonation
        self.reads = 0

    async def current(self, admin_user_id):
        self.reads += 1
        return self.impersonation


def test_snapshot_context_rejects_missing_impersonation_target():
    admin = Principal(user_id="admin-1", role=Role.PLATFORM_SUPER_ADMIN)

    async def check(db):
        repo = AccessRepository(db)

        store = _StaticStore(Impersonation("org-7"))
        context = await services.snapshot_context(admin, store, repo)
        assert context.effective_principal.view_as_org_id == "org-7"
        assert store.reads == 1

        with pytest.raises(ImpersonationStateInconsistent):
            await services.snapshot_context(admin, _StaticStore(Impersonation("org-404")), repo)

        context = await services.snapshot_context(admin, _StaticStore(None), repo)
        assert context.impersonation is None

    run_with_session(AccessBase, _access_rows(), check)
