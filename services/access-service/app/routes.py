from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shared.events import build_decision_record, to_json
from shared.principals import Principal, RequestContext
from shared.rbac import require_platform_admin
from shared.redis_client import redis_client
from shared.security import get_current_principal

from . import services
from .db import SessionLocal
from .eligibility import EligibilitySource
from .marketplace import CaseRecord, MarketplaceFilters
from .rabbitmq import publisher
from .repository import AccessRepository
from .schemas import (
    AcceptCaseResponse,
    CaseAccessOut,
    CaseOut,
    ImpersonationOut,
    PropertyOut,
    ScopeOut,
    StartImpersonation,
)
from .scoping import RESOURCE_KINDS, describe_scope
from .sessions import ImpersonationStore

router = APIRouter()

impersonation_store = ImpersonationStore(redis_client)


async def get_db():
    async with SessionLocal() as session:
        yield session


def get_repository(db: AsyncSession = Depends(get_db)) -> AccessRepository:
    return AccessRepository(db)


def get_eligibility_source(db: AsyncSession = Depends(get_db)) -> EligibilitySource:
    return EligibilitySource(db)


def get_impersonation_store() -> ImpersonationStore:
    return impersonation_store


async def get_request_context(
    principal: Principal = Depends(get_current_principal),
    store: ImpersonationStore = Depends(get_impersonation_store),
    repo=Depends(get_repository),
) -> RequestContext:
    return await services.snapshot_context(principal, store, repo)


def _case_out(case: CaseRecord) -> CaseOut:
    return CaseOut(
        id=case.id,
        org_id=case.org_id,
        title=case.title,
        status=case.status,
        priority=case.priority,
        property_id=case.property_id,
        unit_id=case.unit_id,
        specialty_id=case.specialty_id,
        assigned_contractor_id=case.assigned_contractor_id,
        is_urgent=case.is_urgent,
        restrict_to_favorites=case.restrict_to_favorites,
        posted_at=case.posted_at,
    )


# ================= SCOPE =================

@router.get("/access/scope/{resource_kind}", response_model=ScopeOut, tags=["Access"])
async def get_scope(resource_kind: str, context: RequestContext = Depends(get_request_context), repo=Depends(get_repository)):
    if resource_kind not in RESOURCE_KINDS:
        raise HTTPException(status_code=404, detail=f"Unknown resource kind: {resource_kind}")
    scope = await services.scope_for(context, resource_kind, repo)
    return ScopeOut(resource_kind=resource_kind, **describe_scope(scope))


# ================= CASES =================

@router.get("/cases", response_model=List[CaseOut], tags=["Cases"])
async def list_cases(
    context: RequestContext = Depends(get_request_context),
    repo=Depends(get_repository),
    eligibility_source=Depends(get_eligibility_source),
):
    cases = await services.visible_cases(context, repo, eligibility_source)
    return [_case_out(c) for c in cases]


@router.get("/cases/{case_id}/access", response_model=CaseAccessOut, tags=["Cases"])
async def get_case_access(
    case_id: str,
    context: RequestContext = Depends(get_request_context),
    repo=Depends(get_repository),
    eligibility_source=Depends(get_eligibility_source),
):
    case = await services.case_access(context, case_id, repo, eligibility_source)
    return CaseAccessOut(case_id=case.id, visible=True, org_id=case.org_id)


# ================= PROPERTIES =================

@router.get("/properties", response_model=List[PropertyOut], tags=["Properties"])
async def list_properties(context: RequestContext = Depends(get_request_context), repo=Depends(get_repository)):
    props = await services.visible_properties(context, repo)
    return [PropertyOut(id=p.id, org_id=p.org_id, name=p.name, address=p.address) for p in props]


# ================= MARKETPLACE =================

@router.get("/marketplace/cases", response_model=List[CaseOut], tags=["Marketplace"])
async def list_marketplace(
    org_id: Optional[str] = None,
    is_urgent: Optional[bool] = None,
    specialty_id: Optional[List[str]] = Query(default=None),
    context: RequestContext = Depends(get_request_context),
    repo=Depends(get_repository),
    eligibility_source=Depends(get_eligibility_source),
):
    filters = MarketplaceFilters(
        org_id=org_id,
        is_urgent=is_urgent,
        specialty_ids=frozenset(specialty_id or ()),
    )
    cases = await services.marketplace_cases(context, filters, repo, eligibility_source)
    return [_case_out(c) for c in cases]


@router.post("/marketplace/cases/{case_id}/accept", response_model=AcceptCaseResponse, tags=["Marketplace"])
async def accept_marketplace_case(
    case_id: str,
    context: RequestContext = Depends(get_request_context),
    repo=Depends(get_repository),
    eligibility_source=Depends(get_eligibility_source),
):
    decision, case = await services.accept_case(context, case_id, repo, eligibility_source)
    if not decision.can_accept:
        if case is None:
            raise HTTPException(status_code=404, detail=decision.reason)
        if decision.reason == "Case already assigned":
            raise HTTPException(status_code=409, detail=decision.reason)
        raise HTTPException(status_code=403, detail=decision.reason)

    contractor_id = context.principal.user_id
    record = build_decision_record(
        "case.accepted",
        user_id=contractor_id,
        org_id=case.org_id,
        data={"case_id": case_id, "contractor_id": contractor_id},
    )
    await publisher.publish("case.accepted", to_json(record))

    return AcceptCaseResponse(case_id=case_id, status="In Progress", assigned_contractor_id=contractor_id)


# ================= IMPERSONATION =================

@router.get("/admin/impersonation", response_model=ImpersonationOut, tags=["Admin"])
async def get_impersonation(
    principal: Principal = Depends(get_current_principal),
    store: ImpersonationStore = Depends(get_impersonation_store),
):
    require_platform_admin(principal)
    current = await store.current(principal.user_id)
    if current is None:
        return ImpersonationOut(active=False)
    return ImpersonationOut(active=True, org_id=current.org_id, org_name=current.org_name)


@router.post("/admin/impersonation", response_model=ImpersonationOut, tags=["Admin"])
async def start_impersonation(
    data: StartImpersonation,
    principal: Principal = Depends(get_current_principal),
    store: ImpersonationStore = Depends(get_impersonation_store),
    repo=Depends(get_repository),
):
    require_platform_admin(principal)
    org = await repo.get_organization(data.org_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")

    started = await store.start(principal.user_id, org.id, org.name)
    return ImpersonationOut(active=True, org_id=started.org_id, org_name=started.org_name)


@router.delete("/admin/impersonation", response_model=ImpersonationOut, tags=["Admin"])
async def stop_impersonation(
    principal: Principal = Depends(get_current_principal),
    store: ImpersonationStore = Depends(get_impersonation_store),
):
    require_platform_admin(principal)
    await store.stop(principal.user_id)
    return ImpersonationOut(active=False)
