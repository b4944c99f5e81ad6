"""
Access decisions wired to their data sources.

Every case and property read goes through resolve_scope here; the HTTP layer
never filters by organization on its own.
"""
import logging

from shared.errors import AccessDenied, ImpersonationStateInconsistent
from shared.principals import Principal, RequestContext, Role

from .marketplace import (
    AcceptDecision,
    CaseRecord,
    MarketplaceFilters,
    can_contractor_accept_case,
    list_marketplace_cases,
    matches_specialty,
)
from .scoping import (
    CASE,
    PROPERTY,
    ContractorScope,
    PropertyRecord,
    Scope,
    resolve_scope,
    scope_allows_case,
    scope_allows_property,
)

logger = logging.getLogger(__name__)


async def snapshot_context(principal: Principal, store, repo) -> RequestContext:
    """
    Reads the admin's impersonation exactly once. A target org that has
    since disappeared is an error, not a reason to fall back to the full view.
    """
    if not principal.is_platform_super_admin:
        return RequestContext(principal=principal)

    impersonation = await store.current(principal.user_id)
    if impersonation is not None and not await repo.organization_exists(impersonation.org_id):
        logger.warning(
            "Admin %s is impersonating missing org %s", principal.user_id, impersonation.org_id
        )
        raise ImpersonationStateInconsistent(impersonation.org_id)

    return RequestContext(principal=principal, impersonation=impersonation)


async def scope_for(context: RequestContext, resource_kind: str, repo) -> Scope:
    tenant_link = None
    if context.principal.role is Role.TENANT:
        tenant_link = await repo.tenant_link(context.principal.user_id)
    return resolve_scope(context, resource_kind, tenant_link)


async def visible_cases(context: RequestContext, repo, eligibility_source) -> list[CaseRecord]:
    scope = await scope_for(context, CASE, repo)
    cases = await repo.list_cases(scope)

    if not isinstance(scope, ContractorScope):
        return [c for c in cases if scope_allows_case(scope, c)]

    eligibility = await eligibility_source.load(scope.contractor_id)
    return [
        c
        for c in cases
        if scope_allows_case(scope, c, eligibility)
        and (c.assigned_contractor_id == scope.contractor_id or matches_specialty(c.specialty_id, eligibility))
    ]


async def case_access(context: RequestContext, case_id: str, repo, eligibility_source) -> CaseRecord:
    """The case when the caller may see it; AccessDenied otherwise, including when it does not exist."""
    scope = await scope_for(context, CASE, repo)
    case = await repo.get_case(case_id)
    if case is None:
        raise AccessDenied("Case not visible")

    eligibility = None
    if isinstance(scope, ContractorScope):
        eligibility = await eligibility_source.load(scope.contractor_id)

    if not scope_allows_case(scope, case, eligibility):
        raise AccessDenied("Case not visible")
    return case


async def visible_properties(context: RequestContext, repo) -> list[PropertyRecord]:
    scope = await scope_for(context, PROPERTY, repo)
    props = await repo.list_properties(scope)

    contractor_property_ids = frozenset()
    if isinstance(scope, ContractorScope):
        contractor_property_ids = await repo.contractor_property_ids(scope.contractor_id)

    return [p for p in props if scope_allows_property(scope, p, contractor_property_ids)]


def _require_contractor(context: RequestContext) -> str:
    principal = context.principal
    if principal.role is not Role.CONTRACTOR:
        raise AccessDenied("Marketplace is only available to contractors")
    return principal.user_id


async def marketplace_cases(
    context: RequestContext,
    filters: MarketplaceFilters,
    repo,
    eligibility_source,
) -> list[CaseRecord]:
    contractor_id = _require_contractor(context)
    eligibility = await eligibility_source.load(contractor_id)
    if not eligibility.specialty_ids:
        return []
    candidates = await repo.unassigned_cases(filters)
    return list_marketplace_cases(contractor_id, candidates, eligibility, filters)


async def accept_case(context: RequestContext, case_id: str, repo, eligibility_source) -> tuple[AcceptDecision, CaseRecord | None]:
    contractor_id = _require_contractor(context)

    case = await repo.get_case(case_id)
    eligibility = await eligibility_source.load(contractor_id)
    available = await eligibility_source.is_available(contractor_id)

    decision = can_contractor_accept_case(contractor_id, case, eligibility, available)
    if not decision.can_accept:
        return decision, case

    if not await repo.assign_case(case_id, contractor_id):
        return AcceptDecision(False, "Case already assigned"), case

    logger.info("Contractor %s accepted case %s", contractor_id, case_id)
    return decision, case
