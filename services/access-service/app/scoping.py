"""
Row-level scope for properties and maintenance cases.

resolve_scope is the only place that turns a principal into a scope. Its
rules run top to bottom and the first match wins:

  1. platform super admin impersonating an org -> that org
  2. platform super admin                      -> everything
  3. org admin                                 -> own org
  4. contractor                                -> per-case marketplace gate
  5. tenant                                    -> own unit / own cases
  6. anything else                             -> nothing
"""
from dataclasses import dataclass

from shared.principals import RequestContext, Role

from .marketplace import (
    CaseRecord,
    CaseVisibilityContext,
    ContractorEligibility,
    can_contractor_see_case,
)

PROPERTY = "property"
CASE = "case"
RESOURCE_KINDS = (PROPERTY, CASE)


@dataclass(frozen=True)
class Unscoped:
    kind = "unscoped"


@dataclass(frozen=True)
class OrgScope:
    org_id: str
    impersonating: bool = False
    kind = "org"


@dataclass(frozen=True)
class ContractorScope:
    contractor_id: str
    kind = "contractor"


@dataclass(frozen=True)
class TenantScope:
    tenant_user_id: str
    property_id: str | None = None
    unit_id: str | None = None
    kind = "tenant"


@dataclass(frozen=True)
class Denied:
    reason: str = "No matching role"
    kind = "denied"


Scope = Unscoped | OrgScope | ContractorScope | TenantScope | Denied


@dataclass(frozen=True)
class TenantLink:
    property_id: str | None = None
    unit_id: str | None = None


@dataclass(frozen=True)
class PropertyRecord:
    id: str
    org_id: str
    name: str = ""
    address: str | None = None


def resolve_scope(context: RequestContext, resource_kind: str, tenant_link: TenantLink | None = None) -> Scope:
    if resource_kind not in RESOURCE_KINDS:
        raise ValueError(f"Unknown resource kind: {resource_kind}")

    principal = context.effective_principal
    role = principal.role

    if role is Role.PLATFORM_SUPER_ADMIN:
        if principal.view_as_org_id:
            return OrgScope(principal.view_as_org_id, impersonating=True)
        return Unscoped()

    if role is Role.ORG_ADMIN:
        if not principal.org_id:
            return Denied("Org admin without an organization")
        return OrgScope(principal.org_id)

    if role is Role.CONTRACTOR:
        return ContractorScope(principal.user_id)

    if role is Role.TENANT:
        link = tenant_link or TenantLink()
        return TenantScope(principal.user_id, property_id=link.property_id, unit_id=link.unit_id)

    return Denied()


def scope_allows_case(scope: Scope, case: CaseRecord, eligibility: ContractorEligibility | None = None) -> bool:
    if isinstance(scope, Unscoped):
        return True

    if isinstance(scope, OrgScope):
        return case.org_id == scope.org_id

    if isinstance(scope, ContractorScope):
        if eligibility is None:
            # without eligibility facts only assigned work can be shown
            return case.assigned_contractor_id == scope.contractor_id
        return can_contractor_see_case(scope.contractor_id, CaseVisibilityContext.of(case), eligibility)

    if isinstance(scope, TenantScope):
        if case.tenant_id == scope.tenant_user_id:
            return True
        return scope.unit_id is not None and case.unit_id == scope.unit_id

    return False


def scope_allows_property(scope: Scope, prop: PropertyRecord, contractor_property_ids=frozenset()) -> bool:
    if isinstance(scope, Unscoped):
        return True

    if isinstance(scope, OrgScope):
        return prop.org_id == scope.org_id

    if isinstance(scope, ContractorScope):
        # properties where the contractor has assigned work
        return prop.id in contractor_property_ids

    if isinstance(scope, TenantScope):
        return scope.property_id is not None and prop.id == scope.property_id

    return False


def describe_scope(scope: Scope) -> dict:
    out = {"kind": scope.kind}
    if isinstance(scope, OrgScope):
        out["org_id"] = scope.org_id
        out["impersonating"] = scope.impersonating
    elif isinstance(scope, ContractorScope):
        out["contractor_id"] = scope.contractor_id
    elif isinstance(scope, TenantScope):
        out["tenant_user_id"] = scope.tenant_user_id
        out["property_id"] = scope.property_id
        out["unit_id"] = scope.unit_id
    elif isinstance(scope, Denied):
        out["reason"] = scope.reason
    return out
