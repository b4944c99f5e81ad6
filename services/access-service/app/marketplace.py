"""
Contractor marketplace exposure rules.

can_contractor_see_case is the single visibility decision for one case.
Specialty matching is a listing pre-filter and deliberately stays outside it.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable

PRIORITY_RANK = {"Urgent": 3, "High": 2, "Medium": 1, "Low": 0}

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class CaseRecord:
    id: str
    org_id: str | None
    assigned_contractor_id: str | None = None
    tenant_id: str | None = None
    property_id: str | None = None
    unit_id: str | None = None
    title: str = ""
    status: str = "New"
    priority: str = "Medium"
    specialty_id: str | None = None
    is_urgent: bool = False
    restrict_to_favorites: bool = False
    posted_at: datetime | None = None


@dataclass(frozen=True)
class CaseVisibilityContext:
    case_id: str
    assigned_contractor_id: str | None = None
    org_id: str | None = None
    is_urgent: bool = False
    restrict_to_favorites: bool = False

    @classmethod
    def of(cls, case: CaseRecord) -> "CaseVisibilityContext":
        return cls(
            case_id=case.id,
            assigned_contractor_id=case.assigned_contractor_id,
            org_id=case.org_id,
            is_urgent=case.is_urgent,
            restrict_to_favorites=case.restrict_to_favorites,
        )


@dataclass(frozen=True)
class ContractorEligibility:
    contractor_id: str
    specialty_ids: frozenset
    is_favorite_of: Callable[[str | None], bool]
    has_active_org_link: Callable[[str | None], bool]

    @classmethod
    def from_sets(
        cls,
        contractor_id: str,
        specialty_ids: Iterable[str] = (),
        favorite_org_ids: Iterable[str] = (),
        linked_org_ids: Iterable[str] = (),
    ) -> "ContractorEligibility":
        favorites = frozenset(favorite_org_ids)
        links = frozenset(linked_org_ids)
        return cls(
            contractor_id=contractor_id,
            specialty_ids=frozenset(specialty_ids),
            is_favorite_of=lambda org_id: org_id in favorites,
            has_active_org_link=lambda org_id: org_id in links,
        )


@dataclass(frozen=True)
class MarketplaceFilters:
    org_id: str | None = None
    is_urgent: bool | None = None
    specialty_ids: frozenset = field(default_factory=frozenset)


@dataclass(frozen=True)
class AcceptDecision:
    can_accept: bool
    reason: str | None = None


def can_contractor_see_case(
    contractor_id: str,
    case: CaseVisibilityContext,
    eligibility: ContractorEligibility,
) -> bool:
    if case.assigned_contractor_id == contractor_id:
        return True

    if case.assigned_contractor_id:
        return False

    # Marketplace case. Urgency lifts the favorites restriction only; an
    # active org link is always required, and a case without an org has none.
    if not case.is_urgent and case.restrict_to_favorites:
        if not eligibility.is_favorite_of(case.org_id):
            return False

    if not case.org_id or not eligibility.has_active_org_link(case.org_id):
        return False

    return True


def matches_specialty(case_specialty_id: str | None, eligibility: ContractorEligibility) -> bool:
    # contractors without specialties are not offered marketplace work
    if not eligibility.specialty_ids:
        return False
    if case_specialty_id is None:
        return True
    return case_specialty_id in eligibility.specialty_ids


def _passes_filters(case: CaseRecord, filters: MarketplaceFilters) -> bool:
    if filters.org_id is not None and case.org_id != filters.org_id:
        return False
    if filters.is_urgent is not None and case.is_urgent != filters.is_urgent:
        return False
    if filters.specialty_ids and case.specialty_id not in filters.specialty_ids:
        return False
    return True


def list_marketplace_cases(
    contractor_id: str,
    cases: Iterable[CaseRecord],
    eligibility: ContractorEligibility,
    filters: MarketplaceFilters | None = None,
) -> list[CaseRecord]:
    filters = filters or MarketplaceFilters()

    visible = []
    for case in cases:
        if case.assigned_contractor_id:
            continue
        if not _passes_filters(case, filters):
            continue
        if not matches_specialty(case.specialty_id, eligibility):
            continue
        if not can_contractor_see_case(contractor_id, CaseVisibilityContext.of(case), eligibility):
            continue
        visible.append(case)

    return sorted(
        visible,
        key=lambda c: (PRIORITY_RANK.get(c.priority, PRIORITY_RANK["Medium"]), c.posted_at or _OLDEST),
        reverse=True,
    )


def can_contractor_accept_case(
    contractor_id: str,
    case: CaseRecord | None,
    eligibility: ContractorEligibility,
    contractor_available: bool | None,
) -> AcceptDecision:
    """
    contractor_available is None when the contractor has no profile.
    """
    if case is None:
        return AcceptDecision(False, "Case not found")

    if case.assigned_contractor_id:
        return AcceptDecision(False, "Case already assigned")

    if contractor_available is None:
        return AcceptDecision(False, "Contractor profile not found")

    if not contractor_available:
        return AcceptDecision(False, "Contractor is not available")

    if not case.org_id or not eligibility.has_active_org_link(case.org_id):
        return AcceptDecision(False, "No active relationship with this organization")

    if case.restrict_to_favorites and not case.is_urgent and not eligibility.is_favorite_of(case.org_id):
        return AcceptDecision(False, "This job is restricted to favorite contractors only")

    if not eligibility.specialty_ids:
        return AcceptDecision(False, "No specialties configured")

    if not matches_specialty(case.specialty_id, eligibility):
        return AcceptDecision(False, "Case specialty does not match contractor specialties")

    return AcceptDecision(True)
