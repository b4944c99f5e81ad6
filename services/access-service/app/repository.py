from datetime import datetime, timezone

from sqlalchemy import and_, false, or_, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession

from .marketplace import CaseRecord, MarketplaceFilters
from .models import ContractorOrgLink, Organization, Property, SmartCase, Tenant
from .scoping import (
    CASE,
    PROPERTY,
    ContractorScope,
    Denied,
    OrgScope,
    PropertyRecord,
    Scope,
    TenantLink,
    TenantScope,
    Unscoped,
)


def scope_clause(scope: Scope, resource_kind: str):
    """
    Where-clause for a resolved scope. Org filtering of cases and properties
    happens here and nowhere else.
    """
    model = SmartCase if resource_kind == CASE else Property

    if isinstance(scope, Unscoped):
        return true()

    if isinstance(scope, OrgScope):
        return model.org_id == scope.org_id

    if isinstance(scope, ContractorScope):
        if resource_kind == CASE:
            # assigned work plus marketplace candidates; the gate narrows the latter
            return or_(
                SmartCase.assigned_contractor_id == scope.contractor_id,
                SmartCase.assigned_contractor_id.is_(None),
            )
        return Property.id.in_(
            select(SmartCase.property_id).where(SmartCase.assigned_contractor_id == scope.contractor_id)
        )

    if isinstance(scope, TenantScope):
        if resource_kind == CASE:
            clause = SmartCase.tenant_id == scope.tenant_user_id
            if scope.unit_id is not None:
                clause = or_(clause, SmartCase.unit_id == scope.unit_id)
            return clause
        if scope.property_id is None:
            return false()
        return Property.id == scope.property_id

    if isinstance(scope, Denied):
        return false()

    raise TypeError(f"Unknown scope: {scope!r}")


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_case_record(row: SmartCase) -> CaseRecord:
    return CaseRecord(
        id=row.id,
        org_id=row.org_id,
        assigned_contractor_id=row.assigned_contractor_id,
        tenant_id=row.tenant_id,
        property_id=row.property_id,
        unit_id=row.unit_id,
        title=row.title,
        status=row.status,
        priority=row.priority,
        specialty_id=row.specialty_id,
        is_urgent=bool(row.is_urgent),
        restrict_to_favorites=bool(row.restrict_to_favorites),
        posted_at=_aware(row.posted_at),
    )


def to_property_record(row: Property) -> PropertyRecord:
    return PropertyRecord(id=row.id, org_id=row.org_id, name=row.name, address=row.address)


class AccessRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_organization(self, org_id: str) -> Organization | None:
        res = await self.db.execute(select(Organization).where(Organization.id == org_id))
        return res.scalar_one_or_none()

    async def organization_exists(self, org_id: str) -> bool:
        return await self.get_organization(org_id) is not None

    async def tenant_link(self, user_id: str) -> TenantLink | None:
        res = await self.db.execute(select(Tenant).where(Tenant.user_id == user_id))
        tenant = res.scalar_one_or_none()
        if not tenant:
            return None
        return TenantLink(property_id=tenant.property_id, unit_id=tenant.unit_id)

    async def list_cases(self, scope: Scope) -> list[CaseRecord]:
        res = await self.db.execute(
            select(SmartCase).where(scope_clause(scope, CASE)).order_by(SmartCase.id)
        )
        return [to_case_record(row) for row in res.scalars().all()]

    async def get_case(self, case_id: str) -> CaseRecord | None:
        res = await self.db.execute(select(SmartCase).where(SmartCase.id == case_id))
        row = res.scalar_one_or_none()
        return to_case_record(row) if row else None

    async def list_properties(self, scope: Scope) -> list[PropertyRecord]:
        res = await self.db.execute(
            select(Property).where(scope_clause(scope, PROPERTY)).order_by(Property.id)
        )
        return [to_property_record(row) for row in res.scalars().all()]

    async def contractor_property_ids(self, contractor_id: str) -> frozenset:
        res = await self.db.execute(
            select(SmartCase.property_id).where(
                SmartCase.assigned_contractor_id == contractor_id,
                SmartCase.property_id.is_not(None),
            )
        )
        return frozenset(res.scalars().all())

    async def unassigned_cases(self, filters: MarketplaceFilters) -> list[CaseRecord]:
        stmt = select(SmartCase).where(SmartCase.assigned_contractor_id.is_(None))
        if filters.org_id is not None:
            stmt = stmt.where(SmartCase.org_id == filters.org_id)
        if filters.is_urgent is not None:
            stmt = stmt.where(SmartCase.is_urgent == filters.is_urgent)
        res = await self.db.execute(stmt)
        return [to_case_record(row) for row in res.scalars().all()]

    async def assign_case(self, case_id: str, contractor_id: str) -> bool:
        """
        Assigns the case only while it is still unassigned and refreshes the
        contractor's org link. Returns False when someone else got there first.
        """
        res = await self.db.execute(
            update(SmartCase)
            .where(and_(SmartCase.id == case_id, SmartCase.assigned_contractor_id.is_(None)))
            .values(assigned_contractor_id=contractor_id, status="In Progress")
        )
        if res.rowcount != 1:
            await self.db.rollback()
            return False

        org_res = await self.db.execute(select(SmartCase.org_id).where(SmartCase.id == case_id))
        org_id = org_res.scalar_one_or_none()
        if org_id:
            now = datetime.now(timezone.utc)
            link_res = await self.db.execute(
                select(ContractorOrgLink).where(
                    ContractorOrgLink.contractor_user_id == contractor_id,
                    ContractorOrgLink.org_id == org_id,
                )
            )
            link = link_res.scalar_one_or_none()
            if link:
                link.status = "active"
                link.last_job_at = now
            else:
                self.db.add(
                    ContractorOrgLink(
                        contractor_user_id=contractor_id,
                        org_id=org_id,
                        status="active",
                        last_job_at=now,
                    )
                )

        await self.db.commit()
        return True
