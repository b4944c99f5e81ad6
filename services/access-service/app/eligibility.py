from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .marketplace import ContractorEligibility
from .models import (
    ContractorOrgLink,
    ContractorProfile,
    FavoriteContractor,
    UserContractorSpecialty,
)

ACTIVE_LINK = "active"


class EligibilitySource:
    """Marketplace facts about one contractor, read fresh for every request."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_favorite(self, org_id: str, contractor_id: str) -> bool:
        res = await self.db.execute(
            select(FavoriteContractor.id).where(
                FavoriteContractor.org_id == org_id,
                FavoriteContractor.contractor_user_id == contractor_id,
            )
        )
        return res.first() is not None

    async def has_active_org_link(self, org_id: str, contractor_id: str) -> bool:
        res = await self.db.execute(
            select(ContractorOrgLink.id).where(
                ContractorOrgLink.org_id == org_id,
                ContractorOrgLink.contractor_user_id == contractor_id,
                ContractorOrgLink.status == ACTIVE_LINK,
            )
        )
        return res.first() is not None

    async def specialties_of(self, contractor_id: str) -> frozenset:
        res = await self.db.execute(
            select(UserContractorSpecialty.specialty_id).where(UserContractorSpecialty.user_id == contractor_id)
        )
        return frozenset(res.scalars().all())

    async def is_available(self, contractor_id: str) -> bool | None:
        res = await self.db.execute(
            select(ContractorProfile.is_available).where(ContractorProfile.user_id == contractor_id)
        )
        row = res.first()
        if row is None:
            return None
        return bool(row[0])

    async def load(self, contractor_id: str) -> ContractorEligibility:
        """Prefetches favorites and active links so the gate never does I/O."""
        favorites = await self.db.execute(
            select(FavoriteContractor.org_id).where(FavoriteContractor.contractor_user_id == contractor_id)
        )
        links = await self.db.execute(
            select(ContractorOrgLink.org_id).where(
                ContractorOrgLink.contractor_user_id == contractor_id,
                ContractorOrgLink.status == ACTIVE_LINK,
            )
        )
        return ContractorEligibility.from_sets(
            contractor_id,
            specialty_ids=await self.specialties_of(contractor_id),
            favorite_org_ids=favorites.scalars().all(),
            linked_org_ids=links.scalars().all(),
        )
