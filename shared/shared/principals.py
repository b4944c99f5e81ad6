from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    PLATFORM_SUPER_ADMIN = "platform_super_admin"
    ORG_ADMIN = "org_admin"
    CONTRACTOR = "contractor"
    TENANT = "tenant"

    @classmethod
    def parse(cls, value) -> "Role | None":
        """Unknown or missing roles become None, which every guard denies."""
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: Role | None
    org_id: str | None = None
    view_as_org_id: str | None = None

    def __post_init__(self):
        if self.view_as_org_id and self.role is not Role.PLATFORM_SUPER_ADMIN:
            raise ValueError("Only a platform super admin can impersonate an organization")

    @property
    def is_platform_super_admin(self) -> bool:
        return self.role is Role.PLATFORM_SUPER_ADMIN


@dataclass(frozen=True)
class Impersonation:
    org_id: str
    org_name: str | None = None


@dataclass(frozen=True)
class RequestContext:
    """
    Everything the access decisions need for one request.
    The impersonation is read once when the request starts and never re-read.
    """

    principal: Principal
    impersonation: Impersonation | None = None

    @property
    def effective_principal(self) -> Principal:
        if self.impersonation is None or not self.principal.is_platform_super_admin:
            return Principal(
                user_id=self.principal.user_id,
                role=self.principal.role,
                org_id=self.principal.org_id,
            )
        return Principal(
            user_id=self.principal.user_id,
            role=self.principal.role,
            org_id=self.principal.org_id,
            view_as_org_id=self.impersonation.org_id,
        )
