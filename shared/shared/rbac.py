from fastapi import HTTPException, status

from .principals import Principal, Role


def require_role(principal: Principal, allowed_roles: list[Role]):
    if principal.role is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Role missing in token",
        )

    # Platform super admins pass every role guard
    if principal.is_platform_super_admin:
        return

    if principal.role not in set(allowed_roles):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access forbidden for this role",
        )


def require_platform_admin(principal: Principal):
    if not principal.is_platform_super_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Platform admin access required",
        )
