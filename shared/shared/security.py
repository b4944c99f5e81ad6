from jose import jwt, JWTError
from fastapi import Request, HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .config import JWT_SECRET, JWT_ALGORITHM
from .principals import Principal, Role

if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is not set")

bearer_scheme = HTTPBearer(auto_error=False)


def principal_from_claims(payload: dict) -> Principal:
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
        )

    role = payload.get("role")
    if role is None:
        roles = payload.get("roles")
        if isinstance(roles, list) and roles:
            role = roles[0]

    # view_as_org_id is never taken from the token; impersonation lives in the session store
    return Principal(
        user_id=str(sub),
        role=Role.parse(role),
        org_id=payload.get("org_id"),
    )


def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    token = None
    if creds and creds.scheme.lower() == "bearer":
        token = creds.credentials

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Bearer token",
        )

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    principal = principal_from_claims(payload)
    request.state.user_sub = principal.user_id
    request.state.user_role = principal.role.value if principal.role else None
    request.state.bearer_token = token
    return principal


def issue_token(principal: Principal) -> str:
    """Signs a token for a principal. Used by tests and local tooling; issuance proper lives elsewhere."""
    claims = {"sub": principal.user_id}
    if principal.role is not None:
        claims["role"] = principal.role.value
    if principal.org_id:
        claims["org_id"] = principal.org_id
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)
