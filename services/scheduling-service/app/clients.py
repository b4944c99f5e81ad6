import logging
from dataclasses import dataclass

import httpx
from fastapi import HTTPException

from shared.config import ACCESS_SERVICE_URL

DEFAULT_TIMEOUT = 3.0

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaseAccess:
    case_id: str
    visible: bool
    org_id: str | None = None


def _headers(bearer_token: str | None, request_id: str | None) -> dict:
    headers = {}
    if bearer_token:
        headers["Authorization"] = f"Bearer {bearer_token}"
    if request_id:
        headers["X-Request-Id"] = request_id
    return headers


async def fetch_case_access(
    case_id: str,
    bearer_token: str | None,
    request_id: str | None = None,
) -> CaseAccess:
    """
    Asks the access service whether the caller may see case_id.
    Any failure to get a clear answer is a refusal.
    """
    url = f"{ACCESS_SERVICE_URL}/cases/{case_id}/access"
    try:
        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
            resp = await client.get(url, headers=_headers(bearer_token, request_id))
            resp.raise_for_status()
            data = resp.json()
    except httpx.TimeoutException:
        logger.warning("Timeout checking access for case %s", case_id)
        raise HTTPException(status_code=504, detail=f"Timeout calling upstream: {url}")
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        if status in (401, 403, 404):
            raise HTTPException(status_code=status, detail=e.response.text)
        raise HTTPException(status_code=502, detail=f"Bad gateway calling upstream: {url}")
    except Exception:
        logger.exception("Access check failed for case %s", case_id)
        raise HTTPException(status_code=502, detail=f"Bad gateway calling upstream: {url}")

    return CaseAccess(
        case_id=case_id,
        visible=bool(data.get("visible")),
        org_id=data.get("org_id"),
    )
