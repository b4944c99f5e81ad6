import logging

from shared.config import IMPERSONATION_TTL_SECONDS
from shared.principals import Impersonation

logger = logging.getLogger(__name__)


class ImpersonationStore:
    """
    Admin impersonation state, keyed by admin user id.
    Written only by explicit start/stop actions; request handling only reads it.
    """

    def __init__(self, client, ttl_seconds: int = IMPERSONATION_TTL_SECONDS):
        self.client = client
        self.ttl_seconds = ttl_seconds

    def _key(self, admin_user_id: str) -> str:
        return f"impersonation:{admin_user_id}"

    async def current(self, admin_user_id: str) -> Impersonation | None:
        data = await self.client.hgetall(self._key(admin_user_id))
        if not data or not data.get("org_id"):
            return None
        return Impersonation(org_id=data["org_id"], org_name=data.get("org_name") or None)

    async def start(self, admin_user_id: str, org_id: str, org_name: str | None = None) -> Impersonation:
        key = self._key(admin_user_id)
        pipe = self.client.pipeline()
        pipe.delete(key)
        pipe.hset(key, mapping={"org_id": org_id, "org_name": org_name or ""})
        pipe.expire(key, self.ttl_seconds)
        await pipe.execute()
        logger.info("Admin %s started impersonating org %s", admin_user_id, org_id)
        return Impersonation(org_id=org_id, org_name=org_name)

    async def stop(self, admin_user_id: str):
        await self.client.delete(self._key(admin_user_id))
        logger.info("Admin %s stopped impersonation", admin_user_id)
