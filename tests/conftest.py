import os

# Service modules read their configuration at import time
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("SCHEDULING_DB", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ACCESS_DB", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.pop("RABBIT_URL", None)

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402

from shared.intervals import get_timezone  # noqa: E402
from shared.principals import Principal, Role  # noqa: E402
from shared.security import issue_token  # noqa: E402


@pytest.fixture
def ny():
    return get_timezone("America/New_York")


@pytest.fixture
def at(ny):
    """Builds an aware New York datetime."""

    def build(year, month, day, hour, minute=0):
        return datetime(year, month, day, hour, minute, tzinfo=ny)

    return build


def bearer(user_id: str, role: Role | None, org_id: str | None = None) -> dict:
    token = issue_token(Principal(user_id=user_id, role=role, org_id=org_id))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth():
    return bearer
