import os

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM") or "HS256"

REDIS_URL = os.getenv("REDIS_URL") or "redis://localhost:6379/0"
RABBIT_URL = os.getenv("RABBIT_URL")  # optional, events disabled when unset

SCHEDULING_DB = os.getenv("SCHEDULING_DB")
ACCESS_DB = os.getenv("ACCESS_DB")

ACCESS_SERVICE_URL = os.getenv("ACCESS_SERVICE_URL") or "http://access-service:8000"

# Default organizational timezone, applied only at the HTTP edge
PLATFORM_TIMEZONE = os.getenv("PLATFORM_TIMEZONE") or "America/New_York"

DEFAULT_JOB_DURATION_MINUTES = int(os.getenv("DEFAULT_JOB_DURATION_MINUTES") or "120")

DISPLAY_HOURS_START = int(os.getenv("DISPLAY_HOURS_START") or "6")
DISPLAY_HOURS_END = int(os.getenv("DISPLAY_HOURS_END") or "22")

IMPERSONATION_TTL_SECONDS = int(os.getenv("IMPERSONATION_TTL_SECONDS") or str(8 * 3600))

LOG_LEVEL = os.getenv("LOG_LEVEL") or "INFO"
