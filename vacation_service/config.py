import os

DATABASE_URL = os.getenv("VACATION_DB")
if not DATABASE_URL:
    raise RuntimeError("VACATION_DB environment variable is not set")

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM") or "HS256"

if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is not set")

REDIS_URL = os.getenv("REDIS_URL")
if not REDIS_URL:
    raise RuntimeError("REDIS_URL environment variable is not set")

RABBIT_URL = os.getenv("RABBIT_URL")  # optional in dev, required if you want events

LOG_LEVEL = os.getenv("LOG_LEVEL") or "INFO"

QUERY_TIMEOUT_SECONDS = float(os.getenv("QUERY_TIMEOUT_SECONDS") or "5")


def _flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in ("1", "true", "yes", "on")


# Booking policy toggles
COMPLETION_REQUIRES_ELAPSED = _flag("COMPLETION_REQUIRES_ELAPSED")
REJECT_OVERLAPPING_CONFIRMATIONS = _flag("REJECT_OVERLAPPING_CONFIRMATIONS")
