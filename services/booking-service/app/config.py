import os

BOOKING_DB = os.getenv("BOOKING_DB")
if not BOOKING_DB:
    raise RuntimeError("BOOKING_DB environment variable is not set")

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM") or "HS256"

if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is not set")

RABBIT_URL = os.getenv("RABBIT_URL")  # optional; events are disabled without it

LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()
DB_ECHO = (os.getenv("DB_ECHO") or "false").lower() == "true"
