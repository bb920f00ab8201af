import os

db_url = os.environ.get("DB_URL", "sqlite://:memory:")
notifications_ms_url = os.environ.get("NOTIFICATIONS_MS_URL", "http://localhost:8004")

JWT_SECRET = os.environ.get("JWT_SECRET", "dev-secret-change-me-dev-secret-change-me")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
TOKEN_TTL_DAYS = int(os.environ.get("TOKEN_TTL_DAYS", "30"))

SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME", "LEDGER_SID")
COOKIE_SECURE = os.environ.get("COOKIE_SECURE", "false").lower() in ("1", "true", "yes")

PAYMENT_LINK_BASE = os.environ.get(
    "PAYMENT_LINK_BASE", "http://localhost:3000/pay?order="
)
