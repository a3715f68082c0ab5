import os
from pathlib import Path

DB_FILE = Path(os.getenv("NEXUS_DB_FILE", str(Path(__file__).resolve().parent / "nexus.db")))
STORAGE_KEY = os.getenv("NEXUS_STORAGE_KEY", "NEXUS_HMS_DB_V2")

AUTH_SECRET = os.getenv("NEXUS_AUTH_SECRET", "nexus-dev-secret-change-me")
TOKEN_TTL_SECONDS = int(os.getenv("NEXUS_TOKEN_TTL_SECONDS", str(12 * 60 * 60)))

PERSIST_RETRIES = int(os.getenv("NEXUS_PERSIST_RETRIES", "3"))
PERSIST_BACKOFF_SECONDS = float(os.getenv("NEXUS_PERSIST_BACKOFF_SECONDS", "0.05"))
PERSIST_TIMEOUT_SECONDS = float(os.getenv("NEXUS_PERSIST_TIMEOUT_SECONDS", "5"))

AUDIT_LOG_LIMIT = int(os.getenv("NEXUS_AUDIT_LOG_LIMIT", "100"))
NOTIFICATION_LIMIT = int(os.getenv("NEXUS_NOTIFICATION_LIMIT", "50"))

AI_MODEL = os.getenv("NEXUS_AI_MODEL", "gpt-4o-mini")


def strict_appointment_transitions() -> bool:
    return os.getenv("NEXUS_STRICT_APPOINTMENT_TRANSITIONS", "0") == "1"


def demo_reset_enabled() -> bool:
    return os.getenv("NEXUS_ENABLE_DEMO_RESET", "0") == "1"


def openai_api_key() -> str:
    return os.getenv("OPENAI_API_KEY", "")
