import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_hours(value: str) -> tuple[tuple[int, int], ...]:
    hours: list[tuple[int, int]] = []
    for chunk in value.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        start, end = chunk.split("-", 1)
        hours.append((int(start), int(end)))
    return tuple(hours)


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./consultation.db")

CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:4200").split(",")
    if origin.strip()
]

LOCK_SCOPE_STAFF = "staff"
LOCK_SCOPE_GLOBAL = "global"
SCHEDULER_LOCK_SCOPE = os.getenv("SCHEDULER_LOCK_SCOPE", LOCK_SCOPE_STAFF).strip().lower()

MIN_SLOT_LEAD_MINUTES = int(os.getenv("MIN_SLOT_LEAD_MINUTES", "1"))
ADVISING_SUBJECT = os.getenv("ADVISING_SUBJECT", "Academic Advising")

DEFAULT_SLOT_DAYS = int(os.getenv("DEFAULT_SLOT_DAYS", "7"))
DEFAULT_SLOT_HOURS = _get_hours(os.getenv("DEFAULT_SLOT_HOURS", "9-10,10-11,11-12,13-14,14-15,15-16"))

NOTIFICATION_TIME_FORMAT = os.getenv("NOTIFICATION_TIME_FORMAT", "%b %d, %H:%M")


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and DATABASE_URL.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must point to a server database in production.")
    if SCHEDULER_LOCK_SCOPE not in {LOCK_SCOPE_STAFF, LOCK_SCOPE_GLOBAL}:
        raise RuntimeError(
            f"SCHEDULER_LOCK_SCOPE must be '{LOCK_SCOPE_STAFF}' or '{LOCK_SCOPE_GLOBAL}', got '{SCHEDULER_LOCK_SCOPE}'."
        )
    if MIN_SLOT_LEAD_MINUTES < 0:
        raise RuntimeError("MIN_SLOT_LEAD_MINUTES cannot be negative.")
    for start_hour, end_hour in DEFAULT_SLOT_HOURS:
        if not 0 <= start_hour < end_hour <= 24:
            raise RuntimeError(f"DEFAULT_SLOT_HOURS contains an invalid range {start_hour}-{end_hour}.")
