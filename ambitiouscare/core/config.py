import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ambitiouscare.db")

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:5173"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))
JWT_ISSUER = os.getenv("JWT_ISSUER", "ambitiouscare")

# Appointment timestamps are stored naive in this zone.
SCHEDULING_TIMEZONE = os.getenv("SCHEDULING_TIMEZONE", "UTC")

DEFAULT_AVAILABILITY_START = os.getenv("DEFAULT_AVAILABILITY_START", "09:00")
DEFAULT_AVAILABILITY_END = os.getenv("DEFAULT_AVAILABILITY_END", "17:00")
DEFAULT_AVAILABILITY_DAYS = [
    int(day) for day in _get_list(os.getenv("DEFAULT_AVAILABILITY_DAYS"), ["1", "2", "3", "4", "5"])
]

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
AVAILABILITY_CACHE_TTL_SECONDS = int(os.getenv("AVAILABILITY_CACHE_TTL_SECONDS", "300"))
DEFAULT_SLOT_MINUTES = int(os.getenv("DEFAULT_SLOT_MINUTES", "60"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if any(day < 0 or day > 6 for day in DEFAULT_AVAILABILITY_DAYS):
        raise RuntimeError("DEFAULT_AVAILABILITY_DAYS must be between 0 (Sunday) and 6 (Saturday).")
