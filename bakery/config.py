# bakery/config.py
from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load .env locally (safe in prod too)
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() not in {"0", "false", "no", ""}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [p.strip() for p in raw.split(",") if p.strip()]


# -------------------
# Config (env-driven)
# -------------------
class Settings(BaseModel):
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./dev.sqlite")
    timezone: str = os.getenv("BAKERY_TIMEZONE", "Europe/Paris")
    pickup_locations: list[str] = Field(
        default_factory=lambda: _env_list("PICKUP_LOCATIONS", "Lombard,Village X")
    )

    public_base_url: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:5174")
    edit_token_ttl_days: int = _env_int("EDIT_TOKEN_TTL_DAYS", 30)

    admin_password: str = os.getenv("ADMIN_PASSWORD", "devadmin")
    admin_key: str = os.getenv("ADMIN_KEY", "").strip()
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    jwt_alg: str = os.getenv("JWT_ALG", "HS256")
    jwt_expire_minutes: int = _env_int("JWT_EXPIRE_MIN", 720)

    upload_dir: str = os.getenv("UPLOAD_DIR", os.path.join(os.getcwd(), "data", "uploads"))

    smtp_host: str = os.getenv("SMTP_HOST", "").strip()
    smtp_port: int = _env_int("SMTP_PORT", 587)
    smtp_user: str = os.getenv("SMTP_USER", "").strip()
    smtp_password: str = os.getenv("SMTP_PASSWORD", "")
    mail_from: str = os.getenv("MAIL_FROM", "orders@bakery.local")
    currency_symbol: str = os.getenv("CURRENCY_SYMBOL", "€")

    seed_catalog: bool = _env_bool("SEED_CATALOG", "1")
    legacy_variant_names: bool = _env_bool("LEGACY_VARIANT_NAMES", "0")

    cors_origins: list[str] = Field(
        default_factory=lambda: _env_list("CORS_ORIGINS", "http://localhost:5173,http://localhost:5174")
    )
    api_prefix: str = os.getenv("API_PREFIX", "").rstrip("/")

    port: int = _env_int("PORT", 4000)
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


def get_settings() -> Settings:
    return Settings()
