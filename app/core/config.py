from functools import lru_cache
import enum
import json

from pydantic_settings import BaseSettings, SettingsConfigDict


class DummyUnitPolicy(str, enum.Enum):
    UNCAPPED = "uncapped"
    CAPPED_WITH_SCALED_FALLBACK = "capped_with_scaled_fallback"


def parse_cors_origins(value: str) -> list[str]:
    if not value:
        return []

    parsed: list[str]
    raw = value.strip()
    if raw.startswith("["):
        try:
            items = json.loads(raw)
            parsed = [str(item).strip() for item in items if str(item).strip()]
        except (TypeError, ValueError):
            parsed = []
    else:
        parsed = [origin.strip() for origin in raw.split(",") if origin.strip()]

    # Preserve order and remove duplicates.
    return list(dict.fromkeys(parsed))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    app_name: str = "Lucky Draw Backend"
    environment: str = "development"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Security
    secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Database
    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 5
    db_pool_timeout: int = 15
    db_pool_recycle: int = 1200
    db_pool_pre_ping: bool = True

    # Draws
    slot_window_lead_minutes: int = 15
    dummy_unit_policy: DummyUnitPolicy = DummyUnitPolicy.UNCAPPED

    # Background jobs
    scheduler_enabled: bool = False
    scheduler_interval_seconds: int = 60
    auto_announce_enabled: bool = False

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    auto_create_tables: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
