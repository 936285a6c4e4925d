from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Land Registry Exchange"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/api/v1"
    request_id_header: str = "X-Request-Id"

    # ─────────── DATABASE ───────────
    database_url: str

    # ─────────── JWT / AUTH ───────────
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_minutes: int = 1440  # 24 hours

    # accounts registered with these emails get the ADMIN role
    admin_emails: List[str] = []

    # ─────────── OTP ───────────
    otp_ttl_minutes: int = 5
    otp_max_attempts: int = 5
    otp_send_per_minute: int = 3

    # ─────────── LAND WORKFLOW ───────────
    require_verified_land_for_listing: bool = False
    certificate_base_url: str = "https://registry.local/certificates"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
