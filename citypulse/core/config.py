from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Tuple

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env sits in the project root, next to "citypulse/"
load_dotenv(Path(__file__).resolve().parents[2] / ".env")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    app_name: str = "CityPulse"
    env: str = "dev"
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    mongo_uri: str = Field("mongodb://localhost:27017", validation_alias="MONGO_URI")
    mongo_db: str = Field("citypulse", validation_alias="MONGO_DB")

    # officials allowed into the dashboard
    official_emails: List[str] = Field(
        default_factory=lambda: [
            "admin@citypulse.com",
            "official@citypulse.com",
        ],
        validation_alias="OFFICIAL_EMAILS",
    )
    allow_sign_up: bool = Field(True, validation_alias="ALLOW_SIGN_UP")
    min_password_length: int = 6

    geolocation_mode: str = Field("client", validation_alias="GEOLOCATION_MODE")
    geolocation_url: str = Field("https://ipapi.co/{ip}/json/", validation_alias="GEOLOCATION_URL")
    geolocation_high_accuracy: bool = True
    geolocation_timeout_seconds: float = 10.0
    geolocation_maximum_age_seconds: float = 60.0

    default_center: Tuple[float, float] = (20.5937, 78.9629)
    default_zoom: int = 5
    located_zoom: int = 15
    tile_url: str = "https://tile.openstreetmap.org/{z}/{x}/{y}.png"

    snapshot_poll_interval_seconds: float = Field(5.0, validation_alias="SNAPSHOT_POLL_INTERVAL_SECONDS")
    session_idle_seconds: int = Field(1800, validation_alias="SESSION_IDLE_SECONDS")
    session_cookie: str = "citypulse_session"

    cors_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        validation_alias="CORS_ORIGINS",
    )

    @field_validator("geolocation_mode")
    @classmethod
    def check_geolocation_mode(cls, v: str) -> str:
        if v not in ("client", "ip"):
            raise ValueError("geolocation_mode must be 'client' or 'ip'")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
