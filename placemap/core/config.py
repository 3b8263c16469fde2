from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict


# Load .env early for local development
load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, extra="ignore")

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./placemap.db")

    # Security
    app_secret_key: str = os.getenv("APP_SECRET_KEY", "dev-secret-change-me")
    access_token_exp_minutes: int = int(os.getenv("ACCESS_TOKEN_EXP_MINUTES", str(60 * 24)))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_dir: str = os.getenv("LOG_DIR", "./logs")
    sync_log_level: str = os.getenv("SYNC_LOG_LEVEL", "")

    # Auth rate limits, "hits/seconds" per client address
    rate_limit_register: str = os.getenv("RATE_LIMIT_REGISTER", "5/60")
    rate_limit_login: str = os.getenv("RATE_LIMIT_LOGIN", "10/60")

    # Naver local search
    naver_search_url: str = os.getenv("NAVER_SEARCH_URL", "https://openapi.naver.com/v1/search/local.json")
    naver_client_id: str = os.getenv("NAVER_SEARCH_CLIENT_ID", "")
    naver_client_secret: str = os.getenv("NAVER_SEARCH_CLIENT_SECRET", "")
    search_cache_ttl_seconds: int = int(os.getenv("SEARCH_CACHE_TTL_SECONDS", str(60 * 5)))

    # Client (sync engine)
    api_base_url: str = os.getenv("API_BASE_URL", "http://127.0.0.1:8000")
    page_size: int = int(os.getenv("PAGE_SIZE", "10"))
    request_timeout_seconds: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10"))
    review_cache_max_places: int = int(os.getenv("REVIEW_CACHE_MAX_PLACES", "20"))

    # Map viewport (Seoul City Hall)
    default_center_lat: float = 37.5666103
    default_center_lng: float = 126.9783882
    default_zoom: int = 15
    select_zoom: int = 17
    locate_zoom: int = 16
    min_zoom: int = 6
    max_zoom: int = 21
    max_fit_zoom: int = 17
    map_width_px: int = 800
    map_height_px: int = 600
    fit_padding_px: int = 50


settings = Settings()
