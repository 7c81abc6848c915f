"""
Pydantic Settings — centralized configuration loaded from environment variables.
"""

import os

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Application ───────────────────────────
    APP_ENV: str = "development"
    LOG_LEVEL: str = ""
    PORT: int = 3000
    PUBLIC_URL: str = ""
    USE_MOCK: bool = True
    VENDOR_NAME: str = "Ocrolus"

    # ── MeridianLink (OAuth + EDocs) ──────────
    ML_CLIENT_ID: str = ""
    ML_CLIENT_SECRET: str = ""
    ML_OAUTH_URL: str = "https://playrunner.mortgage.meridianlink.com/oauth/token"
    ML_BASE_DOMAIN: str = "https://playrunner.mortgage.meridianlink.com"
    ML_METADATA_TIMEOUT_SECONDS: float = 15.0
    ML_TRANSFER_TIMEOUT_SECONDS: float = 30.0
    TOKEN_REFRESH_MARGIN_SECONDS: int = 300

    # ── Processing ────────────────────────────
    PROCESSING_DELAY_MS: int = 2000
    SIMULATED_LATENCY_MS: int = 300
    MAX_UPLOAD_BYTES: int = 50 * 1024 * 1024

    # ── Generic Framework sessions ────────────
    SESSION_TTL_MINUTES: int = 30
    SESSION_SWEEP_INTERVAL_SECONDS: int = 300
    STATELESS: bool = bool(os.getenv("VERCEL"))

    @property
    def public_base_url(self) -> str:
        """Base URL used when building pop-up links."""
        return (self.PUBLIC_URL or f"http://localhost:{self.PORT}").rstrip("/")

    @property
    def log_level(self) -> str:
        if self.LOG_LEVEL:
            return self.LOG_LEVEL.upper()
        return "DEBUG" if self.APP_ENV == "development" else "INFO"

    model_config = {"env_file": ["../.env", ".env"], "extra": "ignore"}


settings = Settings()
