from functools import lru_cache
from typing import Any, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_CORS = ["http://localhost:3000"]


def _parse_cors_origins(v: Any) -> List[str]:
    try:
        if v is None or v == "":
            return _DEFAULT_CORS.copy()
        if isinstance(v, list):
            return [x for x in v if isinstance(x, str) and x.strip()]
        s = str(v).strip()
        if not s:
            return _DEFAULT_CORS.copy()
        if s.startswith("["):
            import json
            out = json.loads(s)
            return [x for x in out if isinstance(x, str) and x.strip()] or _DEFAULT_CORS.copy()
        return [x.strip() for x in s.split(",") if x.strip()] or _DEFAULT_CORS.copy()
    except ValueError:
        return _DEFAULT_CORS.copy()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # App
    env: str = Field(default="development", description="ENV")
    debug: bool = Field(default=False, description="DEBUG")

    # Auth
    jwt_secret: str = Field(default="change-me-in-production-min-32-chars", alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=7 * 24 * 60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # MongoDB (transactions need a replica set)
    mongodb_uri: str = Field(default="mongodb://localhost:27017/?replicaSet=rs0", alias="MONGODB_URI")
    mongodb_db_name: str = Field(default="paywallet", alias="MONGODB_DB_NAME")

    # Gemini (smart suggestions; empty key means frequency fallback only)
    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.0-flash", alias="GEMINI_MODEL")
    suggestion_timeout_seconds: float = Field(default=8.0, alias="SUGGESTION_TIMEOUT_SECONDS")

    # Sentry
    sentry_dsn: str | None = Field(default=None, alias="SENTRY_DSN")

    # CORS: env as string, exposed as list
    cors_origins_raw: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
        description="Comma-separated or JSON list",
    )

    @property
    def cors_origins(self) -> List[str]:
        return _parse_cors_origins(getattr(self, "cors_origins_raw", None))

    # Ledger
    ledger_transaction_attempts: int = Field(default=5, ge=1, alias="LEDGER_TRANSACTION_ATTEMPTS")

    # Signup seed balance, in whole rupees; stored as paise (x100)
    signup_balance_min_units: int = 1
    signup_balance_max_units: int = 10_000


@lru_cache
def get_settings() -> Settings:
    return Settings()
