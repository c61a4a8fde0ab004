from typing import Optional
from uuid import UUID

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Manages all application settings. Loads variables from environment and a .env file.
    """

    # --- Application Metadata ---
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    PROJECT_NAME: str = "Campus RBAC"
    VERSION: str = "v1"
    API_V1_STR: str = "/api/v1"

    # --- Security & JWT Configuration ---
    # Tokens are issued elsewhere; this service only verifies them.
    # To generate a good secret key: openssl rand -hex 32
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"

    FRONTEND_URL: str = "http://localhost:3000"

    # --- Database Configuration ---
    ASYNC_DATABASE_URL: str = "sqlite+aiosqlite:///./campus_rbac.db"
    DB_ECHO: bool = False
    AUTO_CREATE_TABLES: bool = True
    SEED_PERMISSIONS_ON_STARTUP: bool = True

    # --- Reconciliation ---
    # Overrides the earliest-active-branch rule used when repairing orphan roles.
    DEFAULT_BRANCH_ID: Optional[UUID] = None
    RECONCILIATION_RATE_LIMIT: str = "5/minute"
    RATE_LIMIT_ENABLED: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.upper() in ("PRODUCTION", "PROD")


settings = Settings()
