from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==============================
    # Application
    # ==============================
    APP_NAME: str = "Inventory Sync Server"
    ENVIRONMENT: str = "local"

    # ==============================
    # Storage
    # ==============================
    DATA_DIR: str = "./data"
    INVENTORY_REGISTRY_PATH: Optional[str] = None
    DEFAULT_INVENTORY_ID: str = "default"
    STORE_FILENAME: str = "inventory.sqlite"

    # ==============================
    # Logging
    # ==============================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ==============================
    # Security
    # ==============================
    OWNER_TOKEN: Optional[str] = None
    EDITOR_API_KEYS: Optional[str] = None
    VIEWER_API_KEYS: Optional[str] = None
    API_KEY_HEADER: str = "X-API-Key"
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None
    JWT_ISSUER: Optional[str] = None
    AUTH_REQUIRED: bool = False

    # ==============================
    # Scans
    # ==============================
    SCAN_MAX_DELTA: int = 100
    SCAN_MAX_BATCH: int = 500

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Cached settings loader (once per process)."""
    return Settings()


__all__ = ["Settings", "get_settings"]
