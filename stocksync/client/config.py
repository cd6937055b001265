from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STOCKSYNC_CLIENT_",
        env_file=".env",
        extra="ignore",
    )

    # ==============================
    # Server
    # ==============================
    SERVER_URL: str = "http://127.0.0.1:8000"
    TOKEN: Optional[str] = None
    INVENTORY_ID: Optional[str] = None
    REQUEST_TIMEOUT_SECONDS: float = 15.0
    PROBE_TIMEOUT_SECONDS: float = 3.0

    # ==============================
    # Local state
    # ==============================
    STATE_PATH: str = "./client-state.json"

    # ==============================
    # Sync
    # ==============================
    SYNC_INTERVAL_SECONDS: float = 60.0
    QUEUE_MAX_SCAN_RETRIES: int = 10
    QUEUE_BASE_DELAY_SECONDS: float = 1.0
    QUEUE_MAX_DELAY_SECONDS: float = 30.0
    QUEUE_FLUSH_DELAY_SECONDS: float = 0.1

    # ==============================
    # Logging
    # ==============================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False


__all__ = ["ClientSettings"]
