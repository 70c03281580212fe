from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DB_URL: str = "sqlite+aiosqlite:///./store_edge.db"
    HQ_DB_URL: str = "sqlite+aiosqlite:///./hq.db"

    STORE_ID: str = "store-1"
    TERMINAL_ID: str = "pos-1"

    REMOTE_SYNC_URL: str = "http://localhost:8001"
    REMOTE_SYNC_TOKEN: str = ""

    # seconds; bounds every remote call made by a sync cycle
    SYNC_CALL_TIMEOUT: float = 30.0
    # 0 disables the ceiling
    SYNC_MAX_RETRIES: int = 10
    SYNC_PULL_MODE: str = "full"  # "full" | "delta"

    CONNECTIVITY_PROBE_URL: str = "http://localhost:8001/health"
    CONNECTIVITY_PROBE_INTERVAL: float = 15.0
    CONNECTIVITY_PROBE_TIMEOUT: float = 3.0

    TAX_RATE: float = 0.08

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"


settings = Settings()
