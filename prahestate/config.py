# prahestate/config.py
"""Runtime settings read from the environment (and `.env` via python-dotenv)."""
import os
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

DEFAULT_DATABASE_URL = "postgresql+psycopg2://localhost:5432/prahestate"
DEFAULT_API_URL = "https://www.sreality.cz/api/en/v2/estates"


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _normalize_db_url(url: str) -> str:
    # SQLAlchemy 2.x doesn't accept 'postgres://'
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg2://", 1)
    return url


class Settings(BaseModel):
    database_url: str = DEFAULT_DATABASE_URL
    db_pool_size: int = Field(5, ge=1)
    db_max_overflow: int = Field(10, ge=0)

    api_base_url: str = DEFAULT_API_URL
    api_per_page: int = Field(20, ge=1)
    api_max_pages: int = Field(100, ge=1)
    api_request_delay_ms: int = Field(1000, ge=0)
    api_timeout_seconds: float = Field(30.0, gt=0)
    api_stop_on_short_page: bool = False
    api_fetch_details: bool = False
    api_detail_delay_ms: int = Field(500, ge=0)

    sync_enabled: bool = False
    sync_schedule: str = "0 */6 * * *"
    sync_batch_size: int = Field(100, ge=1)


def load_settings() -> Settings:
    return Settings(
        database_url=_normalize_db_url(os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)),
        db_pool_size=int(os.getenv("DB_POOL_SIZE", 5)),
        db_max_overflow=int(os.getenv("DB_MAX_OVERFLOW", 10)),
        api_base_url=os.getenv("SREALITY_API_URL", DEFAULT_API_URL),
        api_per_page=int(os.getenv("API_PER_PAGE", 20)),
        api_max_pages=int(os.getenv("API_MAX_PAGES", 100)),
        api_request_delay_ms=int(os.getenv("API_REQUEST_DELAY_MS", 1000)),
        api_timeout_seconds=float(os.getenv("API_TIMEOUT_SECONDS", 30)),
        api_stop_on_short_page=_env_bool("API_STOP_ON_SHORT_PAGE"),
        api_fetch_details=_env_bool("API_FETCH_DETAILS"),
        api_detail_delay_ms=int(os.getenv("API_DETAIL_DELAY_MS", 500)),
        sync_enabled=_env_bool("SYNC_ENABLED"),
        sync_schedule=os.getenv("SYNC_SCHEDULE", "0 */6 * * *"),
        sync_batch_size=int(os.getenv("SYNC_BATCH_SIZE", 100)),
    )


settings = load_settings()
