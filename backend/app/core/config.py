from functools import lru_cache
import json
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BACKEND_ENV_FILE = Path(__file__).resolve().parents[2] / ".env"

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


def _parse_origin_list(raw: str) -> list[str]:
    """Accept either a JSON array or a comma separated string from the environment."""
    text = raw.strip()
    items: list = []
    if text.startswith("["):
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, list):
            items = decoded
    if not items:
        items = text.split(",")
    return [str(item).strip() for item in items if str(item).strip()]


class Settings(BaseSettings):
    # backend/.env regardless of the working directory uvicorn is started from
    model_config = SettingsConfigDict(env_file=str(BACKEND_ENV_FILE), env_file_encoding="utf-8")

    project_name: str = "ClassGrid API"
    api_prefix: str = "/api"

    log_level: str = "INFO"
    timezone: str = "UTC"

    # Requests are partitioned per teacher; the header carries an opaque id.
    teacher_header: str = "X-Teacher-Id"
    auto_merge_labs: bool = True

    max_request_size_bytes: int = 1_000_000

    cors_origins: list[str] = DEFAULT_CORS_ORIGINS

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, value):
        if isinstance(value, str):
            return _parse_origin_list(value)
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
