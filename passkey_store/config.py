# (c) Copyright Datacraft, 2026
from functools import lru_cache
from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class Settings(BaseSettings):
    db_url: str = Field(default="sqlite:///passkeys.db", description="SQLAlchemy database URL")
    echo_sql: bool = False

    log_level: LogLevel = LogLevel.INFO

    # Vault import settings
    import_timeout: float = Field(gt=0, default=300, description="Seconds to wait for a sealed box")
    poll_interval: float = Field(gt=0, default=0.5, description="Seconds between directory polls")

    model_config = SettingsConfigDict(env_prefix='pk_')


@lru_cache()
def get_settings():
    return Settings()
