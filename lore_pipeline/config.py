"""
Settings for the WorldLore geo pipeline and layer API.

Every group reads the process environment and an optional .env file through
pydantic-settings; each group has its own variable prefix.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_config(prefix: str = "") -> SettingsConfigDict:
    return SettingsConfigDict(env_prefix=prefix, env_file=".env", env_file_encoding="utf-8", extra="ignore")


class DatabaseSettings(BaseSettings):
    """POSTGRES_* connection parts, or a complete DATABASE_URL."""

    model_config = _env_config("POSTGRES_")

    user: str = "worldlore"
    password: str = ""
    host: str = "localhost"
    port: int = 5432
    db: str = "worldlore"

    # e.g. sqlite:///:memory: for tests
    url_override: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    @property
    def url(self) -> str:
        if self.url_override:
            return self.url_override
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.db}"


class RedisSettings(BaseSettings):
    """Layer response cache backend (REDIS_*)."""

    model_config = _env_config("REDIS_")

    enabled: bool = True
    host: str = "localhost"
    port: int = 6379
    db: int = 0

    @property
    def url(self) -> str:
        return f"redis://{self.host}:{self.port}/{self.db}"


class PipelineSettings(BaseSettings):
    """Import sources, rule table files and logging (unprefixed)."""

    model_config = _env_config()

    historical_dir: Path = Path("./data/historical-basemaps/geojson")
    natural_dir: Path = Path("./data/natural")

    # JSON files replacing the built-in alias tables and override rules
    polity_tables_file: Optional[Path] = None
    override_rules_file: Optional[Path] = None

    log_level: str = "INFO"
    log_file: Optional[Path] = None

    # Pending upserts are flushed every batch_size features
    batch_size: int = Field(default=1000, gt=0)

    @field_validator("historical_dir", "natural_dir", mode="before")
    @classmethod
    def expand_user(cls, v):
        return Path(v).expanduser()


class APISettings(BaseSettings):
    """Layer API (API_*)."""

    model_config = _env_config("API_")

    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # Seconds a rendered layer stays in the response cache
    layer_cache_ttl: int = Field(default=1800, gt=0)

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


class Settings(BaseSettings):
    model_config = _env_config()

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    api: APISettings = Field(default_factory=APISettings)


@lru_cache()
def get_settings() -> Settings:
    """Settings are read once per process."""
    return Settings()


settings = get_settings()


# Rows returned per layer request
HISTORY_LIMIT_MAX = 100_000
HISTORY_LIMIT_DEFAULT = 50_000
NATURAL_LIMIT_MAX = 5_000
NATURAL_LIMIT_DEFAULT = 2_000
NATURAL_SEARCH_LIMIT = 20
