from pathlib import Path
from typing import List

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_DIR = Path(__file__).resolve().parent.parent


class NewsFeedConfig(BaseModel):
    url: str
    source: str


class Settings(BaseSettings):
    # Load apps/server/.env and accept env keys in any case
    _env_file = APP_DIR / ".env"
    model_config = SettingsConfigDict(env_file=str(_env_file), extra="ignore", case_sensitive=False)

    app_name: str = "WaterLab Server"
    app_version: str = "0.1.0"
    debug: bool = True
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    port: int = 5001

    # Local CSV snapshot
    snapshot_path: str = Field(
        default=str(APP_DIR / "data" / "water_latest.csv"),
        description="CSV file used as the last-resort station data source.",
    )
    snapshot_cache_ttl: int = Field(default=15 * 60, ge=0, description="Cache duration (seconds) for the CSV snapshot")

    # Socrata (opendata.bs.ch)
    socrata_base_url: str = Field(
        default="https://data.bs.ch/api/v2/catalog/datasets",
        description="Base URL for the Basel open data catalog",
    )
    socrata_user_agent: str = Field(
        default="WaterLab Demo / ntsuisse (contact: demo@example.com)",
        description="User-Agent sent to the Socrata API.",
    )
    socrata_request_timeout: float = Field(default=5.0, ge=1.0, description="Timeout in seconds for Socrata HTTP calls")
    socrata_cache_ttl: int = Field(default=5 * 60, ge=0, description="Cache duration (seconds) per Socrata station")
    socrata_record_limit: int = Field(default=100, ge=1, le=100, description="Records requested per dataset call")

    # FOEN (hydrodaten.admin.ch) integration is disabled until JSON access is restored
    foen_enabled: bool = False

    # RSS news
    news_feeds: List[NewsFeedConfig] = Field(
        default_factory=lambda: [NewsFeedConfig(url="https://www.unwater.org/rss.xml", source="UN Water")],
    )
    news_user_agent: str = Field(default="WaterLab Demo RSS/1.0 (+https://localhost)")
    news_request_timeout: float = Field(default=10.0, ge=1.0, description="Timeout in seconds for RSS downloads")
    news_cache_ttl: int = Field(default=10 * 60, ge=0, description="Cache duration (seconds) for aggregated news")
    news_max_articles: int = Field(default=8, ge=1, description="Maximum number of articles served by /api/news")

    # CRUD storage
    database_path: str = Field(
        default=str(APP_DIR / "data" / "database.sqlite"),
        description="SQLite database path for user-entered data items.",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def normalize_cors(cls, v):
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("["):
                import json
                return json.loads(s)
            if s in ("", "*"):
                return ["*"]
            return [p.strip() for p in s.split(",")]
        return v


settings = Settings()
