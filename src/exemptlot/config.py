"""ExemptLot configuration — storage, overlay services, policy and logging settings."""

from pathlib import Path
from typing import Literal
from urllib.parse import parse_qs, urlparse, urlunparse

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database (run history + user-added sites)
    database_url: str = "sqlite+aiosqlite:///./exemptlot.db"
    database_require_ssl: bool = False

    @model_validator(mode="after")
    def _normalize_database_url(self) -> "Settings":
        """Rewrite DATABASE_URL for SQLAlchemy async drivers.

        Hosted Postgres providers hand out postgres:// URLs with libpq query
        params (sslmode, channel_binding) that asyncpg rejects. Rewrite the
        scheme, remember whether SSL was requested, and strip the query.
        SQLite URLs are left untouched.
        """
        url = self.database_url
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgresql://") and "+asyncpg" not in url:
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

        if url.startswith("postgresql+asyncpg://"):
            parsed = urlparse(url)
            if parsed.query:
                params = parse_qs(parsed.query)
                if "sslmode" in params and params["sslmode"][0] in ("require", "verify-ca", "verify-full"):
                    self.database_require_ssl = True
                url = urlunparse(parsed._replace(query=""))

        self.database_url = url
        return self

    # Site datasets: curated ships with the package, full is built offline
    data_dir: Path = Path("sample-data")
    default_dataset: Literal["curated", "full"] = "curated"

    # How UNKNOWN zone/BAL/flood values are treated by the overlay gate
    unknown_overlay_policy: Literal["pass", "block"] = "pass"

    # ArcGIS overlay layers. An empty zoning URL disables the resolver; any
    # other empty layer takes its field from the site record
    zoning_layer_url: str = ""
    bushfire_layer_url: str = ""
    floodway_layer_url: str = ""
    flood_storage_layer_url: str = ""
    flood_fringe_layer_url: str = ""
    overlay_timeout_s: float = 15.0
    overlay_cache_ttl_s: int = 3600

    # API sessions kept for run supersession; least recently used evicted
    max_assessment_sessions: int = 1000

    @model_validator(mode="after")
    def _strip_layer_urls(self) -> "Settings":
        """Strip whitespace/newlines from layer URLs — common paste error in dashboards."""
        for field in ("zoning_layer_url", "bushfire_layer_url", "floodway_layer_url",
                      "flood_storage_layer_url", "flood_fringe_layer_url"):
            val = getattr(self, field)
            if val and val != val.strip():
                setattr(self, field, val.strip())
        return self

    # MLflow
    mlflow_tracking_uri: str = "sqlite:///mlruns/mlflow.db"
    mlflow_experiment_name: str = "exemptlot"

    # Logging
    log_json: bool = True
    log_level: str = "INFO"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
