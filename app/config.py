"""
Configuration Management

Uses Pydantic BaseSettings to load configuration from environment variables.
All settings can be overridden via .env file or environment variables.

Environment Variables:
    MEEVO_CLIENT_ID: OAuth client id for the Meevo public API
    MEEVO_CLIENT_SECRET: OAuth client secret for the Meevo public API
    MEEVO_TENANT_ID: Meevo tenant identifier
    MEEVO_LOCATION_ID: Default salon location identifier
    LOCATION_TIMEZONE: IANA time zone of the salon (default: America/Phoenix)
    SERVICE_ALIASES: JSON object mapping service aliases to service ids
    APP_ENV: Environment name (development/staging/production)
    DEBUG: Enable debug mode (default: False)
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Phoenix Encanto service catalogue. Several aliases point at one service.
DEFAULT_SERVICE_ALIASES: dict[str, str] = {
    "haircut standard": "f9160450-0b51-4ddc-bcc7-ac150103d5c0",
    "standard": "f9160450-0b51-4ddc-bcc7-ac150103d5c0",
    "haircut": "f9160450-0b51-4ddc-bcc7-ac150103d5c0",
    "haircut skin fade": "14000cb7-a5bb-4a26-9f23-b0f3016cc009",
    "skin fade": "14000cb7-a5bb-4a26-9f23-b0f3016cc009",
    "fade": "14000cb7-a5bb-4a26-9f23-b0f3016cc009",
    "long locks": "721e907d-fdae-41a5-bec4-ac150104229b",
    "locks": "721e907d-fdae-41a5-bec4-ac150104229b",
    "wash": "67c644bc-237f-4794-8b48-ac150106d5ae",
    "shampoo": "67c644bc-237f-4794-8b48-ac150106d5ae",
    "grooming": "65ee2a0d-e995-4d8d-a286-ac150106994b",
    "beard": "65ee2a0d-e995-4d8d-a286-ac150106994b",
    "beard trim": "65ee2a0d-e995-4d8d-a286-ac150106994b",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Meevo API
    meevo_auth_url: str = "https://marketplace.meevo.com/oauth2/token"
    meevo_api_url: str = "https://na1pub.meevo.com/publicapi/v1"
    meevo_api_url_v2: str = "https://na1pub.meevo.com/publicapi/v2"

    meevo_client_id: str = ""
    """OAuth client id. Required; there is no default."""

    meevo_client_secret: str = ""
    """OAuth client secret. Required; there is no default.

    WARNING: Never commit a real value. Set it in .env or the environment.
    """

    meevo_tenant_id: str = "200507"
    meevo_location_id: str = "201664"
    """Default location (Phoenix Encanto). Requests may pass location_id."""

    location_timezone: str = "America/Phoenix"
    """Time zone of the business location.

    Upstream timestamps without an offset are read in this zone, and
    morning/afternoon filtering uses the local hour.
    """

    # HTTP
    http_timeout_seconds: float = 15.0
    roster_timeout_seconds: float = 5.0
    http_max_connections: int = 100
    """Upper bound on concurrent upstream connections.

    A full scan issues providers x discovery windows requests at once;
    anything above this limit waits for a free connection in the pool.
    """

    # Caches
    token_refresh_margin_seconds: int = 300
    roster_cache_ttl_seconds: int = 3600

    # Roster filtering
    active_employee_state: int = 2026
    """Meevo objectState value marking a bookable employee."""

    excluded_employee_names: str = "home,training,test"
    """Comma-separated first names of placeholder/test employees."""

    # Discovery windows
    discovery_day_start: str = "06:00"
    discovery_day_end: str = "22:00"
    discovery_window_hours: int = 2
    discovery_window_step_hours: int = 1
    scan_result_cap: int = 8
    """Maximum openings the scan endpoint returns per call (K)."""

    # Matching
    default_search_days: int = 3
    max_ranked_matches: int = 10
    max_pair_options: int = 5
    pair_seed_limit: int = 10
    max_slots_per_service: int = 100
    group_max_gap_minutes: int = 30
    same_provider_max_gap_minutes: int = 10
    exhaustive_assignment: bool = True
    """Fall back to full bipartite matching when first-fit assignment fails."""

    # Lookup tables
    service_aliases: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_SERVICE_ALIASES)
    )
    provider_aliases: dict[str, str] = Field(default_factory=dict)

    # Application Environment
    app_env: Literal["development", "staging", "production"] = "development"
    """Current application environment.

    Options:
    - development: Local development, verbose logging, docs enabled
    - staging: Pre-production testing environment
    - production: Live production environment, minimal logging
    """

    debug: bool = False

    # Application Configuration
    app_name: str = "group-availability"
    host: str = "0.0.0.0"
    port: int = 3000

    # CORS Configuration
    cors_origins: str = "http://localhost:3000"
    """Comma-separated list of allowed CORS origins."""

    # Pydantic configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"

    @property
    def cors_origins_list(self) -> list[str]:
        """Split cors_origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def excluded_employee_names_list(self) -> list[str]:
        """Lowercased placeholder names to drop from the roster."""
        return [
            name.strip().lower()
            for name in self.excluded_employee_names.split(",")
            if name.strip()
        ]

    @property
    def has_credentials(self) -> bool:
        """True when both OAuth credentials are set."""
        return bool(self.meevo_client_id and self.meevo_client_secret)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Cached settings instance
    """
    return Settings()


# Module-level settings instance for easy imports
settings = get_settings()
