from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # API configuration
    api_version: str = "1.0"
    log_level: str = "INFO"

    # External services
    osrm_base_url: str = "https://router.project-osrm.org/route/v1/foot"
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    elevation_url: str = "https://api.open-elevation.com/api/v1/lookup"

    # Network policy
    request_timeout_s: float = 5.0
    router_max_retries: int = 2
    router_backoff_s: float = 0.5

    # Candidate pipeline
    candidate_count: int = 3
    default_route_count: int = 1
    green_space_cap: int = 15
    dedup_threshold_km: float = 0.05
    bbox_buffer_deg: float = 0.002  # ~200m
    search_radius_min_km: float = 1.5
    search_radius_max_km: float = 10.0

    # Placeholder estimates, no claimed real-world accuracy
    fallback_minutes_per_km: float = 6.0
    elevation_base_m: float = 5.0
    elevation_per_km_m: float = 3.0
    elevation_per_variant_m: float = 2.0

    # None keeps every entry for the process lifetime; set a size for long-lived servers
    feature_cache_max_entries: Optional[int] = None

    # Real elevation lookups instead of the fabricated estimate
    use_elevation_api: bool = False

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
