from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "gigboard-api"
    environment: str = "dev"
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    database_command_timeout_seconds: float = 15.0
    database_acquire_timeout_seconds: float = 5.0
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    auth_timeout_seconds: float = 5.0
    fcm_project_id: str | None = None
    fcm_access_token: str | None = None
    fcm_endpoint: str | None = None
    push_timeout_seconds: float = 5.0
    notification_retention_days: int = 30
    notification_reaper_enabled: bool = True
    notification_reaper_interval_seconds: float = 3600.0
    otel_enabled: bool = True
    otel_service_name: str = "gigboard-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="GB_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
