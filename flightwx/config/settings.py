from typing import Literal, Optional
from urllib.parse import quote_plus

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database configuration"""

    host: str = "localhost"
    port: int = 5432
    username: str = "postgres"
    password: SecretStr = Field(default=SecretStr("postgres"))
    database: str = "flightwx"
    schema_name: Optional[str] = Field(default=None, validation_alias="DB_SCHEMA")
    serverless: bool = Field(
        default=True,
        description="If true, disable connection pooling so serverless DBs can pause.",
    )

    @property
    def url(self) -> str:
        """Get database URL"""
        username = quote_plus(self.username)
        password = quote_plus(self.password.get_secret_value())
        return (
            "postgresql+asyncpg://"
            f"{username}:{password}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class OpenWeatherMapConfig(BaseSettings):
    """OpenWeatherMap (primary provider) configuration."""

    api_key: SecretStr | None = None
    base_url: str = "https://api.openweathermap.org/data/2.5"
    timeout_seconds: float = Field(default=5.0, gt=0)

    def is_configured(self) -> bool:
        return self.api_key is not None and bool(self.api_key.get_secret_value())

    model_config = SettingsConfigDict(
        env_prefix="OPENWEATHERMAP_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class WeatherApiConfig(BaseSettings):
    """WeatherAPI.com (secondary provider) configuration."""

    api_key: SecretStr | None = None
    base_url: str = "https://api.weatherapi.com/v1"
    timeout_seconds: float = Field(default=5.0, gt=0)

    def is_configured(self) -> bool:
        return self.api_key is not None and bool(self.api_key.get_secret_value())

    model_config = SettingsConfigDict(
        env_prefix="WEATHERAPI_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class WeatherCacheConfig(BaseSettings):
    """Weather reading cache configuration."""

    ttl_seconds: float = Field(default=300.0, gt=0)
    max_entries: int = Field(default=1000, ge=1)
    sweep_interval_seconds: float = Field(default=60.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="WEATHER_CACHE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class ResilienceConfig(BaseSettings):
    """Circuit breaker and retry tuning for weather providers."""

    failure_threshold: int = Field(default=5, ge=1)
    reset_timeout_seconds: float = Field(default=60.0, gt=0)
    half_open_successes: int = Field(default=2, ge=1)
    max_retries: int = Field(default=2, ge=0)
    base_delay_seconds: float = Field(default=0.5, ge=0)
    max_delay_seconds: float = Field(default=30.0, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1.0)

    model_config = SettingsConfigDict(
        env_prefix="RESILIENCE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class MonitorConfig(BaseSettings):
    """Background conflict monitor configuration."""

    enabled: bool = True
    interval_seconds: float = Field(default=600.0, gt=0)
    lookahead_hours: float = Field(default=48.0, gt=0)
    concurrency: int = Field(default=8, ge=1)
    booking_timeout_seconds: float = Field(default=60.0, gt=0)
    run_timeout_seconds: float = Field(default=240.0, gt=0)
    auto_generate_options: bool = True
    cross_validate: bool = False

    model_config = SettingsConfigDict(
        env_prefix="MONITOR_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class RescheduleConfig(BaseSettings):
    """Candidate slot generation and ranking configuration."""

    window_days: int = Field(default=7, ge=1)
    business_start_hour: int = Field(default=8, ge=0, le=23)
    business_end_hour: int = Field(default=18, ge=0, le=23)
    slot_step_hours: int = Field(default=2, ge=1)
    max_options: int = Field(default=3, ge=1)
    weather_concurrency: int = Field(default=4, ge=1)
    cross_validate: bool = False
    timezone: str = "UTC"

    model_config = SettingsConfigDict(
        env_prefix="RESCHEDULE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class MailConfig(BaseSettings):
    """SMTP configuration for outbound notifications."""

    host: Optional[str] = None
    port: int = 587
    username: Optional[str] = None
    password: SecretStr | None = None
    sender: str = "no-reply@flightwx.local"
    use_tls: bool = True
    use_ssl: bool = False

    def is_configured(self) -> bool:
        return bool(self.host)

    model_config = SettingsConfigDict(
        env_prefix="MAIL_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "FlightWx Reschedule Service"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_file: str = "logs/app.log"
    monitor_log_file: str = "logs/monitor.log"
    storage_backend: Literal["sql", "memory"] = "sql"

    # Database
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    # Weather providers
    openweathermap: OpenWeatherMapConfig = Field(default_factory=OpenWeatherMapConfig)
    weatherapi: WeatherApiConfig = Field(default_factory=WeatherApiConfig)
    weather_cache: WeatherCacheConfig = Field(default_factory=WeatherCacheConfig)
    resilience: ResilienceConfig = Field(default_factory=ResilienceConfig)

    # Engine
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    reschedule: RescheduleConfig = Field(default_factory=RescheduleConfig)

    # Notifications
    mail: MailConfig = Field(default_factory=MailConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
