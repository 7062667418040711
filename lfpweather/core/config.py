from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    # HTTP
    port: int = 8080

    # Cache (Redis protocol, e.g. Dragonfly)
    cache_enabled: bool = True
    redis_host: str = "dragonfly"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: str | None = None
    cache_key_prefix: str = "lfpweather"
    cache_ttl_seconds: int = 300
    cache_socket_timeout_seconds: float = 1.0

    # ClickHouse
    clickhouse_host: str = "clickhouse"
    clickhouse_port: int = 9000
    clickhouse_db: str = "weather"
    clickhouse_user: str = "default"
    clickhouse_password: str = ""
    clickhouse_pool_size: int = 8
    clickhouse_ping_timeout_seconds: float = 5.0

    # Authentication
    authentication_enabled: bool = False
    api_keys: Annotated[list[str], NoDecode] = []

    # Electricity Maps
    electricitymaps_api_key: str = ""
    electricitymaps_base_url: str = "https://api.electricitymap.org/v3"
    electricitymaps_zone: str = "US-NW-SCL"  # Seattle City Light
    electricitymaps_timeout_seconds: float = 10.0

    # Logging
    app_log_level: str = "INFO"
    app_log_redaction_patterns: Annotated[list[str], NoDecode] = [
        "password",
        "token",
        "secret",
        "api_key",
        "authorization",
        "cookie",
    ]

    otel_service_name: str = "lfpweather-api"
    app_environment: str = "production"

    @field_validator("api_keys", "app_log_redaction_patterns", mode="before")
    @classmethod
    def _split_comma_list(cls, v):
        # API_KEYS=k1,k2
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v


settings = Settings()
