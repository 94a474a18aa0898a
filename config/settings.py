"""
Application Settings - Load from YAML configs + .env overrides

Design Philosophy:
- Service configs (endpoints, TTLs, backoff) → YAML files (public, versioned in git)
- Secrets and per-deployment overrides (passwords, URLs) → .env file (gitignored)

Environment overlays: services.yaml + services.{ENVIRONMENT}.yaml

Uses Pydantic for validation and type safety
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.utils.config import load_layered_yaml, load_yaml_safe


class Settings(BaseSettings):
    """
    Application settings

    Architecture:
    - Service configs → config/providers/services.yaml (public)
    - Indicator presets → config/providers/indicators.yaml (public)
    - Secrets / overrides → .env (gitignored)

    Usage:
        from config.settings import get_settings

        settings = get_settings()
        print(settings.CACHE_DEFAULT_TTL_SECONDS)  # From services.yaml
        print(settings.REDIS_PASSWORD)  # From .env
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields in .env
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Load YAML configs from files (cached at class level)
        if not hasattr(Settings, "_yaml_loaded"):
            Settings._services_config = load_layered_yaml(
                "config/providers/services.yaml", self.ENVIRONMENT
            )
            Settings._indicators_config = load_yaml_safe("config/providers/indicators.yaml")
            Settings._yaml_loaded = True

    # ============================================
    # ENVIRONMENT (.env only)
    # ============================================
    ENVIRONMENT: str = Field(default="local", description="Environment: local, dev, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_DIR: str | None = Field(default="data/logs", description="Rotating error log directory")

    # ============================================
    # BAR SOURCE (from YAML, URL overridable via .env)
    # ============================================
    BAR_SOURCE_URL_OVERRIDE: str | None = Field(default=None, alias="BAR_SOURCE_URL")

    @property
    def BAR_SOURCE_URL(self) -> str:
        """Base URL of the daily K-line query API"""
        if self.BAR_SOURCE_URL_OVERRIDE:
            return self.BAR_SOURCE_URL_OVERRIDE
        return self._services_config.get("bar_source", {}).get("base_url", "http://localhost:3000")

    @property
    def BAR_SOURCE_ENDPOINT(self) -> str:
        """Advanced-query endpoint returning raw daily bar records"""
        return self._services_config.get("bar_source", {}).get(
            "endpoint", "/api/stocks/daily-kline/advanced-query"
        )

    @property
    def BAR_SOURCE_INFO_ENDPOINT(self) -> str:
        """Instrument metadata endpoint"""
        return self._services_config.get("bar_source", {}).get(
            "info_endpoint", "/api/stocks/stock-info"
        )

    @property
    def BAR_SOURCE_TIMEOUT_MS(self) -> int:
        """Per-request timeout in milliseconds"""
        return self._services_config.get("bar_source", {}).get("timeout_ms", 10000)

    @property
    def BAR_SOURCE_PAGE_SIZE(self) -> int:
        """Max bars requested per query"""
        return self._services_config.get("bar_source", {}).get("page_size", 1000)

    # ============================================
    # PUSH FEED (from YAML, URL overridable via .env)
    # ============================================
    FEED_WS_URL_OVERRIDE: str | None = Field(default=None, alias="FEED_WS_URL")

    @property
    def FEED_WS_URL(self) -> str:
        """WebSocket URL of the live bar feed"""
        if self.FEED_WS_URL_OVERRIDE:
            return self.FEED_WS_URL_OVERRIDE
        return self._services_config.get("feed", {}).get("ws_url", "ws://localhost:3001/realtime")

    @property
    def STREAM_PING_INTERVAL_SECONDS(self) -> float:
        """Keepalive ping interval while connected"""
        return self._services_config.get("feed", {}).get("ping_interval_seconds", 30)

    @property
    def STREAM_BASE_DELAY_MS(self) -> int:
        """First reconnect delay"""
        return self._services_config.get("feed", {}).get("base_delay_ms", 1000)

    @property
    def STREAM_MAX_DELAY_MS(self) -> int:
        """Reconnect delay cap"""
        return self._services_config.get("feed", {}).get("max_delay_ms", 16000)

    @property
    def STREAM_MAX_RECONNECT_ATTEMPTS(self) -> int:
        """Reconnect attempts before the stream is closed for good"""
        return self._services_config.get("feed", {}).get("max_reconnect_attempts", 5)

    @property
    def STREAM_CONNECT_TIMEOUT_SECONDS(self) -> float:
        """Time allowed for a single connect attempt"""
        return self._services_config.get("feed", {}).get("connect_timeout_seconds", 5)

    # ============================================
    # RESULT CACHE (from YAML)
    # ============================================
    @property
    def CACHE_BACKEND(self) -> str:
        """Result cache backend: memory or redis"""
        return self._services_config.get("cache", {}).get("backend", "memory")

    @property
    def CACHE_DEFAULT_TTL_SECONDS(self) -> float:
        """TTL for computed query results"""
        return self._services_config.get("cache", {}).get("default_ttl_seconds", 300)

    @property
    def CACHE_REFERENCE_TTL_SECONDS(self) -> float:
        """TTL for static reference data (instrument metadata)"""
        return self._services_config.get("cache", {}).get("reference_ttl_seconds", 1800)

    @property
    def CACHE_SWEEP_INTERVAL_SECONDS(self) -> float:
        """Interval of the expired-entry sweep"""
        return self._services_config.get("cache", {}).get("sweep_interval_seconds", 60)

    @property
    def CACHE_MAX_ENTRIES(self) -> int:
        """Upper bound on in-memory entries"""
        return self._services_config.get("cache", {}).get("max_entries", 512)

    # ============================================
    # REDIS (from YAML + .env)
    # ============================================
    @property
    def REDIS_HOST(self) -> str:
        """Redis host from services.yaml"""
        return self._services_config.get("redis", {}).get("host", "redis")

    @property
    def REDIS_PORT(self) -> int:
        """Redis port from services.yaml"""
        return self._services_config.get("redis", {}).get("port", 6379)

    @property
    def REDIS_DB(self) -> int:
        """Redis database from services.yaml"""
        return self._services_config.get("redis", {}).get("db", 0)

    # Redis password from .env (optional secret)
    REDIS_PASSWORD: str | None = Field(default=None)

    @property
    def redis_url(self) -> str:
        """Redis connection URL"""
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # ============================================
    # INDICATORS (from YAML)
    # ============================================
    @property
    def INDICATOR_PRESETS(self) -> list:
        """Raw indicator preset entries from indicators.yaml"""
        return self._indicators_config.get("indicators", [])

    @property
    def DEFAULT_INDICATORS(self) -> list[str]:
        """Indicator ids computed when a query does not name any"""
        return self._indicators_config.get("settings", {}).get(
            "default_indicators", ["sma5", "sma10", "sma20", "macd"]
        )


# Singleton pattern
_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """
    Get application settings (singleton)

    Returns:
        Settings instance

    Example:
        >>> settings = get_settings()
        >>> print(settings.CACHE_DEFAULT_TTL_SECONDS)
        300
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
