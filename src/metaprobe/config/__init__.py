from .config import (
    CacheConfig,
    Config,
    EnrichmentConfig,
    ExtractionSettings,
    FetchOptions,
    HttpConfig,
    MonitoringConfig,
    RenderConfig,
    SecurityConfig,
    Viewport,
    find_config_file,
)

__all__ = [
    "CacheConfig",
    "Config",
    "EnrichmentConfig",
    "ExtractionSettings",
    "FetchOptions",
    "HttpConfig",
    "MonitoringConfig",
    "RenderConfig",
    "SecurityConfig",
    "Viewport",
    "find_config_file",
]
