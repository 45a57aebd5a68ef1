"""
Configuration management for metaprobe using Pydantic.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Setup Logging ---
log = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "MetaProbeBot/1.0"


# --- Per-call options ---


class Viewport(BaseModel):
    width: int = Field(default=1280, gt=0)
    height: int = Field(default=720, gt=0)


class FetchOptions(BaseModel):
    """
    Options recognised by a single fetch.

    Accepts both the camelCase names used by callers of the JSON interface
    (``waitForTimeout``) and the Python field names (``wait_for_timeout``).
    Durations are milliseconds except ``cache_max_age`` which is seconds.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    timeout: int = Field(default=15000, gt=0, description="Network and navigation timeout in ms.")
    wait_for_timeout: int = Field(
        default=3000, ge=0, alias="waitForTimeout", description="Max wait for network idle after load, in ms."
    )
    enable_images: bool = Field(default=True, alias="enableImages")
    enable_caching: bool = Field(default=True, alias="enableCaching")
    cache_max_age: float = Field(default=3600.0, ge=0, alias="cacheMaxAge")
    viewport: Viewport = Field(default_factory=Viewport)
    prefer_rendered: bool = Field(default=False, alias="preferRendered")
    fallback_to_rendered: bool = Field(default=True, alias="fallbackToRendered")
    enable_image_analysis: bool = Field(default=True, alias="enableImageAnalysis")
    enable_content_analysis: bool = Field(default=True, alias="enableContentAnalysis")
    enable_seo_optimization: bool = Field(default=True, alias="enableSEOOptimization")
    enable_sentiment_analysis: bool = Field(default=True, alias="enableSentimentAnalysis")
    enable_category_detection: bool = Field(default=True, alias="enableCategoryDetection")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, alias="userAgent")

    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000.0

    @property
    def wait_for_timeout_seconds(self) -> float:
        return self.wait_for_timeout / 1000.0

    def merged(self, overrides: FetchOptions | Mapping[str, Any] | None) -> FetchOptions:
        """Return a copy with every explicitly set override applied."""
        if overrides is None:
            return self
        if not isinstance(overrides, FetchOptions):
            overrides = FetchOptions.model_validate(dict(overrides))
        update = overrides.model_dump(exclude_unset=True)
        return self.model_validate({**self.model_dump(), **update})


# --- Nested Configuration Models ---


class HttpConfig(BaseModel):
    """Static fetch settings."""

    max_content_length: int = Field(default=5 * 1024 * 1024, description="Bytes read before truncating.")
    max_redirects: int = Field(default=5, ge=0)
    accept_language: str = "en-US,en;q=0.9"


class RenderConfig(BaseModel):
    """Headless browser settings."""

    browser: Literal["chromium", "firefox", "webkit"] = "chromium"
    headless: bool = True
    launch_args: List[str] = Field(
        default_factory=lambda: ["--no-sandbox", "--disable-dev-shm-usage", "--disable-gpu"],
    )
    max_concurrent_pages: int = Field(default=4, ge=1, description="Upper bound on simultaneously open pages.")
    max_navbar_links: int = Field(default=10, ge=0)
    enable_screenshots: bool = True
    screenshot_dir: str = Field(default="./data/screenshots", description="Directory for navbar captures.")
    screenshot_url_prefix: str = Field(default="/screenshots", description="Public URL prefix for captures.")

    @field_validator("screenshot_url_prefix")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class ExtractionSettings(BaseModel):
    """Parsing limits and the static-to-rendered fallback threshold."""

    confidence_threshold: float = Field(
        default=0.5,
        description="Static results scoring below this fall back to rendering.",
    )
    min_body_text_length: int = Field(default=200, ge=0, description="Visible characters for full body credit.")
    max_inline_images: int = Field(default=20, ge=0)
    min_data_uri_bytes: int = Field(default=1024, ge=0, description="Smaller data: URIs are skipped.")

    @field_validator("confidence_threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        """Ensure confidence threshold is in valid range."""
        if not 0.0 <= v <= 1.0:
            raise ValueError("confidence_threshold must be between 0.0 and 1.0")
        return v


class CacheConfig(BaseModel):
    enabled: bool = True
    max_entries: Optional[int] = Field(default=1000, ge=1, description="None for unbounded.")


class EnrichmentConfig(BaseModel):
    lexicons_file: Optional[str] = Field(
        default=None, description="YAML file overriding the built-in enrichment word lists."
    )


class SecurityConfig(BaseModel):
    """URL validation applied before any network access."""

    allowed_schemes: List[str] = Field(default=["http", "https"])
    blocked_domains: List[str] = Field(
        default_factory=lambda: [
            "localhost",
            "127.0.0.1",
            "0.0.0.0",
            "::1",
            "169.254.169.254",  # cloud metadata endpoint
        ]
    )
    max_url_length: int = 2048
    allow_private_ips: bool = True


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")
    json_logs: bool = False
    metrics_enabled: bool = True
    prometheus_port: int | None = Field(default=None, description="Port for the metrics exporter. None to disable.")

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "metaprobe"
    version: str = "0.1.0"
    fetch: FetchOptions = Field(default_factory=FetchOptions)
    http: HttpConfig = Field(default_factory=HttpConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="METAPROBE_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data: Dict[str, Any] | None = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    for name in ("metaprobe.yaml", "metaprobe.yml", "config.yaml", "config.yml"):
        path = current_dir / name
        if path.exists():
            return path
    return None
