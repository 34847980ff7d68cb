"""
DocCaptureAgent Configuration
=============================

This module handles configuration loading for the capture agent.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    CAPTURE_STREAM_URL        -> stream.url
    CAPTURE_STREAM_ENABLED    -> stream.enabled
    CAPTURE_BURST_COUNT       -> capture.burst_count
    CAPTURE_PICK_SHARPEST     -> capture.pick_sharpest
    CAPTURE_DEBOUNCE_SEC      -> timing.debounce_sec
    CAPTURE_TICK_INTERVAL_SEC -> timing.tick_interval_sec
    CAPTURE_BRIGHTNESS_LOW    -> thresholds.brightness_low
    CAPTURE_BRIGHTNESS_HIGH   -> thresholds.brightness_high
    CAPTURE_GLARE_HIGH        -> thresholds.glare_high
    CAPTURE_AGENT_PORT        -> server.port
    CAPTURE_LOG_LEVEL         -> logging.level
    PORT                      -> server.port (Cloud Run)

Example:
    from capture_agent.config import settings

    print(settings.agent.name)
    print(settings.thresholds.brightness_low)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, model_validator

from capture_agent.geometry.regions import ID_CARD_ASPECT_RATIO


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AgentConfig(BaseModel):
    """Agent identification configuration."""

    name: str = Field(default="doc-capture-agent", description="Agent name")
    version: str = Field(default="v0.1.0", description="Protocol version")


class StreamConfig(BaseModel):
    """Camera bridge connection configuration."""

    enabled: bool = Field(
        default=False,
        description="Consume frames from the bridge WebSocket (HTTP push is always on)",
    )
    url: str = Field(
        default="ws://localhost:8765/ws/frames",
        description="WebSocket URL of the camera bridge",
    )
    reconnect_backoff_ms: int = Field(
        default=500,
        ge=100,
        description="Backoff in milliseconds between reconnect attempts",
    )
    max_reconnect_attempts: int = Field(
        default=0,
        ge=0,
        description="Maximum reconnection attempts (0 = unlimited)",
    )
    max_queue_size: int = Field(
        default=1,
        ge=1,
        description="Frame buffer size (1 = latest frame wins)",
    )


class QualityConfig(BaseModel):
    """Per-frame metric parameters."""

    glare_threshold: int = Field(
        default=240,
        ge=1,
        le=255,
        description="Grayscale level at or above which a pixel counts as glare",
    )
    min_glare_area: int = Field(
        default=100,
        ge=1,
        description="Minimum connected-component area (px) counted in glare_area",
    )


class RegionConfig(BaseModel):
    """Guide overlay configuration."""

    mode: str = Field(
        default="full_frame",
        description="'full_frame', 'guide' (centered card guide) or 'rect' (explicit)",
    )
    viewport_width: int = Field(default=1080, ge=1, description="Preview width (px)")
    viewport_height: int = Field(default=1920, ge=1, description="Preview height (px)")
    aspect_ratio: float = Field(
        default=ID_CARD_ASPECT_RATIO,
        gt=0,
        description="Guide aspect ratio (width / height)",
    )
    fill_ratio: float = Field(
        default=0.85,
        gt=0,
        le=1.0,
        description="Fraction of the viewport the guide may fill",
    )
    x: int = Field(default=0, ge=0, description="Explicit rect x (mode=rect)")
    y: int = Field(default=0, ge=0, description="Explicit rect y (mode=rect)")
    width: int = Field(default=0, ge=0, description="Explicit rect width (mode=rect)")
    height: int = Field(default=0, ge=0, description="Explicit rect height (mode=rect)")

    @model_validator(mode="after")
    def _check_mode(self) -> "RegionConfig":
        if self.mode not in ("full_frame", "guide", "rect"):
            raise ValueError("region.mode must be 'full_frame', 'guide' or 'rect'")
        if self.mode == "rect" and (self.width <= 0 or self.height <= 0):
            raise ValueError("region.width and region.height are required for mode=rect")
        return self


class ThresholdsConfig(BaseModel):
    """Readiness decision thresholds."""

    brightness_low: float = Field(
        default=81.0,
        ge=0,
        le=255,
        description="Mean brightness below this is TOO_DARK",
    )
    brightness_high: float = Field(
        default=155.0,
        ge=0,
        le=255,
        description="Mean brightness above this is TOO_BRIGHT",
    )
    glare_high: float = Field(
        default=20.0,
        ge=0,
        le=100,
        description="Glare percentage above this is GLARE_DETECTED",
    )
    glare_statistic: str = Field(
        default="mean",
        description="Window glare statistic compared to glare_high: 'mean' or 'max'",
    )

    @model_validator(mode="after")
    def _check_bounds(self) -> "ThresholdsConfig":
        if self.brightness_low >= self.brightness_high:
            raise ValueError("brightness_low must be below brightness_high")
        if self.glare_statistic not in ("mean", "max"):
            raise ValueError("glare_statistic must be 'mean' or 'max'")
        return self


class TimingConfig(BaseModel):
    """Evaluation timing configuration."""

    tick_interval_sec: float = Field(
        default=1.0,
        gt=0,
        description="Seconds between readiness evaluations",
    )
    debounce_sec: float = Field(
        default=2.0,
        ge=0,
        description="Seconds conditions must stay OPTIMAL before capture",
    )
    window_max_samples: int = Field(
        default=90,
        ge=1,
        description="Maximum metrics samples held between ticks",
    )
    window_max_age_sec: Optional[float] = Field(
        default=None,
        gt=0,
        description="Drop samples older than this at drain time (None = keep)",
    )


class CaptureConfig(BaseModel):
    """Capture burst configuration."""

    burst_count: int = Field(
        default=1,
        ge=1,
        description="Photos requested per capture",
    )
    pick_sharpest: bool = Field(
        default=False,
        description="Keep only the sharpest successful photo of the burst",
    )
    sharpness_scope: str = Field(
        default="frame",
        description="Score the full frame ('frame') or the guide region ('roi')",
    )
    mock_delay_sec: float = Field(
        default=0.05,
        ge=0,
        description="Simulated time per photo for the mock backend",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for DocCaptureAgent.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    agent: AgentConfig = Field(default_factory=AgentConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)
    region: RegionConfig = Field(default_factory=RegionConfig)
    thresholds: ThresholdsConfig = Field(default_factory=ThresholdsConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        if env_path := os.environ.get("CAPTURE_CONFIG_PATH"):
            config_path = env_path
        else:
            search_paths = [
                Path("config.yaml"),
                Path("config.yml"),
                Path("/app/config.yaml"),
                Path(__file__).parent.parent.parent / "config.yaml",
            ]
            for path in search_paths:
                if path.exists():
                    config_path = str(path)
                    break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Stream settings
    if env_url := os.environ.get("CAPTURE_STREAM_URL"):
        config_data.setdefault("stream", {})["url"] = env_url
    if env_enabled := os.environ.get("CAPTURE_STREAM_ENABLED"):
        config_data.setdefault("stream", {})["enabled"] = _env_bool(env_enabled)

    # Capture settings
    if env_burst := os.environ.get("CAPTURE_BURST_COUNT"):
        config_data.setdefault("capture", {})["burst_count"] = int(env_burst)
    if env_pick := os.environ.get("CAPTURE_PICK_SHARPEST"):
        config_data.setdefault("capture", {})["pick_sharpest"] = _env_bool(env_pick)

    # Timing settings
    if env_debounce := os.environ.get("CAPTURE_DEBOUNCE_SEC"):
        config_data.setdefault("timing", {})["debounce_sec"] = float(env_debounce)
    if env_tick := os.environ.get("CAPTURE_TICK_INTERVAL_SEC"):
        config_data.setdefault("timing", {})["tick_interval_sec"] = float(env_tick)

    # Threshold overrides
    if env_low := os.environ.get("CAPTURE_BRIGHTNESS_LOW"):
        config_data.setdefault("thresholds", {})["brightness_low"] = float(env_low)
    if env_high := os.environ.get("CAPTURE_BRIGHTNESS_HIGH"):
        config_data.setdefault("thresholds", {})["brightness_high"] = float(env_high)
    if env_glare := os.environ.get("CAPTURE_GLARE_HIGH"):
        config_data.setdefault("thresholds", {})["glare_high"] = float(env_glare)

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("CAPTURE_AGENT_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("CAPTURE_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
