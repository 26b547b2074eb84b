"""
MJPEG Relay Configuration
=========================

This module handles configuration loading for the relay.

Configuration Sources (in order of precedence):
    1. Command-line flags (applied by main)
    2. Environment variables
    3. config.yaml file
    4. Default values (lowest priority)

Environment Variable Mapping:
    MJPEG_RELAY_HOST            -> remote.host
    MJPEG_RELAY_PORT            -> remote.port
    MJPEG_RELAY_WIDTH           -> capture.width
    MJPEG_RELAY_HEIGHT          -> capture.height
    MJPEG_RELAY_FPS             -> capture.fps
    MJPEG_RELAY_CAPTURE_COMMAND -> capture.command
    MJPEG_RELAY_RETRY_DELAY     -> retry.delay_seconds
    MJPEG_RELAY_LOG_LEVEL       -> logging.level

Example:
    from mjpeg_relay.config import load_config, setup_logging
    
    settings = load_config("config.yaml")
    setup_logging(settings)
    print(settings.remote.host, settings.remote.port)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class CaptureConfig(BaseModel):
    """Camera capture tool configuration."""
    
    width: int = Field(default=640, ge=1, description="Frame width in pixels")
    height: int = Field(default=480, ge=1, description="Frame height in pixels")
    fps: int = Field(default=30, ge=1, le=120, description="Capture frame rate")
    vflip: bool = Field(default=True, description="Flip frame vertically")
    hflip: bool = Field(default=False, description="Flip frame horizontally")
    command: str = Field(
        default="libcamera-vid",
        min_length=1,
        description="Capture tool executable",
    )
    warmup_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Delay after launching the capture tool",
    )
    chunk_size: int = Field(
        default=4096,
        ge=1,
        description="Bytes requested per read of the capture output",
    )


class RemoteConfig(BaseModel):
    """Viewer endpoint configuration."""
    
    host: str = Field(default="10.19.47.196", min_length=1, description="Viewer host")
    port: int = Field(default=2281, ge=1, le=65535, description="Viewer port")


class RetryConfig(BaseModel):
    """Session retry configuration."""
    
    delay_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Fixed delay between failed sessions",
    )
    retry_on_capture_eof: bool = Field(
        default=False,
        description="Restart instead of exiting when the capture output closes",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""
    
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the relay.
    
    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """
    
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
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
    # Find config file
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/etc/mjpeg-relay/config.yaml"),
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break
    
    # Load from YAML if exists
    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    elif config_path:
        logger.warning(f"Config file not found: {config_path}, using defaults")
    
    # Apply environment variable overrides
    _apply_env_overrides(config_data)
    
    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""
    
    # Remote settings
    if env_host := os.environ.get("MJPEG_RELAY_HOST"):
        config_data.setdefault("remote", {})["host"] = env_host
    if env_port := os.environ.get("MJPEG_RELAY_PORT"):
        config_data.setdefault("remote", {})["port"] = int(env_port)
    
    # Capture settings
    if env_width := os.environ.get("MJPEG_RELAY_WIDTH"):
        config_data.setdefault("capture", {})["width"] = int(env_width)
    if env_height := os.environ.get("MJPEG_RELAY_HEIGHT"):
        config_data.setdefault("capture", {})["height"] = int(env_height)
    if env_fps := os.environ.get("MJPEG_RELAY_FPS"):
        config_data.setdefault("capture", {})["fps"] = int(env_fps)
    if env_command := os.environ.get("MJPEG_RELAY_CAPTURE_COMMAND"):
        config_data.setdefault("capture", {})["command"] = env_command
    
    # Retry settings
    if env_delay := os.environ.get("MJPEG_RELAY_RETRY_DELAY"):
        config_data.setdefault("retry", {})["delay_seconds"] = float(env_delay)
    
    # Logging settings
    if env_log := os.environ.get("MJPEG_RELAY_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)
    
    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s.%(msecs)03d", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
    
    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
