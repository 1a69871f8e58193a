"""Configuration management for the Prometheus metrics exporter"""
from pathlib import Path
from typing import Optional
from pydantic import Field, validator
from pydantic_settings import BaseSettings
from metrics.models import MetricType


class Config(BaseSettings):
    """Configuration class with Pydantic validation and environment-based settings"""

    # Server settings
    metrics_host: str = Field(default="0.0.0.0", description="Metrics server host")
    metrics_port: int = Field(default=9100, ge=1, le=65535, description="Metrics server port")
    read_timeout: int = Field(default=5, ge=1, description="Idle connection timeout in seconds")
    write_timeout: int = Field(default=10, ge=1, description="Graceful shutdown timeout in seconds")

    # Exposition settings
    legacy_gauge_type: bool = Field(default=True, description="Declare gauge-class metrics with the historical 'gauage' type tag")

    # Service settings
    service_name: str = Field(default="prometheus-exporter", description="Service name")
    service_version: str = Field(default="1.0.0", description="Service version")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_file: Optional[Path] = Field(default=None, description="Log file path (stdout only when unset)")
    enable_request_logging: bool = Field(default=True, description="Enable HTTP request logging")

    class Config:
        env_prefix = ""
        case_sensitive = False

    @validator('log_level')
    def validate_log_level(cls, v):
        """Normalize and validate the log level name"""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level

    @validator('log_file')
    def ensure_parent_directory(cls, v):
        """Ensure the parent directory exists for the log file"""
        if isinstance(v, Path):
            v.parent.mkdir(parents=True, exist_ok=True)
        return v

    @property
    def gauge_type(self) -> MetricType:
        """Declared exposition type for counters, gauges and meters"""
        return MetricType.GAUAGE if self.legacy_gauge_type else MetricType.GAUGE

    @property
    def address(self) -> str:
        """Listen address as host:port"""
        return f"{self.metrics_host}:{self.metrics_port}"
