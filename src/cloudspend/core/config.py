"""Configuration management for cloudspend"""

import json
import logging
from datetime import time
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[Path] = None
    max_bytes: int = 10485760  # 10MB
    backup_count: int = 5
    console: bool = True
    structured: bool = False


class AnalyticsConfig(BaseModel):
    """Thresholds used by the analytics core"""
    moving_average_window: int = Field(default=7, ge=1)
    anomaly_period: int = Field(default=30, ge=1)
    error_multiplier: float = Field(default=2.0, gt=0)
    warning_multiplier: float = Field(default=1.5, gt=0)
    spike_lookback_days: int = Field(default=7, ge=1)
    spike_threshold_percent: float = Field(default=50.0, ge=0)
    trend_min_points: int = Field(default=7, ge=2)
    forecast_horizon_days: int = Field(default=30, ge=1)
    forecast_strategy: str = "damped_trend"

    @field_validator("forecast_strategy")
    @classmethod
    def validate_strategy(cls, value: str) -> str:
        if value not in ("damped_trend", "linear_regression"):
            raise ValueError(f"Unknown forecast strategy: {value}")
        return value

    @model_validator(mode="after")
    def validate_multipliers(self) -> "AnalyticsConfig":
        if self.warning_multiplier > self.error_multiplier:
            raise ValueError(
                f"warning_multiplier ({self.warning_multiplier}) must not exceed "
                f"error_multiplier ({self.error_multiplier})"
            )
        return self


class RecommendationConfig(BaseModel):
    """Rule thresholds for the recommendation engine"""
    rightsizing_max_utilization: float = 30.0
    rightsizing_savings_rate: float = 0.4
    idle_max_utilization: float = 5.0
    reserved_min_total: float = 100.0
    reserved_min_points: int = 30
    reserved_max_cv: float = 0.3
    reserved_discount: float = 0.3
    high_spend_share_percent: float = 30.0
    rapid_growth_percent: float = 20.0
    storage_min_total: float = 100.0
    spot_max_cpu: float = 60.0
    spot_min_instances: int = 3


class NotificationConfig(BaseModel):
    """Notification configuration"""
    enabled: bool = True
    email_enabled: bool = True
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[SecretStr] = None
    smtp_tls: bool = True
    from_email: str = "alerts@cloudspend.local"
    default_recipients: List[str] = Field(default_factory=lambda: ["admin@company.com"])
    slack_webhook: Optional[SecretStr] = None
    slack_timeout: float = 10.0


class SchedulerConfig(BaseModel):
    """Recurring monitoring task configuration"""
    budget_check_interval_minutes: int = Field(default=60, ge=1)
    spike_check_interval_minutes: int = Field(default=30, ge=1)
    daily_summary_time: time = time(9, 0)
    alert_cooldown_hours: float = Field(default=24.0, gt=0)
    misfire_grace_seconds: int = Field(default=60, ge=1)
    spike_threshold_percent: float = 50.0
    spike_min_daily_cost: float = 10.0
    default_daily_budget: float = 1000.0


class Settings(BaseSettings):
    """Main application settings"""
    app_name: str = "cloudspend"
    version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    recommendations: RecommendationConfig = Field(default_factory=RecommendationConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CLOUDSPEND_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    @classmethod
    def load(cls, data: Optional[dict] = None, source: Optional[Path] = None) -> "Settings":
        """Build settings, reporting invalid values as a ConfigurationError"""
        origin = f" in {source}" if source else ""
        if data is not None and not isinstance(data, dict):
            raise ConfigurationError(f"Invalid configuration{origin}: expected a mapping")
        try:
            return cls(**(data or {}))
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration{origin}: {e}")

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from YAML file"""
        if not path.exists():
            logger.warning(f"Configuration file {path} not found, using defaults")
            return cls.load()

        with open(path, 'r') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {path}: {e}")

        return cls.load(data or {}, source=path)

    @classmethod
    def from_json(cls, path: Path) -> "Settings":
        """Load settings from JSON file"""
        if not path.exists():
            logger.warning(f"Configuration file {path} not found, using defaults")
            return cls.load()

        with open(path, 'r') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Invalid JSON in {path}: {e}")

        return cls.load(data, source=path)

    @classmethod
    def from_file(cls, path: Path) -> "Settings":
        if path.suffix in (".yaml", ".yml"):
            return cls.from_yaml(path)
        return cls.from_json(path)

    def to_yaml(self, path: Path) -> None:
        """Save settings to YAML file"""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.safe_dump(self.model_dump(mode="json", exclude_unset=True), f, default_flow_style=False)

    def to_json(self, path: Path) -> None:
        """Save settings to JSON file"""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.model_dump(mode="json", exclude_unset=True), f, indent=2)


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get global settings instance"""
    global settings
    if settings is None:
        config_paths = [
            Path.home() / ".cloudspend" / "config.yaml",
            Path.home() / ".cloudspend" / "config.json",
            Path("./cloudspend.yaml"),
            Path("./cloudspend.json"),
        ]

        for path in config_paths:
            if path.exists():
                settings = Settings.from_file(path)
                logger.info(f"Loaded configuration from {path}")
                break
        else:
            settings = Settings.load()
            logger.info("Using default configuration")

    return settings


def reload_settings(path: Optional[Path] = None) -> Settings:
    """Reload settings from file"""
    global settings

    if path:
        settings = Settings.from_file(path)
    else:
        settings = None
        settings = get_settings()

    return settings
