"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation.
An optional config.yaml provides defaults; environment variables override it.
"""

import json
import os
from decimal import Decimal
from functools import lru_cache
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.business_hours import resolve_zone
from .core.exceptions import ConfigurationError

# Only acceptable where DEV_ENVIRONMENTS applies; production must set its own secret.
DEV_SIGNING_SECRET = "compliance-gateway-dev-secret-change-in-production"
DEV_ENVIRONMENTS = {"development", "local", "dev", "test"}


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        config_path = os.environ.get("GATEWAY_CONFIG_FILE")

    if config_path is None:
        # Look for config.yaml in common locations
        possible_paths = [
            "config.yaml",  # Current directory
            "../../config.yaml",  # Project root from src/compliance_gateway
        ]

        for path in possible_paths:
            if os.path.exists(path):
                config_path = path
                break
        else:
            return {}

    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
            return config_data
    return {}


class SecuritySettings(BaseSettings):
    """Token signing and API authentication."""

    signing_secret: str = Field(default=DEV_SIGNING_SECRET, description="HMAC secret for signed tokens")
    api_keys: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Valid API keys with metadata")
    token_ttl_days: int = Field(default=30, ge=1, description="Signed token lifetime in days")
    token_grace_days: int = Field(default=2, ge=0, description="Extra age tolerated beyond the TTL")
    single_use_tokens: bool = Field(default=False, description="Reject a token nonce after its first verification")

    @field_validator("api_keys", mode="before")
    def parse_api_keys(cls, v: Any) -> Dict[str, Dict[str, Any]]:
        """Parse API keys from JSON string if needed."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, dict):
                    return parsed
                return {}
            except json.JSONDecodeError:
                return {}
        if isinstance(v, dict):
            return v
        return {}

    model_config = SettingsConfigDict(env_prefix="GATEWAY_SECURITY_")


class RateLimitSettings(BaseSettings):
    """Per-recipient send limits."""

    limit_per_hour: int = Field(default=100, ge=1, description="Sends allowed per recipient per window")
    window_seconds: int = Field(default=3600, ge=1, description="Fixed window length")
    lock_shards: int = Field(default=16, ge=1, description="Lock stripes for per-recipient serialization")
    sweep_interval_seconds: int = Field(default=300, ge=1, description="How often expired windows are dropped")

    model_config = SettingsConfigDict(env_prefix="GATEWAY_RATE_LIMIT_")


class BusinessHoursSettings(BaseSettings):
    """Local window for reminder-class messages."""

    zone: str = Field(default="Asia/Jerusalem", description="IANA time zone")
    start_hour: int = Field(default=8, ge=0, le=23, description="First allowed local hour")
    end_hour: int = Field(default=20, ge=1, le=24, description="First disallowed local hour")

    @field_validator("zone")
    def validate_zone(cls, v: str) -> str:
        resolve_zone(v)
        return v

    @model_validator(mode="after")
    def validate_hours(self) -> "BusinessHoursSettings":
        if self.start_hour >= self.end_hour:
            raise ValueError("start_hour must be earlier than end_hour")
        return self

    model_config = SettingsConfigDict(env_prefix="GATEWAY_BUSINESS_HOURS_")


class TaxSettings(BaseSettings):
    """VAT, processing fee and invoice issuer details."""

    vat_rate: Decimal = Field(default=Decimal("0.18"), ge=0, lt=1, description="VAT rate")
    processing_fee_rate: Decimal = Field(default=Decimal("0.0175"), ge=0, lt=1, description="Card processing fee rate")
    company_name: str = Field(default="", description="Legal name printed on invoices")
    company_tax_id: str = Field(default="", description="Registered business / VAT number")
    company_address: str = Field(default="", description="Registered address")
    support_email: str = Field(default="", description="Support contact printed on invoices")

    model_config = SettingsConfigDict(env_prefix="GATEWAY_TAX_")


class UnsubscribeSettings(BaseSettings):
    """Public unsubscribe link."""

    base_url: str = Field(default="http://localhost:8080/v1/unsubscribe", description="Unsubscribe landing URL")

    model_config = SettingsConfigDict(env_prefix="GATEWAY_UNSUBSCRIBE_")


class Settings(BaseSettings):
    """Main application settings."""

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")
    environment: str = Field(default="development", description="Deployment environment name")

    # Component settings
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    business_hours: BusinessHoursSettings = Field(default_factory=BusinessHoursSettings)
    tax: TaxSettings = Field(default_factory=TaxSettings)
    unsubscribe: UnsubscribeSettings = Field(default_factory=UnsubscribeSettings)

    model_config = SettingsConfigDict(env_prefix="GATEWAY_", case_sensitive=False)

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in DEV_ENVIRONMENTS

    def check_production_safety(self) -> None:
        """Refuse to run outside development with the fallback signing secret."""
        secret = self.security.signing_secret
        if self.is_development:
            return
        if not secret or secret == DEV_SIGNING_SECRET:
            raise ConfigurationError(
                "A signing secret must be configured outside development",
                details={"environment": self.environment},
            )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with config file and env support."""

    # Load config file data
    config_data = load_config_file()

    # Config file provides defaults, env vars override
    if config_data:
        _set_env_from_config(config_data)

    return Settings()


_SCALAR_MAPPINGS = {
    ("server", "host"): "GATEWAY_HOST",
    ("server", "port"): "GATEWAY_PORT",
    ("server", "debug"): "GATEWAY_DEBUG",
    ("server", "log_level"): "GATEWAY_LOG_LEVEL",
    ("server", "environment"): "GATEWAY_ENVIRONMENT",
    ("security", "signing_secret"): "GATEWAY_SECURITY_SIGNING_SECRET",
    ("security", "token_ttl_days"): "GATEWAY_SECURITY_TOKEN_TTL_DAYS",
    ("security", "token_grace_days"): "GATEWAY_SECURITY_TOKEN_GRACE_DAYS",
    ("security", "single_use_tokens"): "GATEWAY_SECURITY_SINGLE_USE_TOKENS",
    ("rate_limit", "limit_per_hour"): "GATEWAY_RATE_LIMIT_LIMIT_PER_HOUR",
    ("rate_limit", "window_seconds"): "GATEWAY_RATE_LIMIT_WINDOW_SECONDS",
    ("rate_limit", "lock_shards"): "GATEWAY_RATE_LIMIT_LOCK_SHARDS",
    ("rate_limit", "sweep_interval_seconds"): "GATEWAY_RATE_LIMIT_SWEEP_INTERVAL_SECONDS",
    ("business_hours", "zone"): "GATEWAY_BUSINESS_HOURS_ZONE",
    ("business_hours", "start_hour"): "GATEWAY_BUSINESS_HOURS_START_HOUR",
    ("business_hours", "end_hour"): "GATEWAY_BUSINESS_HOURS_END_HOUR",
    ("tax", "vat_rate"): "GATEWAY_TAX_VAT_RATE",
    ("tax", "processing_fee_rate"): "GATEWAY_TAX_PROCESSING_FEE_RATE",
    ("tax", "company_name"): "GATEWAY_TAX_COMPANY_NAME",
    ("tax", "company_tax_id"): "GATEWAY_TAX_COMPANY_TAX_ID",
    ("tax", "company_address"): "GATEWAY_TAX_COMPANY_ADDRESS",
    ("tax", "support_email"): "GATEWAY_TAX_SUPPORT_EMAIL",
    ("unsubscribe", "base_url"): "GATEWAY_UNSUBSCRIBE_BASE_URL",
}


def _set_env_from_config(config_data: Dict[str, Any]) -> None:
    """Set environment variables from config file if not already set."""
    for (section, key), env_var in _SCALAR_MAPPINGS.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value is not None:
                os.environ[env_var] = str(value)

    # Handle api_keys specially (convert dict to JSON string)
    if "GATEWAY_SECURITY_API_KEYS" not in os.environ:
        api_keys = (config_data.get("security") or {}).get("api_keys")
        if api_keys:
            os.environ["GATEWAY_SECURITY_API_KEYS"] = json.dumps(api_keys)


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
