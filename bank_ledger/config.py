"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerConfig(BaseSettings):
    """Bank ledger configuration"""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage configuration
    data_dir: str = "data"  # One JSON file per table lives here
    json_indent: Optional[int] = 2

    # Business rules configuration
    default_currency: str = "NGN"
    default_savings_rate: str = "0.05"  # Flat annual rate for new savings accounts
    days_per_year: int = 365
    account_number_length: int = 10

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    @field_validator("default_currency")
    @classmethod
    def _known_currency(cls, value: str) -> str:
        value = value.upper()
        if value not in ("NGN", "USD"):
            raise ValueError(f"Unsupported currency '{value}'")
        return value

    @field_validator("log_format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        if value not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return value

    @field_validator("account_number_length")
    @classmethod
    def _sane_length(cls, value: int) -> int:
        if value < 6:
            raise ValueError("account_number_length must be at least 6")
        return value


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
