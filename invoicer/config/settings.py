"""
Configuration Management for Invoicer

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All tunables of the bookkeeping core live here.
Tax rate, numbering format and listing limits are validated at startup
instead of being scattered as literals through the code.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class InvoicingSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from INVOICER_* environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="INVOICER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Money
    tax_rate: Decimal = Field(
        default=Decimal("0.21"),
        ge=0,
        le=1,
        description="VAT rate applied to every invoice subtotal"
    )
    currency: str = Field(
        default="EUR",
        min_length=3,
        max_length=3,
        description="ISO currency code reported with every statistics snapshot"
    )
    default_country: str = Field(
        default="España",
        description="Country stamped on new clients that give none"
    )

    # Invoice numbering
    invoice_number_prefix: str = Field(
        default="FAC",
        min_length=1,
        max_length=10,
        description="Prefix of the human-facing invoice number"
    )
    invoice_number_width: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Zero padding of the sequence part of the number"
    )
    invoice_number_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts to persist an invoice when its number collides"
    )

    # Listings
    recent_invoices_limit: int = Field(
        default=5,
        ge=1,
        le=50,
        description="How many recent invoices the statistics snapshot shows"
    )
    audit_query_limit: Optional[int] = Field(
        default=None,
        ge=1,
        description="Cap on audit entries returned per query; None returns all"
    )

    # Bootstrap account, created at startup when both are set
    admin_email: Optional[str] = Field(
        default=None,
        description="Email of the administrator seeded at startup"
    )
    admin_password: Optional[SecretStr] = Field(
        default=None,
        description="Password of the administrator seeded at startup"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Minimum level of the local diagnostic log"
    )
    log_json: bool = Field(
        default=True,
        description="Render local logs as JSON (console renderer otherwise)"
    )

    @field_validator("invoice_number_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """The prefix is joined with '-' so it must not contain one."""
        v = v.strip().upper()
        if "-" in v:
            raise ValueError("Invoice number prefix cannot contain '-'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Unsupported log level: {v}. Allowed: {allowed}")
        return v.upper()


@lru_cache()
def get_settings() -> InvoicingSettings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return InvoicingSettings()
