"""Configuration package."""

from invoicer.config.settings import InvoicingSettings, get_settings

__all__ = [
    "InvoicingSettings",
    "get_settings",
]
