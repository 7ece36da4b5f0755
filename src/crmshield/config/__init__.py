"""Configuration module for crmshield."""

from crmshield.config.settings import Environment, Settings, get_settings

__all__ = ["Environment", "Settings", "get_settings"]
