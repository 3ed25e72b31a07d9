"""Configuration module - shipped zone layout and runtime settings."""

from .settings import DEFAULT_ACTIVE_ZONES, SensorSettings

__all__ = ["DEFAULT_ACTIVE_ZONES", "SensorSettings"]
