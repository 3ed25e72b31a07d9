"""Game sensor - OCR based game-state detection for Arc Raiders."""

from .config.settings import SensorSettings
from .core.scheduler import CaptureScheduler
from .core.sensor import GameSensor
from .core.zone_registry import ZoneRegistry

__version__ = "2.0.0"

__all__ = ["SensorSettings", "CaptureScheduler", "GameSensor", "ZoneRegistry"]
