"""Core module - data model, zone registry and expiring stores.

The scheduler and the sensor facade import the capture and detection packages,
so they are imported from their modules (or from ``game_sensor``) directly.
"""

from .models import (
    CaptureZone,
    GameEvent,
    GameMap,
    MapIntel,
    PixelRect,
    Quest,
    QuestCompletion,
    RecognitionRequest,
    RecognitionResult,
)
from .ttl_store import ExpiringStore
from .zone_registry import ZoneRegistry, to_pixel_rect

__all__ = [
    "CaptureZone",
    "GameEvent",
    "GameMap",
    "MapIntel",
    "PixelRect",
    "Quest",
    "QuestCompletion",
    "RecognitionRequest",
    "RecognitionResult",
    "ExpiringStore",
    "ZoneRegistry",
    "to_pixel_rect",
]
