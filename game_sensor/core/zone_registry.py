"""Capture zone registry: resolution independent regions and pixel conversion."""

import json
import logging
import math
import os
from typing import Dict, Iterable, Iterator, List, Optional

from pydantic import ValidationError

from .models import CaptureZone, PixelRect

logger = logging.getLogger(__name__)

DEFAULT_ZONES_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "config", "zones.json")

# Crops smaller than this in either dimension carry no readable text
MIN_CROP_PX = 10


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def to_pixel_rect(zone: CaptureZone, frame_width: int, frame_height: int) -> Optional[PixelRect]:
    """Convert a fractional zone to pixels, or None if it cannot be cropped from this frame."""
    x = _round_half_up(zone.x * frame_width)
    y = _round_half_up(zone.y * frame_height)
    w = _round_half_up(zone.width * frame_width)
    h = _round_half_up(zone.height * frame_height)

    if x + w > frame_width or y + h > frame_height:
        return None
    if w < MIN_CROP_PX or h < MIN_CROP_PX:
        return None

    return PixelRect(x=x, y=y, width=w, height=h)


class ZoneRegistry:
    """Read-only table of capture zones, loaded once at startup."""

    def __init__(self, zones: Iterable[CaptureZone]):
        self._zones: Dict[str, CaptureZone] = {}
        for zone in zones:
            if zone.id in self._zones:
                logger.warning(f"Duplicate zone id '{zone.id}' ignored")
                continue
            self._zones[zone.id] = zone

    @classmethod
    def load(cls, config_path: str = None) -> "ZoneRegistry":
        """Load zone definitions from JSON, skipping entries that break the zone invariant."""
        config_path = config_path or DEFAULT_ZONES_PATH

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                raw_zones = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load zone file {config_path}: {e}")
            raise

        if not isinstance(raw_zones, list):
            raise ValueError(f"Zone file {config_path} must contain a list of zones")

        zones = []
        for entry in raw_zones:
            try:
                zones.append(CaptureZone.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Invalid zone {entry!r} skipped: {e.errors()[0]['msg']}")

        logger.info(f"Loaded {len(zones)} capture zones from {config_path}")
        return cls(zones)

    @property
    def zones(self) -> List[CaptureZone]:
        return list(self._zones.values())

    def ids(self) -> List[str]:
        return list(self._zones.keys())

    def get(self, zone_id: str) -> Optional[CaptureZone]:
        return self._zones.get(zone_id)

    def filter(self, zone_ids: Iterable[str]) -> List[CaptureZone]:
        """Zones whose id is in zone_ids, in registry order. Unknown ids are ignored."""
        wanted = set(zone_ids)
        return [zone for zone in self._zones.values() if zone.id in wanted]

    def __len__(self) -> int:
        return len(self._zones)

    def __contains__(self, zone_id: str) -> bool:
        return zone_id in self._zones

    def __iter__(self) -> Iterator[CaptureZone]:
        return iter(self._zones.values())
