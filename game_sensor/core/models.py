"""Pydantic models for capture zones, recognition messages and detection output."""

import time
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

LocalizedString = Union[str, Dict[str, str]]


def now_ms() -> int:
    """Wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


def loc(value: Any, lang: Optional[str] = None) -> str:
    """Pick a display string from a plain or localized name."""
    if not value:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        if lang and value.get(lang):
            return value[lang]
        return value.get("en") or value.get("de") or next(iter(value.values()), "") or ""
    return str(value)


class CaptureZone(BaseModel):
    """Named capture region as fractions (0..1) of the frame size."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Stable zone identifier")
    label: str = Field(default="", description="Human readable name")
    x: float = Field(ge=0.0, le=1.0)
    y: float = Field(ge=0.0, le=1.0)
    width: float = Field(gt=0.0, le=1.0)
    height: float = Field(gt=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_fits_frame(self) -> "CaptureZone":
        # Small tolerance for float sums like 0.65 + 0.35
        if self.x + self.width > 1.0 + 1e-9:
            raise ValueError(f"zone '{self.id}' overflows horizontally: x+width={self.x + self.width}")
        if self.y + self.height > 1.0 + 1e-9:
            raise ValueError(f"zone '{self.id}' overflows vertically: y+height={self.y + self.height}")
        return self


class PixelRect(BaseModel):
    """Absolute pixel rectangle inside a frame or on screen."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    width: int
    height: int

    def as_tuple(self):
        return (self.x, self.y, self.width, self.height)


class RecognitionRequest(BaseModel):
    """One cropped zone image waiting for OCR."""

    model_config = ConfigDict(frozen=True)

    image_buffer: bytes = Field(description="PNG encoded crop")
    zone_id: str
    timestamp: int = Field(description="Capture time in ms")


class RecognitionResult(BaseModel):
    """OCR output for one request. confidence == 0 with error set means failure."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    zone_id: str
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)
    timestamp: int
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def usable(self, min_confidence: float) -> bool:
        """True when there is text and the engine was confident enough."""
        return bool(self.text) and self.confidence >= min_confidence

    @classmethod
    def failure(cls, zone_id: str, timestamp: int, error: str) -> "RecognitionResult":
        return cls(text="", zone_id=zone_id, confidence=0.0, timestamp=timestamp, error=error)


# Collaborator data, loaded and cached outside the sensor


class GameMap(BaseModel):
    id: str
    name: LocalizedString

    @property
    def display_name(self) -> str:
        return loc(self.name)


class Bot(BaseModel):
    id: str
    name: LocalizedString
    threat: Optional[str] = None
    weakness: Optional[str] = None
    maps: List[str] = Field(default_factory=list)
    drops: List[str] = Field(default_factory=list)


class Quest(BaseModel):
    id: str
    name: LocalizedString = ""
    trader: Optional[str] = None
    objectives: List[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return loc(self.name) or self.id


class GameEvent(BaseModel):
    """Scheduled world event; times are epoch milliseconds."""

    name: str
    map: str
    start_time: int
    end_time: int

    def is_active(self, at_ms: int) -> bool:
        return self.start_time <= at_ms < self.end_time

    @property
    def key(self) -> str:
        return f"{self.name}|{self.map}|{self.start_time}"


# Detection output


class EnemyIntel(BaseModel):
    name: str
    threat: str = "Unknown"
    weakness: str = "None"
    drops: List[str] = Field(default_factory=list)


class QuestIntel(BaseModel):
    id: str
    name: str
    trader: Optional[str] = None
    objectives: List[str] = Field(default_factory=list)


class EventIntel(BaseModel):
    name: str
    end_time: int


MapSource = Literal["ocr", "event-inferred", "manual"]


class MapIntel(BaseModel):
    """Snapshot of everything relevant to the detected map. Replaced wholesale."""

    model_config = ConfigDict(frozen=True)

    map_id: str
    map_name: str
    enemies: List[EnemyIntel] = Field(default_factory=list)
    quests: List[QuestIntel] = Field(default_factory=list)
    loot: List[str] = Field(default_factory=list)
    active_events: List[EventIntel] = Field(default_factory=list)
    source: MapSource


class QuestCompletion(BaseModel):
    model_config = ConfigDict(frozen=True)

    quest_id: str
    quest_name: str
    objective: str
    timestamp: int


class EventAlert(BaseModel):
    id: str
    type: Literal["started", "ended"]
    events: List[GameEvent]
    timestamp: int
