"""Pytest configuration and shared fixtures for the game sensor tests.

Everything that would touch the screen, the process table or the tesseract
binary is replaced by small fakes so the suite runs headless.
"""
import logging
import threading
import time
from typing import Callable, List, Optional, Tuple

import numpy as np
import pytest

from game_sensor.core.models import CaptureZone, GameMap, Quest, RecognitionResult
from game_sensor.core.zone_registry import ZoneRegistry
from game_sensor.detection.completed_quests import InMemoryCompletedQuestStore

logging.getLogger("PIL").setLevel(logging.WARNING)


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start_ms: int = 1_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeEngine:
    """Recognition engine returning scripted (text, confidence) pairs.

    A script entry that is an exception instance is raised instead. When
    ``gate`` is set, recognise() blocks until it is released.
    """

    def __init__(self, script: Optional[List] = None, default: Tuple[str, float] = ("", 0.0)):
        self.script = list(script or [])
        self.default = default
        self.ready = False
        self.init_calls = 0
        self.shutdown_calls = 0
        self.buffers: List[bytes] = []
        self.gate: Optional[threading.Event] = None

    def init(self) -> None:
        self.init_calls += 1
        self.ready = True

    def recognise(self, image_buffer: bytes) -> Tuple[str, float]:
        if self.gate is not None:
            self.gate.wait(5.0)
        self.buffers.append(image_buffer)
        item = self.script.pop(0) if self.script else self.default
        if isinstance(item, Exception):
            raise item
        return item

    def shutdown(self) -> None:
        self.shutdown_calls += 1
        self.ready = False


class FakeFrameSource:
    """Frame source returning a black 1080p frame, or None when ``frame`` is None."""

    def __init__(self, width: int = 1920, height: int = 1080):
        self.frame: Optional[np.ndarray] = np.zeros((height, width, 3), dtype=np.uint8)
        self.calls = 0
        self.error: Optional[Exception] = None

    def capture_frame(self) -> Optional[np.ndarray]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.frame


class FakeProcessTable:
    def __init__(self, running: bool = False):
        self.running = running
        self.error: Optional[Exception] = None

    def is_running(self, process_name: str) -> bool:
        if self.error is not None:
            raise self.error
        return self.running


def wait_until(predicate: Callable[[], bool], timeout: float = 3.0) -> bool:
    """Poll predicate until it holds or the timeout passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def make_result(text: str, zone_id: str = "centerPopup", confidence: float = 90.0, timestamp: int = 0):
    return RecognitionResult(text=text, zone_id=zone_id, confidence=confidence, timestamp=timestamp)


@pytest.fixture
def clock():
    """Provide a fake clock starting at a fixed time."""
    return FakeClock()


@pytest.fixture
def engine():
    """Provide a scripted recognition engine."""
    return FakeEngine()


@pytest.fixture
def frame_source():
    """Provide a fake 1920x1080 frame source."""
    return FakeFrameSource()


@pytest.fixture
def process_table():
    return FakeProcessTable()


@pytest.fixture
def quest_store():
    """Provide an empty in-memory completed quest store."""
    return InMemoryCompletedQuestStore()


@pytest.fixture
def registry():
    """Provide the shipped zone registry."""
    return ZoneRegistry.load()


@pytest.fixture
def small_registry():
    """Two zones, enough to exercise filtering and cropping."""
    return ZoneRegistry(
        [
            CaptureZone(id="objectiveComplete", label="Objective Complete", x=0.3, y=0.05, width=0.4, height=0.08),
            CaptureZone(id="centerPopup", label="Center Popup", x=0.25, y=0.35, width=0.5, height=0.15),
        ]
    )


@pytest.fixture
def maps():
    return [
        GameMap(id="dam", name="Dam Battlegrounds"),
        GameMap(id="spaceport", name={"en": "Spaceport", "de": "Raumhafen"}),
        GameMap(id="buried-city", name="Buried City"),
    ]


@pytest.fixture
def quests():
    return [
        Quest(id="q-cells", name={"en": "Power Trip"}, trader="Celeste", objectives=["Retrieve 3 Power Cells"]),
        Quest(
            id="q-scout",
            name="Scouting Party",
            objectives=["Visit the Spaceport control tower", "Destroy 2 Wasps"],
        ),
        Quest(id="q-empty", name="Nothing To Do", objectives=[]),
    ]
