"""Capture scheduler: timed frame capture, zone cropping and OCR dispatch."""

import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional, Protocol

import numpy as np

from ..capture.screen_capture import encode_png
from ..ocr.recognition_unit import RecognitionUnit
from ..utils.timer import RepeatingTimer
from .models import RecognitionRequest, RecognitionResult, now_ms
from .zone_registry import ZoneRegistry, to_pixel_rect

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 1500


class FrameSource(Protocol):
    def capture_frame(self) -> Optional[np.ndarray]: ...


UnitFactory = Callable[[Callable[[RecognitionResult], None]], RecognitionUnit]


class CaptureScheduler:
    """Stopped <-> Running state machine around a repeating capture timer.

    Each tick grabs one frame, crops every active zone and submits the crops to
    the recognition unit without waiting for results. Results reach
    ``on_result`` from the worker thread, tagged with zone id and capture time.
    """

    def __init__(
        self,
        registry: ZoneRegistry,
        frame_source: FrameSource,
        on_result: Callable[[RecognitionResult], None],
        unit_factory: Optional[UnitFactory] = None,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        active_zones: Optional[Iterable[str]] = None,
        clock: Callable[[], int] = now_ms,
    ):
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self.registry = registry
        self.frame_source = frame_source
        self.on_result = on_result
        self.unit_factory = unit_factory or (lambda callback: RecognitionUnit(callback))
        self.interval_ms = interval_ms
        self.active_zones: List[str] = list(active_zones) if active_zones is not None else registry.ids()
        self._clock = clock
        self.last_submitted = 0
        self._timer: Optional[RepeatingTimer] = None
        self._unit: Optional[RecognitionUnit] = None
        self._lock = threading.RLock()

    @property
    def scanning(self) -> bool:
        return self._timer is not None

    @property
    def worker_ready(self) -> bool:
        unit = self._unit
        return unit is not None and unit.ready

    @property
    def recognition_available(self) -> bool:
        unit = self._unit
        return unit is not None and unit.available

    @property
    def unit(self) -> Optional[RecognitionUnit]:
        return self._unit

    def start(self) -> None:
        with self._lock:
            if self._timer is not None:
                return

            if self._unit is None:
                self._unit = self.unit_factory(self.on_result)
                self._unit.start()

            self.capture_once()
            self._timer = RepeatingTimer(self.interval_ms / 1000.0, self.capture_once, name="capture-timer")
            self._timer.start()
            logger.info(f"Capture started: every {self.interval_ms}ms over {len(self.active_zones)} zones")

    def stop(self) -> None:
        with self._lock:
            if self._timer is None:
                return
            self._timer.stop()
            self._timer = None
            logger.info("Capture stopped")

    def destroy(self) -> None:
        with self._lock:
            self.stop()
            if self._unit is not None:
                self._unit.terminate()
                self._unit = None

    def update_settings(
        self, capture_interval_ms: Optional[int] = None, active_zones: Optional[Iterable[str]] = None
    ) -> None:
        with self._lock:
            if capture_interval_ms is not None and capture_interval_ms <= 0:
                raise ValueError(f"capture_interval_ms must be positive, got {capture_interval_ms}")
            if active_zones is not None:
                self.active_zones = list(active_zones)

            if capture_interval_ms is not None and capture_interval_ms != self.interval_ms:
                was_running = self.scanning
                self.stop()
                self.interval_ms = capture_interval_ms
                if was_running:
                    self.start()

    def capture_once(self) -> int:
        """One capture tick. Returns the number of crops submitted; failures skip the tick."""
        unit = self._unit
        self.last_submitted = 0
        if unit is None:
            return 0

        try:
            frame = self.frame_source.capture_frame()
            if frame is None:
                return 0

            timestamp = self._clock()
            submitted = 0
            for zone_id, crop in self._crop_active_zones(frame).items():
                request = RecognitionRequest(image_buffer=encode_png(crop), zone_id=zone_id, timestamp=timestamp)
                if unit.submit(request):
                    submitted += 1
            self.last_submitted = submitted
            return submitted

        except Exception as e:
            # The game window can close mid-capture; next tick retries
            logger.debug(f"Capture tick skipped: {e}")
            return 0

    def test_capture(self) -> Optional[Dict]:
        """Dry run of one tick: frame size and the crop size of every usable zone."""
        try:
            frame = self.frame_source.capture_frame()
            if frame is None:
                return None

            height, width = frame.shape[:2]
            zones = [
                {"zone": zone_id, "width": crop.shape[1], "height": crop.shape[0]}
                for zone_id, crop in self._crop_active_zones(frame).items()
            ]
            return {"screen_width": width, "screen_height": height, "zones": zones}

        except Exception as e:
            logger.debug(f"Test capture failed: {e}")
            return None

    def _crop_active_zones(self, frame: np.ndarray) -> Dict[str, np.ndarray]:
        height, width = frame.shape[:2]
        crops = {}
        for zone in self.registry.filter(self.active_zones):
            rect = to_pixel_rect(zone, width, height)
            if rect is None:
                logger.debug(f"Zone {zone.id} does not fit a {width}x{height} frame, skipped")
                continue
            crops[zone.id] = frame[rect.y : rect.y + rect.height, rect.x : rect.x + rect.width].copy()
        return crops
