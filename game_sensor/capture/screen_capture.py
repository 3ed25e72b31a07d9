"""Frame acquisition using MSS: game window first, primary monitor as fallback."""

import logging
from typing import Optional, Tuple

import cv2
import mss
import numpy as np

from .window_detector import Rect, WindowDetector
from .window_locator import WindowLocator

logger = logging.getLogger(__name__)


class ScreenCapture:
    """Full-resolution game frame capture."""

    def __init__(
        self,
        monitor_index: int = 1,
        window_detector: Optional[WindowDetector] = None,
        window_locator: Optional[WindowLocator] = None,
        window_process_name: Optional[str] = None,
    ):
        self.monitor_index = monitor_index
        self.window_detector = window_detector or WindowDetector()
        self.window_locator = window_locator
        self.window_process_name = window_process_name

        logger.debug(
            f"ScreenCapture initialized: monitor={monitor_index}, process window lookup="
            f"{'on' if window_locator and window_process_name else 'off'}"
        )

    def capture_frame(self) -> Optional[np.ndarray]:
        """BGR frame of the game window, else the primary monitor, else None."""
        _, image = self.capture_target()
        return image

    def capture_target(self) -> Tuple[Optional[Rect], Optional[np.ndarray]]:
        """(bounds, frame); bounds are (0, 0, w, h) for a monitor grab."""
        window_bounds = self.find_game_window()
        if window_bounds is not None:
            try:
                return window_bounds, self.capture_window(window_bounds)
            except Exception as e:
                logger.debug(f"Window capture failed, falling back to monitor: {e}")

        try:
            image = self.capture_monitor()
            return (0, 0, image.shape[1], image.shape[0]), image
        except Exception as e:
            logger.debug(f"Monitor capture failed: {e}")
            return None, None

    def find_game_window(self) -> Optional[Rect]:
        bounds = self.window_detector.find_target_window()
        if bounds is not None:
            return bounds

        if self.window_locator is not None and self.window_process_name:
            rect = self.window_locator.locate(self.window_process_name)
            if rect is not None and self.window_detector.is_window_valid(rect.as_tuple()):
                return rect.as_tuple()
        return None

    def capture_window(self, window_bounds: Rect) -> np.ndarray:
        if not self.window_detector.is_window_valid(window_bounds):
            raise ValueError(f"Invalid window bounds: {window_bounds}")

        left, top, width, height = window_bounds
        return _grab({"left": left, "top": top, "width": width, "height": height})

    def capture_monitor(self) -> np.ndarray:
        """Selected monitor, or the primary one when the index is out of range."""
        return _grab(None, self.monitor_index)


def _grab(region: Optional[dict], monitor_index: int = 1) -> np.ndarray:
    with mss.mss() as sct:
        if region is None:
            if not 0 < monitor_index < len(sct.monitors):
                logger.debug(f"No monitor {monitor_index}, grabbing primary")
                monitor_index = 1
            region = sct.monitors[monitor_index]
        raw = np.array(sct.grab(region))
    # mss hands back BGRA
    return cv2.cvtColor(raw, cv2.COLOR_BGRA2BGR)


def encode_png(image: np.ndarray) -> bytes:
    """PNG-encode a BGR crop for the recognition worker."""
    ok, buffer = cv2.imencode(".png", image)
    if not ok:
        raise ValueError(f"PNG encoding failed for crop of shape {image.shape}")
    return buffer.tobytes()
