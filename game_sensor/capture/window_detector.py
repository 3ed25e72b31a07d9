"""Title based lookup of the game window."""

import logging
from typing import List, Optional, Sequence, Tuple

Rect = Tuple[int, int, int, int]  # left, top, width, height

logger = logging.getLogger(__name__)

DEFAULT_GAME_TITLES = ["ArcRaiders", "Arc Raiders", "UnrealWindow"]

# Launchers and splash screens are smaller than this
MIN_WINDOW_PX = 100

# pygetwindow raises NotImplementedError on import where it has no backend (Linux)
try:
    import pygetwindow as gw

    _CAN_GET_WINDOWS = True
except (ImportError, NotImplementedError):
    gw = None
    _CAN_GET_WINDOWS = False


def bounds_usable(bounds: Optional[Rect]) -> bool:
    """Big enough to hold the HUD and not parked offscreen."""
    if not bounds or len(bounds) != 4:
        return False
    left, top, width, height = bounds
    if width < MIN_WINDOW_PX or height < MIN_WINDOW_PX:
        return False
    # Minimised windows on Windows report -32000 coordinates
    return left >= -width and top >= -height


class WindowDetector:
    """Finds the game window by case-insensitive title substring."""

    def __init__(self, target_titles: Optional[Sequence[str]] = None):
        self.target_titles = [t.lower() for t in (target_titles or DEFAULT_GAME_TITLES)]
        self.available = _CAN_GET_WINDOWS

        if not self.available:
            logger.info("Window lookup by title unavailable on this platform")

    def find_target_window(self) -> Optional[Rect]:
        """Largest usable window whose title matches, or None."""
        candidates = self.matching_windows()
        if not candidates:
            return None
        bounds = max(candidates, key=lambda b: b[2] * b[3])
        logger.debug(f"Game window by title: {bounds}")
        return bounds

    def matching_windows(self) -> List[Rect]:
        if not self.available:
            return []

        try:
            windows = gw.getAllWindows()
        except Exception as e:
            logger.debug(f"Window enumeration failed: {e}")
            return []

        found = []
        for window in windows:
            title = (window.title or "").lower()
            if not title or window.isMinimized:
                continue
            if any(target in title for target in self.target_titles):
                bounds = (window.left, window.top, window.width, window.height)
                if bounds_usable(bounds):
                    found.append(bounds)
        return found

    def is_window_valid(self, window_bounds: Optional[Rect]) -> bool:
        return bounds_usable(window_bounds)
