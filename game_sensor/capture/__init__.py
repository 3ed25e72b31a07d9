"""Capture module - frame acquisition, window discovery and game process watching."""

from .process_watcher import ProcessWatcher, PsutilProcessTable
from .screen_capture import ScreenCapture, encode_png
from .window_detector import WindowDetector
from .window_locator import WindowLocator

__all__ = [
    "ProcessWatcher",
    "PsutilProcessTable",
    "ScreenCapture",
    "encode_png",
    "WindowDetector",
    "WindowLocator",
]
