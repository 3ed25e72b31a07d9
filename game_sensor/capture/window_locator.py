# Process-name to window-rectangle lookup behind a small platform interface
import logging
import platform
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import List, Optional, Protocol

import psutil

from ..core.models import PixelRect

logger = logging.getLogger(__name__)

if platform.system() == "Windows":
    try:
        import win32gui
        import win32process

        WIN32_AVAILABLE = True
    except ImportError:
        WIN32_AVAILABLE = False
else:
    WIN32_AVAILABLE = False


def _strip_exe(name: str) -> str:
    name = name.strip()
    return name[:-4] if name.lower().endswith(".exe") else name


def find_pids(process_name: str) -> List[int]:  # PIDs whose executable matches, with or without .exe
    wanted = _strip_exe(process_name).lower()
    pids = []
    for proc in psutil.process_iter(["pid", "name"]):
        name = proc.info.get("name")
        if name and _strip_exe(name).lower() == wanted:
            pids.append(proc.info["pid"])
    return pids


class WindowPlatform(Protocol):  # One implementation per OS
    def window_rect(self, process_name: str) -> Optional[PixelRect]: ...


class Win32WindowPlatform:  # Enumerates top-level windows owned by the process

    def window_rect(self, process_name: str) -> Optional[PixelRect]:
        pids = set(find_pids(process_name))
        if not pids:
            return None

        found: List[PixelRect] = []

        def enum_callback(hwnd, results):
            if not win32gui.IsWindowVisible(hwnd):
                return True
            _, pid = win32process.GetWindowThreadProcessId(hwnd)
            if pid in pids:
                left, top, right, bottom = win32gui.GetWindowRect(hwnd)
                if right > left and bottom > top:
                    results.append(PixelRect(x=left, y=top, width=right - left, height=bottom - top))
            return True

        win32gui.EnumWindows(enum_callback, found)
        if not found:
            return None
        # The main game window is the largest one the process owns
        return max(found, key=lambda r: r.width * r.height)


class NullWindowPlatform:  # Platforms without a window query report no window

    def window_rect(self, process_name: str) -> Optional[PixelRect]:
        return None


def default_window_platform() -> WindowPlatform:
    if WIN32_AVAILABLE:
        return Win32WindowPlatform()
    logger.info("No window query backend for this platform; process window lookup disabled")
    return NullWindowPlatform()


class WindowLocator:  # Synchronous for callers, the OS query runs on a worker with a capped wait

    def __init__(self, platform_impl: Optional[WindowPlatform] = None, timeout_s: float = 3.0):
        self.platform = platform_impl or default_window_platform()
        self.timeout_s = timeout_s
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="window-locator")

    def locate(self, process_name: str, timeout_s: Optional[float] = None) -> Optional[PixelRect]:
        """Screen rectangle of the process's main window, or None."""
        timeout_s = self.timeout_s if timeout_s is None else timeout_s
        future = self._executor.submit(self.platform.window_rect, process_name)
        try:
            return future.result(timeout=timeout_s)
        except FutureTimeout:
            logger.warning(f"Window lookup for {process_name} timed out after {timeout_s}s")
            future.cancel()
            return None
        except Exception as e:
            logger.debug(f"Window lookup for {process_name} failed: {e}")
            return None

    def close(self) -> None:
        self._executor.shutdown(wait=False)
