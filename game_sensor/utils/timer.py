# Repeating background timer used by the capture loop and the process poller
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RepeatingTimer:  # Calls fn every interval_s on a daemon thread until stopped

    def __init__(self, interval_s: float, fn: Callable[[], None], name: str = "repeating-timer"):
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")
        self.interval_s = interval_s
        self.fn = fn
        self.name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and not self._stop_event.is_set()

    def start(self) -> None:
        if self._thread is not None:
            return
        # Fresh event per run so a thread still finishing its last tick cannot be revived
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop_event,), name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        thread, self._thread = self._thread, None
        # A tick may stop its own timer; joining ourselves would deadlock
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self, stop_event: threading.Event) -> None:
        # First call fires after one interval; callers that want an immediate tick do it themselves
        while not stop_event.wait(self.interval_s):
            try:
                self.fn()
            except Exception:
                logger.exception(f"[{self.name}] tick failed")
