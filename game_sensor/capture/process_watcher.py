# Polls the process table for the game executable and reports start/exit edges
import logging
from typing import Callable, List, Optional, Protocol

import psutil

from ..utils.timer import RepeatingTimer
from .window_locator import find_pids

logger = logging.getLogger(__name__)

DEFAULT_GAME_PROCESS = "ArcRaiders.exe"


class ProcessTable(Protocol):
    def is_running(self, process_name: str) -> bool: ...


class PsutilProcessTable:
    def is_running(self, process_name: str) -> bool:
        return bool(find_pids(process_name))


class ProcessWatcher:  # Edge-triggered: callbacks fire on state changes only

    def __init__(
        self,
        process_name: str = DEFAULT_GAME_PROCESS,
        interval_s: float = 5.0,
        process_table: Optional[ProcessTable] = None,
    ):
        self.process_name = process_name
        self.interval_s = interval_s
        self.process_table = process_table or PsutilProcessTable()
        self._running = False
        self._listeners: List[Callable[[bool], None]] = []
        self._timer: Optional[RepeatingTimer] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def watching(self) -> bool:
        return self._timer is not None

    def on_change(self, callback: Callable[[bool], None]) -> None:
        self._listeners.append(callback)

    def start(self) -> None:
        if self._timer is not None:
            return
        self.poll()
        self._timer = RepeatingTimer(self.interval_s, self.poll, name="process-watcher")
        self._timer.start()

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer = None

    def poll(self) -> None:
        try:
            found = self.process_table.is_running(self.process_name)
        except (psutil.Error, OSError) as e:
            logger.debug(f"Process query failed, skipping poll: {e}")
            return

        if found == self._running:
            return

        self._running = found
        logger.info(f"{self.process_name} {'started' if found else 'exited'}")
        for callback in list(self._listeners):
            try:
                callback(found)
            except Exception:
                logger.exception("Process change listener failed")
