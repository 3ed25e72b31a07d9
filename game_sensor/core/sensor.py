"""Game sensor: wires process watching, capture, recognition and detection together."""

import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional

from ..capture.process_watcher import ProcessWatcher
from ..capture.screen_capture import ScreenCapture
from ..capture.window_detector import WindowDetector
from ..capture.window_locator import WindowLocator
from ..config.settings import SensorSettings
from ..detection.completed_quests import CompletedQuestStore, JsonCompletedQuestStore
from ..detection.events import AlertTrigger, EventNotifier, EventScheduleTracker
from ..detection.map_detector import MapDetector
from ..detection.quest_tracker import QuestAutoTracker
from ..ocr.recognition_unit import RecognitionUnit
from ..ocr.tesseract_engine import TesseractEngine
from .models import Bot, EventAlert, GameEvent, GameMap, Quest, RecognitionResult, now_ms
from .scheduler import CaptureScheduler, FrameSource, UnitFactory
from .zone_registry import ZoneRegistry

logger = logging.getLogger(__name__)

ResultSubscriber = Callable[[RecognitionResult], None]


class GameSensor:
    """Host-facing facade.

    Scanning follows the game process: it starts when the game starts (if OCR
    is enabled) and stops when it exits. Every recognition result is fanned out
    to the map detector, the quest tracker and any subscribers, in that order,
    on the recognition worker thread.
    """

    def __init__(
        self,
        settings: Optional[SensorSettings] = None,
        registry: Optional[ZoneRegistry] = None,
        frame_source: Optional[FrameSource] = None,
        unit_factory: Optional[UnitFactory] = None,
        process_watcher: Optional[ProcessWatcher] = None,
        completed_store: Optional[CompletedQuestStore] = None,
        alert_trigger: Optional[AlertTrigger] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.settings = settings or SensorSettings.load()
        self.registry = registry or ZoneRegistry.load()
        self.completed_store = completed_store or JsonCompletedQuestStore(self.settings.completed_quests_path)
        self._clock = clock
        self._window_locator: Optional[WindowLocator] = None

        if frame_source is None:
            self._window_locator = WindowLocator()
            frame_source = ScreenCapture(
                monitor_index=self.settings.monitor_index,
                window_detector=WindowDetector(self.settings.window_titles),
                window_locator=self._window_locator,
                window_process_name=self.settings.window_process_name,
            )

        self.scheduler = CaptureScheduler(
            self.registry,
            frame_source,
            on_result=self._dispatch,
            unit_factory=unit_factory or self._default_unit,
            interval_ms=self.settings.capture_interval_ms,
            active_zones=self._known_zones(self.settings.active_zones),
            clock=clock,
        )

        self.map_detector = MapDetector(completed_store=self.completed_store, clock=clock)
        self.quest_tracker = QuestAutoTracker(
            completed_store=self.completed_store,
            match_threshold=self.settings.match_threshold,
            enabled=self.settings.ocr_enabled,
            clock=clock,
        )
        self.notifier = EventNotifier(
            notify_on_event=self.settings.notify_on_event,
            audio_alerts=self.settings.audio_alerts,
            audio_volume=self.settings.audio_volume,
            alert_trigger=alert_trigger,
            clock=clock,
        )
        self.event_tracker = EventScheduleTracker(self.notifier)

        self.process_watcher = process_watcher or ProcessWatcher(
            self.settings.process_name, interval_s=self.settings.process_poll_interval_s
        )
        self.process_watcher.on_change(self._on_game_state)

        self._subscribers: List[ResultSubscriber] = []
        self._lock = threading.Lock()

    def _default_unit(self, on_result: Callable[[RecognitionResult], None]) -> RecognitionUnit:
        engine = TesseractEngine(timeout_s=self.settings.recognition_timeout_s)
        return RecognitionUnit(on_result, engine=engine, queue_size=self.settings.recognition_queue_size)

    def _known_zones(self, zone_ids: Iterable[str]) -> List[str]:
        known = []
        for zone_id in zone_ids:
            if zone_id in self.registry:
                known.append(zone_id)
            else:
                logger.warning(f"Active zone '{zone_id}' is not defined, ignoring it")
        return known

    # Lifecycle

    def start(self) -> None:
        """Begin watching for the game; scanning follows the process state."""
        logger.info(f"Watching for {self.settings.process_name}")
        self.process_watcher.start()

    def start_scanning(self) -> None:
        """Start capturing regardless of the game process (manual start)."""
        if self.settings.ocr_enabled:
            self.scheduler.start()
        else:
            logger.info("OCR disabled, not starting capture")

    def stop_scanning(self) -> None:
        self.scheduler.stop()

    def shutdown(self) -> None:
        self.process_watcher.stop()
        self.scheduler.destroy()
        if self._window_locator is not None:
            self._window_locator.close()
        logger.info("Game sensor shut down")

    def _on_game_state(self, running: bool) -> None:
        if running:
            self.start_scanning()
        else:
            self.scheduler.stop()

    # Result stream

    def subscribe(self, callback: ResultSubscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _dispatch(self, result: RecognitionResult) -> None:
        for consumer in (self.map_detector.handle_result, self.quest_tracker.handle_result):
            try:
                consumer(result)
            except Exception:
                logger.exception(f"Detection failed for {result.zone_id} result")

        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(result)
            except Exception:
                logger.exception("Result subscriber failed")

    # Settings and data

    def update_ocr_settings(self, **partial) -> SensorSettings:
        """Apply a partial settings update at runtime; returns the new settings."""
        self.settings = self.settings.merged(**partial)

        self.scheduler.update_settings(
            capture_interval_ms=self.settings.capture_interval_ms,
            active_zones=self._known_zones(self.settings.active_zones),
        )
        self.quest_tracker.set_match_threshold(self.settings.match_threshold)
        self.quest_tracker.set_enabled(self.settings.ocr_enabled)
        self.notifier.configure(
            notify_on_event=self.settings.notify_on_event,
            audio_alerts=self.settings.audio_alerts,
            audio_volume=self.settings.audio_volume,
        )

        if not self.settings.ocr_enabled:
            self.scheduler.stop()
        elif self.process_watcher.is_running and not self.scheduler.scanning:
            self.scheduler.start()
        return self.settings

    def update_data(
        self,
        maps: Optional[Iterable[GameMap]] = None,
        bots: Optional[Iterable[Bot]] = None,
        quests: Optional[Iterable[Quest]] = None,
        squad_quest_ids: Optional[Iterable[str]] = None,
    ) -> None:
        quests = list(quests) if quests is not None else None
        if quests is not None:
            self.quest_tracker.update_quests(quests)
        self.map_detector.update_data(maps=maps, bots=bots, quests=quests, squad_quest_ids=squad_quest_ids)

    def update_events(self, events: Optional[Iterable[GameEvent]] = None, now: Optional[int] = None) -> List[EventAlert]:
        """Feed the event schedule; active events drive the map fallback."""
        alerts = self.event_tracker.update(events, self._clock() if now is None else now)
        self.map_detector.update_data(active_events=self.event_tracker.active_events)
        return alerts

    # Introspection

    def test_capture(self) -> Optional[Dict]:
        return self.scheduler.test_capture()

    def status(self) -> Dict:
        unit = self.scheduler.unit
        current = self.map_detector.current_map
        return {
            "game_running": self.process_watcher.is_running,
            "ocr_enabled": self.settings.ocr_enabled,
            "scanning": self.scheduler.scanning,
            "worker_ready": self.scheduler.worker_ready,
            "recognition_available": self.scheduler.recognition_available,
            "dropped_requests": unit.dropped_requests if unit else 0,
            "pending_requests": unit.pending if unit else 0,
            "current_map": current.map_name if current else None,
            "map_source": current.source if current else None,
            "completed_quests": len(self.completed_store.completed_ids()),
        }
