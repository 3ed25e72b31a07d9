"""World event schedule tracking and start notifications."""

import itertools
import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional

from ..core.models import EventAlert, GameEvent, now_ms
from ..core.ttl_store import ExpiringStore

logger = logging.getLogger(__name__)

NOTIFY_COOLDOWN_MS = 10 * 60 * 1000

AlertTrigger = Callable[[float], None]


class EventNotifier:
    """Announces event starts once per event and map.

    The alert trigger receives the configured volume; playing the sound is up
    to the presentation layer.
    """

    def __init__(
        self,
        notify_on_event: bool = True,
        audio_alerts: bool = True,
        audio_volume: float = 0.75,
        alert_trigger: Optional[AlertTrigger] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.notify_on_event = notify_on_event
        self.audio_alerts = audio_alerts
        self.audio_volume = audio_volume
        self.alert_trigger = alert_trigger
        self._notified = ExpiringStore(NOTIFY_COOLDOWN_MS, clock=clock)
        self._lock = threading.Lock()

    def configure(self, **settings) -> None:
        for name in ("notify_on_event", "audio_alerts", "audio_volume"):
            if name in settings:
                setattr(self, name, settings[name])

    def notify(self, event: GameEvent) -> bool:
        """True when the notification went out, False when disabled or already sent recently."""
        if not self.notify_on_event:
            return False

        key = f"{event.name}-{event.map}"
        with self._lock:
            self._notified.purge()
            if self._notified.is_fresh(key):
                return False
            self._notified.touch(key)

        logger.info(f"Event started: {event.name} on {event.map}")

        if self.audio_alerts and self.alert_trigger is not None:
            try:
                self.alert_trigger(self.audio_volume)
            except Exception:
                logger.exception("Alert trigger failed")
        return True


class EventScheduleTracker:
    """Computes active events from a schedule and reports start/end transitions.

    The first update only records the baseline; events already running at
    that point do not produce alerts.
    """

    def __init__(self, notifier: Optional[EventNotifier] = None):
        self.notifier = notifier
        self.events: List[GameEvent] = []
        self.alerts: List[EventAlert] = []
        self._active: Dict[str, GameEvent] = {}
        self._initialized = False
        self._alert_ids = itertools.count(1)

    @property
    def active_events(self) -> List[GameEvent]:
        return list(self._active.values())

    def upcoming_events(self, now: int) -> List[GameEvent]:
        return sorted((e for e in self.events if now < e.start_time), key=lambda e: e.start_time)

    def update(self, events: Optional[Iterable[GameEvent]] = None, now: Optional[int] = None) -> List[EventAlert]:
        if events is not None:
            self.events = list(events)
        now = now_ms() if now is None else now

        current = {e.key: e for e in self.events if e.is_active(now)}
        previous = self._active
        self._active = current

        if not self._initialized:
            self._initialized = True
            return []

        started = [e for key, e in current.items() if key not in previous]
        ended = [e for key, e in previous.items() if key not in current]

        alerts = []
        if started:
            alerts.append(EventAlert(id=f"ea-{next(self._alert_ids)}", type="started", events=started, timestamp=now))
            if self.notifier is not None:
                self.notifier.notify(started[0])
        if ended:
            alerts.append(EventAlert(id=f"ea-{next(self._alert_ids)}", type="ended", events=ended, timestamp=now))
            logger.debug(f"{len(ended)} event(s) ended")

        self.alerts.extend(alerts)
        return alerts

    def dismiss_alert(self, alert_id: str) -> None:
        self.alerts = [a for a in self.alerts if a.id != alert_id]
