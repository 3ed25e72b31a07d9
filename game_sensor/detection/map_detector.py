"""Map detection from loading screen text, with event based fallback and manual override."""

import logging
import threading
from typing import Callable, Iterable, List, Optional

from ..core.models import (
    Bot,
    EnemyIntel,
    EventIntel,
    GameEvent,
    GameMap,
    MapIntel,
    MapSource,
    Quest,
    QuestIntel,
    RecognitionResult,
    loc,
    now_ms,
)
from ..core.ttl_store import ExpiringStore
from ..matching.fuzzy import best_match, loose_match_score, normalize
from .completed_quests import CompletedQuestStore, InMemoryCompletedQuestStore

logger = logging.getLogger(__name__)

MAP_ZONES = frozenset({"loadingScreen", "centerPopup"})
MIN_CONFIDENCE = 40
MATCH_THRESHOLD = 0.6
DEBOUNCE_MS = 10_000
MAX_LOOT = 12

_DEBOUNCE_KEY = "map-detection"

MapListener = Callable[[Optional[MapIntel]], None]


class MapDetector:
    """Tracks which map the player is on.

    Three sources, in priority order: a manual selection (blocks OCR until
    cleared), OCR on the loading screen and center popup zones, and an
    inference from the first active world event when nothing else is known.
    """

    def __init__(
        self,
        maps: Iterable[GameMap] = (),
        bots: Iterable[Bot] = (),
        quests: Iterable[Quest] = (),
        active_events: Iterable[GameEvent] = (),
        completed_store: Optional[CompletedQuestStore] = None,
        squad_quest_ids: Iterable[str] = (),
        clock: Callable[[], int] = now_ms,
    ):
        self.maps: List[GameMap] = list(maps)
        self.bots: List[Bot] = list(bots)
        self.quests: List[Quest] = list(quests)
        self.active_events: List[GameEvent] = list(active_events)
        self.squad_quest_ids: List[str] = list(squad_quest_ids)
        self.completed_store = completed_store or InMemoryCompletedQuestStore()

        self._debounce = ExpiringStore(DEBOUNCE_MS, clock=clock)
        self._current: Optional[MapIntel] = None
        self._manual_override: Optional[str] = None
        self._listeners: List[MapListener] = []
        self._lock = threading.RLock()

    @property
    def current_map(self) -> Optional[MapIntel]:
        return self._current

    @property
    def manual_override(self) -> Optional[str]:
        return self._manual_override

    def add_listener(self, callback: MapListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def handle_result(self, result: RecognitionResult) -> Optional[MapIntel]:
        """OCR path. Returns the published intel when the result switched the map."""
        if not result.usable(MIN_CONFIDENCE) or result.zone_id not in MAP_ZONES:
            return None

        with self._lock:
            if self._manual_override is not None:
                return None
            if self._debounce.is_fresh(_DEBOUNCE_KEY):
                return None

            match = best_match(
                result.text, self.maps, key=lambda m: m.display_name, scorer=loose_match_score, threshold=MATCH_THRESHOLD
            )
            if match is None:
                return None

            game_map, score = match
            self._debounce.touch(_DEBOUNCE_KEY)
            intel = self._build_intel(game_map, "ocr")
            self._current = intel

        logger.info(f"Map detected from {result.zone_id}: {intel.map_name} (score {score:.2f})")
        self._notify(intel)
        return intel

    def refresh(self) -> Optional[MapIntel]:
        """Event fallback: infer the map from the first active event, or drop a stale inference."""
        with self._lock:
            if self._manual_override is not None:
                return self._current

            if self._current is not None:
                if self._current.source == "event-inferred" and not self.active_events:
                    self._current = None
                    cleared = True
                else:
                    return self._current
            else:
                cleared = False
                inferred = self._infer_from_events()
                if inferred is None:
                    return None
                self._current = inferred

            intel = self._current

        if cleared:
            logger.info("Active events ended, inferred map cleared")
        else:
            logger.info(f"Map inferred from active event: {intel.map_name}")
        self._notify(intel)
        return intel

    def select_map(self, map_id: str) -> bool:
        with self._lock:
            game_map = next((m for m in self.maps if m.id == map_id), None)
            if game_map is None:
                logger.debug(f"select_map: unknown map id {map_id}")
                return False
            self._manual_override = map_id
            intel = self._build_intel(game_map, "manual")
            self._current = intel

        logger.info(f"Map selected manually: {intel.map_name}")
        self._notify(intel)
        return True

    def clear_map(self) -> None:
        with self._lock:
            self._manual_override = None
            self._current = None
        self._notify(None)

    def update_data(
        self,
        maps: Optional[Iterable[GameMap]] = None,
        bots: Optional[Iterable[Bot]] = None,
        quests: Optional[Iterable[Quest]] = None,
        active_events: Optional[Iterable[GameEvent]] = None,
        squad_quest_ids: Optional[Iterable[str]] = None,
    ) -> Optional[MapIntel]:
        """Replace collaborator data, rebuild the current intel and rerun the fallback."""
        rebuilt = None
        dropped = None
        with self._lock:
            if maps is not None:
                self.maps = list(maps)
            if bots is not None:
                self.bots = list(bots)
            if quests is not None:
                self.quests = list(quests)
            if active_events is not None:
                self.active_events = list(active_events)
            if squad_quest_ids is not None:
                self.squad_quest_ids = list(squad_quest_ids)

            if self._current is not None:
                game_map = next((m for m in self.maps if m.id == self._current.map_id), None)
                if game_map is not None:
                    rebuilt = self._build_intel(game_map, self._current.source)
                    self._current = rebuilt
                else:
                    dropped = self._current
                    if self._manual_override == dropped.map_id:
                        self._manual_override = None
                    self._current = None

        if rebuilt is not None:
            self._notify(rebuilt)
        elif dropped is not None:
            logger.info(f"Map {dropped.map_name} no longer in game data, cleared")
            self._notify(None)
        return self.refresh()

    def _infer_from_events(self) -> Optional[MapIntel]:
        if not self.active_events:
            return None
        event_map = normalize(self.active_events[0].map)
        if not event_map:
            return None
        for game_map in self.maps:
            if event_map in normalize(game_map.display_name):
                return self._build_intel(game_map, "event-inferred")
        return None

    def _build_intel(self, game_map: GameMap, source: MapSource) -> MapIntel:
        map_name = game_map.display_name
        name_lower = map_name.lower()
        name_norm = normalize(map_name)

        enemies = [
            EnemyIntel(
                name=loc(bot.name),
                threat=bot.threat or "Unknown",
                weakness=bot.weakness or "None",
                drops=list(bot.drops),
            )
            for bot in self.bots
            if any(_names_overlap(entry.lower(), name_lower) or entry == game_map.id for entry in bot.maps)
        ]

        quests = [
            QuestIntel(id=quest.id, name=loc(quest.name), trader=quest.trader, objectives=list(quest.objectives))
            for quest in self.quests
            if not self.completed_store.is_complete(quest.id)
            and (
                any(name_norm and name_norm in normalize(objective) for objective in quest.objectives)
                or quest.id in self.squad_quest_ids
            )
        ]

        loot: List[str] = []
        for enemy in enemies:
            for drop in enemy.drops:
                if drop not in loot:
                    loot.append(drop)

        events = [
            EventIntel(name=event.name, end_time=event.end_time)
            for event in self.active_events
            if _names_overlap(normalize(event.map), name_norm)
        ]

        return MapIntel(
            map_id=game_map.id,
            map_name=map_name,
            enemies=enemies,
            quests=quests,
            loot=loot[:MAX_LOOT],
            active_events=events,
            source=source,
        )

    def _notify(self, intel: Optional[MapIntel]) -> None:
        for callback in list(self._listeners):
            try:
                callback(intel)
            except Exception:
                logger.exception("Map listener failed")


def _names_overlap(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return a in b or b in a
