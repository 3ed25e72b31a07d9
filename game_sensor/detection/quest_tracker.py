# Auto-completes quests when OCR text matches one of their objectives
import logging
import threading
from typing import Callable, Iterable, List, Optional

from ..core.models import Quest, QuestCompletion, RecognitionResult, now_ms
from ..core.ttl_store import ExpiringStore
from ..matching.fuzzy import token_match_score
from .completed_quests import CompletedQuestStore, InMemoryCompletedQuestStore

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 30
DEFAULT_MATCH_THRESHOLD = 0.7
DEDUP_COOLDOWN_MS = 30_000
MAX_VISIBLE_COMPLETIONS = 3

CompletionListener = Callable[[QuestCompletion], None]


class QuestAutoTracker:
    """Matches every incoming result against the objectives of open quests.

    A matched quest is marked complete in the store, pushed to the front of a
    short visible queue and reported to listeners. The same quest cannot fire
    again for DEDUP_COOLDOWN_MS even if the store is reset in between.
    """

    def __init__(
        self,
        quests: Iterable[Quest] = (),
        completed_store: Optional[CompletedQuestStore] = None,
        match_threshold: float = DEFAULT_MATCH_THRESHOLD,
        enabled: bool = True,
        clock: Callable[[], int] = now_ms,
    ):
        self.quests: List[Quest] = list(quests)
        self.completed_store = completed_store or InMemoryCompletedQuestStore()
        self.match_threshold = match_threshold
        self.enabled = enabled

        self._recent = ExpiringStore(DEDUP_COOLDOWN_MS, clock=clock)
        self._queue: List[QuestCompletion] = []
        self._last_completion: Optional[QuestCompletion] = None
        self._scanning = False
        self._listeners: List[CompletionListener] = []
        self._lock = threading.Lock()

    @property
    def is_scanning(self) -> bool:
        return self._scanning

    @property
    def last_completion(self) -> Optional[QuestCompletion]:
        return self._last_completion

    @property
    def completion_queue(self) -> List[QuestCompletion]:
        with self._lock:
            return list(self._queue)

    def add_listener(self, callback: CompletionListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled
        if not enabled:
            self._scanning = False

    def set_match_threshold(self, threshold: float) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"match threshold must be within [0, 1], got {threshold}")
        self.match_threshold = threshold

    def update_quests(self, quests: Iterable[Quest]) -> None:
        with self._lock:
            self.quests = list(quests)

    def handle_result(self, result: RecognitionResult) -> List[QuestCompletion]:
        """Check one result against all open quests; returns the completions it produced."""
        if not self.enabled or not result.usable(MIN_CONFIDENCE):
            return []

        self._scanning = True
        completions: List[QuestCompletion] = []

        with self._lock:
            for quest in self.quests:
                if not quest.objectives or self.completed_store.is_complete(quest.id):
                    continue
                if self._recent.is_fresh(quest.id):
                    continue

                for objective in quest.objectives:
                    score = token_match_score(result.text, objective)
                    if score < self.match_threshold:
                        continue

                    self._recent.touch(quest.id)
                    self.completed_store.mark_complete(quest.id)
                    completion = QuestCompletion(
                        quest_id=quest.id,
                        quest_name=quest.display_name,
                        objective=objective,
                        timestamp=self._recent.now(),
                    )
                    self._queue = [completion] + self._queue[: MAX_VISIBLE_COMPLETIONS - 1]
                    self._last_completion = completion
                    completions.append(completion)
                    logger.info(f"Quest completed: {completion.quest_name} ({objective!r}, score {score:.2f})")
                    break

            self._recent.purge()

        for completion in completions:
            self._notify(completion)
        return completions

    def dismiss_completion(self, timestamp: int) -> None:
        with self._lock:
            self._queue = [c for c in self._queue if c.timestamp != timestamp]

    def _notify(self, completion: QuestCompletion) -> None:
        for callback in list(self._listeners):
            try:
                callback(completion)
            except Exception:
                logger.exception("Quest completion listener failed")
