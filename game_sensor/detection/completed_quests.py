# Completed quest persistence: the quest tracker asks it before matching and marks quests done
import json
import logging
import os
import threading
from typing import Iterable, List, Optional, Protocol, Set

logger = logging.getLogger(__name__)


class CompletedQuestStore(Protocol):
    def mark_complete(self, quest_id: str) -> None: ...

    def mark_incomplete(self, quest_id: str) -> None: ...

    def is_complete(self, quest_id: str) -> bool: ...

    def completed_ids(self) -> List[str]: ...


class InMemoryCompletedQuestStore:  # Process lifetime only

    def __init__(self, completed: Optional[Iterable[str]] = None):
        self._ids: Set[str] = set(completed or [])
        self._lock = threading.Lock()

    def mark_complete(self, quest_id: str) -> None:
        with self._lock:
            self._ids.add(quest_id)

    def mark_incomplete(self, quest_id: str) -> None:
        with self._lock:
            self._ids.discard(quest_id)

    def is_complete(self, quest_id: str) -> bool:
        with self._lock:
            return quest_id in self._ids

    def completed_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._ids)


class JsonCompletedQuestStore(InMemoryCompletedQuestStore):
    """Completed quest ids persisted as a JSON array, rewritten on every change."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(self._read())

    def _read(self) -> List[str]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read completed quests from {self.path}, starting empty: {e}")
            return []

        if not isinstance(data, list):
            logger.warning(f"Completed quests file {self.path} is not a list, starting empty")
            return []
        return [str(quest_id) for quest_id in data]

    def _write(self) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.completed_ids(), f, indent=2)

    def mark_complete(self, quest_id: str) -> None:
        if self.is_complete(quest_id):
            return
        super().mark_complete(quest_id)
        self._write()
        logger.debug(f"Quest {quest_id} marked complete")

    def mark_incomplete(self, quest_id: str) -> None:
        if not self.is_complete(quest_id):
            return
        super().mark_incomplete(quest_id)
        self._write()
        logger.debug(f"Quest {quest_id} marked incomplete")
