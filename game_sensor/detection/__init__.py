"""Detection module - turns recognition results into map and quest state."""

from .completed_quests import CompletedQuestStore, InMemoryCompletedQuestStore, JsonCompletedQuestStore
from .events import EventNotifier, EventScheduleTracker
from .map_detector import MapDetector
from .quest_tracker import QuestAutoTracker

__all__ = [
    "CompletedQuestStore",
    "InMemoryCompletedQuestStore",
    "JsonCompletedQuestStore",
    "EventNotifier",
    "EventScheduleTracker",
    "MapDetector",
    "QuestAutoTracker",
]
