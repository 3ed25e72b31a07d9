"""Unit tests for map detection from OCR, event fallback and manual selection."""
import pytest

from conftest import make_result
from game_sensor.core.models import Bot, GameEvent
from game_sensor.detection.map_detector import DEBOUNCE_MS, MapDetector


@pytest.fixture
def bots():
    return [
        Bot(id="wasp", name="Wasp", maps=["Spaceport"], drops=["Wasp Driver", "ARC Alloy"]),
        Bot(id="leaper", name={"en": "Leaper"}, threat="High", weakness="Legs", maps=["dam"], drops=["ARC Alloy"]),
        Bot(id="bastion", name="Bastion", maps=["Buried City"], drops=["Bastion Cell"]),
    ]


@pytest.fixture
def detector(maps, bots, quests, quest_store, clock):
    return MapDetector(maps=maps, bots=bots, quests=quests, completed_store=quest_store, clock=clock)


@pytest.fixture
def published(detector):
    seen = []
    detector.add_listener(seen.append)
    return seen


def harvester(map_name="Spaceport", start=0, end=10**13):
    return GameEvent(name="Harvester", map=map_name, start_time=start, end_time=end)


class TestOcrDetection:
    """Test suite for the OCR path."""

    def test_loading_screen_text_sets_map(self, detector, published):
        intel = detector.handle_result(make_result("SPACEPORT", zone_id="loadingScreen"))

        assert intel.map_id == "spaceport"
        assert intel.map_name == "Spaceport"
        assert intel.source == "ocr"
        assert detector.current_map == intel
        assert published == [intel]

    @pytest.mark.parametrize(
        "result",
        [
            make_result("SPACEPORT", confidence=35),
            make_result("SPACEPORT", zone_id="killFeed"),
            make_result("", zone_id="loadingScreen"),
            make_result("Blue Gate", zone_id="loadingScreen"),
        ],
    )
    def test_ignored_results(self, detector, published, result):
        assert detector.handle_result(result) is None
        assert detector.current_map is None
        assert published == []

    def test_second_detection_inside_debounce_is_ignored(self, detector, published, clock):
        detector.handle_result(make_result("SPACEPORT"))
        clock.advance(5_000)
        detector.handle_result(make_result("BURIED CITY"))

        assert len(published) == 1
        assert detector.current_map.map_id == "spaceport"

    def test_detection_after_debounce(self, detector, published, clock):
        detector.handle_result(make_result("SPACEPORT"))
        clock.advance(DEBOUNCE_MS)
        detector.handle_result(make_result("BURIED CITY"))

        assert len(published) == 2
        assert detector.current_map.map_id == "buried-city"

    def test_failed_match_does_not_arm_debounce(self, detector, published):
        detector.handle_result(make_result("Loading..."))
        detector.handle_result(make_result("Dam Battlegrounds"))
        assert detector.current_map.map_id == "dam"

    def test_listener_unsubscribe(self, detector):
        seen = []
        unsubscribe = detector.add_listener(seen.append)
        unsubscribe()
        detector.handle_result(make_result("SPACEPORT"))
        assert seen == []

    def test_listener_errors_are_contained(self, detector):
        def broken(_intel):
            raise RuntimeError("ui gone")

        detector.add_listener(broken)
        assert detector.handle_result(make_result("SPACEPORT")) is not None


class TestManualSelection:
    """Test suite for manual override."""

    def test_select_map_blocks_ocr(self, detector, clock):
        assert detector.select_map("dam")
        assert detector.manual_override == "dam"
        assert detector.current_map.source == "manual"

        clock.advance(DEBOUNCE_MS * 2)
        assert detector.handle_result(make_result("SPACEPORT")) is None
        assert detector.current_map.map_id == "dam"

    def test_unknown_map_is_noop(self, detector, published):
        assert not detector.select_map("nowhere")
        assert detector.manual_override is None
        assert published == []

    def test_clear_map_resumes_ocr(self, detector, published):
        detector.select_map("dam")
        detector.clear_map()

        assert detector.current_map is None
        assert detector.manual_override is None
        assert published[-1] is None
        assert detector.handle_result(make_result("SPACEPORT")).map_id == "spaceport"


class TestEventFallback:
    """Test suite for inferring the map from active events."""

    def test_infers_map_from_first_active_event(self, detector, published):
        intel = detector.update_data(active_events=[harvester("Spaceport"), harvester("Dam")])

        assert intel.map_id == "spaceport"
        assert intel.source == "event-inferred"
        assert published == [intel]

    def test_no_matching_map(self, detector):
        assert detector.update_data(active_events=[harvester("Blue Gate")]) is None
        assert detector.current_map is None

    def test_does_not_replace_ocr_map(self, detector):
        detector.handle_result(make_result("BURIED CITY"))
        detector.update_data(active_events=[harvester("Spaceport")])
        assert detector.current_map.map_id == "buried-city"
        assert detector.current_map.source == "ocr"

    def test_not_used_with_manual_override(self, detector):
        detector.select_map("dam")
        detector.update_data(active_events=[harvester("Spaceport")])
        assert detector.current_map.map_id == "dam"

    def test_inferred_map_cleared_when_events_end(self, detector, published):
        detector.update_data(active_events=[harvester("Spaceport")])
        detector.update_data(active_events=[])

        assert detector.current_map is None
        assert published[-1] is None

    def test_ocr_overrides_inferred_map(self, detector):
        detector.update_data(active_events=[harvester("Spaceport")])
        detector.handle_result(make_result("Dam Battlegrounds", zone_id="loadingScreen"))
        assert detector.current_map.map_id == "dam"
        assert detector.current_map.source == "ocr"


class TestMapIntel:
    """Test suite for the cross referenced intel snapshot."""

    def test_enemies_by_map_name(self, detector):
        intel = detector.handle_result(make_result("SPACEPORT"))
        assert [e.name for e in intel.enemies] == ["Wasp"]
        assert intel.enemies[0].threat == "Unknown"
        assert intel.enemies[0].weakness == "None"

    def test_enemies_by_map_id(self, detector):
        detector.select_map("dam")
        enemy = detector.current_map.enemies[0]
        assert enemy.name == "Leaper"
        assert enemy.threat == "High"

    def test_quests_mentioning_map(self, detector):
        intel = detector.handle_result(make_result("SPACEPORT"))
        assert [q.id for q in intel.quests] == ["q-scout"]

    def test_completed_quests_excluded(self, detector, quest_store):
        quest_store.mark_complete("q-scout")
        intel = detector.handle_result(make_result("SPACEPORT"))
        assert intel.quests == []

    def test_squad_quests_included(self, detector):
        detector.update_data(squad_quest_ids=["q-cells"])
        detector.select_map("spaceport")
        assert [q.id for q in detector.current_map.quests] == ["q-cells", "q-scout"]
        assert detector.current_map.quests[0].name == "Power Trip"

    def test_loot_is_deduplicated_and_capped(self, detector, maps):
        many = [f"Part {i}" for i in range(20)]
        detector.update_data(
            bots=[
                Bot(id="a", name="A", maps=["Spaceport"], drops=["ARC Alloy"] + many),
                Bot(id="b", name="B", maps=["Spaceport"], drops=["ARC Alloy"]),
            ]
        )
        intel = detector.handle_result(make_result("SPACEPORT"))
        assert intel.loot[0] == "ARC Alloy"
        assert len(intel.loot) == 12
        assert len(set(intel.loot)) == 12

    def test_active_events_on_map(self, detector):
        event = harvester("Spaceport", end=5_000_000)
        detector.handle_result(make_result("BURIED CITY"))
        detector.update_data(active_events=[event, harvester("Buried City", end=7_000_000)])

        events = detector.current_map.active_events
        assert [(e.name, e.end_time) for e in events] == [("Harvester", 7_000_000)]

    def test_data_update_rebuilds_current_intel(self, detector, published):
        detector.select_map("spaceport")
        detector.update_data(bots=[])
        assert detector.current_map.enemies == []
        assert detector.current_map.source == "manual"
        assert len(published) == 2

    def test_map_removed_from_data_clears_ocr_intel(self, detector, published):
        detector.handle_result(make_result("SPACEPORT"))
        detector.update_data(maps=[])

        assert detector.current_map is None
        assert published[-1] is None

    def test_map_removed_from_data_clears_manual_override(self, detector, published, maps):
        detector.select_map("dam")
        detector.update_data(maps=[m for m in maps if m.id != "dam"])

        assert detector.current_map is None
        assert detector.manual_override is None
        assert published[-1] is None
