"""Unit tests for the capture scheduler lifecycle and tick behaviour."""
import cv2
import numpy as np
import pytest

from conftest import wait_until
from game_sensor.core.scheduler import CaptureScheduler
from game_sensor.ocr.recognition_unit import RecognitionUnit


@pytest.fixture
def results():
    return []


@pytest.fixture
def factory(engine):
    created = []

    def make_unit(on_result):
        unit = RecognitionUnit(on_result, engine=engine)
        created.append(unit)
        return unit

    make_unit.created = created
    return make_unit


@pytest.fixture
def scheduler(small_registry, frame_source, factory, results, clock):
    scheduler = CaptureScheduler(
        small_registry, frame_source, results.append, unit_factory=factory, interval_ms=60_000, clock=clock
    )
    yield scheduler
    scheduler.destroy()


class TestCaptureScheduler:
    """Test suite for Stopped/Running transitions and per-tick work."""

    def test_start_captures_immediately(self, scheduler, frame_source, results, clock):
        scheduler.start()

        assert scheduler.scanning
        assert frame_source.calls == 1
        assert wait_until(lambda: len(results) == 2)
        assert {r.zone_id for r in results} == {"objectiveComplete", "centerPopup"}
        assert all(r.timestamp == clock.now for r in results)

    def test_crops_are_png_of_zone_size(self, scheduler, engine, results):
        scheduler.update_settings(active_zones=["objectiveComplete"])
        scheduler.start()
        assert wait_until(lambda: len(engine.buffers) == 1)

        crop = cv2.imdecode(np.frombuffer(engine.buffers[0], dtype=np.uint8), cv2.IMREAD_COLOR)
        assert crop.shape[:2] == (86, 768)

    def test_start_is_idempotent(self, scheduler, frame_source, factory):
        scheduler.start()
        scheduler.start()
        assert frame_source.calls == 1
        assert len(factory.created) == 1

    def test_stop_keeps_worker(self, scheduler, results):
        scheduler.start()
        assert wait_until(lambda: scheduler.worker_ready)

        scheduler.stop()

        assert not scheduler.scanning
        assert scheduler.worker_ready
        assert scheduler.recognition_available

    def test_destroy_then_start_creates_fresh_unit(self, scheduler, factory):
        scheduler.start()
        scheduler.destroy()

        assert not scheduler.scanning
        assert not scheduler.worker_ready
        assert scheduler.unit is None

        scheduler.start()
        assert len(factory.created) == 2
        assert scheduler.unit is factory.created[1]

    def test_no_frame_is_a_silent_noop(self, scheduler, frame_source, results):
        frame_source.frame = None
        scheduler.start()
        assert scheduler.capture_once() == 0
        assert results == []

    def test_capture_error_skips_tick(self, scheduler, frame_source):
        scheduler.start()
        frame_source.error = OSError("window closed")
        assert scheduler.capture_once() == 0
        assert scheduler.scanning

    def test_capture_without_unit_does_nothing(self, scheduler, frame_source):
        assert scheduler.capture_once() == 0
        assert frame_source.calls == 0

    def test_active_zone_filter(self, scheduler, results):
        scheduler.update_settings(active_zones=["centerPopup", "unknownZone"])
        scheduler.start()
        assert scheduler.last_submitted == 1
        assert wait_until(lambda: len(results) == 1)
        assert results[0].zone_id == "centerPopup"

    def test_interval_change_restarts_running_scheduler(self, scheduler, frame_source):
        scheduler.start()
        first_timer = scheduler._timer

        scheduler.update_settings(capture_interval_ms=30_000)

        assert scheduler.scanning
        assert scheduler.interval_ms == 30_000
        assert scheduler._timer is not first_timer
        assert frame_source.calls == 2

    def test_interval_change_while_stopped(self, scheduler, frame_source):
        scheduler.update_settings(capture_interval_ms=2000)
        assert not scheduler.scanning
        assert scheduler.interval_ms == 2000
        assert frame_source.calls == 0

    def test_zone_change_does_not_restart(self, scheduler, frame_source):
        scheduler.start()
        timer = scheduler._timer
        scheduler.update_settings(active_zones=["centerPopup"])
        assert scheduler._timer is timer
        assert frame_source.calls == 1

    def test_timer_keeps_capturing(self, small_registry, frame_source, factory, results):
        scheduler = CaptureScheduler(small_registry, frame_source, results.append, unit_factory=factory, interval_ms=50)
        try:
            scheduler.start()
            assert wait_until(lambda: frame_source.calls >= 3)
        finally:
            scheduler.destroy()

    def test_invalid_interval(self, small_registry, frame_source, results):
        with pytest.raises(ValueError):
            CaptureScheduler(small_registry, frame_source, results.append, interval_ms=0)

    @pytest.mark.parametrize("interval", [0, -500])
    def test_invalid_interval_update(self, scheduler, interval):
        with pytest.raises(ValueError):
            scheduler.update_settings(capture_interval_ms=interval)
        assert scheduler.interval_ms != interval

    def test_test_capture_reports_sizes(self, scheduler):
        info = scheduler.test_capture()
        assert info["screen_width"] == 1920
        assert info["screen_height"] == 1080
        assert {"zone": "objectiveComplete", "width": 768, "height": 86} in info["zones"]

    def test_test_capture_skips_zones_too_small_for_frame(self, scheduler, frame_source):
        frame_source.frame = np.zeros((50, 100, 3), dtype=np.uint8)
        info = scheduler.test_capture()
        assert info["zones"] == []

    def test_test_capture_without_frame(self, scheduler, frame_source):
        frame_source.frame = None
        assert scheduler.test_capture() is None
