#!/usr/bin/env python3
"""Game sensor entry point."""

import argparse
import logging
import sys
import time
from typing import List, Optional

from .config.settings import SensorSettings
from .core.models import MapIntel, QuestCompletion, RecognitionResult
from .core.sensor import GameSensor
from .core.zone_registry import ZoneRegistry
from .utils.logging_setup import configure_logging

logger = logging.getLogger(__name__)

# --once waits this long for the worker to answer every submitted crop
ONCE_RESULT_TIMEOUT_S = 30.0


class GameSensorApp:
    """Command line host for the game sensor."""

    def __init__(self, debug: bool = False, settings_path: Optional[str] = None, zones_path: Optional[str] = None):
        self.debug = debug
        self.settings_path = settings_path
        self.zones_path = zones_path
        self.sensor: Optional[GameSensor] = None

    def setup_components(self) -> None:
        try:
            logger.info("Initializing game sensor components...")
            settings = SensorSettings.load(self.settings_path)
            registry = ZoneRegistry.load(self.zones_path)
            self.sensor = GameSensor(settings=settings, registry=registry)
            self.sensor.map_detector.add_listener(self._on_map)
            self.sensor.quest_tracker.add_listener(self._on_quest)
            logger.info(f"Game sensor ready: {len(registry)} zones, capture every {settings.capture_interval_ms}ms")

        except Exception as e:
            logger.error(f"Failed to initialize components: {e}")
            raise

    def _require_sensor(self) -> GameSensor:
        if not self.sensor:
            raise RuntimeError("Components not initialized. Call setup_components() first.")
        return self.sensor

    def run(self) -> None:
        """Watch for the game and scan until interrupted."""
        sensor = self._require_sensor()
        sensor.start()
        logger.info("Sensor running, press Ctrl+C to stop")
        try:
            while True:
                time.sleep(1.0)
                if self.debug:
                    logger.debug(f"Status: {sensor.status()}")
        finally:
            sensor.shutdown()

    def run_once(self) -> List[RecognitionResult]:
        """One capture tick; waits for the results of every submitted crop."""
        sensor = self._require_sensor()
        results: List[RecognitionResult] = []
        unsubscribe = sensor.subscribe(results.append)
        try:
            # start() runs the first tick synchronously; stop() before the timer fires again
            sensor.scheduler.start()
            sensor.scheduler.stop()
            expected = sensor.scheduler.last_submitted

            deadline = time.monotonic() + ONCE_RESULT_TIMEOUT_S
            while len(results) < expected and time.monotonic() < deadline:
                time.sleep(0.1)
            if len(results) < expected:
                logger.warning(f"Only {len(results)} of {expected} results arrived in time")
        finally:
            unsubscribe()
            sensor.shutdown()
        return results

    def test_capture(self) -> bool:
        sensor = self._require_sensor()
        try:
            info = sensor.test_capture()
        finally:
            sensor.shutdown()

        if info is None:
            print("[ERROR] No frame could be captured")
            return False

        print(f"\nFrame: {info['screen_width']}x{info['screen_height']}")
        for zone in info["zones"]:
            print(f"  {zone['zone']:<20} {zone['width']}x{zone['height']}")
        return True

    def get_system_info(self) -> dict:
        if not self.sensor:
            return {"status": "not_initialized"}
        return {"status": "initialized", "debug_mode": self.debug, **self.sensor.status()}

    @staticmethod
    def _on_map(intel: Optional[MapIntel]) -> None:
        if intel is None:
            logger.info("Map cleared")
            return
        logger.info(
            f"Map: {intel.map_name} ({intel.source}) - {len(intel.enemies)} enemies, "
            f"{len(intel.quests)} quests, {len(intel.active_events)} active events"
        )

    @staticmethod
    def _on_quest(completion: QuestCompletion) -> None:
        logger.info(f"Quest complete: {completion.quest_name} - {completion.objective}")


def setup_args() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Arc Raiders Game Sensor - OCR zone capture with map and quest detection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # Watch for the game and scan while it runs
  %(prog)s --debug                  # Debug mode with verbose output
  %(prog)s --test-capture           # Capture one frame and show zone crop sizes
  %(prog)s --once                   # One capture tick, print the OCR results
        """,
    )

    parser.add_argument("--debug", action="store_true", help="Enable debug logging and verbose output")
    parser.add_argument("--settings", default=None, help="Settings JSON file path")
    parser.add_argument("--zones", default=None, help="Zone definition JSON file path (default: shipped zones)")
    parser.add_argument("--info", action="store_true", help="Show system information only")
    parser.add_argument("--test-capture", action="store_true", help="Capture one frame and report zone sizes")
    parser.add_argument("--once", action="store_true", help="Run a single capture tick and print the results")

    return parser


def show_info():
    print("\n" + "=" * 60)
    print("Arc Raiders Game Sensor")
    print("=" * 60)
    print("\nPipeline:")
    print("  • Process Watcher: start/stop scanning with the game")
    print("  • Screen Capture: game window or primary monitor")
    print("  • Recognition Unit: Tesseract OCR on a worker thread")
    print("  • Detection: map from loading screen, quest objectives")
    print("-" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    parser = setup_args()
    args = parser.parse_args(argv)

    configure_logging(debug=args.debug)

    if args.info:
        show_info()
        return 0

    try:
        app = GameSensorApp(debug=args.debug, settings_path=args.settings, zones_path=args.zones)
        app.setup_components()

        if args.debug:
            print(f"\nSystem Info: {app.get_system_info()}")

        if args.test_capture:
            return 0 if app.test_capture() else 1

        if args.once:
            results = app.run_once()
            for result in results:
                if result.failed:
                    print(f"[{result.zone_id}] error: {result.error}")
                else:
                    print(f"[{result.zone_id}] ({result.confidence:.0f}) {result.text!r}")
            return 0 if results else 1

        show_info()
        app.run()
        return 0

    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user. Exiting...")
        return 130  # Standard exit code for Ctrl+C
    except Exception as e:
        logger.error(f"Application failed: {e}")
        if args.debug:
            import traceback

            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
