"""Sensor settings: defaults, optional JSON file, then GAME_SENSOR_* environment overrides."""

import json
import logging
import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

ENV_PREFIX = "GAME_SENSOR_"

DEFAULT_ACTIVE_ZONES = ["objectiveComplete", "itemPickup", "killFeed", "centerPopup", "loadingScreen"]
DEFAULT_WINDOW_TITLES = ["ArcRaiders", "Arc Raiders", "UnrealWindow"]
DEFAULT_COMPLETED_QUESTS_PATH = os.path.join(os.path.expanduser("~"), ".game_sensor", "completed_quests.json")


class SensorSettings(BaseModel):
    """Runtime settings for capture, recognition, detection and alerts."""

    # OCR
    ocr_enabled: bool = True
    capture_interval_ms: int = Field(default=1500, ge=100)
    match_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    active_zones: List[str] = Field(default_factory=lambda: list(DEFAULT_ACTIVE_ZONES))

    # Game discovery
    process_name: str = "ArcRaiders.exe"
    window_process_name: str = "PioneerGame"
    window_titles: List[str] = Field(default_factory=lambda: list(DEFAULT_WINDOW_TITLES))
    process_poll_interval_s: float = Field(default=5.0, gt=0)
    monitor_index: int = Field(default=1, ge=1)

    # Recognition worker
    recognition_timeout_s: float = Field(default=10.0, gt=0)
    recognition_queue_size: int = Field(default=8, ge=1)

    # Alerts
    notify_on_event: bool = True
    audio_alerts: bool = True
    audio_volume: float = Field(default=0.75, ge=0.0, le=1.0)

    completed_quests_path: str = DEFAULT_COMPLETED_QUESTS_PATH

    @field_validator("active_zones", "window_titles", mode="before")
    @classmethod
    def _split_csv(cls, value: Any) -> Any:
        # Environment values arrive as "a,b,c"
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @classmethod
    def load(cls, path: Optional[str] = None, env: bool = True) -> "SensorSettings":
        """Build settings from defaults, the JSON file at path (if any) and the environment.

        Invalid values are dropped one layer at a time: a bad environment value
        falls back to the file, a bad file value to the default.
        """
        layers: List[Dict[str, Any]] = []
        if path:
            layers.append(_read_settings_file(path))
        if env:
            load_dotenv()
            layers.append(_env_overrides())

        while True:
            values: Dict[str, Any] = {}
            for layer in layers:
                values.update(layer)
            try:
                return cls(**values)
            except ValidationError as e:
                invalid = {err["loc"][0] for err in e.errors() if err["loc"]}
                dropped = False
                for key in invalid:
                    # Topmost layer that set the key loses it
                    for layer in reversed(layers):
                        if key in layer:
                            del layer[key]
                            dropped = True
                            break
                if not dropped:
                    logger.warning(f"Invalid settings, falling back to defaults: {e}")
                    return cls()
                logger.warning(f"Ignoring invalid settings {', '.join(sorted(map(str, invalid)))}: {e}")

    def merged(self, **partial: Any) -> "SensorSettings":
        """Validated copy with the given fields replaced; raises ValidationError on bad values."""
        data = self.model_dump()
        data.update(partial)
        return SensorSettings(**data)

    def save(self, path: str) -> None:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(), f, indent=2)
        logger.info(f"Settings saved to {path}")


def _read_settings_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.warning(f"Settings file {path} not found, using defaults")
        return {}
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read settings file {path}, using defaults: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Settings file {path} must contain a JSON object, ignoring it")
        return {}

    unknown = set(data) - set(SensorSettings.model_fields)
    if unknown:
        logger.warning(f"Ignoring unknown settings: {', '.join(sorted(unknown))}")
    return {key: value for key, value in data.items() if key in SensorSettings.model_fields}


def _env_overrides() -> Dict[str, str]:
    overrides = {}
    for name in SensorSettings.model_fields:
        value = os.getenv(ENV_PREFIX + name.upper())
        if value is not None:
            overrides[name] = value
    return overrides
