from .logging_setup import configure_logging
from .timer import RepeatingTimer

__all__ = ["configure_logging", "RepeatingTimer"]
